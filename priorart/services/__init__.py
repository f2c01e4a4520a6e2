"""
External-service adapters and decision logic.

Use explicit imports from submodules:
    from priorart.services.embeddings import EmbeddingService
    from priorart.services.diagram_classifier import DiagramClassifier
    from priorart.services.reasoning_llm import AdvisoryReasoner
    from priorart.services.rationale_llm import RationaleGenerator
    from priorart.services.verdict import compute_final_verdict
"""
