"""
Tests for the service adapters and the verdict aggregator.

Tests for:
- EmbeddingService batching and ordering
- DiagramClassifier fallbacks
- AdvisoryReasoner sanitizing and fallback
- Rationale generation and enrichment
- compute_final_verdict
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from tests.conftest import make_openai_client


def _claims(*numbers):
    from priorart.models import Claim
    return [Claim(claim_no=n, text=f"Claim {n} text.", expanded_text=f"Claim {n} expanded.") for n in numbers]


# ============================================================================
# Embeddings
# ============================================================================

class TestEmbeddingService:

    def test_batch_results_sorted_by_index(self, embedding_config):
        from priorart.services.embeddings import EmbeddingService

        client = MagicMock()
        client.embeddings.create.return_value = SimpleNamespace(data=[
            SimpleNamespace(index=1, embedding=[2.0]),
            SimpleNamespace(index=0, embedding=[1.0]),
        ])

        vectors = EmbeddingService(embedding_config, client=client).embed_batch(["first", "second"])

        assert vectors == [[1.0], [2.0]]
        client.embeddings.create.assert_called_once_with(model="test-embedding", input=["first", "second"])

    def test_large_input_split_into_requests(self, embedding_config):
        from priorart.services.embeddings import BATCH_SIZE, EmbeddingService

        def respond(model, input):
            return SimpleNamespace(data=[SimpleNamespace(index=i, embedding=[0.0]) for i in range(len(input))])

        client = MagicMock()
        client.embeddings.create.side_effect = respond

        vectors = EmbeddingService(embedding_config, client=client).embed_batch(["x"] * (BATCH_SIZE + 5))

        assert len(vectors) == BATCH_SIZE + 5
        assert client.embeddings.create.call_count == 2

    def test_missing_api_key(self, embedding_config, monkeypatch):
        from priorart import config
        from priorart.services.embeddings import EmbeddingService

        monkeypatch.setattr(config, "OPENAI_API_KEY", None)

        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            EmbeddingService(embedding_config).embed("text")


# ============================================================================
# Diagram classifier
# ============================================================================

class TestDiagramClassifier:

    def test_parses_camel_case_output(self):
        from priorart.services.diagram_classifier import DiagramClassifier

        client = make_openai_client({
            "type": "Flowchart",
            "semanticSummary": "Steps for sharpening a blade.",
            "components": ["start", "grind"],
            "confidence": 0.82,
        })

        result = DiagramClassifier(client=client).classify(b"\x89PNG")

        assert result["type"] == "flowchart"
        assert result["semantic_summary"] == "Steps for sharpening a blade."
        assert result["components"] == ["start", "grind"]
        assert result["confidence"] == 0.82

    def test_unrecognised_type_becomes_unknown(self):
        from priorart.services.diagram_classifier import DiagramClassifier

        client = make_openai_client({"type": "schematic", "semanticSummary": "x", "confidence": 0.7})
        assert DiagramClassifier(client=client).classify(b"img")["type"] == "unknown"

    def test_invalid_json_falls_back(self):
        from priorart.services.diagram_classifier import DiagramClassifier

        result = DiagramClassifier(client=make_openai_client("not json")).classify(b"img")

        assert result["type"] == "unknown"
        assert result["confidence"] == 0.0

    def test_transport_error_falls_back(self):
        from priorart.services.diagram_classifier import DiagramClassifier

        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError("timeout")

        result = DiagramClassifier(client=client).classify(b"img")

        assert result["type"] == "unknown"
        assert result["confidence"] == 0.0

    def test_empty_image_not_sent(self):
        from priorart.services.diagram_classifier import DiagramClassifier

        client = MagicMock()
        result = DiagramClassifier(client=client).classify(b"")

        assert result["confidence"] == 0.0
        client.chat.completions.create.assert_not_called()


# ============================================================================
# Advisory reasoner
# ============================================================================

class TestAdvisoryReasoner:

    def test_valid_judgment_sanitized(self):
        from priorart.services.reasoning_llm import AdvisoryReasoner

        client = make_openai_client({
            "suggestedConflict": True,
            "confidence": 0.82,
            "claimAnalysis": [
                {"targetClaim": 1, "sourceClaims": [3], "matchType": "SINGLE", "rationale": "All elements present."},
                {"targetClaim": 9, "sourceClaims": [1], "matchType": "SINGLE", "rationale": "Invented claim."},
            ],
            "diagramSupport": {"used": True, "explanation": "Figure 2 shows the guard."},
            "reasoning": "Claim 1 is anticipated.",
        })

        judgment = AdvisoryReasoner(client=client).judge(_claims(1, 2), "cand-1", _claims(1, 3))

        assert judgment.suggested_conflict is True
        assert judgment.confidence == 0.82
        assert [e.target_claim for e in judgment.claim_analysis] == [1]
        assert judgment.claim_analysis[0].source_claims == [3]
        assert judgment.diagram_support.used is True

    def test_prompt_contains_expanded_claims(self):
        from priorart.services.reasoning_llm import AdvisoryReasoner

        client = make_openai_client({"suggestedConflict": False, "confidence": 0.2})
        AdvisoryReasoner(client=client).judge(_claims(1), "cand-1", _claims(2))

        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert "Claim 1 expanded." in messages[1]["content"]
        assert "cand-1" in messages[1]["content"]

    def test_invalid_json_returns_fallback(self):
        from priorart.services.reasoning_llm import FALLBACK_REASONING, AdvisoryReasoner

        judgment = AdvisoryReasoner(client=make_openai_client("{oops")).judge(_claims(1), "c", _claims(1))

        assert judgment.suggested_conflict is False
        assert judgment.confidence == 0.0
        assert judgment.claim_analysis == []
        assert judgment.reasoning == FALLBACK_REASONING

    def test_out_of_range_confidence_returns_fallback(self):
        from priorart.services.reasoning_llm import AdvisoryReasoner

        client = make_openai_client({"suggestedConflict": True, "confidence": 1.7})
        judgment = AdvisoryReasoner(client=client).judge(_claims(1), "c", _claims(1))

        assert judgment.suggested_conflict is False
        assert judgment.confidence == 0.0

    def test_transport_error_returns_fallback(self):
        from priorart.services.reasoning_llm import AdvisoryReasoner

        client = MagicMock()
        client.chat.completions.create.side_effect = ConnectionError("reset")

        judgment = AdvisoryReasoner(client=client).judge(_claims(1), "c", _claims(1))
        assert judgment.confidence == 0.0

    @pytest.mark.parametrize("confidence,expected", [
        (0.0, "LOW"),
        (0.39, "LOW"),
        (0.4, "MEDIUM"),
        (0.69, "MEDIUM"),
        (0.7, "HIGH"),
        (1.0, "HIGH"),
    ])
    def test_confidence_level_bands(self, confidence, expected):
        from priorart.services.reasoning_llm import confidence_level
        assert confidence_level(confidence).value == expected


# ============================================================================
# Rationale
# ============================================================================

class TestRationale:

    def test_generate_parses_output(self):
        from priorart.services.rationale_llm import RationaleGenerator

        client = make_openai_client({
            "overlaps": [{"element": "blade", "explanation": "Both claim a blade."}],
            "distinctions": [],
            "overallAssessment": "HIGH_OVERLAP",
            "summary": "Nearly identical.",
        })

        rationale = RationaleGenerator(client=client).generate("A blade.", "A blade.")

        assert rationale.overall_assessment == "HIGH_OVERLAP"
        assert rationale.overlaps[0].element == "blade"

    def test_empty_text_skips_call(self):
        from priorart.services.rationale_llm import RationaleGenerator

        client = MagicMock()
        rationale = RationaleGenerator(client=client).generate("", "A blade.")

        assert rationale.overall_assessment == "NO_OVERLAP"
        assert rationale.summary == "Insufficient text for comparison."
        client.chat.completions.create.assert_not_called()

    def test_enrichment_annotates_claim_matches_only(self):
        from priorart.services.rationale_llm import enrich_matches_with_rationale
        from priorart.services.schemas import Rationale

        generator = MagicMock()
        generator.generate.return_value = Rationale(overall_assessment="PARTIAL_OVERLAP", summary="Some overlap.")
        target = {c.claim_no: c for c in _claims(1)}
        candidate = {c.claim_no: c for c in _claims(2)}
        matches = [
            {"section": "CLAIM", "content": "x", "metadata": {"claim_no": 2}, "query_metadata": {"claim_no": 1}},
            {"section": "ABSTRACT", "content": "y", "metadata": {}, "query_metadata": {}},
        ]

        enriched = enrich_matches_with_rationale(matches, target, candidate, generator)

        assert enriched[0]["rationale"]["overall_assessment"] == "PARTIAL_OVERLAP"
        assert "rationale" not in enriched[1]
        generator.generate.assert_called_once_with("Claim 1 expanded.", "Claim 2 expanded.")

    def test_enrichment_failure_leaves_match_unannotated(self):
        from priorart.services.rationale_llm import enrich_matches_with_rationale

        generator = MagicMock()
        generator.generate.side_effect = RuntimeError("rate limited")
        match = {"section": "CLAIM", "content": "x", "metadata": {"claim_no": 2}, "query_metadata": {"claim_no": 1}}

        enriched = enrich_matches_with_rationale(
            [match], {c.claim_no: c for c in _claims(1)}, {}, generator,
        )

        assert enriched == [match]

    def test_unresolvable_target_claim_skipped(self):
        from priorart.services.rationale_llm import enrich_matches_with_rationale

        generator = MagicMock()
        match = {"section": "CLAIM", "content": "x", "metadata": {}, "query_metadata": {"claim_no": 7}}

        assert enrich_matches_with_rationale([match], {}, {}, generator) == [match]
        generator.generate.assert_not_called()


# ============================================================================
# Verdict
# ============================================================================

def _analyzed(candidate_id, conflict, confidence, score=1.0):
    from priorart.services.schemas import AdvisoryJudgment
    from priorart.services.verdict import AnalyzedCandidate

    return AnalyzedCandidate(
        candidate_id=candidate_id,
        score=score,
        judgment=AdvisoryJudgment(suggested_conflict=conflict, confidence=confidence),
    )


class TestComputeFinalVerdict:

    def test_no_candidates_is_clean(self):
        from priorart.services.verdict import compute_final_verdict

        verdict = compute_final_verdict([])

        assert verdict.status.value == "CLEAN"
        assert verdict.confidence == 0.8

    def test_confident_conflict(self):
        from priorart.services.verdict import compute_final_verdict

        verdict = compute_final_verdict([
            _analyzed("a", True, 0.75),
            _analyzed("b", True, 0.85),
            _analyzed("c", False, 0.9),
        ])

        assert verdict.status.value == "CONFLICT"
        assert verdict.confidence == 0.85
        assert verdict.strongest_candidate_id == "b"
        assert verdict.summary == "Potential conflict detected with filing b"

    def test_conflict_confidence_capped(self):
        from priorart.services.verdict import compute_final_verdict

        verdict = compute_final_verdict([_analyzed("a", True, 0.99)])
        assert verdict.confidence == 0.95

    def test_weak_conflict_is_potential_infringe(self):
        from priorart.services.verdict import compute_final_verdict

        verdict = compute_final_verdict([_analyzed("a", True, 0.69), _analyzed("b", False, 0.2)])

        assert verdict.status.value == "POTENTIAL_INFRINGE"
        assert verdict.confidence == 0.6
        assert verdict.strongest_candidate_id is None

    def test_threshold_is_inclusive(self):
        from priorart.services.verdict import compute_final_verdict
        assert compute_final_verdict([_analyzed("a", True, 0.7)]).status.value == "CONFLICT"
