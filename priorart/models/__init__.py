"""
Persistence models for the prior-art pipelines:
- Filing: submitted filing with ingestion state, structured content and verdict
- Job: queued ingest / similarity-check work item
- SimilaritySnapshot: immutable target-vs-candidate comparison record
"""

from priorart.models.filing import Filing
from priorart.models.job import Job
from priorart.models.snapshot import SimilaritySnapshot, LOW_CONFIDENCE_NOTE
from priorart.models.records import (
    Claim,
    DescriptionChunk,
    DiagramRecord,
    DiagramType,
    PageImage,
    FinalVerdict,
    IngestionStatus,
    FilingStatus,
    ClassificationSource,
    JobType,
    JobStatus,
    Verdict,
    ConfidenceLevel,
)
