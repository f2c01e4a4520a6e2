"""
Typed records and status codes shared by the pipelines.

Nested ingestion content (claims, description chunks, diagrams) is stored as
JSON on the Filing row; these dataclasses validate it on construction and
convert to and from the stored dicts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class IngestionStatus(Enum):
    """Ingestion lifecycle of a filing, in pipeline order."""
    PENDING = "PENDING"
    QUEUED = "QUEUED"
    INGESTING = "INGESTING"
    RAW_EXTRACTED = "RAW_EXTRACTED"
    CLAIMS_PROCESSED = "CLAIMS_PROCESSED"
    DIAGRAMS_PROCESSED = "DIAGRAMS_PROCESSED"
    INDEXED = "INDEXED"
    FAILED = "FAILED"


INGESTION_ORDER: List[IngestionStatus] = [
    IngestionStatus.PENDING,
    IngestionStatus.QUEUED,
    IngestionStatus.INGESTING,
    IngestionStatus.RAW_EXTRACTED,
    IngestionStatus.CLAIMS_PROCESSED,
    IngestionStatus.DIAGRAMS_PROCESSED,
    IngestionStatus.INDEXED,
]

# Statuses a filing may be in while an ingest job is still in flight.
IN_PROGRESS_STATUSES = {
    IngestionStatus.QUEUED,
    IngestionStatus.INGESTING,
    IngestionStatus.RAW_EXTRACTED,
    IngestionStatus.CLAIMS_PROCESSED,
    IngestionStatus.DIAGRAMS_PROCESSED,
}


class FilingStatus(Enum):
    """Business workflow status, independent of ingestion."""
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    REVISION_REQUIRED = "revision_required"
    APPROVED = "approved"
    REJECTED = "rejected"


class ClassificationSource(Enum):
    APPLICANT = "APPLICANT"
    EXAMINER = "EXAMINER"
    AI = "AI"


class JobType(Enum):
    INGEST = "INGEST"
    SIMILARITY_CHECK = "SIMILARITY_CHECK"


class JobStatus(Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Verdict(Enum):
    CLEAN = "CLEAN"
    POTENTIAL_INFRINGE = "POTENTIAL_INFRINGE"
    CONFLICT = "CONFLICT"


class ConfidenceLevel(Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class DiagramType(Enum):
    FLOWCHART = "flowchart"
    BLOCK_DIAGRAM = "block_diagram"
    MECHANICAL = "mechanical"
    ARCHITECTURE = "architecture"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value: Any) -> "DiagramType":
        """Map a classifier label to a known type, defaulting to UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass
class Claim:
    """One numbered claim with its dependency list and expanded text."""
    claim_no: int
    text: str
    depends_on: Tuple[int, ...] = ()
    expanded_text: str = ""
    is_expanded: bool = False

    def __post_init__(self):
        if not isinstance(self.claim_no, int) or self.claim_no <= 0:
            raise ValueError(f"claim_no must be a positive integer, got {self.claim_no!r}")
        deps = tuple(sorted(set(int(d) for d in self.depends_on)))
        if self.claim_no in deps:
            raise ValueError(f"Claim {self.claim_no} cannot depend on itself")
        self.depends_on = deps

    @property
    def is_independent(self) -> bool:
        return not self.depends_on

    def to_dict(self) -> Dict[str, Any]:
        return {
            "claim_no": self.claim_no,
            "text": self.text,
            "depends_on": list(self.depends_on),
            "expanded_text": self.expanded_text,
            "is_expanded": self.is_expanded,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Claim":
        return cls(
            claim_no=int(data["claim_no"]),
            text=data.get("text", ""),
            depends_on=tuple(data.get("depends_on") or ()),
            expanded_text=data.get("expanded_text", ""),
            is_expanded=bool(data.get("is_expanded", False)),
        )


@dataclass
class DescriptionChunk:
    chunk_id: str
    text: str

    def __post_init__(self):
        if not self.chunk_id:
            raise ValueError("chunk_id is required")

    @property
    def index(self) -> int:
        """Position of the chunk within the description."""
        return int(self.chunk_id.rsplit("_", 1)[-1])

    def to_dict(self) -> Dict[str, Any]:
        return {"chunk_id": self.chunk_id, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DescriptionChunk":
        return cls(chunk_id=data["chunk_id"], text=data.get("text", ""))


@dataclass
class DiagramRecord:
    """Classified diagram page."""
    diagram_id: str
    type: DiagramType = DiagramType.UNKNOWN
    representation: Dict[str, Any] = field(default_factory=dict)
    semantic_summary: str = ""
    confidence: float = 0.0

    def __post_init__(self):
        self.type = DiagramType.coerce(self.type)
        self.confidence = float(self.confidence or 0.0)
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Diagram confidence out of range: {self.confidence}")
        self.semantic_summary = self.semantic_summary or ""

    def is_indexable(self, threshold: float) -> bool:
        return self.confidence >= threshold and bool(self.semantic_summary.strip())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "diagram_id": self.diagram_id,
            "type": self.type.value,
            "representation": self.representation,
            "semantic_summary": self.semantic_summary,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiagramRecord":
        return cls(
            diagram_id=str(data["diagram_id"]),
            type=data.get("type", "unknown"),
            representation=data.get("representation") or {},
            semantic_summary=data.get("semantic_summary", ""),
            confidence=data.get("confidence", 0.0),
        )


@dataclass
class PageImage:
    """Rendered page stored in the page image store."""
    page: int
    locator: str

    def to_dict(self) -> Dict[str, Any]:
        return {"page": self.page, "locator": self.locator}


@dataclass
class FinalVerdict:
    status: Verdict
    confidence: float
    summary: str
    strongest_candidate_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "confidence": self.confidence,
            "summary": self.summary,
            "strongest_candidate_id": self.strongest_candidate_id,
        }
