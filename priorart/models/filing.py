"""
Filing Model

A submitted patent filing plus everything the ingestion pipeline derives
from it: raw extracted text, structured claims/chunks/diagrams, the
embedding version it was indexed with, the ordered list of similarity
snapshots and the aggregated verdict.

Ingestion status only moves forward:
PENDING → QUEUED → INGESTING → RAW_EXTRACTED → CLAIMS_PROCESSED
→ DIAGRAMS_PROCESSED → INDEXED, or → FAILED from any in-flight stage.
A new job (requeue) is the only way out of INDEXED or FAILED.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from priorart import config
from priorart.exceptions import InvalidStatusTransition
from priorart.models.records import (
    INGESTION_ORDER,
    Claim,
    ClassificationSource,
    DescriptionChunk,
    DiagramRecord,
    FilingStatus,
    IngestionStatus,
)
from priorart.web.db import db
from priorart.web.db.models.base import BaseModel


class Filing(BaseModel):
    __tablename__ = "filings"
    __table_args__ = (
        db.Index("idx_filing_ingestion_status", "ingestion_status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    title = db.Column(db.String(500), nullable=False)

    # Document locations keyed by ABSTRACT / CLAIMS / DESCRIPTION / DIAGRAMS
    documents = db.Column(db.JSON, nullable=False, default=dict)

    # Classification (IPC/CPC)
    classification_code = db.Column(db.String(50))
    classification_source = db.Column(db.String(20))  # APPLICANT, EXAMINER, AI
    classification_confidence = db.Column(db.Float)

    # Business workflow
    current_status = db.Column(db.String(30), nullable=False, default=FilingStatus.SUBMITTED.value)
    status_timeline = db.Column(db.JSON, nullable=False, default=list)

    # Ingestion state
    ingestion_status = db.Column(db.String(30), nullable=False, default=IngestionStatus.PENDING.value)
    ingestion_version = db.Column(db.Integer, nullable=False, default=1)
    embedding_version = db.Column(db.String(50))  # Version last used to index
    ingestion_error = db.Column(db.Text)
    raw = db.Column(db.JSON, nullable=False, default=dict)
    structured = db.Column(db.JSON, nullable=False, default=dict)

    # Analysis
    analysis_refs = db.Column(db.JSON, nullable=False, default=list)
    final_verdict = db.Column(db.JSON)
    verdict_updated_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # ------------------------------------------------------------------
    # Ingestion status
    # ------------------------------------------------------------------

    @property
    def status(self) -> IngestionStatus:
        return IngestionStatus(self.ingestion_status)

    @property
    def is_indexed(self) -> bool:
        return self.status == IngestionStatus.INDEXED

    def advance_ingestion(self, new_status: IngestionStatus) -> None:
        """Move ingestion forward, rejecting backwards or out-of-terminal moves."""
        current = self.status

        if current == IngestionStatus.FAILED:
            raise InvalidStatusTransition(
                f"Filing {self.id} is FAILED; a new job must requeue it"
            )

        if new_status == IngestionStatus.FAILED:
            if current == IngestionStatus.INDEXED:
                raise InvalidStatusTransition(f"Filing {self.id} is already INDEXED")
            self.ingestion_status = new_status.value
            return

        if INGESTION_ORDER.index(new_status) <= INGESTION_ORDER.index(current):
            raise InvalidStatusTransition(
                f"Filing {self.id}: {current.value} -> {new_status.value} is not forward"
            )
        self.ingestion_status = new_status.value
        self.updated_at = datetime.utcnow()

    def mark_ingestion_failed(self, error_message: str) -> None:
        self.advance_ingestion(IngestionStatus.FAILED)
        self.ingestion_error = error_message
        self.updated_at = datetime.utcnow()

    def requeue(self, bump_version: bool = False) -> None:
        """
        Reset ingestion for a new job.

        Args:
            bump_version: True when the content was amended; increments
                ingestion_version so new vectors never collide with old ones.
        """
        if bump_version:
            self.ingestion_version = (self.ingestion_version or 1) + 1
        self.ingestion_status = IngestionStatus.QUEUED.value
        self.ingestion_error = None
        self.updated_at = datetime.utcnow()

    def needs_reembedding(self, embedding_config) -> bool:
        """True when the filing was indexed under a different embedding version."""
        return self.is_indexed and self.embedding_version != embedding_config.version

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def effective_classification_code(self) -> Optional[str]:
        """Classification code to use in payloads, ignoring weak AI guesses."""
        if not self.classification_code:
            return None
        if (
            self.classification_source == ClassificationSource.AI.value
            and (self.classification_confidence or 0.0) < config.AI_CLASSIFICATION_MIN_CONFIDENCE
        ):
            return None
        return self.classification_code

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def record_status(self, status: FilingStatus, comment: Optional[str] = None) -> None:
        self.current_status = status.value
        self.status_timeline = list(self.status_timeline or []) + [{
            "status": status.value,
            "timestamp": datetime.utcnow().isoformat(),
            "comment": comment,
        }]

    # ------------------------------------------------------------------
    # Structured content
    # ------------------------------------------------------------------

    def set_raw(self, raw: Dict[str, Any]) -> None:
        self.raw = dict(raw)

    def set_structured(self, **sections) -> None:
        """Replace one or more structured sections (claims, description_chunks, diagrams)."""
        structured = dict(self.structured or {})
        for key, records in sections.items():
            structured[key] = [r.to_dict() for r in records]
        self.structured = structured

    def get_claims(self) -> List[Claim]:
        return [Claim.from_dict(c) for c in (self.structured or {}).get("claims", [])]

    def claims_by_number(self) -> Dict[int, Claim]:
        return {c.claim_no: c for c in self.get_claims()}

    def get_description_chunks(self) -> List[DescriptionChunk]:
        return [
            DescriptionChunk.from_dict(c)
            for c in (self.structured or {}).get("description_chunks", [])
        ]

    def get_diagrams(self) -> List[DiagramRecord]:
        return [DiagramRecord.from_dict(d) for d in (self.structured or {}).get("diagrams", [])]

    def add_analysis_ref(self, snapshot_id: str) -> None:
        self.analysis_refs = list(self.analysis_refs or []) + [snapshot_id]

    def set_verdict(self, verdict) -> None:
        self.final_verdict = verdict.to_dict()
        self.verdict_updated_at = datetime.utcnow()

    def ingestion_summary(self) -> Dict[str, Any]:
        structured = self.structured or {}
        return {
            "status": self.ingestion_status,
            "version": self.ingestion_version,
            "embedding_version": self.embedding_version,
            "error": self.ingestion_error,
            "claims": len(structured.get("claims", [])),
            "description_chunks": len(structured.get("description_chunks", [])),
            "diagrams": len(structured.get("diagrams", [])),
        }

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "documents": self.documents,
            "classification": {
                "code": self.classification_code,
                "source": self.classification_source,
                "confidence": self.classification_confidence,
            },
            "current_status": self.current_status,
            "status_timeline": self.status_timeline,
            "ingestion": self.ingestion_summary(),
            "analysis_refs": self.analysis_refs,
            "final_verdict": self.final_verdict,
            "verdict_updated_at": self.verdict_updated_at.isoformat() if self.verdict_updated_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def ingestion_stats(cls) -> Dict[str, Any]:
        """System-wide ingestion counts for the admin dashboard."""
        total = cls.query.count()
        indexed = cls.query.filter_by(ingestion_status=IngestionStatus.INDEXED.value).count()
        failed = cls.query.filter_by(ingestion_status=IngestionStatus.FAILED.value).count()
        return {
            "total": total,
            "indexed": indexed,
            "failed": failed,
            "success_rate": round(indexed / total * 100, 2) if total else 0.0,
        }
