"""
Similarity Snapshot Model

Audit record of one target-vs-candidate comparison. A snapshot pins the
ingestion version of both filings and the embedding version it was computed
under, and is never recomputed or edited afterwards.

Write-once is enforced at the ORM layer: flushing an update or delete of a
persisted snapshot raises ImmutableRecordError.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import event

from priorart.exceptions import ImmutableRecordError, SnapshotExistsError
from priorart.models.records import ConfidenceLevel
from priorart.web.db import db
from priorart.web.db.models.base import BaseModel

LOW_CONFIDENCE_NOTE = "Similarity assessment has low confidence due to limited overlap."


class SimilaritySnapshot(BaseModel):
    __tablename__ = "similarity_snapshots"
    __table_args__ = (
        db.Index("idx_snapshot_target", "target_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))

    target_id = db.Column(db.String(36), db.ForeignKey("filings.id"), nullable=False)
    compared_id = db.Column(db.String(36), db.ForeignKey("filings.id"), nullable=False)

    # Versions pinned at creation
    target_ingestion_version = db.Column(db.Integer, nullable=False)
    compared_ingestion_version = db.Column(db.Integer, nullable=False)
    embedding_version = db.Column(db.String(50), nullable=False)

    # {"overall": float, "breakdown": {"CLAIM": ..., "ABSTRACT": ..., ...}}
    similarity_score = db.Column(db.JSON, nullable=False)

    confidence_level = db.Column(db.String(10), nullable=False)  # LOW, MEDIUM, HIGH
    confidence_source = db.Column(db.String(20), nullable=False, default="SYSTEM")
    low_confidence_note = db.Column(db.Text)

    claim_analysis = db.Column(db.JSON, nullable=False, default=list)
    diagram_support = db.Column(db.JSON, nullable=False, default=dict)

    # {"retrieved_evidence": [...], "advisory_output": {...}}
    agent_trace = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def validate(self) -> None:
        """Check the LOW-confidence note rule before the row is written."""
        level = ConfidenceLevel(self.confidence_level)
        if level == ConfidenceLevel.LOW and not self.low_confidence_note:
            raise ValueError("LOW confidence snapshots require a low_confidence_note")
        if level != ConfidenceLevel.LOW and self.low_confidence_note:
            raise ValueError("low_confidence_note is only allowed on LOW confidence snapshots")
        if "overall" not in (self.similarity_score or {}):
            raise ValueError("similarity_score.overall is required")

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "target_id": self.target_id,
            "compared_id": self.compared_id,
            "target_ingestion_version": self.target_ingestion_version,
            "compared_ingestion_version": self.compared_ingestion_version,
            "embedding_version": self.embedding_version,
            "similarity_score": self.similarity_score,
            "confidence_level": self.confidence_level,
            "confidence_source": self.confidence_source,
            "low_confidence_note": self.low_confidence_note,
            "claim_analysis": self.claim_analysis,
            "diagram_support": self.diagram_support,
            "agent_trace": self.agent_trace,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def store(cls, snapshot: "SimilaritySnapshot", target) -> "SimilaritySnapshot":
        """
        Persist a snapshot and append it to the target's analysis refs.

        Both writes commit together; on any error the session is rolled back
        and nothing is stored.

        Raises:
            SnapshotExistsError: If a snapshot with the same id already exists
        """
        if snapshot.id and db.session.get(cls, snapshot.id) is not None:
            raise SnapshotExistsError(f"Snapshot {snapshot.id} already exists")

        snapshot.validate()
        try:
            if not snapshot.id:
                snapshot.id = str(uuid4())
            db.session.add(snapshot)
            target.add_analysis_ref(snapshot.id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return snapshot

    @classmethod
    def for_target(cls, target_id: str):
        return (
            cls.query.filter_by(target_id=target_id)
            .order_by(cls.created_at.asc())
            .all()
        )


@event.listens_for(SimilaritySnapshot, "before_update")
def _reject_snapshot_update(mapper, connection, target):
    raise ImmutableRecordError(f"Similarity snapshot {target.id} is immutable")


@event.listens_for(SimilaritySnapshot, "before_delete")
def _reject_snapshot_delete(mapper, connection, target):
    raise ImmutableRecordError(f"Similarity snapshot {target.id} cannot be deleted")
