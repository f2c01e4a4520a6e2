"""
Job Model

One row per queued unit of work (ingest or similarity check). The row is
written before the message is published so a worker can always find it.

Job lifecycle:
QUEUED → RUNNING → COMPLETED
                 → FAILED
No automatic retry; a failed job is replaced by a new one.
"""

from datetime import datetime
from typing import Any, Dict
from uuid import uuid4

from priorart.models.records import JobStatus, JobType
from priorart.web.db import db
from priorart.web.db.models.base import BaseModel


class Job(BaseModel):
    __tablename__ = "jobs"
    __table_args__ = (
        db.Index("idx_job_status", "status", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    type = db.Column(db.String(30), nullable=False)  # INGEST, SIMILARITY_CHECK
    status = db.Column(db.String(20), nullable=False, default=JobStatus.QUEUED.value, index=True)
    filing_id = db.Column(db.String(36), db.ForeignKey("filings.id"), nullable=False, index=True)

    error = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    started_at = db.Column(db.DateTime)
    completed_at = db.Column(db.DateTime)

    filing = db.relationship("Filing", backref="jobs")

    @property
    def is_finished(self) -> bool:
        return self.status in (JobStatus.COMPLETED.value, JobStatus.FAILED.value)

    def mark_running(self):
        self.status = JobStatus.RUNNING.value
        self.started_at = datetime.utcnow()

    def mark_completed(self):
        self.status = JobStatus.COMPLETED.value
        self.completed_at = datetime.utcnow()

    def mark_failed(self, error_message: str):
        self.status = JobStatus.FAILED.value
        self.error = error_message
        self.completed_at = datetime.utcnow()

    def as_message(self) -> Dict[str, Any]:
        """Queue message payload for this job."""
        return {"id": self.id, "type": self.type, "filing_id": self.filing_id}

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "status": self.status,
            "filing_id": self.filing_id,
            "error": self.error,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def create_queued(cls, job_type: JobType, filing_id: str) -> "Job":
        job = cls.create(commit=False, type=job_type.value, filing_id=filing_id, status=JobStatus.QUEUED.value)
        db.session.flush()
        return job
