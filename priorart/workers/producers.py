"""
Job producers.

The Job row is committed before its message is published, so a worker that
receives the message can always find the job.
"""

import logging
from typing import Optional

from priorart.config import EmbeddingConfig, active_embedding_config
from priorart.exceptions import FilingNotFoundError, PreconditionError
from priorart.logging_utils import structured_log
from priorart.models.filing import Filing
from priorart.models.job import Job
from priorart.models.records import IN_PROGRESS_STATUSES, IngestionStatus, JobType
from priorart.web.db import db
from priorart.workers.queue import QueueTransport, get_queue

logger = logging.getLogger(__name__)


def _get_filing(filing_id: str) -> Filing:
    filing = db.session.get(Filing, filing_id)
    if filing is None:
        raise FilingNotFoundError(f"Filing {filing_id} not found")
    return filing


def create_ingest_job(
    filing_id: str,
    is_revision: bool = False,
    queue: Optional[QueueTransport] = None,
    embedding_config: Optional[EmbeddingConfig] = None,
) -> Job:
    """
    Queue ingestion of a filing.

    The filing is requeued when it has not been indexed yet, when the
    content was revised (ingestion_version is bumped), or when it was
    indexed under an older embedding version. An up-to-date INDEXED filing
    is left as-is and the job completes as a no-op.

    Raises:
        FilingNotFoundError: If the filing does not exist
        PreconditionError: If an ingestion is already running for the filing
    """
    if queue is None:
        queue = get_queue()
    embedding_config = embedding_config or active_embedding_config()
    filing = _get_filing(filing_id)

    status = filing.status
    if status in IN_PROGRESS_STATUSES and status != IngestionStatus.QUEUED:
        raise PreconditionError(f"Filing {filing_id} is already being ingested ({status.value})")

    if is_revision or not filing.is_indexed or filing.needs_reembedding(embedding_config):
        filing.requeue(bump_version=is_revision)

    job = Job.create_queued(JobType.INGEST, filing.id)
    db.session.commit()

    queue.publish(job.as_message())
    structured_log(
        "INFO", "job_queued",
        job_id=job.id, job_type=job.type, filing_id=filing.id,
        ingestion_version=filing.ingestion_version, is_revision=is_revision,
    )
    return job


def create_similarity_check_job(filing_id: str, queue: Optional[QueueTransport] = None) -> Job:
    """
    Queue a similarity check.

    Raises:
        FilingNotFoundError: If the filing does not exist
        PreconditionError: If the filing is not INDEXED
    """
    if queue is None:
        queue = get_queue()
    filing = _get_filing(filing_id)

    if filing.status in IN_PROGRESS_STATUSES:
        raise PreconditionError(f"Filing {filing_id} is still being ingested ({filing.ingestion_status})")
    if not filing.is_indexed:
        raise PreconditionError(f"Filing {filing_id} has not been ingested ({filing.ingestion_status})")

    job = Job.create_queued(JobType.SIMILARITY_CHECK, filing.id)
    db.session.commit()

    queue.publish(job.as_message())
    structured_log("INFO", "job_queued", job_id=job.id, job_type=job.type, filing_id=filing.id)
    return job
