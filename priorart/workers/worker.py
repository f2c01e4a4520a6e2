"""
Job Worker

Single dispatch loop: receive a message, run the job it names, record the
outcome on the Job row, acknowledge. Failed jobs are not retried.

All dependencies are carried in an explicit WorkerContext:

    ctx = WorkerContext(
        app=create_app(),
        queue=connect_queue(),
        ingestion_pipeline=IngestionPipeline(indexer=VectorIndexer(store)),
        similarity_pipeline=SimilarityPipeline(SimilaritySearch(store)),
        embedding_config=active_embedding_config(),
    )
    start_worker(ctx)
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from priorart.config import EmbeddingConfig, active_embedding_config
from priorart.logging_utils import structured_log
from priorart.models.job import Job
from priorart.models.records import JobType
from priorart.web.db import db
from priorart.workers.pipeline import IngestionPipeline
from priorart.workers.queue import QueueTransport
from priorart.workers.similarity_pipeline import SimilarityPipeline

logger = logging.getLogger(__name__)


@dataclass
class WorkerContext:
    app: Any
    queue: QueueTransport
    ingestion_pipeline: IngestionPipeline
    similarity_pipeline: SimilarityPipeline
    embedding_config: EmbeddingConfig


def process_job(ctx: WorkerContext, message: Dict[str, Any]) -> Dict[str, Any]:
    """
    Run one job message. Must be called inside an app context.

    Returns:
        Dict with job_id and final status
    """
    job_id = message.get("id")
    job = db.session.get(Job, job_id) if job_id else None
    if job is None:
        structured_log("WARNING", "job_not_found", job_id=job_id, message=message)
        return {"job_id": job_id, "status": "missing"}

    if job.is_finished:
        # Redelivery of a job that already ran
        structured_log("INFO", "job_already_finished", job_id=job.id, status=job.status)
        return {"job_id": job.id, "status": job.status}

    job_context = {"job_id": job.id, "job_type": job.type, "filing_id": job.filing_id}
    job.mark_running()
    db.session.commit()
    structured_log("INFO", "job_started", **job_context)

    try:
        if job.type == JobType.INGEST.value:
            result = ctx.ingestion_pipeline.run(job.filing_id, ctx.embedding_config, job_id=job.id)
        elif job.type == JobType.SIMILARITY_CHECK.value:
            result = ctx.similarity_pipeline.run(job.filing_id, ctx.embedding_config, job_id=job.id)
        else:
            raise ValueError(f"Unknown job type: {job.type}")
    except Exception as e:
        db.session.rollback()
        job = db.session.get(Job, job_id)
        job.mark_failed(str(e))
        db.session.commit()
        structured_log("ERROR", "job_failed", error=str(e), error_type=type(e).__name__, **job_context)
        return {"job_id": job.id, "status": job.status, "error": str(e)}

    job.mark_completed()
    db.session.commit()
    structured_log("INFO", "job_completed", result_status=result.get("status"), **job_context)
    return {"job_id": job.id, "status": job.status, "result": result}


def start_worker(
    ctx: WorkerContext,
    max_jobs: Optional[int] = None,
    poll_timeout: int = 5,
    should_stop: Optional[Callable[[], bool]] = None,
) -> int:
    """
    Consume the queue until stopped.

    Args:
        max_jobs: Stop after this many messages (None = run until stopped)
        poll_timeout: Seconds to wait for a message before re-checking should_stop
        should_stop: Callable polled between messages

    Returns:
        Number of messages processed
    """
    should_stop = should_stop or (lambda: False)
    processed = 0

    logger.info(f"Worker started (durable queue: {ctx.queue.durable})")

    while not should_stop():
        if max_jobs is not None and processed >= max_jobs:
            break

        delivery = ctx.queue.receive(timeout=poll_timeout)
        if delivery is None:
            continue

        with ctx.app.app_context():
            try:
                process_job(ctx, delivery.message)
            except Exception as e:
                logger.exception(f"Error processing message {delivery.message}: {e}")
                db.session.rollback()
        ctx.queue.ack(delivery)
        processed += 1

    logger.info(f"Worker stopped after {processed} messages")
    return processed


def build_worker_context(app, queue: QueueTransport, store=None) -> WorkerContext:
    """Wire both pipelines to one vector store for the given app and queue."""
    from priorart.vector_stores.indexer import VectorIndexer
    from priorart.vector_stores.pinecone_store import PineconeVectorStore
    from priorart.vector_stores.similarity_search import SimilaritySearch

    store = store or PineconeVectorStore()
    return WorkerContext(
        app=app,
        queue=queue,
        ingestion_pipeline=IngestionPipeline(indexer=VectorIndexer(store)),
        similarity_pipeline=SimilarityPipeline(SimilaritySearch(store)),
        embedding_config=active_embedding_config(),
    )


def start_background_worker(ctx: WorkerContext, **worker_kwargs) -> threading.Thread:
    """
    Consume ctx.queue on a daemon thread of the current process.

    Used when the queue is in-memory: no other process can see it, so the
    process that publishes jobs must also run them.
    """
    thread = threading.Thread(
        target=start_worker,
        args=(ctx,),
        kwargs=worker_kwargs,
        name="priorart-worker",
        daemon=True,
    )
    thread.start()
    logger.info("Started in-process worker thread for the in-memory queue")
    return thread
