#!/usr/bin/env python
"""
Run Worker - Consume ingest and similarity-check jobs from the queue.

This script runs as a standalone worker process (not inside Flask web).
Several workers may consume the same Redis queue.

Usage:
    # Run until stopped
    python scripts/run_worker.py

    # Process a fixed number of jobs, then exit
    python scripts/run_worker.py --max-jobs 10

    # Re-queue messages left unacknowledged by a crashed worker
    python scripts/run_worker.py --recover
"""

import sys
import os
import signal
import click
import logging
from typing import Optional

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from priorart import config
from priorart.config import active_embedding_config
from priorart.logging_utils import configure_logging
from priorart.web import create_app
from priorart.workers.queue import RedisQueue, connect_queue
from priorart.workers.worker import build_worker_context, start_worker

configure_logging(config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Graceful shutdown flag
shutdown_requested = False


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    global shutdown_requested
    logger.info("Shutdown signal received, finishing current job...")
    shutdown_requested = True


signal.signal(signal.SIGINT, signal_handler)
signal.signal(signal.SIGTERM, signal_handler)


@click.command()
@click.option('--max-jobs', '-n', default=None, type=int,
              help='Exit after processing this many jobs (default: run until stopped)')
@click.option('--poll-timeout', '-t', default=5, type=int,
              help='Seconds to wait for a message before checking for shutdown (default: 5)')
@click.option('--redis-url', default=config.REDIS_URL,
              help='Redis URL for the job queue')
@click.option('--recover', is_flag=True,
              help='Re-queue unacknowledged messages before starting')
def main(max_jobs: Optional[int], poll_timeout: int, redis_url: str, recover: bool):
    """Consume prior-art jobs (INGEST, SIMILARITY_CHECK) from the queue."""
    app = create_app({"INLINE_WORKER": False})
    queue = connect_queue(redis_url)
    embedding_config = active_embedding_config()

    logger.info("=" * 60)
    logger.info("PRIOR-ART WORKER")
    logger.info("=" * 60)
    logger.info(f"Queue: {'redis' if queue.durable else 'in-memory'}")
    logger.info(f"Embedding: {embedding_config.model} ({embedding_config.version})")
    logger.info(f"Max jobs: {max_jobs or 'unlimited'}")

    if not queue.durable:
        logger.warning("In-memory queue: only jobs published by this process are visible here")

    if recover and isinstance(queue, RedisQueue):
        queue.recover_in_flight()

    ctx = build_worker_context(app, queue)

    processed = start_worker(
        ctx,
        max_jobs=max_jobs,
        poll_timeout=poll_timeout,
        should_stop=lambda: shutdown_requested,
    )
    logger.info(f"Processed {processed} jobs")


if __name__ == "__main__":
    main()
