"""
Background work: ingestion and similarity pipelines, job queue and worker.

Use explicit imports from submodules:
    from priorart.workers.pipeline import IngestionPipeline
    from priorart.workers.similarity_pipeline import SimilarityPipeline
    from priorart.workers.producers import create_ingest_job, create_similarity_check_job
    from priorart.workers.worker import WorkerContext, start_worker
"""
