"""
Ingestion Pipeline

Orchestrates the ingestion of one filing:
fetch → extract → claims → diagrams → index

Each stage ends with a committed status checkpoint on the filing
(INGESTING, RAW_EXTRACTED, CLAIMS_PROCESSED, DIAGRAMS_PROCESSED, INDEXED),
so a crash leaves the filing at the last completed stage. A redelivered job
that finds the filing at one of those checkpoints starts over from the first
stage. Any stage error marks the filing FAILED and is re-raised for the
worker to record on the job.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from priorart import config
from priorart.config import EmbeddingConfig
from priorart.exceptions import FilingNotFoundError
from priorart.ingestion.chunker import build_description_chunks
from priorart.ingestion.citations import extract_citations
from priorart.ingestion.claims import build_claims
from priorart.ingestion.extractors import PageImageExtractor, extract_text
from priorart.ingestion.fetcher import DocumentFetcher
from priorart.logging_utils import structured_log
from priorart.models.filing import Filing
from priorart.models.records import IN_PROGRESS_STATUSES, DiagramRecord, IngestionStatus, PageImage
from priorart.services.diagram_classifier import DiagramClassifier, unknown_classification
from priorart.storage import get_storage
from priorart.vector_stores.indexer import VectorIndexer
from priorart.web.db import db

logger = logging.getLogger(__name__)

TEXT_DOCUMENTS = {
    "ABSTRACT": "abstract_text",
    "CLAIMS": "claims_text",
    "DESCRIPTION": "description_text",
}
DIAGRAM_DOCUMENT = "DIAGRAMS"


class IngestionPipeline:
    """
    Turns a filing's uploaded documents into structured, indexed content.

    Pipeline stages:
    1. FETCH: Download abstract, claims, description and diagram sheets concurrently
    2. EXTRACT: Text for the text documents, rendered pages for diagrams, citations
    3. CLAIMS: Parse, resolve dependencies, expand; chunk the description
    4. DIAGRAMS: Classify each page concurrently
    5. INDEX: Embed and write vectors per section

    Usage:
        pipeline = IngestionPipeline(indexer=VectorIndexer(store))
        result = pipeline.run(filing_id, active_embedding_config())
    """

    def __init__(
        self,
        indexer: VectorIndexer,
        fetcher: Optional[DocumentFetcher] = None,
        page_extractor: Optional[PageImageExtractor] = None,
        diagram_classifier: Optional[DiagramClassifier] = None,
        storage=None,
        max_words: int = config.CHUNK_MAX_WORDS,
        overlap_words: int = config.CHUNK_OVERLAP_WORDS,
        diagram_workers: int = config.DIAGRAM_WORKERS,
    ):
        self.indexer = indexer
        self.fetcher = fetcher or DocumentFetcher()
        self.storage = storage or get_storage()
        self.page_extractor = page_extractor or PageImageExtractor(storage=self.storage)
        self.diagram_classifier = diagram_classifier or DiagramClassifier()
        self.max_words = max_words
        self.overlap_words = overlap_words
        self.diagram_workers = diagram_workers

    def run(self, filing_id: str, embedding_config: EmbeddingConfig, job_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Ingest a filing.

        Returns:
            Dict with processing results

        Raises:
            FilingNotFoundError: If the filing does not exist
            Exception: Any stage error, after the filing is marked FAILED
        """
        filing = db.session.get(Filing, filing_id)
        if filing is None:
            raise FilingNotFoundError(f"Filing {filing_id} not found")

        job_context = {
            "job_id": job_id,
            "filing_id": filing_id,
            "ingestion_version": filing.ingestion_version,
            "embedding_version": embedding_config.version,
        }
        result = {
            "filing_id": filing_id,
            "status": "started",
            "claims": 0,
            "description_chunks": 0,
            "diagrams": 0,
            "vectors": {},
        }

        if filing.is_indexed:
            if filing.needs_reembedding(embedding_config):
                structured_log(
                    "WARNING", "reembedding_required",
                    indexed_with=filing.embedding_version, **job_context
                )
            structured_log("INFO", "already_indexed", **job_context)
            result["status"] = "already_indexed"
            return result

        if filing.status in IN_PROGRESS_STATUSES and filing.status != IngestionStatus.QUEUED:
            # Redelivered after a worker died mid-ingestion; start again from the first stage
            structured_log("WARNING", "ingestion_restarted", from_status=filing.ingestion_status, **job_context)
            filing.requeue()
            db.session.commit()

        try:
            self._checkpoint(filing, IngestionStatus.INGESTING, job_context)

            # Stage 1 & 2: Fetch and extract
            structured_log("INFO", "stage_started", stage="fetch_extract", **job_context)
            documents = self._fetch_documents(filing.documents or {})
            raw = self._extract_raw(filing.id, documents)
            filing.set_raw(raw)
            self._checkpoint(
                filing, IngestionStatus.RAW_EXTRACTED, job_context,
                documents=sorted(documents), citations=len(raw["citations"]),
                page_images=len(raw["page_images"]),
            )

            # Stage 3: Claims and description
            structured_log("INFO", "stage_started", stage="claims", **job_context)
            claims = build_claims(raw["claims_text"])
            chunks = build_description_chunks(
                filing.id, raw["description_text"], self.max_words, self.overlap_words,
            )
            filing.set_structured(claims=claims, description_chunks=chunks)
            result["claims"] = len(claims)
            result["description_chunks"] = len(chunks)
            self._checkpoint(
                filing, IngestionStatus.CLAIMS_PROCESSED, job_context,
                claims=len(claims), description_chunks=len(chunks),
            )

            # Stage 4: Diagrams
            structured_log("INFO", "stage_started", stage="diagrams", **job_context)
            page_images = [PageImage(**p) for p in raw["page_images"]]
            diagrams = self._classify_diagrams(page_images)
            filing.set_structured(diagrams=diagrams)
            result["diagrams"] = len(diagrams)
            self._checkpoint(filing, IngestionStatus.DIAGRAMS_PROCESSED, job_context, diagrams=len(diagrams))

            # Stage 5: Index
            structured_log("INFO", "stage_started", stage="index", **job_context)
            result["vectors"] = self.indexer.index_filing(filing, embedding_config)
            filing.embedding_version = embedding_config.version
            self._checkpoint(filing, IngestionStatus.INDEXED, job_context, vectors=result["vectors"])

            result["status"] = "indexed"
            structured_log(
                "INFO", "pipeline_complete",
                claims=result["claims"],
                description_chunks=result["description_chunks"],
                diagrams=result["diagrams"],
                vectors=result["vectors"],
                **job_context
            )

        except Exception as e:
            structured_log(
                "ERROR", "pipeline_error",
                error=str(e),
                error_type=type(e).__name__,
                **job_context
            )
            logger.exception(f"[{filing_id}] Ingestion error: {e}")
            self._mark_failed(filing_id, str(e))
            raise

        return result

    def _checkpoint(self, filing: Filing, status: IngestionStatus, job_context: dict, **details) -> None:
        filing.advance_ingestion(status)
        db.session.commit()
        structured_log("INFO", "stage_complete", status=status.value, **details, **job_context)

    def _mark_failed(self, filing_id: str, error_message: str) -> None:
        db.session.rollback()
        filing = db.session.get(Filing, filing_id)
        if filing is None or filing.status in (IngestionStatus.FAILED, IngestionStatus.INDEXED):
            return
        filing.mark_ingestion_failed(error_message)
        db.session.commit()

    def _fetch_documents(self, document_urls: Dict[str, str]) -> Dict[str, bytes]:
        """Download the documents later stages read, one task per document type."""
        wanted = {
            key: url for key, url in document_urls.items()
            if url and (key in TEXT_DOCUMENTS or key == DIAGRAM_DOCUMENT)
        }
        if not wanted:
            return {}

        with ThreadPoolExecutor(max_workers=config.FETCH_WORKERS) as executor:
            futures = {key: executor.submit(self.fetcher.fetch, url) for key, url in wanted.items()}
            return {key: future.result() for key, future in futures.items()}

    def _extract_raw(self, filing_id: str, documents: Dict[str, bytes]) -> Dict[str, Any]:
        """Extract text and page images concurrently; scan citations."""
        with ThreadPoolExecutor(max_workers=config.FETCH_WORKERS) as executor:
            text_futures = {
                field: executor.submit(extract_text, documents[key])
                for key, field in TEXT_DOCUMENTS.items() if key in documents
            }
            pages_future = None
            if DIAGRAM_DOCUMENT in documents:
                pages_future = executor.submit(self.page_extractor.extract, documents[DIAGRAM_DOCUMENT], filing_id)

            raw = {field: "" for field in TEXT_DOCUMENTS.values()}
            raw.update({field: future.result() for field, future in text_futures.items()})
            page_images: List[PageImage] = pages_future.result() if pages_future else []

        citations = extract_citations(raw["claims_text"] + " " + raw["description_text"])
        raw["page_images"] = [p.to_dict() for p in page_images]
        raw["citations"] = [c.to_dict() for c in citations]
        return raw

    def _classify_page(self, page_image: PageImage) -> DiagramRecord:
        try:
            image_bytes = self.storage.get(page_image.locator)
        except (FileNotFoundError, ValueError) as e:
            logger.warning(f"Page image {page_image.locator} unavailable: {e}")
            classification = unknown_classification("Page image unavailable.")
        else:
            classification = self.diagram_classifier.classify(image_bytes)

        return DiagramRecord(
            diagram_id=str(page_image.page),
            type=classification.get("type", "unknown"),
            representation={
                "components": classification.get("components", []),
                "connections": classification.get("connections", []),
                "labels": classification.get("labels", []),
            },
            semantic_summary=classification.get("semantic_summary", ""),
            confidence=classification.get("confidence", 0.0),
        )

    def _classify_diagrams(self, page_images: List[PageImage]) -> List[DiagramRecord]:
        """Classify every page concurrently; all results are collected before returning."""
        if not page_images:
            return []
        with ThreadPoolExecutor(max_workers=self.diagram_workers) as executor:
            diagrams = list(executor.map(self._classify_page, page_images))
        return sorted(diagrams, key=lambda d: int(d.diagram_id))
