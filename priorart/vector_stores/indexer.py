"""
Vector Indexer

Embeds a filing's indexable units and writes them to their section
partitions:

- ABSTRACT: the abstract text (if any)
- CLAIM: each expanded claim
- DESCRIPTION: each description chunk
- DIAGRAM: each diagram at or above the confidence threshold with a summary

Each section is embedded in one batch call and written in one batched
upsert. A batch that comes back with the wrong number of vectors aborts
indexing before anything for that section is written, as does a vector
whose length differs from the configured embedding dimension.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from priorart import config
from priorart.config import EmbeddingConfig
from priorart.exceptions import EmbeddingCountMismatchError, EmbeddingDimensionError
from priorart.services.embeddings import EmbeddingService
from priorart.vector_stores.pinecone_store import PineconeVectorStore, VectorRecord
from priorart.vector_stores.sections import SUB_ID_FIELDS, Section, build_vector_id

logger = logging.getLogger(__name__)

# Payload content is truncated; full text stays on the filing record
PAYLOAD_CONTENT_CHARS = 1000


@dataclass
class IndexUnit:
    section: Section
    sub_id: Any
    text: str
    extra: Optional[Dict[str, Any]] = None


def collect_units(filing, diagram_threshold: float = config.DIAGRAM_CONFIDENCE_THRESHOLD) -> Dict[Section, List[IndexUnit]]:
    """Gather the indexable units of a filing, grouped by section."""
    units: Dict[Section, List[IndexUnit]] = {section: [] for section in Section}

    abstract = ((filing.raw or {}).get("abstract_text") or "").strip()
    if abstract:
        units[Section.ABSTRACT].append(IndexUnit(Section.ABSTRACT, "abstract", abstract))

    for claim in filing.get_claims():
        text = claim.expanded_text or claim.text
        if text.strip():
            units[Section.CLAIM].append(IndexUnit(
                Section.CLAIM, claim.claim_no, text,
                extra={"is_independent": claim.is_independent},
            ))

    for chunk in filing.get_description_chunks():
        if chunk.text.strip():
            units[Section.DESCRIPTION].append(IndexUnit(Section.DESCRIPTION, chunk.chunk_id, chunk.text))

    for diagram in filing.get_diagrams():
        if diagram.is_indexable(diagram_threshold):
            units[Section.DIAGRAM].append(IndexUnit(
                Section.DIAGRAM, diagram.diagram_id, diagram.semantic_summary,
                extra={"diagram_type": diagram.type.value, "confidence": diagram.confidence},
            ))

    return units


class VectorIndexer:
    """
    Usage:
        indexer = VectorIndexer(store)
        counts = indexer.index_filing(filing, active_embedding_config())
        # {"ABSTRACT": 1, "CLAIM": 12, "DESCRIPTION": 7, "DIAGRAM": 2}
    """

    def __init__(
        self,
        store: PineconeVectorStore,
        embedder_factory: Callable[[EmbeddingConfig], EmbeddingService] = EmbeddingService,
        diagram_threshold: float = config.DIAGRAM_CONFIDENCE_THRESHOLD,
    ):
        self.store = store
        self.embedder_factory = embedder_factory
        self.diagram_threshold = diagram_threshold

    def index_filing(self, filing, embedding_config: EmbeddingConfig) -> Dict[str, int]:
        embedder = self.embedder_factory(embedding_config)
        classification_code = filing.effective_classification_code()
        counts = {}

        for section, units in collect_units(filing, self.diagram_threshold).items():
            if not units:
                counts[section.value] = 0
                continue

            vectors = embedder.embed_batch([u.text for u in units])
            if len(vectors) != len(units):
                raise EmbeddingCountMismatchError(
                    f"{section.value}: embedded {len(vectors)} vectors for {len(units)} units"
                )
            wrong = [len(v) for v in vectors if len(v) != embedding_config.dimension]
            if wrong:
                raise EmbeddingDimensionError(
                    f"{section.value}: expected {embedding_config.dimension}-dimensional vectors, got {wrong[0]}"
                )

            records = [
                self._build_record(filing, unit, vector, classification_code, embedding_config)
                for unit, vector in zip(units, vectors)
            ]
            counts[section.value] = self.store.upsert(section, records)

        logger.info(f"Indexed filing {filing.id} v{filing.ingestion_version}: {counts}")
        return counts

    def _build_record(self, filing, unit: IndexUnit, vector, classification_code, embedding_config) -> VectorRecord:
        metadata = {
            "filing_id": filing.id,
            "unit_type": unit.section.value,
            "classification_code": classification_code,
            "content_version": filing.ingestion_version,
            "embedding_version": embedding_config.version,
            "content": unit.text[:PAYLOAD_CONTENT_CHARS],
        }
        sub_field = SUB_ID_FIELDS[unit.section]
        if sub_field:
            metadata[sub_field] = unit.sub_id
        if unit.extra:
            metadata.update(unit.extra)

        return VectorRecord(
            id=build_vector_id(
                filing.id, unit.section, unit.sub_id,
                filing.ingestion_version, embedding_config.version,
            ),
            values=vector,
            metadata=metadata,
        )
