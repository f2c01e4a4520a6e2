"""
Section-partitioned vector store on Pinecone.

One index, one namespace per section (see sections.SECTION_PARTITIONS).
Vectors carry their filing id, content version and embedding version in
metadata so searches never mix embedding generations.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pinecone import Pinecone as PineconeClient

from priorart import config
from priorart.vector_stores.sections import Section, partition_for

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 100
FETCH_BATCH_SIZE = 100


@dataclass
class VectorRecord:
    """A vector with its id and payload, as written to or read from the store."""
    id: str
    values: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_pinecone(self) -> Dict[str, Any]:
        # Pinecone rejects null metadata values
        metadata = {k: v for k, v in self.metadata.items() if v is not None}
        return {"id": self.id, "values": self.values, "metadata": metadata}


@dataclass
class VectorHit:
    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class PineconeVectorStore:
    """
    Usage:
        store = PineconeVectorStore()
        store.upsert(Section.CLAIM, records)
        hits = store.search(Section.CLAIM, vector, top_k=10,
                            filter={"embedding_version": {"$eq": "v1"}})
    """

    def __init__(self, index=None, index_name: str = config.PINECONE_INDEX_NAME):
        if index is None:
            pc = PineconeClient(api_key=config.PINECONE_API_KEY)
            index = pc.Index(index_name)
        self.index = index

    def upsert(self, section: Section, records: List[VectorRecord]) -> int:
        """Write all records for one section in a single batched upsert."""
        if not records:
            return 0
        namespace = partition_for(section)
        self.index.upsert(
            vectors=[r.to_pinecone() for r in records],
            namespace=namespace,
            batch_size=UPSERT_BATCH_SIZE,
        )
        logger.info(f"Upserted {len(records)} vectors into {namespace}")
        return len(records)

    def search(
        self,
        section: Section,
        vector: List[float],
        top_k: int = config.TOP_K_PER_QUERY,
        filter: Optional[Dict[str, Any]] = None,
    ) -> List[VectorHit]:
        """Cosine search within one section's partition."""
        results = self.index.query(
            vector=vector,
            top_k=top_k,
            namespace=partition_for(section),
            filter=filter or None,
            include_metadata=True,
        )
        return [
            VectorHit(id=match.id, score=match.score, metadata=dict(match.metadata or {}))
            for match in results.matches
        ]

    def list_filing_vectors(
        self,
        section: Section,
        filing_id: str,
        content_version: int,
        embedding_version: str,
    ) -> List[VectorRecord]:
        """
        List a filing's own vectors in one section, with values.

        Uses the deterministic id prefix to enumerate ids, then fetches and
        keeps only the requested content and embedding versions.
        """
        namespace = partition_for(section)
        prefix = f"{filing_id}#{section.value}#"

        ids: List[str] = []
        for page in self.index.list(prefix=prefix, namespace=namespace):
            ids.extend(page)

        records = []
        for start in range(0, len(ids), FETCH_BATCH_SIZE):
            response = self.index.fetch(ids=ids[start:start + FETCH_BATCH_SIZE], namespace=namespace)
            for vector_id, vector in response.vectors.items():
                metadata = dict(vector.metadata or {})
                if metadata.get("content_version") != content_version:
                    continue
                if metadata.get("embedding_version") != embedding_version:
                    continue
                records.append(VectorRecord(id=vector_id, values=list(vector.values), metadata=metadata))

        records.sort(key=lambda r: r.id)
        return records
