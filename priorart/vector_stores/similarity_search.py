"""
Similarity Discovery Engine

Ranks other filings by how closely they resemble a target filing:

1. Pick representative vectors of the target (abstract, up to 3 claims
   favouring independent ones, 2 leading description chunks, the most
   confident diagram)
2. Search each one in its own section partition
3. Drop hits from superseded content versions or from candidates that are
   not INDEXED; per candidate, keep the best score seen in each section
4. Combine section maxima with fixed weights:
       score = Σ section_max[s] × weight[s]
   CLAIM 1.0, ABSTRACT 0.6, DESCRIPTION 0.4, DIAGRAM 0.3

Taking the max per section (not the sum) keeps a candidate with many
mediocre hits from outranking one with a single strong hit.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from priorart import config
from priorart.config import EmbeddingConfig
from priorart.exceptions import PreconditionError
from priorart.models.filing import Filing
from priorart.vector_stores.pinecone_store import PineconeVectorStore, VectorRecord
from priorart.vector_stores.sections import Section

logger = logging.getLogger(__name__)


@dataclass
class Match:
    """One search hit against a candidate."""
    section: Section
    score: float
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    query_metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section": self.section.value,
            "score": round(self.score, 4),
            "content": self.content,
            "metadata": self.metadata,
            "query_metadata": self.query_metadata,
        }


@dataclass
class Candidate:
    filing_id: str
    score: float
    breakdown: Dict[str, float]
    matches: List[Match] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filing_id": self.filing_id,
            "score": self.score,
            "breakdown": self.breakdown,
            "matches": [m.to_dict() for m in self.matches],
        }


def score_candidate(section_max: Dict[Section, float], weights: Dict[str, float] = None) -> float:
    """Weighted sum of per-section maxima, rounded to 4 decimals."""
    weights = weights or config.SECTION_WEIGHTS
    total = sum(
        score * weights.get(Section.parse(section).value, 0.0)
        for section, score in section_max.items()
    )
    return round(total, 4)


def current_content_versions(filing_ids, embedding_config: EmbeddingConfig) -> Dict[str, int]:
    """
    Current ingestion_version of each searchable candidate filing.

    A candidate is searchable when it is INDEXED under the given embedding
    version. Filings that are missing, re-ingesting or FAILED are left out.
    """
    if not filing_ids:
        return {}
    filings = Filing.query.filter(Filing.id.in_(list(filing_ids))).all()
    return {
        f.id: f.ingestion_version
        for f in filings
        if f.is_indexed and f.embedding_version == embedding_config.version
    }


def _chunk_position(record: VectorRecord) -> int:
    chunk_id = str(record.metadata.get("chunk_id", ""))
    try:
        return int(chunk_id.rsplit("_", 1)[-1])
    except ValueError:
        return 0


class SimilaritySearch:
    """
    Usage:
        search = SimilaritySearch(store)
        candidates = search.find_similar_candidates(filing, active_embedding_config())
        for c in candidates[:3]:
            print(c.filing_id, c.score, c.breakdown)
    """

    def __init__(
        self,
        store: PineconeVectorStore,
        top_k_per_query: int = config.TOP_K_PER_QUERY,
        max_candidates: int = config.MAX_CANDIDATES,
        classification_bias: float = config.CLASSIFICATION_BIAS,
    ):
        self.store = store
        self.top_k_per_query = top_k_per_query
        self.max_candidates = max_candidates
        self.classification_bias = classification_bias

    def representative_vectors(self, filing, embedding_config: EmbeddingConfig) -> List[Tuple[Section, VectorRecord]]:
        """Select the target's query vectors for each section."""
        selected: List[Tuple[Section, VectorRecord]] = []
        limits = config.REPRESENTATIVE_LIMITS

        for section in Section:
            records = self.store.list_filing_vectors(
                section, filing.id, filing.ingestion_version, embedding_config.version,
            )
            if not records:
                continue

            if section == Section.CLAIM:
                independent = {c.claim_no for c in filing.get_claims() if c.is_independent}
                records.sort(key=lambda r: (
                    int(r.metadata.get("claim_no", 0)) not in independent,
                    int(r.metadata.get("claim_no", 0)),
                ))
            elif section == Section.DESCRIPTION:
                records.sort(key=_chunk_position)
            elif section == Section.DIAGRAM:
                records.sort(key=lambda r: -float(r.metadata.get("confidence", 0.0)))

            selected.extend((section, r) for r in records[:limits[section.value]])

        return selected

    def find_similar_candidates(
        self,
        filing,
        embedding_config: EmbeddingConfig,
        use_classification_bias: bool = True,
    ) -> List[Candidate]:
        """
        Rank candidate filings against an indexed target.

        Raises:
            PreconditionError: If the target is not INDEXED under the
                given embedding version
        """
        if not filing.is_indexed:
            raise PreconditionError(f"Filing {filing.id} is not INDEXED ({filing.ingestion_status})")
        if filing.embedding_version != embedding_config.version:
            raise PreconditionError(
                f"Filing {filing.id} was indexed with embedding {filing.embedding_version}; "
                f"re-embedding to {embedding_config.version} is required"
            )

        target_code = filing.effective_classification_code() if use_classification_bias else None
        search_filter = {"embedding_version": {"$eq": embedding_config.version}}

        queries = self.representative_vectors(filing, embedding_config)
        raw_hits = []
        for section, query in queries:
            for hit in self.store.search(section, query.values, top_k=self.top_k_per_query, filter=search_filter):
                candidate_id = hit.metadata.get("filing_id")
                if candidate_id and candidate_id != filing.id:
                    raw_hits.append((section, query, hit))

        current_versions = current_content_versions(
            {hit.metadata["filing_id"] for _, _, hit in raw_hits}, embedding_config,
        )

        section_max: Dict[str, Dict[Section, float]] = {}
        matches: Dict[str, List[Match]] = {}
        stale = 0

        for section, query, hit in raw_hits:
            candidate_id = hit.metadata["filing_id"]
            # Superseded content versions and candidates not INDEXED are ignored
            current = current_versions.get(candidate_id)
            if current is None or hit.metadata.get("content_version") != current:
                stale += 1
                continue

            score = hit.score
            if target_code and hit.metadata.get("classification_code") == target_code:
                score += self.classification_bias

            best = section_max.setdefault(candidate_id, {})
            best[section] = max(best.get(section, 0.0), score)

            matches.setdefault(candidate_id, []).append(Match(
                section=section,
                score=hit.score,
                content=hit.metadata.get("content", ""),
                metadata=hit.metadata,
                query_metadata=query.metadata,
            ))

        if stale:
            logger.debug(f"Similarity search for {filing.id}: dropped {stale} stale hits")

        candidates = []
        for candidate_id, per_section in section_max.items():
            candidates.append(Candidate(
                filing_id=candidate_id,
                score=score_candidate(per_section),
                breakdown={s.value: round(per_section.get(s, 0.0), 4) for s in Section},
                matches=matches[candidate_id],
            ))

        candidates.sort(key=lambda c: (-c.score, c.filing_id))
        logger.info(
            f"Similarity search for {filing.id}: {len(queries)} queries, "
            f"{len(candidates)} candidates"
        )
        return candidates[:self.max_candidates]
