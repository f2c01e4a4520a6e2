"""
Similarity Check Pipeline

discover → advise → enrich → snapshot → verdict

For an INDEXED target filing:
1. Rank candidates with the discovery engine
2. For the top candidates, ask the advisory reasoner for a claim-level
   judgment and annotate claim matches with rationales
3. Persist one immutable snapshot per analysed candidate
4. Aggregate the judgments into the filing's verdict and log metrics
"""

import logging
import time
from typing import Any, Dict, List, Optional

from priorart import config
from priorart.config import EmbeddingConfig
from priorart.exceptions import FilingNotFoundError, PreconditionError
from priorart.logging_utils import log_analysis_metrics, structured_log
from priorart.models.filing import Filing
from priorart.models.records import ConfidenceLevel
from priorart.models.snapshot import LOW_CONFIDENCE_NOTE, SimilaritySnapshot
from priorart.services.rationale_llm import RationaleGenerator, enrich_matches_with_rationale
from priorart.services.reasoning_llm import AdvisoryReasoner, confidence_level
from priorart.services.schemas import AdvisoryJudgment
from priorart.services.verdict import AnalyzedCandidate, compute_final_verdict
from priorart.vector_stores.similarity_search import Candidate, SimilaritySearch
from priorart.web.db import db

logger = logging.getLogger(__name__)


def build_snapshot(
    target: Filing,
    compared: Filing,
    candidate: Candidate,
    judgment: AdvisoryJudgment,
    evidence: List[Dict[str, Any]],
    embedding_config: EmbeddingConfig,
) -> SimilaritySnapshot:
    """Assemble a complete snapshot for one analysed candidate (not yet persisted)."""
    level = confidence_level(judgment.confidence)
    diagram_ids = sorted({
        str(m["metadata"]["diagram_id"])
        for m in evidence
        if m.get("section") == "DIAGRAM" and m.get("metadata", {}).get("diagram_id") is not None
    })

    return SimilaritySnapshot(
        target_id=target.id,
        compared_id=compared.id,
        target_ingestion_version=target.ingestion_version,
        compared_ingestion_version=compared.ingestion_version,
        embedding_version=embedding_config.version,
        similarity_score={"overall": candidate.score, "breakdown": candidate.breakdown},
        confidence_level=level.value,
        confidence_source="SYSTEM",
        low_confidence_note=LOW_CONFIDENCE_NOTE if level == ConfidenceLevel.LOW else None,
        claim_analysis=[entry.model_dump() for entry in judgment.claim_analysis],
        diagram_support={
            "used": judgment.diagram_support.used,
            "diagram_ids": diagram_ids if judgment.diagram_support.used else [],
            "explanation": judgment.diagram_support.explanation,
        },
        agent_trace={
            "retrieved_evidence": evidence,
            "advisory_output": judgment.model_dump(exclude={"reasoning"}),
        },
    )


class SimilarityPipeline:
    """
    Usage:
        pipeline = SimilarityPipeline(SimilaritySearch(store))
        result = pipeline.run(filing_id, active_embedding_config())
        print(result["verdict"])
    """

    def __init__(
        self,
        search: SimilaritySearch,
        reasoner: Optional[AdvisoryReasoner] = None,
        rationale_generator: Optional[RationaleGenerator] = None,
        advisory_top_k: int = config.ADVISORY_TOP_K,
    ):
        self.search = search
        self.reasoner = reasoner or AdvisoryReasoner()
        self.rationale_generator = rationale_generator or RationaleGenerator()
        self.advisory_top_k = advisory_top_k

    def run(self, filing_id: str, embedding_config: EmbeddingConfig, job_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Run a similarity check for a target filing.

        Raises:
            FilingNotFoundError: If the target does not exist
            PreconditionError: If the target is not INDEXED
        """
        started = time.time()
        job_context = {"job_id": job_id, "filing_id": filing_id, "embedding_version": embedding_config.version}

        target = db.session.get(Filing, filing_id)
        if target is None:
            raise FilingNotFoundError(f"Filing {filing_id} not found")
        if not target.is_indexed:
            raise PreconditionError(f"Filing {filing_id} is not INDEXED ({target.ingestion_status})")

        structured_log("INFO", "stage_started", stage="discovery", **job_context)
        candidates = self.search.find_similar_candidates(target, embedding_config)
        structured_log("INFO", "stage_complete", stage="discovery", candidates=len(candidates), **job_context)

        target_claims = target.get_claims()
        target_claims_by_number = {c.claim_no: c for c in target_claims}
        analyzed: List[AnalyzedCandidate] = []

        for candidate in candidates[:self.advisory_top_k]:
            compared = db.session.get(Filing, candidate.filing_id)
            if compared is None:
                structured_log("WARNING", "candidate_missing", candidate_id=candidate.filing_id, **job_context)
                continue

            candidate_claims = compared.get_claims()
            judgment = self.reasoner.judge(target_claims, compared.id, candidate_claims)
            evidence = enrich_matches_with_rationale(
                [m.to_dict() for m in candidate.matches],
                target_claims_by_number,
                {c.claim_no: c for c in candidate_claims},
                self.rationale_generator,
            )

            snapshot = build_snapshot(target, compared, candidate, judgment, evidence, embedding_config)
            SimilaritySnapshot.store(snapshot, target)

            analyzed.append(AnalyzedCandidate(
                candidate_id=compared.id,
                score=candidate.score,
                judgment=judgment,
                snapshot_id=snapshot.id,
            ))
            structured_log(
                "INFO", "snapshot_created",
                snapshot_id=snapshot.id,
                candidate_id=compared.id,
                score=candidate.score,
                confidence_level=snapshot.confidence_level,
                **job_context
            )

        verdict = compute_final_verdict(analyzed)
        target.set_verdict(verdict)
        db.session.commit()

        duration_ms = round((time.time() - started) * 1000, 2)
        log_analysis_metrics(
            filing_id,
            duration_ms=duration_ms,
            candidate_count=len(candidates),
            analyzed_count=len(analyzed),
            verdict=verdict.status.value,
        )

        return {
            "filing_id": filing_id,
            "status": "completed",
            "candidates": len(candidates),
            "snapshots": [a.snapshot_id for a in analyzed],
            "verdict": verdict.to_dict(),
            "duration_ms": duration_ms,
        }
