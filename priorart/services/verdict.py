"""
Verdict Aggregator

Collapses the advisory judgments of every analysed candidate into one
filing-level verdict:

- no candidates                            → CLEAN (0.8)
- any suggested conflict at confidence ≥ 0.7 → CONFLICT (max confidence, capped at 0.95)
- otherwise                                → POTENTIAL_INFRINGE (0.6)
"""

from dataclasses import dataclass
from typing import List

from priorart import config
from priorart.models.records import FinalVerdict, Verdict
from priorart.services.schemas import AdvisoryJudgment


@dataclass
class AnalyzedCandidate:
    """A candidate that went through advisory analysis."""
    candidate_id: str
    score: float
    judgment: AdvisoryJudgment
    snapshot_id: str = None


def compute_final_verdict(analyzed: List[AnalyzedCandidate]) -> FinalVerdict:
    if not analyzed:
        return FinalVerdict(
            status=Verdict.CLEAN,
            confidence=0.8,
            summary="No similar prior art detected",
        )

    conflicts = [
        a for a in analyzed
        if a.judgment.suggested_conflict and a.judgment.confidence >= config.HIGH_CONFIDENCE_AT
    ]
    if conflicts:
        strongest = max(conflicts, key=lambda a: (a.judgment.confidence, a.score))
        return FinalVerdict(
            status=Verdict.CONFLICT,
            confidence=min(config.CONFLICT_CONFIDENCE_CAP, strongest.judgment.confidence),
            summary=f"Potential conflict detected with filing {strongest.candidate_id}",
            strongest_candidate_id=strongest.candidate_id,
        )

    return FinalVerdict(
        status=Verdict.POTENTIAL_INFRINGE,
        confidence=0.6,
        summary="Similar prior art found; examiner review recommended",
    )
