"""
Advisory Reasoning Adapter (OpenAI, JSON mode)

Asks a reasoning model whether any of the target filing's claims is
anticipated by a candidate filing, claim by claim. The output is advisory
only: it feeds snapshots and the verdict aggregator but is never treated as
a decision, and it is never trusted as-is:

- The response must validate against AdvisoryJudgment
- claim_analysis entries naming a target claim that does not exist are dropped
- Any failure yields the fallback judgment (no conflict, confidence 0)
"""

import json
import logging
from typing import Iterable, List, Optional, Set

from openai import OpenAI

from priorart import config
from priorart.models.records import Claim, ConfidenceLevel
from priorart.services.schemas import AdvisoryJudgment, ClaimAnalysisEntry, DiagramSupport

logger = logging.getLogger(__name__)

FALLBACK_REASONING = "Advisory analysis failed or was inconclusive."

SYSTEM_PROMPT = """You are an AI assistant supporting a human patent examiner.

RULES (MANDATORY):
- You are NOT a legal authority.
- You provide ADVISORY analysis only.
- Focus STRICTLY on CLAIM-TO-CLAIM comparison.
- Ignore descriptions and diagrams unless required for clarification.

ANTICIPATION STANDARD:
- A claim is anticipated ONLY if all essential elements are present in the candidate.
- Partial overlap does NOT count as anticipation.

CONFIDENCE CALIBRATION:
- If uncertain, keep confidence BELOW 0.6.
- Use confidence ABOVE 0.7 ONLY if anticipation is clear.

OUTPUT RULES:
- Output JSON ONLY, with keys: suggestedConflict (bool), confidence (0-1),
  claimAnalysis ([{targetClaim, sourceClaims, matchType: "SINGLE"|"COMBINED", rationale}]),
  diagramSupport ({used, explanation}), reasoning (one short paragraph).
- List ONLY valid TARGET claim numbers.
- Be technical, concise, and factual."""


def fallback_judgment() -> AdvisoryJudgment:
    return AdvisoryJudgment(
        suggested_conflict=False,
        confidence=0.0,
        claim_analysis=[],
        diagram_support=DiagramSupport(used=False),
        reasoning=FALLBACK_REASONING,
    )


def sanitize_claim_analysis(
    entries: Iterable[ClaimAnalysisEntry],
    valid_claim_numbers: Set[int],
) -> List[ClaimAnalysisEntry]:
    """Drop entries whose target_claim is not one of the target's claims."""
    kept = []
    for entry in entries:
        if entry.target_claim in valid_claim_numbers:
            kept.append(entry)
        else:
            logger.warning(f"Dropping advisory entry for nonexistent target claim {entry.target_claim}")
    return kept


def confidence_level(confidence: float) -> ConfidenceLevel:
    """Bucket an advisory confidence: <0.4 LOW, [0.4, 0.7) MEDIUM, >=0.7 HIGH."""
    if confidence < config.LOW_CONFIDENCE_BELOW:
        return ConfidenceLevel.LOW
    if confidence >= config.HIGH_CONFIDENCE_AT:
        return ConfidenceLevel.HIGH
    return ConfidenceLevel.MEDIUM


def _claims_payload(claims: List[Claim]) -> str:
    return json.dumps([
        {"claimNo": c.claim_no, "text": c.expanded_text or c.text}
        for c in claims
    ])


class AdvisoryReasoner:
    """
    Usage:
        reasoner = AdvisoryReasoner()
        judgment = reasoner.judge(target_claims, candidate.id, candidate_claims)
        if judgment.suggested_conflict and judgment.confidence >= 0.7:
            ...
    """

    def __init__(self, model: str = config.REASONING_MODEL, client: Optional[OpenAI] = None):
        self.model = model
        self._client = client

    @property
    def client(self) -> OpenAI:
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            if not config.OPENAI_API_KEY:
                raise ValueError("OPENAI_API_KEY environment variable is not set")
            self._client = OpenAI(api_key=config.OPENAI_API_KEY)
        return self._client

    def judge(
        self,
        target_claims: List[Claim],
        candidate_id: str,
        candidate_claims: List[Claim],
    ) -> AdvisoryJudgment:
        """
        Compare target claims against a candidate's claims.

        Returns:
            Sanitized AdvisoryJudgment, or the fallback judgment on any failure
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self._build_prompt(target_claims, candidate_id, candidate_claims)},
                ],
                response_format={"type": "json_object"},
                temperature=0,
            )
            judgment = AdvisoryJudgment.model_validate(
                json.loads(response.choices[0].message.content)
            )
        except Exception as e:
            logger.error(f"Advisory analysis failed for candidate {candidate_id}: {e}")
            return fallback_judgment()

        judgment.claim_analysis = sanitize_claim_analysis(
            judgment.claim_analysis,
            {c.claim_no for c in target_claims},
        )

        logger.info(
            f"Advisory judgment for candidate {candidate_id}: "
            f"conflict={judgment.suggested_conflict}, confidence={judgment.confidence:.2f}, "
            f"entries={len(judgment.claim_analysis)}"
        )
        return judgment

    def _build_prompt(self, target_claims: List[Claim], candidate_id: str, candidate_claims: List[Claim]) -> str:
        return f"""TARGET PATENT CLAIMS:
{_claims_payload(target_claims)}

CANDIDATE PATENT ID:
{candidate_id}

CANDIDATE PATENT CLAIMS:
{_claims_payload(candidate_claims)}

Identify whether any TARGET claim is anticipated by the CANDIDATE.
Return claim-level analysis."""
