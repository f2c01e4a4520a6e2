"""
Rationale Enrichment

Annotates claim-level matches with a contrastive rationale (overlaps,
distinctions, overall assessment) so an examiner can see why two claims
scored as similar. Enrichment is best-effort: a match that cannot be
annotated is passed through unchanged.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

from priorart import config
from priorart.models.records import Claim
from priorart.services.schemas import Rationale

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a patent examiner analyzing technical similarities between patent claims. "
    "Provide a structured comparison as JSON with keys: overlaps ([{element, explanation}]), "
    "distinctions ([{element, explanation}]), overallAssessment "
    "(HIGH_OVERLAP | PARTIAL_OVERLAP | LOW_OVERLAP | NO_OVERLAP), summary."
)


class RationaleGenerator:
    """
    Usage:
        generator = RationaleGenerator()
        rationale = generator.generate(target_claim_text, candidate_claim_text)
    """

    def __init__(self, model: str = config.RATIONALE_MODEL, client: Optional[OpenAI] = None):
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

    def generate(self, target_text: str, candidate_text: str) -> Rationale:
        """
        Compare two passages.

        Raises:
            Exception: Transport or validation errors propagate to the caller
        """
        if not target_text or not candidate_text:
            return Rationale(
                overall_assessment="NO_OVERLAP",
                summary="Insufficient text for comparison.",
            )

        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": (
                    "Compare the following two patent fragments:\n\n"
                    f"TARGET FRAGMENT:\n\"{target_text}\"\n\n"
                    f"CANDIDATE FRAGMENT (Potential Prior Art):\n\"{candidate_text}\"\n\n"
                    "Provide a structured analysis of overlaps and distinctions."
                )},
            ],
            response_format={"type": "json_object"},
            temperature=0.1,
        )
        return Rationale.model_validate(json.loads(response.choices[0].message.content))


def _claim_text(claims_by_number: Dict[int, Claim], claim_no: Any) -> Optional[str]:
    if claim_no is None:
        return None
    try:
        claim = claims_by_number.get(int(claim_no))
    except (TypeError, ValueError):
        return None
    if claim is None:
        return None
    return claim.expanded_text or claim.text


def enrich_matches_with_rationale(
    matches: List[Dict[str, Any]],
    target_claims: Dict[int, Claim],
    candidate_claims: Dict[int, Claim],
    generator: RationaleGenerator,
) -> List[Dict[str, Any]]:
    """
    Attach a rationale to each CLAIM match whose texts can be resolved.

    The target text is the expanded target claim named in the match's query
    metadata; the candidate text is the candidate's expanded claim named in
    the match metadata, falling back to the matched content.

    Returns:
        New list of match dicts; unannotated matches are returned as-is
    """
    enriched = []
    for match in matches:
        if match.get("section") != "CLAIM":
            enriched.append(match)
            continue

        target_text = _claim_text(target_claims, (match.get("query_metadata") or {}).get("claim_no"))
        candidate_text = (
            _claim_text(candidate_claims, (match.get("metadata") or {}).get("claim_no"))
            or match.get("content")
        )
        if not target_text or not candidate_text:
            enriched.append(match)
            continue

        try:
            rationale = generator.generate(target_text, candidate_text)
        except Exception as e:
            logger.warning(f"Rationale generation failed, leaving match unannotated: {e}")
            enriched.append(match)
            continue

        enriched.append({**match, "rationale": rationale.model_dump()})

    return enriched
