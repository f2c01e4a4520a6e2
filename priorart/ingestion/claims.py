"""
Claim Processor

Turns the raw claims section of a filing into structured claims:

1. PARSE: split on claim markers ("1.", "2.", ...) at line starts
2. DEPENDENCIES: find "claim N" / "claims N-M" / "claims N, M and K" references
3. EXPAND: prefix each dependent claim with the expanded text of its parents,
   so every claim reads as a self-contained statement for embedding

Usage:
    claims = build_claims(claims_text)
    for claim in claims:
        print(claim.claim_no, claim.depends_on, claim.expanded_text)
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from priorart.models.records import Claim

logger = logging.getLogger(__name__)

# "<n>." at the start of a line; "2.5 mm" is not a marker
CLAIM_MARKER_PATTERN = re.compile(
    r"(?:^|\n)\s*(\d+)\.(?!\d)\s*([\s\S]*?)(?=\n\s*\d+\.(?!\d)|$)"
)

# "claim 3", "claims 1-4", "claims 1, 2 and 5", "claims 2 to 4 or 7"
CLAIM_REFERENCE_PATTERN = re.compile(
    r"\bclaims?\s+((?:\d+|and/or|and|or|to|[,\s\-–—])+)",
    re.IGNORECASE,
)
RANGE_PATTERN = re.compile(r"(\d+)\s*(?:-|–|—|to)\s*(\d+)", re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"\d+")
LEADING_NUMBER_PATTERN = re.compile(r"^\s*(\d+)\.")

# "The widget of claim 1," / "A method according to claims 2-4, wherein"
PREAMBLE_PATTERN = re.compile(
    r"^\s*(?:an?|the)\b[^,;.]*?\b"
    r"(?:of|in|as claimed in|as recited in|as defined in|as set forth in|as in|according to)\s+"
    r"claims?\s+(?:\d+|and/or|and|or|to|[,\s\-–—])+?"
    r"\s*(?:,\s*|\s+(?=wherein|further|comprising|characterized|in which))",
    re.IGNORECASE,
)

# Guards against "claims 1 to 100000" style typos blowing up the set
MAX_RANGE_SPAN = 500


@dataclass
class ParsedClaim:
    """A claim as split out of the raw text, before dependency analysis."""
    claim_no: int
    text: str


def parse_claims(text: str) -> List[ParsedClaim]:
    """
    Split claims text into numbered claims.

    Args:
        text: Raw claims section

    Returns:
        Claims in the order they appear; empty list for empty input
    """
    if not text or not text.strip():
        return []

    claims = []
    for match in CLAIM_MARKER_PATTERN.finditer(text):
        claim_text = match.group(2).strip()
        claims.append(ParsedClaim(claim_no=int(match.group(1)), text=claim_text))
    return claims


def extract_dependencies(text: str, claim_no: Optional[int] = None) -> Tuple[int, ...]:
    """
    Find the claim numbers a claim refers back to.

    Handles single references, comma lists, "and"/"or" lists and ranges
    written with "-", en/em dashes or "to". A claim never depends on itself:
    its own number (claim_no, or the leading "<n>." of text) is removed.

    Returns:
        Sorted, de-duplicated claim numbers
    """
    if not text:
        return ()

    numbers: Set[int] = set()
    for ref in CLAIM_REFERENCE_PATTERN.finditer(text):
        group = ref.group(1)

        for start, end in RANGE_PATTERN.findall(group):
            low, high = sorted((int(start), int(end)))
            if high - low > MAX_RANGE_SPAN:
                logger.warning(f"Ignoring implausible claim range {low}-{high}")
                continue
            numbers.update(range(low, high + 1))

        numbers.update(int(n) for n in NUMBER_PATTERN.findall(group))

    own_number = claim_no
    if own_number is None:
        leading = LEADING_NUMBER_PATTERN.match(text)
        if leading:
            own_number = int(leading.group(1))
    numbers.discard(own_number)
    numbers.discard(0)

    return tuple(sorted(numbers))


def strip_boilerplate(text: str) -> str:
    """
    Remove the dependency preamble from a dependent claim.

    "The widget of claim 1, wherein the blade is steel."
    becomes "wherein the blade is steel."

    Text without a recognised preamble is returned unchanged.
    """
    if not text:
        return ""
    stripped = PREAMBLE_PATTERN.sub("", text, count=1).strip()
    return stripped or text.strip()


def expand_claim(
    claim: Claim,
    claims_by_number: Dict[int, Claim],
    visited: Optional[Set[int]] = None,
) -> str:
    """
    Build the self-contained text of a claim.

    Parents are expanded recursively in ascending order, joined with "; ",
    and prefixed to the claim's own (preamble-stripped) text. The visited
    set is shared across the recursion; revisiting a claim returns its raw
    text, which terminates cycles.
    """
    if visited is None:
        visited = set()

    if claim.claim_no in visited:
        return claim.text
    visited.add(claim.claim_no)

    own_text = strip_boilerplate(claim.text) if claim.depends_on else claim.text.strip()

    parents = []
    for parent_no in claim.depends_on:
        parent = claims_by_number.get(parent_no)
        if parent is None:
            logger.debug(f"Claim {claim.claim_no} refers to missing claim {parent_no}")
            continue
        parent_text = expand_claim(parent, claims_by_number, visited)
        parents.append(parent_text.strip().rstrip("."))

    if not parents:
        return own_text
    return "; ".join(parents) + ". " + own_text


def build_claims(text: str) -> List[Claim]:
    """
    Parse, resolve dependencies and expand every claim in a claims section.

    Each claim is expanded with a fresh visited set.
    """
    claims: List[Claim] = []
    seen: Set[int] = set()

    for parsed in parse_claims(text):
        if parsed.claim_no in seen:
            logger.warning(f"Duplicate claim number {parsed.claim_no}; keeping first occurrence")
            continue
        seen.add(parsed.claim_no)
        claims.append(Claim(
            claim_no=parsed.claim_no,
            text=parsed.text,
            depends_on=extract_dependencies(parsed.text, claim_no=parsed.claim_no),
        ))

    claims_by_number = {c.claim_no: c for c in claims}
    for claim in claims:
        claim.expanded_text = expand_claim(claim, claims_by_number, visited=set())
        claim.is_expanded = True

    return claims
