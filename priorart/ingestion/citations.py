"""
Patent citation scanner.

Finds US / EP / WO / IN publication numbers cited in claims and description
text and links each one to its Google Patents page.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List


class CitationType(Enum):
    US = "US"
    EP = "EP"
    WO = "WO"
    IN = "IN"


CITATION_PATTERNS = {
    CitationType.US: re.compile(r"\bUS\s?([0-9,]{6,10})"),
    CitationType.EP: re.compile(r"\bEP\s?([0-9,]{6,10})"),
    CitationType.WO: re.compile(r"\bWO\s?([0-9/]{10,12})"),
    CitationType.IN: re.compile(r"\bIN\s?([0-9]{6,12})"),
}

GOOGLE_PATENTS_URL = "https://patents.google.com/patent/{type}{number}"


@dataclass
class Citation:
    type: CitationType
    number: str
    raw: str

    @property
    def url(self) -> str:
        return GOOGLE_PATENTS_URL.format(type=self.type.value, number=self.number)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "number": self.number,
            "raw": self.raw,
            "url": self.url,
        }


def extract_citations(text: str) -> List[Citation]:
    """
    Scan text for cited patent publications.

    Thousands separators are dropped from the number; WO numbers keep their
    "/" separator. Duplicate (type, number) pairs are reported once.
    """
    if not text:
        return []

    citations = []
    seen = set()
    for citation_type, pattern in CITATION_PATTERNS.items():
        for match in pattern.finditer(text):
            number = match.group(1).replace(",", "").rstrip("/")
            if not number or (citation_type, number) in seen:
                continue
            seen.add((citation_type, number))
            citations.append(Citation(type=citation_type, number=number, raw=match.group(0).strip()))
    return citations
