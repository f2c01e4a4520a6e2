"""
Content sections and their vector partitions.

Every indexed unit belongs to exactly one section, and each section lives in
its own Pinecone namespace. The partition table is exhaustive; a section
value without a partition is rejected rather than silently dropped.
"""

from enum import Enum
from typing import Dict, Optional

from priorart.exceptions import UnknownSectionError


class Section(Enum):
    ABSTRACT = "ABSTRACT"
    CLAIM = "CLAIM"
    DESCRIPTION = "DESCRIPTION"
    DIAGRAM = "DIAGRAM"

    @classmethod
    def parse(cls, value) -> "Section":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise UnknownSectionError(f"Unknown section: {value!r}") from None


SECTION_PARTITIONS: Dict[Section, str] = {
    Section.ABSTRACT: "abstracts",
    Section.CLAIM: "claims",
    Section.DESCRIPTION: "descriptions",
    Section.DIAGRAM: "diagrams",
}

# Payload field carrying the unit's identifier within its filing
SUB_ID_FIELDS: Dict[Section, Optional[str]] = {
    Section.ABSTRACT: None,
    Section.CLAIM: "claim_no",
    Section.DESCRIPTION: "chunk_id",
    Section.DIAGRAM: "diagram_id",
}


def partition_for(section) -> str:
    """Namespace holding vectors for a section."""
    section = Section.parse(section)
    try:
        return SECTION_PARTITIONS[section]
    except KeyError:
        raise UnknownSectionError(f"No partition for section {section.value}") from None


def build_vector_id(filing_id: str, section: Section, sub_id, content_version: int, embedding_version: str) -> str:
    """
    Deterministic vector id.

    Re-indexing the same unit at the same versions overwrites its vector,
    while a new ingestion or embedding version writes alongside the old one.
    """
    return f"{filing_id}#{section.value}#{sub_id}#v{content_version}#{embedding_version}"
