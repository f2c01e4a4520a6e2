"""
Description Chunker

Splits the description section of a filing into overlapping word windows
for embedding. Paragraph boundaries (blank lines) are respected where
possible; paragraphs longer than the window are hard-split.

Claims are never chunked: they are embedded one claim per vector after
expansion, so text that looks like numbered claims is rejected here.
"""

import re
from typing import List

from priorart import config
from priorart.exceptions import ChunkingInputError
from priorart.models.records import DescriptionChunk

PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
NUMBERED_LINE = re.compile(r"^\s*\d+\.(?!\d)", re.MULTILINE)


def _split_by_paragraphs(text: str) -> List[str]:
    """Split text by paragraph boundaries (blank lines)."""
    paragraphs = PARAGRAPH_SPLIT.split(text.strip())
    return [p.strip() for p in paragraphs if p.strip()]


def chunk_description(
    text: str,
    max_words: int = config.CHUNK_MAX_WORDS,
    overlap_words: int = config.CHUNK_OVERLAP_WORDS,
) -> List[str]:
    """
    Chunk description text into windows of at most max_words words.

    When the next paragraph would overflow a non-empty chunk, the chunk is
    emitted and its last overlap_words words are carried into the next one.

    Raises:
        ChunkingInputError: If the text has numbered-claim lines
        ValueError: If overlap_words is not in [0, max_words)
    """
    if max_words <= 0 or not 0 <= overlap_words < max_words:
        raise ValueError(
            f"Invalid chunk window: max_words={max_words}, overlap_words={overlap_words}"
        )
    if not text or not text.strip():
        return []
    if NUMBERED_LINE.search(text):
        raise ChunkingInputError("Claims must not be chunked")

    chunks: List[str] = []
    current: List[str] = []

    for paragraph in _split_by_paragraphs(text):
        words = paragraph.split()
        if not words:
            continue

        if current and len(current) + len(words) > max_words:
            chunks.append(" ".join(current))
            current = current[-overlap_words:] if overlap_words else []

        current.extend(words)

        while len(current) > max_words:
            chunks.append(" ".join(current[:max_words]))
            current = current[max_words - overlap_words:]

    if current:
        chunks.append(" ".join(current))

    return chunks


def build_description_chunks(
    filing_id: str,
    text: str,
    max_words: int = config.CHUNK_MAX_WORDS,
    overlap_words: int = config.CHUNK_OVERLAP_WORDS,
) -> List[DescriptionChunk]:
    """Chunk a filing's description and assign stable chunk ids."""
    return [
        DescriptionChunk(chunk_id=f"{filing_id}_desc_{i}", text=chunk)
        for i, chunk in enumerate(chunk_description(text, max_words, overlap_words))
    ]
