"""
Ingestion building blocks: document fetching, text and page extraction,
claim parsing/expansion, description chunking and citation scanning.
"""

from priorart.ingestion.claims import (
    ParsedClaim,
    parse_claims,
    extract_dependencies,
    strip_boilerplate,
    expand_claim,
    build_claims,
)
from priorart.ingestion.chunker import chunk_description, build_description_chunks
from priorart.ingestion.citations import Citation, CitationType, extract_citations
