"""
Prior-Art Pipeline Configuration

Environment variables, model settings and scoring constants for ingestion
and similarity analysis.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Database
SQLALCHEMY_DATABASE_URI = os.environ.get(
    "SQLALCHEMY_DATABASE_URI", "sqlite:///priorart.db"
)

# Queue
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
QUEUE_NAME = os.environ.get("PRIORART_QUEUE", "priorart:jobs")
# Run jobs on a thread of the web process when the queue falls back to memory
INLINE_WORKER = os.environ.get("PRIORART_INLINE_WORKER", "true").lower() == "true"

# Pinecone
PINECONE_API_KEY = os.environ.get("PINECONE_API_KEY")
PINECONE_INDEX_NAME = os.environ.get("PINECONE_PRIORART_INDEX", "priorart-sections")

# OpenAI
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")
REASONING_MODEL = os.environ.get("PRIORART_REASONING_MODEL", "gpt-4o")
RATIONALE_MODEL = os.environ.get("PRIORART_RATIONALE_MODEL", "gpt-4o-mini")
VISION_MODEL = os.environ.get("PRIORART_VISION_MODEL", "gpt-4o")

# Embeddings
# Bump EMBEDDING_VERSION whenever the model or preprocessing changes so that
# vectors from different generations are never compared.
EMBEDDING_MODEL = os.environ.get("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_VERSION = os.environ.get("EMBEDDING_VERSION", "v1")
EMBEDDING_DIMENSION = int(os.environ.get("EMBEDDING_DIMENSION", "1536"))

# Claim processing
CHUNK_MAX_WORDS = 400
CHUNK_OVERLAP_WORDS = 50

# Diagram indexing
DIAGRAM_CONFIDENCE_THRESHOLD = 0.6
DIAGRAM_WORKERS = int(os.environ.get("DIAGRAM_WORKERS", "4"))
FETCH_WORKERS = 4

# Similarity search
TOP_K_PER_QUERY = 10
MAX_CANDIDATES = 20
ADVISORY_TOP_K = 3
CLASSIFICATION_BIAS = 0.05

SECTION_WEIGHTS = {
    "CLAIM": 1.0,
    "ABSTRACT": 0.6,
    "DESCRIPTION": 0.4,
    "DIAGRAM": 0.3,
}

REPRESENTATIVE_LIMITS = {
    "ABSTRACT": 1,
    "CLAIM": 3,
    "DESCRIPTION": 2,
    "DIAGRAM": 1,
}

# Classification codes supplied by the AI classifier below this confidence
# are not trusted for payloads or search bias.
AI_CLASSIFICATION_MIN_CONFIDENCE = 0.6

# Advisory confidence bands
LOW_CONFIDENCE_BELOW = 0.4
HIGH_CONFIDENCE_AT = 0.7
CONFLICT_CONFIDENCE_CAP = 0.95

# Collaborators
FETCH_TIMEOUT = int(os.environ.get("FETCH_TIMEOUT", "60"))
STORAGE_PATH = os.environ.get("STORAGE_PATH", "storage/pages")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class EmbeddingConfig:
    """Embedding model + version pair used for one indexing or search call."""
    model: str
    version: str
    dimension: int = EMBEDDING_DIMENSION


def active_embedding_config() -> EmbeddingConfig:
    """Return the embedding configuration currently deployed."""
    return EmbeddingConfig(
        model=EMBEDDING_MODEL,
        version=EMBEDDING_VERSION,
        dimension=EMBEDDING_DIMENSION,
    )
