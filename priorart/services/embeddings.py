"""
Embedding service adapter (OpenAI embeddings API).

The model and version come from an EmbeddingConfig passed in by the caller,
so every vector written or queried can be tagged with the version that
produced it.
"""

import logging
from typing import List, Optional

from openai import OpenAI

from priorart import config
from priorart.config import EmbeddingConfig

logger = logging.getLogger(__name__)

# Inputs per embeddings request
BATCH_SIZE = 100


class EmbeddingService:
    """
    Usage:
        service = EmbeddingService(active_embedding_config())
        vector = service.embed("A widget comprising a blade.")
        vectors = service.embed_batch(["...", "..."])
    """

    def __init__(self, embedding_config: EmbeddingConfig, client: Optional[OpenAI] = None):
        self.embedding_config = embedding_config
        self._client = client

    @property
    def version(self) -> str:
        return self.embedding_config.version

    @property
    def client(self) -> OpenAI:
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            if not config.OPENAI_API_KEY:
                raise ValueError("OPENAI_API_KEY environment variable is not set")
            self._client = OpenAI(api_key=config.OPENAI_API_KEY)
        return self._client

    def embed(self, text: str) -> List[float]:
        response = self.client.embeddings.create(
            model=self.embedding_config.model,
            input=text,
        )
        return response.data[0].embedding

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Embed texts in request batches, preserving input order.

        The result length is whatever the service returned; callers compare
        it against len(texts).
        """
        vectors: List[List[float]] = []
        for start in range(0, len(texts), BATCH_SIZE):
            batch = texts[start:start + BATCH_SIZE]
            response = self.client.embeddings.create(
                model=self.embedding_config.model,
                input=batch,
            )
            ordered = sorted(response.data, key=lambda item: item.index)
            vectors.extend(item.embedding for item in ordered)

        logger.debug(f"Embedded {len(texts)} texts with {self.embedding_config.model}")
        return vectors
