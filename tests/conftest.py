"""
Pytest fixtures for prior-art pipeline tests.

Provides:
- Flask app and database fixtures with in-memory SQLite
- Filing factory
- In-memory fakes for the embedding service and the vector store
- Mock OpenAI client builder
"""

import json
import math
import os
import re
import sys
import pytest
from unittest.mock import MagicMock

# Set testing environment before importing the package
os.environ["TESTING"] = "true"
os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")

project_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_dir not in sys.path:
    sys.path.insert(0, project_dir)


# ============================================================================
# Flask App Fixtures
# ============================================================================

@pytest.fixture
def app():
    """Create Flask application for testing."""
    from priorart.web import create_app
    from priorart.web.db import db

    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def db_session(app):
    from priorart.web.db import db
    return db.session


# ============================================================================
# Data Fixtures
# ============================================================================

SAMPLE_CLAIMS = """1. A cutting tool comprising a handle and a blade attached to the handle.
2. The cutting tool of claim 1, wherein the blade is made of hardened steel.
3. The cutting tool according to claims 1-2, further comprising a guard covering the blade.
4. A method of cutting comprising gripping a handle and drawing a blade across a workpiece."""

SAMPLE_DESCRIPTION = """The present invention relates to hand tools and in particular to cutting tools with guarded blades.

Conventional cutting tools expose the blade during storage which causes injuries. The tool described here adds a guard.

In one embodiment the handle is moulded from a polymer and the blade is press fitted into a slot in the handle."""


@pytest.fixture
def make_filing(db_session):
    """Factory for persisted filings."""
    from priorart.models import Filing

    def _make(**kwargs):
        defaults = {
            "title": "Guarded cutting tool",
            "documents": {
                "ABSTRACT": "https://files.example.com/abstract.txt",
                "CLAIMS": "https://files.example.com/claims.txt",
                "DESCRIPTION": "https://files.example.com/description.txt",
            },
        }
        defaults.update(kwargs)
        return Filing.create(**defaults)

    return _make


@pytest.fixture
def embedding_config():
    from priorart.config import EmbeddingConfig
    return EmbeddingConfig(model="test-embedding", version="test-v1", dimension=32)


# ============================================================================
# Fakes
# ============================================================================

class FakeEmbedder:
    """Deterministic bag-of-words embedder: shared words mean similar vectors."""

    def __init__(self, embedding_config=None, dimension=32):
        self.embedding_config = embedding_config
        self.dimension = dimension
        self.calls = []

    def _vector(self, text):
        vector = [0.0] * self.dimension
        for word in re.findall(r"[a-z]+", text.lower()):
            vector[sum(ord(ch) for ch in word) % self.dimension] += 1.0
        if not any(vector):
            vector[0] = 1.0
        return vector

    def embed(self, text):
        return self._vector(text)

    def embed_batch(self, texts):
        self.calls.append(list(texts))
        return [self._vector(t) for t in texts]


def _cosine(a, b):
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeVectorStore:
    """In-memory stand-in for PineconeVectorStore with the same interface."""

    def __init__(self):
        self.partitions = {}
        self.upsert_calls = []

    def upsert(self, section, records):
        from priorart.vector_stores.sections import partition_for
        namespace = partition_for(section)
        self.upsert_calls.append((section, len(records)))
        bucket = self.partitions.setdefault(namespace, {})
        for record in records:
            bucket[record.id] = record
        return len(records)

    def search(self, section, vector, top_k=10, filter=None):
        from priorart.vector_stores.pinecone_store import VectorHit
        from priorart.vector_stores.sections import partition_for
        wanted_version = (filter or {}).get("embedding_version", {}).get("$eq")
        hits = []
        for record in self.partitions.get(partition_for(section), {}).values():
            if wanted_version and record.metadata.get("embedding_version") != wanted_version:
                continue
            hits.append(VectorHit(id=record.id, score=_cosine(vector, record.values),
                                  metadata=dict(record.metadata)))
        hits.sort(key=lambda h: -h.score)
        return hits[:top_k]

    def list_filing_vectors(self, section, filing_id, content_version, embedding_version):
        from priorart.vector_stores.sections import partition_for
        records = [
            r for r in self.partitions.get(partition_for(section), {}).values()
            if r.metadata.get("filing_id") == filing_id
            and r.metadata.get("content_version") == content_version
            and r.metadata.get("embedding_version") == embedding_version
        ]
        return sorted(records, key=lambda r: r.id)

    def all_records(self):
        return [r for bucket in self.partitions.values() for r in bucket.values()]


@pytest.fixture
def fake_store():
    return FakeVectorStore()


@pytest.fixture
def fake_embedder_factory():
    created = []

    def _factory(embedding_config):
        embedder = FakeEmbedder(embedding_config)
        created.append(embedder)
        return embedder

    _factory.created = created
    return _factory


@pytest.fixture
def indexed_filing(make_filing, db_session, fake_store, fake_embedder_factory, embedding_config):
    """Factory for INDEXED filings whose claims (and abstract) are already in fake_store."""
    from priorart.ingestion.claims import build_claims
    from priorart.vector_stores.indexer import VectorIndexer

    def _make(claims_text=SAMPLE_CLAIMS, abstract=None, **kwargs):
        filing = make_filing(ingestion_status="INDEXED", embedding_version=embedding_config.version, **kwargs)
        if abstract:
            filing.set_raw({"abstract_text": abstract})
        filing.set_structured(claims=build_claims(claims_text))
        VectorIndexer(fake_store, fake_embedder_factory).index_filing(filing, embedding_config)
        db_session.commit()
        return filing

    return _make


def make_openai_client(*payloads):
    """Mock OpenAI client whose chat completions return the given JSON payloads in order."""
    client = MagicMock()
    responses = []
    for payload in payloads:
        response = MagicMock()
        content = payload if isinstance(payload, str) else json.dumps(payload)
        response.choices = [MagicMock(message=MagicMock(content=content))]
        responses.append(response)
    client.chat.completions.create.side_effect = responses
    return client


@pytest.fixture
def openai_client_factory():
    return make_openai_client
