"""
Vector storage, indexing and similarity discovery.
"""

from priorart.vector_stores.sections import Section, partition_for, build_vector_id
from priorart.vector_stores.pinecone_store import PineconeVectorStore, VectorRecord, VectorHit
from priorart.vector_stores.indexer import VectorIndexer
from priorart.vector_stores.similarity_search import (
    SimilaritySearch,
    Candidate,
    Match,
    score_candidate,
)
