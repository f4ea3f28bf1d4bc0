"""
Vector overlay for semantic dream search. Non-canonical; the relational dream store is the source of truth.
"""

from .index import IVectorStore, SimpleInMemoryVectorStore, matches_filter
from .faiss_store import FaissVectorStore
from .pinecone_store import PineconeVectorStore
from .types import VectorRecord, QueryResult
from .embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    HttpEmbeddingProvider,
)
from .errors import VectorServiceError, EmbeddingUnavailable, EmbeddingProviderError, StoreUnavailable

__all__ = [
    'IVectorStore',
    'SimpleInMemoryVectorStore',
    'FaissVectorStore',
    'PineconeVectorStore',
    'matches_filter',
    'VectorRecord',
    'QueryResult',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'HttpEmbeddingProvider',
    'VectorServiceError',
    'EmbeddingUnavailable',
    'EmbeddingProviderError',
    'StoreUnavailable',
]
