"""
Failure taxonomy for the embedding provider and vector store clients.
"""


class VectorServiceError(Exception):
    """Base class for embedding and vector store failures."""


class EmbeddingUnavailable(VectorServiceError):
    """Embedding provider is not configured (missing credential or endpoint)."""


class EmbeddingProviderError(VectorServiceError):
    """Remote embedding call failed or returned an unexpected shape."""


class StoreUnavailable(VectorServiceError):
    """Vector store is unreachable, misconfigured or rejected the request."""
