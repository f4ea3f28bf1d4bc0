"""
Embedding providers. Turn a text blob into a fixed-length vector.
Providers do not retry; callers own the resilience policy.
"""

from abc import ABC, abstractmethod
import hashlib
from typing import Any, List, Optional

import requests

from .errors import EmbeddingProviderError, EmbeddingUnavailable


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for development and tests.

    Uses a consistent hashing approach to generate reproducible embeddings
    from text without requiring a model or network access. Vectors carry no
    semantic meaning.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> list[float]:
        """Generate deterministic embedding vector using hash function."""
        vector = []
        block = 0
        while len(vector) < self.dimension:
            hex_dig = hashlib.md5(f"{block}:{text}".encode()).hexdigest()
            for i in range(0, len(hex_dig), 8):
                if len(vector) >= self.dimension:
                    break
                value = int(hex_dig[i:i + 8], 16) % (2**32)
                # Map to [-1, 1] for cosine similarity
                vector.append((value / (2**32)) * 2 - 1)
            block += 1

        return vector

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Requires the ``local`` extra (sentence-transformers). The model is loaded
    on first use.
    """

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


class HttpEmbeddingProvider(IEmbeddingProvider):
    """Remote embedding API client.

    Speaks either the multimodal request shape
    ``{"model": ..., "input": [{"type": "text", "text": ...}]}`` or the
    OpenAI-style ``{"model": ..., "input": [text]}``. The vector dimension is
    a property of the remote model and is learned from the first response.
    """

    REQUEST_FORMATS = ("multimodal", "openai")

    def __init__(self, url: str, api_key: Optional[str], model: str,
                 request_format: str = "multimodal", timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        if request_format not in self.REQUEST_FORMATS:
            raise ValueError(f"request_format must be one of: {self.REQUEST_FORMATS}")
        self.url = url
        self.api_key = api_key
        self.model = model
        self.request_format = request_format
        self.timeout = timeout
        self._session = session or requests.Session()
        self._dimension = None

    def _build_payload(self, text: str) -> dict:
        if self.request_format == "multimodal":
            return {"model": self.model, "input": [{"type": "text", "text": text}]}
        return {"model": self.model, "input": [text]}

    def embed_text(self, text: str) -> list[float]:
        """Call the remote API and return the embedding."""
        if not self.api_key:
            raise EmbeddingUnavailable("Embedding API key not configured")
        if not self.url:
            raise EmbeddingUnavailable("Embedding API URL not configured")

        try:
            response = self._session.post(
                self.url,
                json=self._build_payload(text),
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise EmbeddingProviderError(f"Embedding request failed: {e}") from e

        if not response.ok:
            raise EmbeddingProviderError(
                f"Embedding API error: {response.status_code} {response.reason} - {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise EmbeddingProviderError("Embedding API returned non-JSON body") from e

        embedding = self._coerce(extract_embedding(data))
        self._dimension = len(embedding)
        return embedding

    @staticmethod
    def _coerce(embedding: Any) -> List[float]:
        if not isinstance(embedding, list) or not embedding:
            raise EmbeddingProviderError("Embedding API returned an empty embedding")
        try:
            return [float(v) for v in embedding]
        except (TypeError, ValueError) as e:
            raise EmbeddingProviderError("Embedding API returned non-numeric values") from e

    def get_dimension(self) -> int:
        """Dimension of the remote model, learned from one request if not yet known."""
        if self._dimension is None:
            self.embed_text("dimension check")
        return self._dimension


def extract_embedding(data: Any) -> Any:
    """Pull the embedding out of the response shapes seen from embedding APIs."""
    if isinstance(data, dict):
        inner = data.get("data")
        if isinstance(inner, dict) and "embedding" in inner:
            return inner["embedding"]
        if isinstance(inner, list) and inner and isinstance(inner[0], dict) and "embedding" in inner[0]:
            return inner[0]["embedding"]
        if "embedding" in data:
            return data["embedding"]
    elif isinstance(data, list) and data and isinstance(data[0], dict) and "embedding" in data[0]:
        return data[0]["embedding"]

    raise EmbeddingProviderError(f"Unexpected embedding response format: {str(data)[:200]}")
