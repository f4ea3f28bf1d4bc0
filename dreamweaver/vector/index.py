"""
Namespaced vector store interface and the in-memory backend.
Every operation is scoped by an explicit namespace; an unknown namespace is simply empty.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import numpy as np

from .types import VectorRecord, QueryResult


def matches_filter(metadata: Dict[str, Any], metadata_filter: Optional[Dict[str, Any]]) -> bool:
    """Check record metadata against a filter.

    Plain values mean equality; dict values may use ``$eq``, ``$ne`` or ``$in``.
    """
    if not metadata_filter:
        return True

    for field, expected in metadata_filter.items():
        actual = metadata.get(field)
        if isinstance(expected, dict):
            for op, operand in expected.items():
                if op == "$eq" and actual != operand:
                    return False
                if op == "$ne" and actual == operand:
                    return False
                if op == "$in" and actual not in operand:
                    return False
                if op not in ("$eq", "$ne", "$in"):
                    raise ValueError(f"Unsupported filter operator: {op}")
        elif actual != expected:
            return False

    return True


class IVectorStore(ABC):
    """Abstract interface for namespaced vector storage operations."""

    @abstractmethod
    def upsert(self, namespace: str, record: VectorRecord) -> None:
        """Insert or overwrite the record keyed by record.id."""
        pass

    @abstractmethod
    def delete(self, namespace: str, record_id: str) -> None:
        """Remove a record; deleting an absent id is a no-op."""
        pass

    @abstractmethod
    def query(self, namespace: str, query_vector, top_k: int = 5,
              metadata_filter: Optional[Dict[str, Any]] = None) -> List[QueryResult]:
        """Return up to top_k nearest neighbours, best first."""
        pass

    @abstractmethod
    def list_ids(self, namespace: str) -> List[str]:
        """List every record id in a namespace."""
        pass

    @abstractmethod
    def count(self, namespace: str) -> int:
        """Number of records in a namespace."""
        pass

    @abstractmethod
    def clear(self, namespace: str) -> None:
        """Remove all records from a namespace."""
        pass


class SimpleInMemoryVectorStore(IVectorStore):
    """Simple in-memory implementation of IVectorStore using cosine similarity."""

    def __init__(self):
        self._vectors: Dict[str, Dict[str, VectorRecord]] = {}  # namespace -> id -> record
        self._index: Dict[str, Dict[str, np.ndarray]] = {}      # namespace -> id -> normalized vector

    def upsert(self, namespace: str, record: VectorRecord) -> None:
        """Insert or overwrite a record in the namespace."""
        vector = np.asarray(record.vector, dtype=np.float64)
        norm = np.linalg.norm(vector)

        self._vectors.setdefault(namespace, {})[record.id] = VectorRecord(
            id=record.id,
            vector=vector,
            metadata=dict(record.metadata),
        )
        self._index.setdefault(namespace, {})[record.id] = vector / norm if norm > 0 else vector

    def delete(self, namespace: str, record_id: str) -> None:
        """Delete a vector record by ID."""
        self._vectors.get(namespace, {}).pop(record_id, None)
        self._index.get(namespace, {}).pop(record_id, None)

    def query(self, namespace: str, query_vector, top_k: int = 5,
              metadata_filter: Optional[Dict[str, Any]] = None) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        index = self._index.get(namespace)
        if not index or top_k <= 0:
            return []

        query_vector = np.asarray(query_vector, dtype=np.float64)
        norm = np.linalg.norm(query_vector)
        if norm == 0:
            return []
        normalized_query = query_vector / norm

        records = self._vectors[namespace]
        similarities = []
        for record_id, stored_vector in index.items():
            if not matches_filter(records[record_id].metadata, metadata_filter):
                continue
            similarities.append((record_id, float(np.dot(normalized_query, stored_vector))))

        similarities.sort(key=lambda x: x[1], reverse=True)

        return [
            QueryResult(id=record_id, score=score, metadata=dict(records[record_id].metadata))
            for record_id, score in similarities[:top_k]
        ]

    def list_ids(self, namespace: str) -> List[str]:
        return list(self._vectors.get(namespace, {}).keys())

    def count(self, namespace: str) -> int:
        return len(self._vectors.get(namespace, {}))

    def clear(self, namespace: str) -> None:
        """Clear all records from the namespace."""
        self._vectors.pop(namespace, None)
        self._index.pop(namespace, None)
