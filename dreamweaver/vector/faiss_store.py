"""
FAISS-backed namespaced vector store.
One IndexIDMap2 over an inner-product flat index per namespace, so records can be overwritten and removed.
"""

from typing import Any, Dict, List, Optional
import numpy as np

from .types import VectorRecord, QueryResult
from .index import IVectorStore, matches_filter
from .errors import StoreUnavailable


class _Namespace:
    """FAISS index plus the id and metadata bookkeeping for one namespace."""

    def __init__(self, faiss, dimension: int):
        self.index = faiss.IndexIDMap2(faiss.IndexFlatIP(dimension))
        self.id_to_vector_index: Dict[str, int] = {}
        self.vector_id_map: Dict[int, str] = {}
        self.metadata: Dict[str, Dict[str, Any]] = {}
        self.next_vector_index = 0


class FaissVectorStore(IVectorStore):
    """FAISS-backed implementation of IVectorStore.

    The vector dimension belongs to the embedding model. When it is not given
    up front, the first upserted vector fixes it for every namespace.
    """

    def __init__(self, dimension: Optional[int] = None):
        """
        Initialize FAISS vector store.

        Args:
            dimension: Dimension of the vectors, or None to learn it from the first upsert
        """
        try:
            import faiss
        except ImportError:
            raise ImportError("FAISS not installed. Please install faiss-cpu package.")

        self.faiss = faiss
        self.dimension = dimension
        self._namespaces: Dict[str, _Namespace] = {}

    def _check_dimension(self, array: np.ndarray) -> None:
        if array.shape[-1] != self.dimension:
            raise StoreUnavailable(
                f"Vector dimension {array.shape[-1]} does not match index dimension {self.dimension}"
            )

    def _normalize(self, vector) -> np.ndarray:
        array = np.asarray(vector, dtype=np.float32)
        self._check_dimension(array)
        norm = np.linalg.norm(array)
        if norm > 0:
            array = array / norm
        return array.reshape(1, -1).astype(np.float32)

    def upsert(self, namespace: str, record: VectorRecord) -> None:
        """Insert or overwrite a record."""
        if self.dimension is None:
            self.dimension = int(np.asarray(record.vector).shape[-1])
        vector_array = self._normalize(record.vector)

        ns = self._namespaces.get(namespace)
        if ns is None:
            ns = self._namespaces[namespace] = _Namespace(self.faiss, self.dimension)

        # Overwrite: drop the previous vector under this id first
        if record.id in ns.id_to_vector_index:
            self._remove(ns, record.id)

        vector_index = ns.next_vector_index
        ns.next_vector_index += 1
        ns.index.add_with_ids(vector_array, np.array([vector_index], dtype=np.int64))
        ns.id_to_vector_index[record.id] = vector_index
        ns.vector_id_map[vector_index] = record.id
        ns.metadata[record.id] = dict(record.metadata)

    def _remove(self, ns: _Namespace, record_id: str) -> None:
        vector_index = ns.id_to_vector_index.pop(record_id)
        ns.index.remove_ids(np.array([vector_index], dtype=np.int64))
        ns.vector_id_map.pop(vector_index, None)
        ns.metadata.pop(record_id, None)

    def delete(self, namespace: str, record_id: str) -> None:
        """Delete a vector record by ID."""
        ns = self._namespaces.get(namespace)
        if ns is not None and record_id in ns.id_to_vector_index:
            self._remove(ns, record_id)

    def query(self, namespace: str, query_vector, top_k: int = 5,
              metadata_filter: Optional[Dict[str, Any]] = None) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        if self.dimension is not None:
            self._check_dimension(np.asarray(query_vector, dtype=np.float32))

        ns = self._namespaces.get(namespace)
        if ns is None or not ns.index.ntotal or top_k <= 0:
            return []

        if not np.linalg.norm(np.asarray(query_vector, dtype=np.float32)):
            return []
        query_array = self._normalize(query_vector)

        # With a filter, rank everything and filter afterwards
        k = ns.index.ntotal if metadata_filter else min(top_k, ns.index.ntotal)
        scores, indices = ns.index.search(query_array, k)

        query_results = []
        for score, vector_index in zip(scores[0], indices[0]):
            record_id = ns.vector_id_map.get(int(vector_index))
            if record_id is None:
                continue
            metadata = ns.metadata.get(record_id, {})
            if not matches_filter(metadata, metadata_filter):
                continue
            query_results.append(QueryResult(id=record_id, score=float(score), metadata=dict(metadata)))
            if len(query_results) >= top_k:
                break

        return query_results

    def list_ids(self, namespace: str) -> List[str]:
        ns = self._namespaces.get(namespace)
        return list(ns.id_to_vector_index.keys()) if ns else []

    def count(self, namespace: str) -> int:
        ns = self._namespaces.get(namespace)
        return int(ns.index.ntotal) if ns else 0

    def clear(self, namespace: str) -> None:
        """Clear all records from the namespace."""
        self._namespaces.pop(namespace, None)
