"""
Pinecone vector store over the official ``pinecone`` client.
Namespaces map one-to-one onto Pinecone namespaces inside a single index.
"""

from typing import Any, Dict, List, Optional

import numpy as np

from .types import VectorRecord, QueryResult
from .index import IVectorStore
from .errors import StoreUnavailable


class PineconeVectorStore(IVectorStore):
    """Pinecone-backed implementation of IVectorStore.

    Requires the ``pinecone`` extra. The index handle is opened on first use,
    by host when one is configured, otherwise by index name. Every failure
    raised by the client surfaces as StoreUnavailable.
    """

    def __init__(self, api_key: Optional[str], index_name: str = "dreamweaver",
                 index_host: Optional[str] = None, index=None):
        self.api_key = api_key
        self.index_name = index_name
        self.index_host = index_host
        self._index = index

    @property
    def index(self):
        """Pinecone index handle, opened lazily."""
        if self._index is None:
            if not self.api_key:
                raise StoreUnavailable("PINECONE_API_KEY not configured")
            if not self.index_host and not self.index_name:
                raise StoreUnavailable("Pinecone index name not configured")
            try:
                from pinecone import Pinecone
            except ImportError:
                raise ImportError("Pinecone client not installed. Please install the pinecone package.")

            client = Pinecone(api_key=self.api_key)
            if self.index_host:
                self._index = self._call("open index", client.Index, host=self.index_host)
            else:
                self._index = self._call("open index", client.Index, self.index_name)
        return self._index

    @staticmethod
    def _call(operation: str, func, *args, allow_not_found: bool = False, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            # Unknown namespaces answer 404
            if allow_not_found and getattr(e, "status", None) == 404:
                return None
            raise StoreUnavailable(f"Pinecone {operation} failed: {e}") from e

    def upsert(self, namespace: str, record: VectorRecord) -> None:
        values = np.asarray(record.vector, dtype=float).tolist()
        self._call("upsert", self.index.upsert,
                   vectors=[{"id": record.id, "values": values, "metadata": record.metadata}],
                   namespace=namespace)

    def delete(self, namespace: str, record_id: str) -> None:
        self._call("delete", self.index.delete, ids=[record_id], namespace=namespace, allow_not_found=True)

    def query(self, namespace: str, query_vector, top_k: int = 5,
              metadata_filter: Optional[Dict[str, Any]] = None) -> List[QueryResult]:
        if top_k <= 0:
            return []
        kwargs: Dict[str, Any] = {
            "namespace": namespace,
            "vector": np.asarray(query_vector, dtype=float).tolist(),
            "top_k": top_k,
            "include_metadata": True,
        }
        if metadata_filter:
            kwargs["filter"] = to_pinecone_filter(metadata_filter)

        response = self._call("query", self.index.query, allow_not_found=True, **kwargs)
        if response is None:
            return []
        return [
            QueryResult(id=match.id, score=float(match.score or 0), metadata=dict(match.metadata or {}))
            for match in response.matches or []
        ]

    def list_ids(self, namespace: str) -> List[str]:
        ids: List[str] = []
        pages = self._call("list", self.index.list, namespace=namespace)
        try:
            for page in pages:
                ids.extend(page)
        except Exception as e:
            if getattr(e, "status", None) == 404:
                return []
            raise StoreUnavailable(f"Pinecone list failed: {e}") from e
        return ids

    def count(self, namespace: str) -> int:
        stats = self._call("describe_index_stats", self.index.describe_index_stats)
        summary = (stats.namespaces or {}).get(namespace)
        return int(summary.vector_count) if summary else 0

    def clear(self, namespace: str) -> None:
        self._call("delete", self.index.delete, delete_all=True, namespace=namespace, allow_not_found=True)


def to_pinecone_filter(metadata_filter: Dict[str, Any]) -> Dict[str, Any]:
    """Expand plain equality entries into Pinecone's ``{"field": {"$eq": value}}`` form."""
    return {
        field: expected if isinstance(expected, dict) else {"$eq": expected}
        for field, expected in metadata_filter.items()
    }
