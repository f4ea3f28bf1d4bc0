"""
Dream vectorization service.

Keeps the vector index in step with the relational dream store:
every dream lives in its owner's private namespace (user_<owner_id>), and
public dreams are mirrored into the shared public namespace under the same id.
The two stores are not updated transactionally. Writes here are best-effort
side effects of a dream write; they report failure through VectorResult
instead of raising, and convergence relies on upsert/delete idempotence plus
the drift corrections in corrections.py.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import PUBLIC_NAMESPACE, EMBED_MAX_CHARS, user_namespace
from .schema import Dream
from ..vector.errors import VectorServiceError
from ..vector.types import VectorRecord, QueryResult
from ..util.logging import logger


CONTENT_METADATA_CHARS = 1000
ANALYSIS_METADATA_CHARS = 500


@dataclass
class VectorResult:
    """Outcome of a vectorization operation."""
    success: bool
    error: Optional[str] = None
    matches: List[QueryResult] = field(default_factory=list)


def build_embedding_text(dream: Dream) -> str:
    """Text blob that gets embedded: content plus interpreted meaning."""
    analysis = dream.analysis
    themes = ", ".join(analysis.themes) if analysis else ""
    symbols = ", ".join(s.name for s in analysis.symbols) if analysis else ""
    emotional = analysis.emotional_analysis if analysis else ""

    return "\n".join([
        dream.content,
        f"Mood: {dream.mood}",
        f"Themes: {themes}",
        f"Symbols: {symbols}",
        f"Emotional Analysis: {emotional}",
    ]).strip()


def build_metadata(dream: Dream, owner_id: str, is_public: Optional[bool] = None) -> Dict[str, Any]:
    """Payload stored with the vector so matches render without a relational lookup."""
    analysis = dream.analysis
    return {
        "content": dream.content[:CONTENT_METADATA_CHARS],
        "mood": dream.mood,
        "clarity": dream.clarity,
        "themes": list(analysis.themes) if analysis else [],
        "symbols": [s.name for s in analysis.symbols] if analysis else [],
        "emotional_analysis": (analysis.emotional_analysis if analysis else "")[:ANALYSIS_METADATA_CHARS],
        "creative_story": (analysis.creative_story if analysis else "")[:ANALYSIS_METADATA_CHARS],
        "image_url": dream.image_url or "",
        "timestamp": dream.timestamp,
        "is_public": dream.is_public if is_public is None else is_public,
        "owner_id": owner_id,
    }


def merge_matches(matches: List[QueryResult], limit: int) -> List[QueryResult]:
    """Drop repeated ids (first occurrence wins), rank by descending score, keep the top `limit`."""
    seen = set()
    unique = []
    for match in matches:
        if match.id in seen:
            continue
        seen.add(match.id)
        unique.append(match)

    unique.sort(key=lambda m: m.score, reverse=True)
    return unique[:limit]


class DreamVectorizationService:
    """Coordinates the embedding provider and the vector store for dreams."""

    def __init__(self, embedding_provider, vector_store, max_embed_chars: int = EMBED_MAX_CHARS):
        self.embedding_provider = embedding_provider
        self.vector_store = vector_store
        self.max_embed_chars = max_embed_chars

    @classmethod
    def from_config(cls) -> "DreamVectorizationService":
        """Build the service from process configuration. Call once at startup."""
        from .config import get_embedding_provider, get_vector_store
        return cls(get_embedding_provider(), get_vector_store())

    def _embed(self, text: str) -> List[float]:
        return self.embedding_provider.embed_text(text[:self.max_embed_chars])

    def _embed_dream(self, dream: Dream) -> List[float]:
        return self._embed(build_embedding_text(dream))

    def _provider_details(self) -> Dict[str, Any]:
        return {"provider": self.vector_store.__class__.__name__}

    def vectorize(self, dream: Dream, owner_id: Optional[str] = None) -> VectorResult:
        """Embed a dream into its owner's namespace, and mirror it to public if public."""
        owner_id = owner_id or dream.owner_id
        namespace = user_namespace(owner_id)

        try:
            embedding = self._embed_dream(dream)
            self.vector_store.upsert(namespace, VectorRecord(
                id=dream.id,
                vector=embedding,
                metadata=build_metadata(dream, owner_id)
            ))
            logger.log_vector_operation("upserted", dream.id, {
                **self._provider_details(),
                "namespace": namespace,
                "dimension": len(embedding)
            })

            if dream.is_public:
                # Same embedding, separately recoverable if it fails
                self.vector_store.upsert(PUBLIC_NAMESPACE, VectorRecord(
                    id=dream.id,
                    vector=embedding,
                    metadata=build_metadata(dream, owner_id, is_public=True)
                ))
                logger.log_vector_operation("upserted", dream.id, {
                    **self._provider_details(),
                    "namespace": PUBLIC_NAMESPACE
                })
        except VectorServiceError as e:
            logger.log_vector_operation("vectorize", dream.id, {"namespace": namespace, "error": str(e)[:200]}, status="failed")
            return VectorResult(success=False, error=str(e))

        return VectorResult(success=True)

    def set_public_visibility(self, dream: Dream, owner_id: Optional[str] = None,
                              is_public: Optional[bool] = None) -> VectorResult:
        """Mirror a dream into, or remove it from, the public namespace.

        Publishing re-embeds from the dream's current state instead of reusing
        an earlier vector. The private copy is never touched.
        """
        owner_id = owner_id or dream.owner_id
        is_public = dream.is_public if is_public is None else is_public

        if not is_public:
            return self.remove_public(dream.id)

        try:
            embedding = self._embed_dream(dream)
            self.vector_store.upsert(PUBLIC_NAMESPACE, VectorRecord(
                id=dream.id,
                vector=embedding,
                metadata=build_metadata(dream, owner_id, is_public=True)
            ))
        except VectorServiceError as e:
            logger.log_vector_operation("publish", dream.id, {"namespace": PUBLIC_NAMESPACE, "error": str(e)[:200]}, status="failed")
            return VectorResult(success=False, error=str(e))

        logger.log_vector_operation("published", dream.id, self._provider_details())
        return VectorResult(success=True)

    def remove_public(self, dream_id: str) -> VectorResult:
        """Delete a dream's mirror from the public namespace."""
        try:
            self.vector_store.delete(PUBLIC_NAMESPACE, dream_id)
        except VectorServiceError as e:
            logger.log_vector_operation("unpublish", dream_id, {"namespace": PUBLIC_NAMESPACE, "error": str(e)[:200]}, status="failed")
            return VectorResult(success=False, error=str(e))

        logger.log_vector_operation("unpublished", dream_id, self._provider_details())
        return VectorResult(success=True)

    def remove(self, dream_id: str, owner_id: str) -> VectorResult:
        """Delete a dream from its owner's namespace only.

        Namespaces are independent keyspaces; callers unpublish public dreams separately.
        """
        namespace = user_namespace(owner_id)
        try:
            self.vector_store.delete(namespace, dream_id)
        except VectorServiceError as e:
            logger.log_vector_operation("delete", dream_id, {"namespace": namespace, "error": str(e)[:200]}, status="failed")
            return VectorResult(success=False, error=str(e))

        logger.log_vector_operation("deleted", dream_id, {**self._provider_details(), "namespace": namespace})
        return VectorResult(success=True)

    def find_similar(self, query_text: str, owner_id: str, limit: int = 5,
                     include_public: bool = False) -> VectorResult:
        """Nearest dreams to query_text in the user's namespace, optionally topped up from public.

        The public namespace is only queried for the slots the private one did
        not fill, plus one per private match that is itself public, since those
        come back from both namespaces and collapse in the merge. An empty or
        unknown namespace yields an empty, successful result.
        """
        if limit <= 0:
            return VectorResult(success=True)

        try:
            query_vector = self._embed(query_text)

            user_matches = self.vector_store.query(user_namespace(owner_id), query_vector, limit)

            public_matches: List[QueryResult] = []
            if include_public and len(user_matches) < limit:
                own_public = sum(1 for m in user_matches if m.metadata.get("is_public"))
                public_matches = self.vector_store.query(
                    PUBLIC_NAMESPACE,
                    query_vector,
                    limit - len(user_matches) + own_public,
                    {"is_public": True}
                )
        except VectorServiceError as e:
            logger.log_similarity_query(owner_id, query_text, 0, {"error": str(e)[:200]}, status="failed")
            return VectorResult(success=False, error=str(e))

        matches = merge_matches(user_matches + public_matches, limit)
        logger.log_similarity_query(owner_id, query_text, len(matches), {
            "user_matches": len(user_matches),
            "public_matches": len(public_matches)
        })
        return VectorResult(success=True, matches=matches)
