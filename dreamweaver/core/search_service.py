"""
Similar-dream lookup for the UI: vector matches re-hydrated from the relational dream store.
"""

from dataclasses import dataclass
from typing import List, Optional

from .dao import get_dreams_by_ids
from .schema import Dream
from .vectorization import DreamVectorizationService
from ..util.logging import logger


class SimilaritySearchError(Exception):
    """Vector search failed; carries the underlying reason."""


@dataclass
class SimilarDream:
    dream: Dream
    similarity_score: float


def find_similar_dreams(service: DreamVectorizationService, owner_id: str, query_text: str,
                        limit: int = 5, include_public: bool = False,
                        exclude_id: Optional[str] = None) -> List[SimilarDream]:
    """
    Find dreams similar to query_text for owner_id.

    Args:
        service: Vectorization service used for the nearest-neighbour query
        owner_id: User performing the search
        query_text: Draft or existing dream content
        limit: Maximum number of dreams to return
        include_public: Also search other users' public dreams
        exclude_id: Id of the dream being compared against, removed from results

    Returns:
        Hydrated dreams with their similarity score, best first

    Raises:
        SimilaritySearchError: when embedding or vector search failed
    """
    # One extra slot so dropping the dream itself still fills the limit
    fetch_limit = limit + 1 if exclude_id else limit
    result = service.find_similar(query_text, owner_id, fetch_limit, include_public)
    if not result.success:
        raise SimilaritySearchError(result.error)

    matches = [m for m in result.matches if m.id != exclude_id][:limit]
    if not matches:
        return []

    dreams = get_dreams_by_ids([m.id for m in matches])

    similar = []
    for match in matches:
        dream = dreams.get(match.id)
        if dream is None:
            # Row deleted but vector not yet removed
            logger.log_vector_operation("stale_match", match.id, {"reason": "missing_row"}, status="skipped")
            continue
        if dream.owner_id != owner_id and not dream.is_public:
            # Un-published since it was mirrored
            logger.log_vector_operation("stale_match", match.id, {"reason": "no_longer_public"}, status="skipped")
            continue
        similar.append(SimilarDream(dream=dream, similarity_score=float(match.score)))

    similar.sort(key=lambda s: s.similarity_score, reverse=True)
    return similar
