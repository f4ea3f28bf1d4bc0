"""
Vector index record types.
The index is a non-canonical overlay; the relational dream store stays the source of truth.
"""

from typing import Dict, List, Optional, Union
import numpy as np
from dataclasses import dataclass, field


@dataclass
class VectorRecord:
    """Represents a vector record with metadata."""

    id: str
    """Dream id, used as the record key inside a namespace"""

    vector: Optional[Union[np.ndarray, List[float]]]
    """The embedding of the dream's text blob"""

    metadata: Dict[str, object] = field(default_factory=dict)
    """Payload needed to render a match without a relational lookup"""


@dataclass
class QueryResult:
    """Represents a search result from vector store."""

    id: str
    """Identifier for the matching record"""

    score: float
    """Similarity score of the match (higher = more similar)"""

    metadata: Dict[str, object] = field(default_factory=dict)
    """Metadata associated with the matched record"""
