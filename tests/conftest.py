"""
Shared fixtures: a temporary dream database per test and a keyword embedding
whose vectors are close exactly when two texts share dream motifs.
"""

import pytest

from dreamweaver.core.db import init_db
from dreamweaver.core.schema import Dream, DreamAnalysis, DreamSymbol
from dreamweaver.core.vectorization import DreamVectorizationService
from dreamweaver.vector.embeddings import IEmbeddingProvider
from dreamweaver.vector.index import SimpleInMemoryVectorStore


KEYWORDS = ["ocean", "water", "swim", "fly", "sky", "bird", "teeth", "exam", "school", "chase", "forest", "dark"]


class KeywordEmbedding(IEmbeddingProvider):
    """Counts motif keywords; a small constant keeps every vector non-zero."""

    def __init__(self):
        self.calls = []

    def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        lower = text.lower()
        return [float(lower.count(word)) for word in KEYWORDS] + [0.01]

    def get_dimension(self) -> int:
        return len(KEYWORDS) + 1


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point DB_PATH at a fresh SQLite file with the schema applied."""
    db_path = tmp_path / "dreams.db"
    monkeypatch.setenv("DB_PATH", str(db_path))
    init_db()
    return db_path


@pytest.fixture
def embedding():
    return KeywordEmbedding()


@pytest.fixture
def store():
    return SimpleInMemoryVectorStore()


@pytest.fixture
def service(embedding, store):
    return DreamVectorizationService(embedding, store)


@pytest.fixture
def make_dream():
    """Factory for Dream records with sensible defaults."""
    counter = {"n": 0}

    def _make(dream_id=None, owner_id="alice", content="I was flying over the sky", **kwargs):
        counter["n"] += 1
        kwargs.setdefault("mood", "Peaceful")
        kwargs.setdefault("clarity", 3)
        kwargs.setdefault("timestamp", 1700000000000 + counter["n"])
        return Dream(
            id=dream_id or f"dream-{counter['n']}",
            owner_id=owner_id,
            content=content,
            **kwargs
        )

    return _make


@pytest.fixture
def sample_analysis():
    return DreamAnalysis(
        emotional_analysis="A sense of freedom and release.",
        creative_story="The dreamer soars above the clouds.",
        themes=["freedom", "escape"],
        symbols=[
            DreamSymbol(name="Bird", meaning="Freedom", type="animal character"),
            DreamSymbol(name="Cliff", meaning="Threshold", type="location"),
        ]
    )
