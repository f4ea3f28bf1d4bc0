"""
Pinecone store, exercised against a mocked client index handle.
"""

import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from dreamweaver.vector import PineconeVectorStore, VectorRecord, StoreUnavailable
from dreamweaver.vector.pinecone_store import to_pinecone_filter


class FakeApiException(Exception):
    """Stands in for the client's HTTP error, which carries ``status``."""

    def __init__(self, status, message="error"):
        super().__init__(message)
        self.status = status


@pytest.fixture
def index():
    return MagicMock()


@pytest.fixture
def store(index):
    return PineconeVectorStore(api_key="pc-key", index_host="dreams-abc.svc.pinecone.io", index=index)


def test_upsert_targets_namespace(store, index):
    store.upsert("user_alice", VectorRecord(id="d1", vector=[0.5, 0.25], metadata={"mood": "Surreal"}))

    index.upsert.assert_called_once_with(
        vectors=[{"id": "d1", "values": [0.5, 0.25], "metadata": {"mood": "Surreal"}}],
        namespace="user_alice",
    )


def test_query_parses_matches_and_filter(store, index):
    index.query.return_value = SimpleNamespace(matches=[
        SimpleNamespace(id="d2", score=0.91, metadata={"is_public": True}),
        SimpleNamespace(id="d3", score=0.42, metadata=None),
    ])

    results = store.query("public", [1.0, 0.0], top_k=2, metadata_filter={"is_public": True})

    assert [(r.id, r.score) for r in results] == [("d2", 0.91), ("d3", 0.42)]
    assert results[1].metadata == {}
    kwargs = index.query.call_args.kwargs
    assert kwargs["namespace"] == "public"
    assert kwargs["top_k"] == 2
    assert kwargs["include_metadata"] is True
    assert kwargs["filter"] == {"is_public": {"$eq": True}}


def test_query_zero_top_k_skips_client(store, index):
    assert store.query("public", [1.0], top_k=0) == []
    index.query.assert_not_called()


def test_query_unknown_namespace_is_empty(store, index):
    index.query.side_effect = FakeApiException(404)
    assert store.query("user_nobody", [1.0]) == []


def test_delete_unknown_namespace_is_noop(store, index):
    index.delete.side_effect = FakeApiException(404)
    store.delete("user_nobody", "d1")
    index.delete.assert_called_once_with(ids=["d1"], namespace="user_nobody")


def test_list_ids_collects_pages(store, index):
    index.list.return_value = iter([["d1", "d2"], ["d3"]])

    assert store.list_ids("public") == ["d1", "d2", "d3"]
    index.list.assert_called_once_with(namespace="public")


def test_count_reads_namespace_stats(store, index):
    index.describe_index_stats.return_value = SimpleNamespace(
        namespaces={"public": SimpleNamespace(vector_count=12)}
    )

    assert store.count("public") == 12
    assert store.count("user_alice") == 0


def test_clear_deletes_whole_namespace(store, index):
    store.clear("user_alice")
    index.delete.assert_called_once_with(delete_all=True, namespace="user_alice")


def test_failures_raise_store_unavailable(store, index):
    index.upsert.side_effect = FakeApiException(401, "unauthorized")
    with pytest.raises(StoreUnavailable):
        store.upsert("user_alice", VectorRecord(id="d1", vector=[1.0]))

    index.query.side_effect = TimeoutError("slow")
    with pytest.raises(StoreUnavailable):
        store.query("user_alice", [1.0])

    index.delete.side_effect = FakeApiException(500)
    with pytest.raises(StoreUnavailable):
        store.delete("user_alice", "d1")


def test_missing_api_key():
    store = PineconeVectorStore(api_key=None, index_host="h")
    with pytest.raises(StoreUnavailable):
        store.delete("public", "d1")


def test_index_opened_lazily_by_host():
    client = MagicMock()
    fake_module = SimpleNamespace(Pinecone=MagicMock(return_value=client))

    with patch.dict("sys.modules", {"pinecone": fake_module}):
        store = PineconeVectorStore(api_key="pc-key", index_host="dreams-abc.svc.pinecone.io")
        fake_module.Pinecone.assert_not_called()
        store.clear("public")

    fake_module.Pinecone.assert_called_once_with(api_key="pc-key")
    client.Index.assert_called_once_with(host="dreams-abc.svc.pinecone.io")
    client.Index.return_value.delete.assert_called_once_with(delete_all=True, namespace="public")


def test_index_opened_by_name_without_host():
    client = MagicMock()
    fake_module = SimpleNamespace(Pinecone=MagicMock(return_value=client))

    with patch.dict("sys.modules", {"pinecone": fake_module}):
        store = PineconeVectorStore(api_key="pc-key", index_name="dreamweaver")
        store.count("public")

    client.Index.assert_called_once_with("dreamweaver")


def test_open_index_failure_is_store_unavailable():
    client = MagicMock()
    client.Index.side_effect = FakeApiException(403, "forbidden")
    fake_module = SimpleNamespace(Pinecone=MagicMock(return_value=client))

    with patch.dict("sys.modules", {"pinecone": fake_module}):
        store = PineconeVectorStore(api_key="pc-key", index_host="h")
        with pytest.raises(StoreUnavailable):
            store.upsert("public", VectorRecord(id="d1", vector=[1.0]))


def test_to_pinecone_filter_keeps_operators():
    assert to_pinecone_filter({"mood": {"$in": ["Anxious"]}, "is_public": True}) == {
        "mood": {"$in": ["Anxious"]},
        "is_public": {"$eq": True},
    }
