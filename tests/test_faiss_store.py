"""
Test cases for FaissVectorStore implementation.
"""

import pytest
import numpy as np

from dreamweaver.vector import FaissVectorStore, VectorRecord, StoreUnavailable


def _vector(*values, dimension=8):
    vector = np.zeros(dimension, dtype=np.float32)
    vector[:len(values)] = values
    return vector


def test_faiss_store_initialization():
    store = FaissVectorStore(dimension=8)

    assert store.dimension == 8
    assert store.count("user_alice") == 0


def test_upsert_and_query():
    store = FaissVectorStore(dimension=8)
    store.upsert("user_alice", VectorRecord(id="d1", vector=_vector(1.0), metadata={"mood": "Peaceful"}))
    store.upsert("user_alice", VectorRecord(id="d2", vector=_vector(0.0, 1.0), metadata={"mood": "Anxious"}))

    results = store.query("user_alice", _vector(1.0, 0.1), top_k=2)

    assert [r.id for r in results] == ["d1", "d2"]
    assert results[0].metadata == {"mood": "Peaceful"}
    assert results[0].score > results[1].score


def test_upsert_overwrites_existing_id():
    store = FaissVectorStore(dimension=8)
    store.upsert("user_alice", VectorRecord(id="d1", vector=_vector(1.0)))
    store.upsert("user_alice", VectorRecord(id="d1", vector=_vector(0.0, 1.0), metadata={"v": 2}))

    assert store.count("user_alice") == 1
    top = store.query("user_alice", _vector(0.0, 1.0), top_k=1)[0]
    assert top.id == "d1"
    assert top.score == pytest.approx(1.0, abs=1e-5)


def test_namespaces_are_isolated():
    store = FaissVectorStore(dimension=8)
    store.upsert("user_alice", VectorRecord(id="d1", vector=_vector(1.0)))
    store.upsert("public", VectorRecord(id="d1", vector=_vector(1.0)))

    store.delete("user_alice", "d1")

    assert store.list_ids("user_alice") == []
    assert store.list_ids("public") == ["d1"]


def test_delete_absent_is_noop():
    store = FaissVectorStore(dimension=8)
    store.delete("user_alice", "missing")
    assert store.query("user_alice", _vector(1.0)) == []


def test_filtered_query():
    store = FaissVectorStore(dimension=8)
    store.upsert("public", VectorRecord(id="p1", vector=_vector(1.0), metadata={"is_public": False}))
    store.upsert("public", VectorRecord(id="p2", vector=_vector(0.9, 0.1), metadata={"is_public": True}))

    results = store.query("public", _vector(1.0), top_k=1, metadata_filter={"is_public": True})

    assert [r.id for r in results] == ["p2"]


def test_dimension_mismatch():
    store = FaissVectorStore(dimension=8)
    with pytest.raises(StoreUnavailable):
        store.upsert("user_alice", VectorRecord(id="d1", vector=[1.0, 2.0]))

    store.upsert("user_alice", VectorRecord(id="d0", vector=_vector(1.0)))
    with pytest.raises(StoreUnavailable):
        store.query("user_alice", [1.0, 2.0])


def test_dimension_learned_from_first_vector():
    store = FaissVectorStore()
    assert store.query("user_alice", _vector(1.0, dimension=16)) == []

    store.upsert("user_alice", VectorRecord(id="d1", vector=_vector(1.0, dimension=16)))

    assert store.dimension == 16
    assert [r.id for r in store.query("user_alice", _vector(1.0, dimension=16))] == ["d1"]


def test_clear():
    store = FaissVectorStore(dimension=8)
    store.upsert("user_alice", VectorRecord(id="d1", vector=_vector(1.0)))
    store.clear("user_alice")
    assert store.count("user_alice") == 0
