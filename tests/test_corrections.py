"""
Drift corrections and public re-sync.
"""

import pytest
from unittest.mock import patch, MagicMock

from dreamweaver.core.corrections import apply_corrections, run_drift_audit, sync_public_dreams
from dreamweaver.core.dao import create_dream, delete_dream, update_dream
from dreamweaver.core.drift_rules import CorrectionAction, CorrectionPlan, detect_drift
from dreamweaver.core.vectorization import DreamVectorizationService, VectorResult
from dreamweaver.vector import StoreUnavailable


def _plan(action_type, namespace, dream_id, owner_id="alice"):
    return CorrectionPlan(
        id=f"plan-{dream_id}",
        finding_id="f1",
        actions=[CorrectionAction(type=action_type, namespace=namespace, dream_id=dream_id,
                                  owner_id=owner_id, metadata={})],
        preview={"action_type": action_type}
    )


class TestModes:

    def test_off_mode_changes_nothing(self, temp_db, service, store, make_dream):
        create_dream(make_dream("a1"))

        results = apply_corrections([_plan("ADD_VECTOR", "user_alice", "a1")], service, mode="off")

        assert results[0].success
        assert not results[0].action_taken
        assert store.count("user_alice") == 0

    @patch('dreamweaver.core.corrections.logger')
    def test_propose_mode_logs_only(self, mock_logger, temp_db, service, store, make_dream):
        create_dream(make_dream("a1"))

        results = apply_corrections([_plan("ADD_VECTOR", "user_alice", "a1")], service, mode="propose")

        assert results[0].success
        assert not results[0].action_taken
        assert store.count("user_alice") == 0
        mock_logger.log_correction_proposal.assert_called_once()

    def test_mode_from_config(self, temp_db, service, store, make_dream, monkeypatch):
        monkeypatch.setenv("CORRECTION_MODE", "apply")
        create_dream(make_dream("a1"))

        apply_corrections([_plan("ADD_VECTOR", "user_alice", "a1")], service)

        assert store.list_ids("user_alice") == ["a1"]

    def test_invalid_mode(self, service):
        with pytest.raises(ValueError):
            apply_corrections([], service, mode="yolo")


class TestApply:

    def test_add_missing_user_vector(self, temp_db, service, store, make_dream):
        create_dream(make_dream("a1"))

        results = apply_corrections([_plan("ADD_VECTOR", "user_alice", "a1")], service, mode="apply")

        assert results[0].action_taken
        assert store.list_ids("user_alice") == ["a1"]

    def test_add_missing_public_vector(self, temp_db, service, store, make_dream):
        create_dream(make_dream("a1", is_public=True))

        apply_corrections([_plan("ADD_VECTOR", "public", "a1", owner_id=None)], service, mode="apply")

        assert store.list_ids("public") == ["a1"]
        assert store._vectors["public"]["a1"].metadata["owner_id"] == "alice"

    def test_add_skipped_when_dream_gone(self, temp_db, service, store):
        results = apply_corrections([_plan("ADD_VECTOR", "user_alice", "ghost")], service, mode="apply")

        assert results[0].success
        assert not results[0].action_taken
        assert store.count("user_alice") == 0

    def test_remove_orphan(self, temp_db, service, store, make_dream):
        dream = make_dream("a1", is_public=True)
        create_dream(dream)
        service.vectorize(dream)
        delete_dream("a1", "alice")

        apply_corrections([
            _plan("REMOVE_VECTOR", "user_alice", "a1"),
            _plan("REMOVE_VECTOR", "public", "a1", owner_id=None),
        ], service, mode="apply")

        assert store.count("user_alice") == 0
        assert store.count("public") == 0

    def test_remove_kept_when_dream_public_again(self, temp_db, service, store, make_dream):
        dream = make_dream("a1", is_public=True)
        create_dream(dream)
        service.vectorize(dream)

        results = apply_corrections([_plan("REMOVE_VECTOR", "public", "a1", owner_id=None)], service, mode="apply")

        assert not results[0].action_taken
        assert store.list_ids("public") == ["a1"]

    def test_failure_reported(self, temp_db, make_dream):
        create_dream(make_dream("a1"))
        service = MagicMock()
        service.vectorize.return_value = VectorResult(success=False, error="quota exceeded")

        results = apply_corrections([_plan("ADD_VECTOR", "user_alice", "a1")], service, mode="apply")

        assert not results[0].success
        assert results[0].error_message == "quota exceeded"


def test_audit_converges_index(temp_db, service, store, make_dream):
    """After an apply pass the index matches the dream store."""
    missing = make_dream("a1", is_public=True)
    create_dream(missing)
    orphan = make_dream("a2")
    create_dream(orphan)
    service.vectorize(orphan)
    delete_dream("a2", "alice")
    unpublished = make_dream("b1", owner_id="bob", is_public=True)
    create_dream(unpublished)
    service.vectorize(unpublished)
    update_dream("b1", "bob", {"is_public": False})

    findings, results = run_drift_audit(service, mode="apply")

    assert len(findings) == 4
    assert all(r.success for r in results)
    assert detect_drift(store) == []


def test_sync_public_dreams(temp_db, service, store, make_dream):
    create_dream(make_dream("a1", is_public=True))
    create_dream(make_dream("b1", owner_id="bob", is_public=True))
    create_dream(make_dream("a2"))

    outcome = sync_public_dreams(service)

    assert sorted(outcome["synced"]) == ["a1", "b1"]
    assert outcome["errors"] == []
    assert sorted(store.list_ids("public")) == ["a1", "b1"]


def test_sync_public_dreams_reports_errors(temp_db, embedding, make_dream):
    create_dream(make_dream("a1", is_public=True))
    failing_store = MagicMock()
    failing_store.upsert.side_effect = StoreUnavailable("index missing")
    service = DreamVectorizationService(embedding, failing_store)

    outcome = sync_public_dreams(service)

    assert outcome["synced"] == []
    assert outcome["errors"] == [{"id": "a1", "error": "index missing"}]
