"""
Drift detection between the dream store and the namespaced vector index.
"""

import pytest
from unittest.mock import patch, MagicMock

from dreamweaver.core.dao import create_dream, delete_dream, update_dream
from dreamweaver.core.drift_rules import (
    detect_drift, DriftFinding, CorrectionPlan,
    create_correction_plan, _calculate_severity
)
from dreamweaver.vector import StoreUnavailable


def _by_type(findings):
    return {(f.type, f.namespace, f.dream_id) for f in findings}


class TestDriftDetection:
    """Test drift detection between SQLite and the vector index."""

    def test_no_drift_when_in_sync(self, temp_db, service, store, make_dream):
        for dream in [make_dream("a1"), make_dream("a2", is_public=True)]:
            create_dream(dream)
            service.vectorize(dream)

        assert detect_drift(store) == []

    def test_detect_missing_vector(self, temp_db, store, make_dream):
        create_dream(make_dream("a1", is_public=True))

        findings = detect_drift(store)

        assert _by_type(findings) == {
            ("missing_vector", "user_alice", "a1"),
            ("missing_vector", "public", "a1"),
        }
        assert "missing from the vector index" in findings[0].details["reason"]

    def test_detect_orphan_after_delete(self, temp_db, service, store, make_dream):
        keep = make_dream("a1")
        gone = make_dream("a2")
        for dream in (keep, gone):
            create_dream(dream)
            service.vectorize(dream)
        delete_dream("a2", "alice")

        assert _by_type(detect_drift(store)) == {("orphaned_vector", "user_alice", "a2")}

    def test_detect_orphan_after_unpublish(self, temp_db, service, store, make_dream):
        dream = make_dream("b1", owner_id="bob", is_public=True)
        create_dream(dream)
        service.vectorize(dream)
        update_dream("b1", "bob", {"is_public": False})

        assert _by_type(detect_drift(store)) == {("orphaned_vector", "public", "b1")}

    def test_owner_scope(self, temp_db, store, make_dream):
        create_dream(make_dream("a1", owner_id="alice"))
        create_dream(make_dream("b1", owner_id="bob", is_public=True))

        findings = detect_drift(store, owner_id="alice")

        assert _by_type(findings) == {("missing_vector", "user_alice", "a1")}
        assert all(f.owner_id == "alice" for f in findings)

    def test_owner_scope_ignores_other_public_vectors(self, temp_db, service, store, make_dream):
        bob_dream = make_dream("b1", owner_id="bob", is_public=True)
        create_dream(bob_dream)
        service.vectorize(bob_dream)
        create_dream(make_dream("a1", owner_id="alice"))
        service.vectorize(make_dream("a1", owner_id="alice"))

        assert detect_drift(store, owner_id="alice") == []

    def test_store_failure_propagates(self, temp_db, make_dream):
        create_dream(make_dream("a1"))
        failing_store = MagicMock()
        failing_store.list_ids.side_effect = StoreUnavailable("down")

        with pytest.raises(StoreUnavailable):
            detect_drift(failing_store)


class TestSeverity:

    @patch('dreamweaver.core.drift_rules.get_drift_ruleset', return_value="strict")
    def test_strict_ruleset(self, mock_ruleset):
        assert _calculate_severity("missing_vector") == "high"
        assert _calculate_severity("orphaned_vector") == "high"

    @patch('dreamweaver.core.drift_rules.get_drift_ruleset', return_value="lenient")
    def test_lenient_ruleset(self, mock_ruleset):
        assert _calculate_severity("missing_vector") == "medium"
        assert _calculate_severity("orphaned_vector") == "low"


class TestCorrectionPlans:

    def _finding(self, finding_type):
        return DriftFinding(
            id="f1", type=finding_type, severity="high", namespace="public",
            dream_id="d1", owner_id=None, details={"reason": "test"}
        )

    def test_missing_vector_plan(self):
        plan = create_correction_plan(self._finding("missing_vector"))

        assert isinstance(plan, CorrectionPlan)
        assert plan.finding_id == "f1"
        assert len(plan.actions) == 1
        assert plan.actions[0].type == "ADD_VECTOR"
        assert plan.actions[0].namespace == "public"
        assert plan.preview["affected_dream"] == "d1"

    def test_orphaned_vector_plan(self):
        plan = create_correction_plan(self._finding("orphaned_vector"))
        assert plan.actions[0].type == "REMOVE_VECTOR"

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            create_correction_plan(self._finding("stale_vector"))
