"""
Drift detection between the relational dream store and the vector index.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set
import uuid

from .dao import list_dream_ids, list_owner_ids
from .config import PUBLIC_NAMESPACE, get_drift_ruleset, user_namespace
from ..util.logging import logger


@dataclass
class DriftFinding:
    """Represents a detected inconsistency between the dream store and the vector index."""
    id: str
    type: str  # 'missing_vector', 'orphaned_vector'
    severity: str  # 'low', 'medium', 'high'
    namespace: str
    dream_id: str
    owner_id: Optional[str]
    details: Dict[str, Any]


@dataclass
class CorrectionAction:
    """Represents a corrective action to resolve drift."""
    type: str  # 'ADD_VECTOR', 'REMOVE_VECTOR'
    namespace: str
    dream_id: str
    owner_id: Optional[str]
    metadata: Dict[str, Any]


@dataclass
class CorrectionPlan:
    """A complete plan to resolve a drift finding."""
    id: str
    finding_id: str
    actions: List[CorrectionAction]
    preview: Dict[str, Any]


def detect_drift(vector_store, owner_id: Optional[str] = None) -> List[DriftFinding]:
    """
    Detect inconsistencies between stored dreams and the vector index.

    Compares:
    1. Each owner's dreams with their user_<owner> namespace
    2. Public dreams with the public namespace

    With owner_id, only that owner's namespace and their own public mirrors
    are audited. Store failures propagate to the caller.

    Returns:
        List of detected drift findings with severity based on ruleset.
    """
    findings = []

    owners = [owner_id] if owner_id is not None else list_owner_ids()
    for owner in owners:
        namespace = user_namespace(owner)
        findings.extend(_compare(
            namespace,
            expected=set(list_dream_ids(owner)),
            indexed=set(vector_store.list_ids(namespace)),
            owner_id=owner
        ))

    indexed_public = set(vector_store.list_ids(PUBLIC_NAMESPACE))
    if owner_id is not None:
        indexed_public &= set(list_dream_ids(owner_id))
    findings.extend(_compare(
        PUBLIC_NAMESPACE,
        expected=set(list_dream_ids(owner_id, public_only=True)),
        indexed=indexed_public,
        owner_id=owner_id
    ))

    for finding in findings:
        logger.log_drift_finding(finding.type, finding.severity, finding.namespace, finding.dream_id)

    return findings


def _compare(namespace: str, expected: Set[str], indexed: Set[str], owner_id: Optional[str]) -> List[DriftFinding]:
    findings = []

    # Rule 1: dream exists but has no vector in this namespace
    for dream_id in sorted(expected - indexed):
        findings.append(DriftFinding(
            id=str(uuid.uuid4()),
            type="missing_vector",
            severity=_calculate_severity("missing_vector"),
            namespace=namespace,
            dream_id=dream_id,
            owner_id=owner_id,
            details={"reason": "Dream exists in the dream store but is missing from the vector index"}
        ))

    # Rule 2: vector without a matching dream (deleted, or no longer public)
    for dream_id in sorted(indexed - expected):
        findings.append(DriftFinding(
            id=str(uuid.uuid4()),
            type="orphaned_vector",
            severity=_calculate_severity("orphaned_vector"),
            namespace=namespace,
            dream_id=dream_id,
            owner_id=owner_id,
            details={"reason": "Vector exists but the dream is deleted or not visible in this namespace"}
        ))

    return findings


def _calculate_severity(drift_type: str) -> str:
    """Calculate severity based on drift type and ruleset configuration."""
    if get_drift_ruleset() == "strict":
        return "high"

    # lenient ruleset
    if drift_type == "missing_vector":
        return "medium"
    elif drift_type == "orphaned_vector":
        return "low"

    return "medium"


def create_correction_plan(finding: DriftFinding) -> CorrectionPlan:
    """
    Generate a correction plan for a drift finding.

    Returns an actionable plan with specific correction actions.
    """
    if finding.type == "missing_vector":
        action = CorrectionAction(
            type="ADD_VECTOR",
            namespace=finding.namespace,
            dream_id=finding.dream_id,
            owner_id=finding.owner_id,
            metadata={"reason": "Add missing vector for existing dream", "finding_details": finding.details}
        )
    elif finding.type == "orphaned_vector":
        action = CorrectionAction(
            type="REMOVE_VECTOR",
            namespace=finding.namespace,
            dream_id=finding.dream_id,
            owner_id=finding.owner_id,
            metadata={"reason": "Remove orphaned vector entry", "finding_details": finding.details}
        )
    else:
        raise ValueError(f"Unknown drift type: {finding.type}")

    return CorrectionPlan(
        id=str(uuid.uuid4()),
        finding_id=finding.id,
        actions=[action],
        preview={
            "drift_type": finding.type,
            "severity": finding.severity,
            "namespace": finding.namespace,
            "affected_dream": finding.dream_id,
            "action_type": action.type
        }
    )
