"""
Drift correction: re-converge the vector index on the relational dream store.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .config import PUBLIC_NAMESPACE, get_correction_mode
from .dao import get_dream, list_public_dreams
from .drift_rules import CorrectionAction, CorrectionPlan, DriftFinding, create_correction_plan, detect_drift
from .vectorization import DreamVectorizationService, VectorResult
from ..util.logging import logger


@dataclass
class CorrectionResult:
    """Result of executing a correction action."""
    plan_id: str
    action_index: int
    success: bool
    action_taken: bool
    error_message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)


def apply_corrections(plans: List[CorrectionPlan], service: DreamVectorizationService,
                      mode: Optional[str] = None) -> List[CorrectionResult]:
    """
    Apply correction plans according to the correction mode.

    Modes:
    - 'off': No-ops, only report what would be done
    - 'propose': Log the plans, no index changes
    - 'apply': Execute corrections through the vectorization service

    Returns results of attempted corrections.
    """
    mode = mode or get_correction_mode()
    if mode not in ("off", "propose", "apply"):
        raise ValueError(f"Invalid correction mode: {mode}")

    results = []
    for plan in plans:
        if mode == "propose":
            logger.log_correction_proposal(plan.id, len(plan.actions), plan.preview)

        for i, action in enumerate(plan.actions):
            results.append(_execute_correction_action(plan.id, i, action, mode, service))

        if mode == "apply":
            failed = [r for r in results if r.plan_id == plan.id and not r.success]
            logger.log_correction_application(
                plan.id, len(plan.actions), status="failed" if failed else "success", details=plan.preview
            )

    return results


def _execute_correction_action(plan_id: str, action_index: int, action: CorrectionAction,
                               mode: str, service: DreamVectorizationService) -> CorrectionResult:
    """Execute a single correction action."""
    result = CorrectionResult(
        plan_id=plan_id,
        action_index=action_index,
        success=False,
        action_taken=False,
        details={"action_type": action.type, "namespace": action.namespace, "dream_id": action.dream_id}
    )

    if mode == "off":
        result.success = True
        result.details["message"] = "Mode 'off' - no action taken"
    elif mode == "propose":
        result.success = True
        result.details["message"] = "Correction proposed (logged only)"
    else:
        outcome, message = _apply_action(action, service)
        result.success = outcome.success
        result.action_taken = outcome.success and message is None
        result.error_message = outcome.error or ""
        result.details["message"] = message or ("Correction applied" if outcome.success else "Correction failed")

    return result


def _apply_action(action: CorrectionAction, service: DreamVectorizationService) -> Tuple[VectorResult, Optional[str]]:
    """Run one action after re-checking the dream store; the state may have moved since detection."""
    dream = get_dream(action.dream_id)

    if action.type == "ADD_VECTOR":
        if dream is None:
            return VectorResult(success=True), "Dream no longer exists - nothing to add"
        if action.namespace == PUBLIC_NAMESPACE:
            if not dream.is_public:
                return VectorResult(success=True), "Dream is no longer public - nothing to add"
            return service.set_public_visibility(dream, dream.owner_id, True), None
        return service.vectorize(dream, dream.owner_id), None

    if action.type == "REMOVE_VECTOR":
        if action.namespace == PUBLIC_NAMESPACE:
            if dream is not None and dream.is_public:
                return VectorResult(success=True), "Dream is public again - vector kept"
            return service.remove_public(action.dream_id), None
        if dream is not None:
            return VectorResult(success=True), "Dream exists again - vector kept"
        return service.remove(action.dream_id, action.owner_id), None

    raise ValueError(f"Unknown correction action: {action.type}")


def run_drift_audit(service: DreamVectorizationService, owner_id: Optional[str] = None,
                    mode: Optional[str] = None) -> Tuple[List[DriftFinding], List[CorrectionResult]]:
    """Detect drift and run the corrections for every finding."""
    findings = detect_drift(service.vector_store, owner_id)
    plans = [create_correction_plan(finding) for finding in findings]
    return findings, apply_corrections(plans, service, mode)


def sync_public_dreams(service: DreamVectorizationService) -> Dict[str, Any]:
    """Re-mirror every public dream into the public namespace."""
    synced = []
    errors = []

    for dream in list_public_dreams():
        result = service.set_public_visibility(dream, dream.owner_id, True)
        if result.success:
            synced.append(dream.id)
        else:
            errors.append({"id": dream.id, "error": result.error})

    logger.log_operation("vector.sync_public", "success" if not errors else "failed", {
        "synced_count": len(synced),
        "error_count": len(errors)
    })
    return {"synced": synced, "errors": errors}
