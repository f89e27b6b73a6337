"""
Initiative Stage Lifecycle — the lifecycle gate.

Decides whether an initiative may move to a requested stage and, if so,
performs the move with its side effects:
  - Order validation (next stage only; regression behind an override flag)
  - Scope-of-work gates (leaving INGESTION, entering DEPLOYMENT)
  - Dual-role stage approval for the *current* stage
  - Exit checklist completion for the *current* stage
  - History entry, approval reset for the target stage, next status

Rules are evaluated in that order and the first failure wins.

Usage:
    from app.services.stage_lifecycle import request_transition, TransitionError

    initiative = request_transition(
        initiative_id=7,
        target_stage="TRANSFORMATION",
        actor="Morgan Lee",
        reason="Landing zone accepted",
    )
"""

import logging

from flask import current_app, has_app_context

from app.models.initiative import (
    REQUIRED_APPROVAL_ROLES,
    SOW_APPROVED_STATUSES,
    STAGE_SEQUENCE,
    SYSTEM_ACTOR,
)
from app.services import initiative_store
from app.utils.errors import E

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Errors
# ═══════════════════════════════════════════════════════════════════════════

class TransitionError(Exception):
    """Base class for every rejected stage transition.

    Attributes:
        code: Machine-readable error code (``E.*``).
        details: Structured payload for the API response.
    """

    code = E.TRANSITION

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class UnknownStageError(TransitionError):
    code = E.STAGE_UNKNOWN

    def __init__(self, current: str, target: str):
        super().__init__(
            "Unknown stage transition",
            {"current_stage": current, "target_stage": target},
        )


class NoOpTransitionError(TransitionError):
    code = E.STAGE_NOOP

    def __init__(self, stage: str):
        super().__init__("Initiative is already in the requested stage", {"stage": stage})


class StageSkipError(TransitionError):
    code = E.STAGE_SKIP

    def __init__(self, current: str, target: str):
        super().__init__(
            "Cannot skip stages in lifecycle progression",
            {
                "current_stage": current,
                "target_stage": target,
                "next_stage": get_next_stage(current),
            },
        )


class RegressionNotAllowedError(TransitionError):
    code = E.STAGE_REGRESSION

    def __init__(self, current: str, target: str):
        super().__init__(
            "Stage regression is not permitted without override",
            {"current_stage": current, "target_stage": target},
        )


class ScopeNotApprovedError(TransitionError):
    code = E.SCOPE_NOT_APPROVED

    def __init__(self, scope_status: str):
        super().__init__(
            "Scope of Work must be approved by PM and Data Architect "
            "before progressing beyond Ingestion.",
            {"scope_status": scope_status},
        )


class ScopeNotSignedOffError(TransitionError):
    code = E.SCOPE_NOT_SIGNED_OFF

    def __init__(self, scope_status: str):
        super().__init__(
            "Scope of Work must be fully signed off before deployment.",
            {"scope_status": scope_status},
        )


class MissingApprovalsError(TransitionError):
    code = E.MISSING_APPROVALS

    def __init__(self, missing_roles: list[str]):
        super().__init__(
            "Stage progression requires approvals.",
            {"missing_approvals": list(missing_roles)},
        )
        self.missing_roles = list(missing_roles)


class IncompleteChecklistError(TransitionError):
    code = E.INCOMPLETE_CHECKLIST

    def __init__(self, items: list):
        payload = [{"id": item.id, "title": item.title} for item in items]
        super().__init__(
            "Cannot advance stage until all exit checklist items are completed.",
            {"incomplete_checklist_items": payload},
        )
        self.items = payload


# ═══════════════════════════════════════════════════════════════════════════
#  Stage order
# ═══════════════════════════════════════════════════════════════════════════

def stage_index(stage: str) -> int:
    """Position of ``stage`` in STAGE_SEQUENCE, -1 when unknown."""
    try:
        return STAGE_SEQUENCE.index(stage)
    except ValueError:
        return -1


def get_next_stage(stage: str) -> str | None:
    """Stage following ``stage``; None for DEPLOYMENT or an unknown stage."""
    idx = stage_index(stage)
    if idx < 0 or idx + 1 >= len(STAGE_SEQUENCE):
        return None
    return STAGE_SEQUENCE[idx + 1]


def validate_stage_order(current: str, target: str, allow_regression: bool = False) -> None:
    """
    Check that ``current → target`` is a legal move in the stage sequence.

    Succeeds (returns None) for exactly one step forward, or any step
    backward when ``allow_regression`` is set.

    Raises:
        UnknownStageError, NoOpTransitionError, StageSkipError,
        RegressionNotAllowedError
    """
    current_idx = stage_index(current)
    target_idx = stage_index(target)

    if current_idx < 0 or target_idx < 0:
        raise UnknownStageError(current, target)
    if target_idx == current_idx:
        raise NoOpTransitionError(current)
    if target_idx == current_idx + 1:
        return
    if target_idx > current_idx:
        raise StageSkipError(current, target)
    if not allow_regression:
        raise RegressionNotAllowedError(current, target)


# ═══════════════════════════════════════════════════════════════════════════
#  Gate rules
# ═══════════════════════════════════════════════════════════════════════════

def _check_stage_order(state, target, allow_regression):
    try:
        validate_stage_order(state.stage, target, allow_regression)
    except TransitionError as exc:
        return exc
    return None


def _check_scope_approved(state, target, allow_regression):
    scope = state.scope_of_work
    if scope is not None and state.stage == STAGE_SEQUENCE[0]:
        if scope.status not in SOW_APPROVED_STATUSES:
            return ScopeNotApprovedError(scope.status)
    return None


def _check_scope_signed_off(state, target, allow_regression):
    scope = state.scope_of_work
    if scope is not None and target == "DEPLOYMENT" and scope.status != "SIGNED_OFF":
        return ScopeNotSignedOffError(scope.status)
    return None


def _check_approvals(state, target, allow_regression):
    approved_roles = {
        a.role for a in state.approvals if a.stage == state.stage and a.approved
    }
    missing = [r for r in REQUIRED_APPROVAL_ROLES if r not in approved_roles]
    if missing:
        return MissingApprovalsError(missing)
    return None


def _check_checklist(state, target, allow_regression):
    # Regression skips exit criteria but still needs approvals (see DESIGN.md).
    if allow_regression:
        return None
    incomplete = [
        item for item in state.checklist_items
        if item.stage == state.stage and not item.completed
    ]
    if incomplete:
        return IncompleteChecklistError(incomplete)
    return None


_GATE_CHECKS = (
    _check_stage_order,
    _check_scope_approved,
    _check_scope_signed_off,
    _check_approvals,
    _check_checklist,
)


def evaluate_transition(state, target: str, allow_regression: bool = False) -> None:
    """
    Run every gate rule against a loaded ``LifecycleState``.

    Pure: reads ``state`` only. Raises the first failing rule's error.
    """
    for check in _GATE_CHECKS:
        error = check(state, target, allow_regression)
        if error is not None:
            raise error


def compute_next_status(target: str, current_status: str) -> str:
    """Status after entering ``target``.

    DEPLOYMENT completes the initiative; any other move re-opens a
    COMPLETE one as ON_TRACK; otherwise the status is kept.
    """
    if target == "DEPLOYMENT":
        return "COMPLETE"
    if current_status == "COMPLETE":
        return "ON_TRACK"
    return current_status


def _default_actor() -> str:
    if has_app_context():
        return current_app.config.get("TRANSITION_DEFAULT_ACTOR") or SYSTEM_ACTOR
    return SYSTEM_ACTOR


# ═══════════════════════════════════════════════════════════════════════════
#  Transition
# ═══════════════════════════════════════════════════════════════════════════

def request_transition(
    initiative_id: int,
    target_stage: str,
    *,
    reason: str | None = None,
    actor: str | None = None,
    allow_regression: bool = False,
):
    """
    Move an initiative to ``target_stage`` if every gate rule passes.

    The initiative row is loaded ``FOR UPDATE``; all writes are flushed
    into the caller's transaction, which must commit (or roll back on
    error). Nothing is written when a rule fails.

    Args:
        initiative_id: PK of the initiative.
        target_stage: Requested stage.
        reason: Free-text justification stored on the history entry.
        actor: Who requested the move; defaults to TRANSITION_DEFAULT_ACTOR.
        allow_regression: Permit moving backward (also skips the checklist rule).

    Returns:
        The reloaded Initiative.

    Raises:
        NotFoundError, TransitionError (any subclass)
    """
    state = initiative_store.load_initiative_with_lifecycle_state(initiative_id, lock=True)

    try:
        evaluate_transition(state, target_stage, allow_regression)
    except TransitionError as exc:
        logger.warning(
            "Transition rejected: initiative=%s %s → %s code=%s",
            initiative_id, state.stage, target_stage, exc.code,
            extra={"initiative_id": initiative_id, "error_code": exc.code},
        )
        raise

    from_stage = state.stage
    next_status = compute_next_status(target_stage, state.status)

    initiative_store.append_stage_history(
        initiative_id, from_stage, target_stage, actor or _default_actor(), reason,
    )
    initiative_store.reset_approvals_for_stage(initiative_id, target_stage)
    initiative_store.update_initiative_stage_and_status(initiative_id, target_stage, next_status)

    logger.info(
        "Transition accepted: initiative=%s %s → %s status=%s",
        initiative_id, from_stage, target_stage, next_status,
        extra={"initiative_id": initiative_id},
    )
    return initiative_store.reload_initiative_full(initiative_id)


def check_transition_readiness(initiative_id: int, target_stage: str | None = None) -> dict:
    """
    Read-only pre-check of a transition.

    Unlike ``request_transition`` every rule is evaluated, so the caller
    sees the full list of blockers.

    Returns:
        {
            "initiative_id": int,
            "current_stage": str,
            "target_stage": str | None,
            "ready": bool,
            "blockers": [{"code", "message", "details"}, ...],
        }
    """
    state = initiative_store.load_initiative_with_lifecycle_state(initiative_id, lock=False)
    target = target_stage or get_next_stage(state.stage)

    blockers = []
    if target is None:
        blockers.append({
            "code": E.STAGE_NOOP,
            "message": "Initiative is already in the final stage",
            "details": {"stage": state.stage},
        })
    else:
        for check in _GATE_CHECKS:
            error = check(state, target, False)
            if error is not None:
                blockers.append(error.to_dict())

    return {
        "initiative_id": state.initiative_id,
        "current_stage": state.stage,
        "target_stage": target,
        "ready": not blockers,
        "blockers": blockers,
    }
