"""Initiative service layer — business logic for initiative_bp.py.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Operations:
- Initiative list (filters + status / risk ordering), get, create, update
- Checklist completion toggle
- Stage approval update (approver required when approving)
- Scope of work read / update (auto-approval, sign-off invariant)

Stage and status changes go through app.services.stage_lifecycle only.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy import case

from app.core.exceptions import NotFoundError, ValidationError
from app.models import db
from app.models.initiative import (
    INITIATIVE_STATUSES,
    RISK_LEVELS,
    STAGE_SEQUENCE,
    Initiative,
    ScopeOfWork,
    StageApproval,
    StageChecklistItem,
)
from app.services import initiative_store

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = (
    "name", "description", "status", "health_status", "risk_level", "sow_reference",
    "engagement_lead", "project_manager", "data_architect",
    "start_date", "target_date",
)


def _utcnow():
    return datetime.now(timezone.utc)


# ── Initiative ───────────────────────────────────────────────────────────


def get_initiative(initiative_id):
    initiative = db.session.get(Initiative, initiative_id)
    if not initiative:
        raise NotFoundError(resource="Initiative", resource_id=initiative_id)
    return initiative


def list_initiatives(filters=None):
    """List initiatives, optionally filtered by stage / status / health_status.

    Ordered by status (declaration order), then risk level (highest first),
    then newest first.
    """
    filters = filters or {}
    q = Initiative.query
    for field in ("stage", "status", "health_status"):
        if filters.get(field):
            q = q.filter(getattr(Initiative, field) == filters[field])

    status_order = case(
        {s: i for i, s in enumerate(INITIATIVE_STATUSES)},
        value=Initiative.status, else_=len(INITIATIVE_STATUSES),
    )
    risk_order = case(
        {r: i for i, r in enumerate(RISK_LEVELS)},
        value=Initiative.risk_level, else_=-1,
    )
    return (
        q.order_by(status_order.asc(), risk_order.desc(), Initiative.id.desc())
        .all()
    )


def create_initiative(data):
    """Create an initiative with its full lifecycle scaffolding.

    Returns:
        Initiative instance (already flushed).
    """
    return initiative_store.create_initiative_records(data)


def update_initiative(initiative_id, data):
    """Update descriptive fields and status. Stage is written only by the
    lifecycle gate.

    Changing the project manager or data architect also re-owns the
    scope of work.
    """
    initiative = get_initiative(initiative_id)
    for field in _UPDATABLE_FIELDS:
        if field in data:
            setattr(initiative, field, data[field])

    scope = initiative.scope_of_work
    if scope is not None:
        if data.get("project_manager"):
            scope.pm_owner = data["project_manager"]
        if data.get("data_architect"):
            scope.architect_owner = data["data_architect"]

    db.session.flush()
    return initiative


# ── Checklist ────────────────────────────────────────────────────────────


def toggle_checklist_item(initiative_id, checklist_id, completed):
    """Mark a checklist item complete / incomplete.

    Raises:
        NotFoundError: If the item does not exist or belongs to another initiative.
    """
    item = db.session.get(StageChecklistItem, checklist_id)
    if not item or item.initiative_id != initiative_id:
        raise NotFoundError(resource="Checklist item", resource_id=checklist_id)

    item.completed = bool(completed)
    item.completed_at = _utcnow() if item.completed else None
    db.session.flush()
    return item


# ── Stage approvals ──────────────────────────────────────────────────────


def update_stage_approval(initiative_id, approval_id, data):
    """Approve or un-approve one stage approval.

    Approving requires a non-empty ``approved_by``. Un-approving clears
    the approver and timestamp. ``notes`` is always replaced; omitting it
    clears the previous note.

    Raises:
        NotFoundError, ValidationError
    """
    approval = db.session.get(StageApproval, approval_id)
    if not approval or approval.initiative_id != initiative_id:
        raise NotFoundError(resource="Approval", resource_id=approval_id)

    approved = bool(data.get("approved"))
    if approved:
        approver = (data.get("approved_by") or "").strip()
        if not approver:
            raise ValidationError(
                "Approver name is required when approving a stage",
                details={"approved_by": "required"},
            )
        approval.approved = True
        approval.approved_by = approver
        approval.approved_at = _utcnow()
    else:
        approval.approved = False
        approval.approved_by = None
        approval.approved_at = None

    approval.notes = data.get("notes")

    db.session.flush()
    logger.info(
        "Stage approval updated: initiative=%s %s/%s approved=%s",
        initiative_id, approval.stage, approval.role, approval.approved,
        extra={"initiative_id": initiative_id},
    )
    return approval


# ── Scope of work ────────────────────────────────────────────────────────


def _get_scope(initiative_id):
    get_initiative(initiative_id)
    scope = ScopeOfWork.query.filter_by(initiative_id=initiative_id).first()
    if not scope:
        raise NotFoundError(resource="Scope of work", resource_id=initiative_id)
    return scope


def get_scope_with_approvals(initiative_id):
    """Return (scope, approvals) with approvals in stage sequence, then role."""
    scope = _get_scope(initiative_id)
    approvals = StageApproval.query.filter_by(initiative_id=initiative_id).all()
    approvals.sort(key=lambda a: (STAGE_SEQUENCE.index(a.stage), a.role))
    return scope, approvals


def update_scope_of_work(initiative_id, data):
    """Update the scope of work.

    Rules:
      - ``last_reviewed_at`` is stamped on every update.
      - An explicit status change sets ``signed_off_at`` iff SIGNED_OFF.
      - Approval flags stamp / clear their ``*_approved_at``.
      - A DRAFT scope becomes APPROVED once both flags are true and no
        explicit status was sent.
      - The resulting status may be SIGNED_OFF only when both flags are true.

    Raises:
        NotFoundError, ValidationError
    """
    scope = _get_scope(initiative_id)
    now = _utcnow()

    for field in ("summary", "deliverables", "project_type"):
        if field in data:
            setattr(scope, field, data[field])

    if "pm_approved" in data:
        scope.pm_approved = bool(data["pm_approved"])
        scope.pm_approved_at = now if scope.pm_approved else None
    if "architect_approved" in data:
        scope.architect_approved = bool(data["architect_approved"])
        scope.architect_approved_at = now if scope.architect_approved else None

    both_approved = scope.pm_approved and scope.architect_approved

    if data.get("status"):
        scope.status = data["status"]
        scope.signed_off_at = now if scope.status == "SIGNED_OFF" else None
    elif scope.status == "DRAFT" and both_approved:
        scope.status = "APPROVED"

    if scope.status == "SIGNED_OFF" and not both_approved:
        raise ValidationError(
            "Scope of Work cannot be signed off until both PM and Data Architect approve",
            details={
                "pm_approved": scope.pm_approved,
                "architect_approved": scope.architect_approved,
            },
        )

    scope.last_reviewed_at = now
    db.session.flush()
    logger.info(
        "Scope of work updated: initiative=%s status=%s",
        initiative_id, scope.status,
        extra={"initiative_id": initiative_id},
    )
    return scope
