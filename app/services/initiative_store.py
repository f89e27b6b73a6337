"""
Initiative Store — persistence operations used by the lifecycle gate.

Every function works on the current ``db.session`` and only flushes;
the request handler owns the single ``commit()`` so that the whole
read-validate-write of a stage transition is one transaction.

Operations:
    load_initiative_with_lifecycle_state   read stage/status/checklist/approvals/scope (row-locked)
    append_stage_history                   add one StageHistory entry
    reset_approvals_for_stage              clear every approval of one stage
    update_initiative_stage_and_status     write the new stage + status
    reload_initiative_full                 refreshed Initiative for the response
    create_initiative_records              initiative + all lifecycle children, atomically
"""

import logging
from dataclasses import dataclass, field

from app.core.exceptions import NotFoundError
from app.models import db
from app.models.initiative import (
    APPROVAL_ROLES,
    STAGE_SEQUENCE,
    SYSTEM_ACTOR,
    Initiative,
    ScopeOfWork,
    StageApproval,
    StageChecklistItem,
    StageHistory,
)

logger = logging.getLogger(__name__)


@dataclass
class LifecycleState:
    """Snapshot of everything the gate reads for one initiative."""

    initiative_id: int
    stage: str
    status: str
    checklist_items: list = field(default_factory=list)
    approvals: list = field(default_factory=list)
    scope_of_work: ScopeOfWork | None = None


def load_initiative_with_lifecycle_state(initiative_id: int, *, lock: bool = True) -> LifecycleState:
    """Load the lifecycle state of an initiative.

    Args:
        initiative_id: PK of the initiative.
        lock: Select the initiative row ``FOR UPDATE`` so concurrent
            transitions on the same initiative serialise until commit.
            SQLite ignores the clause.

    Raises:
        NotFoundError: If the initiative does not exist.
    """
    q = db.session.query(Initiative).filter(Initiative.id == initiative_id)
    if lock:
        q = q.with_for_update()
    initiative = q.first()
    if not initiative:
        raise NotFoundError(resource="Initiative", resource_id=initiative_id)

    return LifecycleState(
        initiative_id=initiative.id,
        stage=initiative.stage,
        status=initiative.status,
        checklist_items=initiative.checklist_items.all(),
        approvals=initiative.approvals.all(),
        scope_of_work=initiative.scope_of_work,
    )


def append_stage_history(
    initiative_id: int,
    from_stage: str | None,
    to_stage: str,
    actor: str,
    reason: str | None = None,
) -> StageHistory:
    entry = StageHistory(
        initiative_id=initiative_id,
        from_stage=from_stage,
        to_stage=to_stage,
        actor=actor,
        reason=reason,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def reset_approvals_for_stage(initiative_id: int, stage: str) -> int:
    """Reset every approval of ``stage`` to unapproved. Returns the count touched."""
    approvals = StageApproval.query.filter_by(initiative_id=initiative_id, stage=stage).all()
    for approval in approvals:
        approval.reset()
    db.session.flush()
    return len(approvals)


def update_initiative_stage_and_status(initiative_id: int, stage: str, status: str) -> Initiative:
    initiative = db.session.get(Initiative, initiative_id)
    if not initiative:
        raise NotFoundError(resource="Initiative", resource_id=initiative_id)
    initiative.stage = stage
    initiative.status = status
    db.session.flush()
    return initiative


def reload_initiative_full(initiative_id: int) -> Initiative:
    """Return the initiative with all attributes reloaded from the database."""
    initiative = db.session.get(Initiative, initiative_id)
    if not initiative:
        raise NotFoundError(resource="Initiative", resource_id=initiative_id)
    db.session.refresh(initiative)
    return initiative


def create_initiative_records(data: dict) -> Initiative:
    """Create an initiative together with its lifecycle children.

    Creates, in the caller's transaction:
      - the Initiative at INGESTION
      - one exit checklist item per stage
      - the initial history entry (None → INGESTION)
      - a DRAFT scope of work
      - one unapproved StageApproval per stage × role

    Args:
        data: Validated input dict from the blueprint (dates already parsed).

    Returns:
        Initiative instance (already flushed).
    """
    initiative = Initiative(
        name=data["name"],
        description=data["description"],
        stage=STAGE_SEQUENCE[0],
        status="ON_TRACK",
        health_status=data.get("health_status") or "HEALTHY",
        risk_level=data.get("risk_level") or "LOW",
        sow_reference=data.get("sow_reference"),
        engagement_lead=data.get("engagement_lead"),
        project_manager=data.get("project_manager"),
        data_architect=data.get("data_architect"),
        start_date=data.get("start_date"),
        target_date=data.get("target_date"),
    )
    db.session.add(initiative)
    db.session.flush()

    for stage in STAGE_SEQUENCE:
        db.session.add(StageChecklistItem(
            initiative_id=initiative.id,
            stage=stage,
            title=f"{stage} exit gate",
            description=f"Confirm {stage.lower()} stage exit criteria.",
        ))

    append_stage_history(
        initiative.id, None, STAGE_SEQUENCE[0], SYSTEM_ACTOR, "Initiative created",
    )

    db.session.add(ScopeOfWork(
        initiative_id=initiative.id,
        summary=(
            "Define project scope, deliverables, and guardrails aligned to the "
            "customer engagement."
        ),
        deliverables=(
            "Populate during project onboarding. Include lifecycle stages, success "
            "metrics, and acceptance criteria."
        ),
        status="DRAFT",
        project_type=data.get("project_type") or "DATA",
        pm_owner=data.get("project_manager") or "TBD Project Manager",
        architect_owner=data.get("data_architect") or "TBD Data Architect",
    ))

    for stage in STAGE_SEQUENCE:
        for role in APPROVAL_ROLES:
            db.session.add(StageApproval(initiative_id=initiative.id, stage=stage, role=role))

    db.session.flush()
    logger.info("Initiative created: id=%s name=%s", initiative.id, initiative.name[:200])
    return initiative
