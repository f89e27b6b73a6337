"""
PilotGB Control Tower
Initiative lifecycle models.

Models:
    - Initiative: a data/AI delivery initiative moving through the stage lifecycle
    - StageChecklistItem: exit criterion for one (initiative, stage) pair
    - StageHistory: append-only log of realised stage transitions
    - StageApproval: per-stage sign-off by one required role
    - ScopeOfWork: engagement scope with PM / Data Architect approval

Architecture chain:
    Initiative ──1:N──▶ StageChecklistItem   (one per stage, created with the initiative)
    Initiative ──1:N──▶ StageApproval        (stage × role, created with the initiative)
    Initiative ──1:N──▶ StageHistory
    Initiative ──1:1──▶ ScopeOfWork

Lifecycle:
    INGESTION → TRANSFORMATION → ENRICHMENT → VALIDATION → VISUALIZATION → DEPLOYMENT
"""

from datetime import datetime, timezone

from app.models import db, to_iso


# ── Constants ────────────────────────────────────────────────────────────────

# Order is significant: skip / regression detection is index based.
STAGE_SEQUENCE = (
    "INGESTION",
    "TRANSFORMATION",
    "ENRICHMENT",
    "VALIDATION",
    "VISUALIZATION",
    "DEPLOYMENT",
)

INITIATIVE_STATUSES = ("ON_TRACK", "AT_RISK", "BLOCKED", "COMPLETE", "ARCHIVED")
HEALTH_STATUSES = ("HEALTHY", "WATCH", "CRITICAL")
RISK_LEVELS = ("LOW", "MEDIUM", "HIGH", "CRITICAL")

SOW_STATUSES = ("DRAFT", "IN_REVIEW", "APPROVED", "SIGNED_OFF")
SOW_APPROVED_STATUSES = frozenset({"APPROVED", "SIGNED_OFF"})
PROJECT_TYPES = ("DATA", "AI", "HYBRID")

APPROVAL_ROLES = ("PROJECT_MANAGER", "DATA_ARCHITECT")
# Both roles must sign off a stage before the initiative may leave it.
REQUIRED_APPROVAL_ROLES = ("PROJECT_MANAGER", "DATA_ARCHITECT")

SYSTEM_ACTOR = "system"


def _utcnow():
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
#  INITIATIVE
# ═══════════════════════════════════════════════════════════════════════════

class Initiative(db.Model):
    """
    A delivery initiative tracked through the six-stage lifecycle.

    ``stage`` and ``status`` are written only by the lifecycle gate
    (app.services.stage_lifecycle) once the initiative exists.
    """

    __tablename__ = "initiatives"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    stage = db.Column(db.String(30), nullable=False, default="INGESTION", index=True)
    status = db.Column(db.String(20), nullable=False, default="ON_TRACK", index=True)
    health_status = db.Column(db.String(20), nullable=False, default="HEALTHY")
    risk_level = db.Column(db.String(20), nullable=False, default="LOW")
    sow_reference = db.Column(db.String(100), nullable=True)
    engagement_lead = db.Column(db.String(150), nullable=True)
    project_manager = db.Column(db.String(150), nullable=True)
    data_architect = db.Column(db.String(150), nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    target_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # ── Relationships ────────────────────────────────────────────────────
    checklist_items = db.relationship(
        "StageChecklistItem", backref="initiative", lazy="dynamic",
        cascade="all, delete-orphan", order_by="StageChecklistItem.id",
    )
    approvals = db.relationship(
        "StageApproval", backref="initiative", lazy="dynamic",
        cascade="all, delete-orphan", order_by="StageApproval.id",
    )
    stage_history = db.relationship(
        "StageHistory", backref="initiative", lazy="dynamic",
        cascade="all, delete-orphan", order_by="StageHistory.id",
    )
    scope_of_work = db.relationship(
        "ScopeOfWork", backref="initiative", uselist=False,
        cascade="all, delete-orphan",
    )
    assets = db.relationship(
        "DataAsset", backref="initiative", lazy="dynamic",
        cascade="all, delete-orphan", order_by="DataAsset.id.desc()",
    )
    risks = db.relationship(
        "Risk", backref="initiative", lazy="dynamic",
        cascade="all, delete-orphan", order_by="Risk.id.desc()",
    )
    dependencies = db.relationship(
        "Dependency", backref="initiative", lazy="dynamic",
        cascade="all, delete-orphan", order_by="Dependency.id.desc()",
    )
    assignments = db.relationship(
        "InitiativeAssignment", backref="initiative", lazy="dynamic",
        cascade="all, delete-orphan", order_by="InitiativeAssignment.id",
    )
    access_requests = db.relationship(
        "AccessProvision", backref="initiative", lazy="dynamic",
        cascade="all, delete-orphan", order_by="AccessProvision.id.desc()",
    )

    def to_summary(self):
        """Compact reference used by the global asset registry."""
        return {
            "id": self.id,
            "name": self.name,
            "stage": self.stage,
            "status": self.status,
        }

    def to_dict(self, include_children=False):
        result = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "stage": self.stage,
            "status": self.status,
            "health_status": self.health_status,
            "risk_level": self.risk_level,
            "sow_reference": self.sow_reference,
            "engagement_lead": self.engagement_lead,
            "project_manager": self.project_manager,
            "data_architect": self.data_architect,
            "start_date": to_iso(self.start_date),
            "target_date": to_iso(self.target_date),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }
        if include_children:
            result["checklist_items"] = [c.to_dict() for c in self.checklist_items]
            result["stage_history"] = [h.to_dict() for h in self.stage_history]
            result["approvals"] = [a.to_dict() for a in self.approvals]
            result["scope_of_work"] = (
                self.scope_of_work.to_dict() if self.scope_of_work else None
            )
            result["assets"] = [a.to_dict() for a in self.assets]
            result["risks"] = [r.to_dict() for r in self.risks]
            result["dependencies"] = [d.to_dict() for d in self.dependencies]
            result["assignments"] = [a.to_dict() for a in self.assignments]
            result["access_requests"] = [a.to_dict() for a in self.access_requests]
        return result

    def __repr__(self):
        return f"<Initiative {self.id}: {self.name} [{self.stage}]>"


# ═══════════════════════════════════════════════════════════════════════════
#  STAGE CHECKLIST ITEM
# ═══════════════════════════════════════════════════════════════════════════

class StageChecklistItem(db.Model):
    """Exit criterion that must be completed before leaving its stage."""

    __tablename__ = "stage_checklist_items"

    id = db.Column(db.Integer, primary_key=True)
    initiative_id = db.Column(
        db.Integer, db.ForeignKey("initiatives.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    stage = db.Column(db.String(30), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.Index("ix_checklist_initiative_stage", "initiative_id", "stage"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "initiative_id": self.initiative_id,
            "stage": self.stage,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "completed_at": to_iso(self.completed_at),
        }

    def __repr__(self):
        return f"<StageChecklistItem {self.id}: {self.stage} done={self.completed}>"


# ═══════════════════════════════════════════════════════════════════════════
#  STAGE HISTORY
# ═══════════════════════════════════════════════════════════════════════════

class StageHistory(db.Model):
    """Immutable record of one realised stage transition."""

    __tablename__ = "stage_history"

    id = db.Column(db.Integer, primary_key=True)
    initiative_id = db.Column(
        db.Integer, db.ForeignKey("initiatives.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    from_stage = db.Column(db.String(30), nullable=True, comment="NULL for the creation entry")
    to_stage = db.Column(db.String(30), nullable=False)
    actor = db.Column(db.String(120), nullable=False, default=SYSTEM_ACTOR)
    reason = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "initiative_id": self.initiative_id,
            "from_stage": self.from_stage,
            "to_stage": self.to_stage,
            "actor": self.actor,
            "reason": self.reason,
            "created_at": to_iso(self.created_at),
        }

    def __repr__(self):
        return f"<StageHistory {self.id}: {self.from_stage} → {self.to_stage}>"


# ═══════════════════════════════════════════════════════════════════════════
#  STAGE APPROVAL
# ═══════════════════════════════════════════════════════════════════════════

class StageApproval(db.Model):
    """
    Sign-off for one stage by one required role.

    Approving requires a non-empty ``approved_by``; enforced by
    app.services.initiative_service.update_stage_approval.
    """

    __tablename__ = "stage_approvals"

    id = db.Column(db.Integer, primary_key=True)
    initiative_id = db.Column(
        db.Integer, db.ForeignKey("initiatives.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    stage = db.Column(db.String(30), nullable=False)
    role = db.Column(db.String(30), nullable=False, comment="PROJECT_MANAGER | DATA_ARCHITECT")
    approved = db.Column(db.Boolean, nullable=False, default=False)
    approved_by = db.Column(db.String(150), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("initiative_id", "stage", "role", name="uq_stage_approval_role"),
    )

    def reset(self):
        """Return the approval to its unapproved state."""
        self.approved = False
        self.approved_by = None
        self.approved_at = None
        self.notes = None

    def to_dict(self):
        return {
            "id": self.id,
            "initiative_id": self.initiative_id,
            "stage": self.stage,
            "role": self.role,
            "approved": self.approved,
            "approved_by": self.approved_by,
            "approved_at": to_iso(self.approved_at),
            "notes": self.notes,
        }

    def __repr__(self):
        return f"<StageApproval {self.id}: {self.stage}/{self.role} approved={self.approved}>"


# ═══════════════════════════════════════════════════════════════════════════
#  SCOPE OF WORK
# ═══════════════════════════════════════════════════════════════════════════

class ScopeOfWork(db.Model):
    """Engagement scope; gates leaving INGESTION and entering DEPLOYMENT."""

    __tablename__ = "scopes_of_work"

    id = db.Column(db.Integer, primary_key=True)
    initiative_id = db.Column(
        db.Integer, db.ForeignKey("initiatives.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    summary = db.Column(db.Text, nullable=False, default="")
    deliverables = db.Column(db.Text, nullable=False, default="")
    status = db.Column(db.String(20), nullable=False, default="DRAFT")
    project_type = db.Column(db.String(20), nullable=False, default="DATA")
    pm_owner = db.Column(db.String(150), nullable=False, default="TBD Project Manager")
    architect_owner = db.Column(db.String(150), nullable=False, default="TBD Data Architect")
    pm_approved = db.Column(db.Boolean, nullable=False, default=False)
    pm_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    architect_approved = db.Column(db.Boolean, nullable=False, default=False)
    architect_approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    signed_off_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "initiative_id": self.initiative_id,
            "summary": self.summary,
            "deliverables": self.deliverables,
            "status": self.status,
            "project_type": self.project_type,
            "pm_owner": self.pm_owner,
            "architect_owner": self.architect_owner,
            "pm_approved": self.pm_approved,
            "pm_approved_at": to_iso(self.pm_approved_at),
            "architect_approved": self.architect_approved,
            "architect_approved_at": to_iso(self.architect_approved_at),
            "signed_off_at": to_iso(self.signed_off_at),
            "last_reviewed_at": to_iso(self.last_reviewed_at),
        }

    def __repr__(self):
        return f"<ScopeOfWork {self.id}: initiative={self.initiative_id} [{self.status}]>"
