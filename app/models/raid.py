"""
PilotGB Control Tower
Delivery risk & dependency models.

Models:
    - Risk: delivery risk logged against an initiative, with severity and mitigation
    - Dependency: external or cross-team dependency that can block an initiative

Architecture chain: Initiative → Risk / Dependency
"""

from datetime import datetime, timezone

from app.models import db, to_iso


# ── Constants ────────────────────────────────────────────────────────────────

RISK_STATUSES = ("OPEN", "MITIGATED", "CLOSED")
DEPENDENCY_STATUSES = ("OPEN", "BLOCKED", "CLEARED")


def _utcnow():
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
#  RISK
# ═══════════════════════════════════════════════════════════════════════════

class Risk(db.Model):
    """
    A risk identified for an initiative.

    ``severity`` uses the initiative risk scale (LOW → CRITICAL).
    ``resolved_at`` is stamped when the risk is closed.
    """

    __tablename__ = "risks"

    id = db.Column(db.Integer, primary_key=True)
    initiative_id = db.Column(
        db.Integer, db.ForeignKey("initiatives.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")
    severity = db.Column(db.String(20), nullable=False, default="MEDIUM")
    status = db.Column(db.String(20), nullable=False, default="OPEN", index=True)
    mitigation_plan = db.Column(db.Text, nullable=True)
    owner = db.Column(db.String(150), nullable=True)
    identified_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "initiative_id": self.initiative_id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "status": self.status,
            "mitigation_plan": self.mitigation_plan,
            "owner": self.owner,
            "identified_at": to_iso(self.identified_at),
            "resolved_at": to_iso(self.resolved_at),
        }

    def __repr__(self):
        return f"<Risk {self.id}: {self.title[:40]} [{self.severity}]>"


# ═══════════════════════════════════════════════════════════════════════════
#  DEPENDENCY
# ═══════════════════════════════════════════════════════════════════════════

class Dependency(db.Model):
    """An upstream dependency (system, team, vendor) of an initiative."""

    __tablename__ = "dependencies"

    id = db.Column(db.Integer, primary_key=True)
    initiative_id = db.Column(
        db.Integer, db.ForeignKey("initiatives.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    dependency_type = db.Column(db.String(100), nullable=False, comment="free text, e.g. Vendor | Platform")
    external_system = db.Column(db.String(200), nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(20), nullable=False, default="OPEN", index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "initiative_id": self.initiative_id,
            "name": self.name,
            "description": self.description,
            "type": self.dependency_type,
            "external_system": self.external_system,
            "due_date": to_iso(self.due_date),
            "status": self.status,
            "created_at": to_iso(self.created_at),
        }

    def __repr__(self):
        return f"<Dependency {self.id}: {self.name} [{self.status}]>"
