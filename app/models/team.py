"""
PilotGB Control Tower
Team onboarding models.

Models:
    - TeamMember: person who can be staffed on initiatives
    - InitiativeAssignment: membership of a team member on one initiative
    - AccessProvision: system-access request for a member on an initiative
"""

from datetime import datetime, timezone

from app.models import db, to_iso


# ── Constants ────────────────────────────────────────────────────────────────

ONBOARDING_STATUSES = ("AWAITING", "IN_PROGRESS", "COMPLETED")
ACCESS_STATUSES = ("REQUESTED", "IN_PROGRESS", "GRANTED", "BLOCKED")


def _utcnow():
    return datetime.now(timezone.utc)


class TeamMember(db.Model):
    """A delivery team member. E-mail is stored lower-cased and unique."""

    __tablename__ = "team_members"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(254), nullable=False, unique=True)
    role_title = db.Column(db.String(150), nullable=False)
    team = db.Column(db.String(150), nullable=False)
    onboarding_status = db.Column(db.String(20), nullable=False, default="AWAITING")
    start_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    assignments = db.relationship(
        "InitiativeAssignment", backref="member", lazy="dynamic",
        cascade="all, delete-orphan",
    )
    access_requests = db.relationship(
        "AccessProvision", backref="member", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role_title": self.role_title,
            "team": self.team,
            "onboarding_status": self.onboarding_status,
            "start_date": to_iso(self.start_date),
        }

    def __repr__(self):
        return f"<TeamMember {self.id}: {self.name}>"


class InitiativeAssignment(db.Model):
    """Staffing of a team member on an initiative."""

    __tablename__ = "initiative_assignments"

    id = db.Column(db.Integer, primary_key=True)
    initiative_id = db.Column(
        db.Integer, db.ForeignKey("initiatives.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    member_id = db.Column(
        db.Integer, db.ForeignKey("team_members.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    responsibility = db.Column(db.String(200), nullable=False)
    assigned_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("initiative_id", "member_id", name="uq_assignment_member"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "initiative_id": self.initiative_id,
            "responsibility": self.responsibility,
            "assigned_at": to_iso(self.assigned_at),
            "member": self.member.to_dict() if self.member else None,
        }


class AccessProvision(db.Model):
    """
    Access request for one system on behalf of a team member.

    ``fulfilled_at`` is set only while the request is GRANTED.
    """

    __tablename__ = "access_provisions"

    id = db.Column(db.Integer, primary_key=True)
    initiative_id = db.Column(
        db.Integer, db.ForeignKey("initiatives.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    member_id = db.Column(
        db.Integer, db.ForeignKey("team_members.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    system_name = db.Column(db.String(200), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="REQUESTED")
    requested_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    fulfilled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "initiative_id": self.initiative_id,
            "member_id": self.member_id,
            "system_name": self.system_name,
            "status": self.status,
            "requested_at": to_iso(self.requested_at),
            "fulfilled_at": to_iso(self.fulfilled_at),
            "notes": self.notes,
            "member": self.member.to_dict() if self.member else None,
        }

    def __repr__(self):
        return f"<AccessProvision {self.id}: {self.system_name} [{self.status}]>"
