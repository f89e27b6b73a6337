"""Team onboarding service layer.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Operations:
- Team member list / create (e-mail normalised + unique)
- Assign member to initiative
- Onboarding status update for an assigned member
- Access provisioning request / update
"""
import logging
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email

from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import db
from app.models.team import AccessProvision, InitiativeAssignment, TeamMember
from app.services.initiative_service import get_initiative

logger = logging.getLogger(__name__)


def _normalise_email(email):
    try:
        valid = validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": "invalid"})
    return valid.normalized.lower()


def _get_member(member_id):
    member = db.session.get(TeamMember, member_id)
    if not member:
        raise NotFoundError(resource="Team member", resource_id=member_id)
    return member


# ── Team members ─────────────────────────────────────────────────────────


def list_members():
    return TeamMember.query.order_by(TeamMember.name.asc()).all()


def create_member(data):
    """Create a team member.

    Raises:
        ValidationError: Malformed e-mail address.
        ConflictError: E-mail already registered.
    """
    email = _normalise_email(data["email"])
    if TeamMember.query.filter_by(email=email).first():
        raise ConflictError(resource="Team member", field="email", value=email)

    member = TeamMember(
        name=data["name"],
        email=email,
        role_title=data["role_title"],
        team=data["team"],
        onboarding_status=data.get("onboarding_status") or "AWAITING",
        start_date=data.get("start_date"),
    )
    db.session.add(member)
    db.session.flush()
    logger.info("Team member created: id=%s", member.id)
    return member


# ── Assignments ──────────────────────────────────────────────────────────


def assign_member(initiative_id, data):
    """Staff a member on an initiative.

    Raises:
        NotFoundError, ConflictError
    """
    get_initiative(initiative_id)
    member = _get_member(data["member_id"])

    existing = InitiativeAssignment.query.filter_by(
        initiative_id=initiative_id, member_id=member.id,
    ).first()
    if existing:
        raise ConflictError(resource="Assignment", field="member_id", value=str(member.id))

    assignment = InitiativeAssignment(
        initiative_id=initiative_id,
        member_id=member.id,
        responsibility=data["responsibility"],
    )
    db.session.add(assignment)
    db.session.flush()
    return assignment


def update_onboarding(initiative_id, member_id, onboarding_status, start_date=None):
    """Set the onboarding status (and optionally start date) of an assigned member.

    ``start_date`` keeps the current value when not given.
    """
    get_initiative(initiative_id)
    member = _get_member(member_id)
    assigned = InitiativeAssignment.query.filter_by(
        initiative_id=initiative_id, member_id=member_id,
    ).first()
    if not assigned:
        raise NotFoundError(resource="Assignment", resource_id=member_id)

    member.onboarding_status = onboarding_status
    if start_date is not None:
        member.start_date = start_date
    db.session.flush()
    return member


# ── Access provisioning ──────────────────────────────────────────────────


def request_access(initiative_id, data):
    """Open an access request for a member.

    Returns:
        AccessProvision instance (already flushed).
    """
    get_initiative(initiative_id)
    member = _get_member(data["member_id"])
    access = AccessProvision(
        initiative_id=initiative_id,
        member_id=member.id,
        system_name=data["system_name"],
        status=data.get("status") or "REQUESTED",
        notes=data.get("notes"),
    )
    if access.status == "GRANTED":
        access.fulfilled_at = datetime.now(timezone.utc)
    db.session.add(access)
    db.session.flush()
    return access


def update_access(initiative_id, access_id, data):
    """Update an access request.

    - GRANTED stamps ``fulfilled_at`` if not already set.
    - Any other explicit status clears ``fulfilled_at``.
    - ``fulfilled=true`` without a status implies GRANTED.
    - ``fulfilled`` stamps ``fulfilled_at`` (true) or clears it (false),
      whatever the status.
    """
    access = db.session.get(AccessProvision, access_id)
    if not access or access.initiative_id != initiative_id:
        raise NotFoundError(resource="Access request", resource_id=access_id)

    status = data.get("status")
    if not status and data.get("fulfilled") is True:
        status = "GRANTED"

    if status:
        access.status = status
        if status == "GRANTED":
            if access.fulfilled_at is None:
                access.fulfilled_at = datetime.now(timezone.utc)
        else:
            access.fulfilled_at = None

    # An explicit fulfilled flag overrides the status-derived timestamp
    if data.get("fulfilled") is not None:
        access.fulfilled_at = datetime.now(timezone.utc) if data["fulfilled"] else None

    if "notes" in data:
        access.notes = data["notes"]

    db.session.flush()
    logger.info(
        "Access request updated: initiative=%s access=%s status=%s",
        initiative_id, access.id, access.status,
        extra={"initiative_id": initiative_id},
    )
    return access
