"""RAID service layer — business logic extracted from raid_bp.py.

Transaction policy: methods use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Operations:
- Risk list / create / update (closing stamps resolved_at)
- Dependency list / create
"""
import logging
from datetime import datetime, timezone

from app.core.exceptions import NotFoundError
from app.models import db
from app.models.raid import Dependency, Risk
from app.services.initiative_service import get_initiative

logger = logging.getLogger(__name__)


# ── Risk ─────────────────────────────────────────────────────────────────


def list_risks(initiative_id):
    return get_initiative(initiative_id).risks.all()


def create_risk(initiative_id, data):
    """Log a risk against an initiative.

    Returns:
        Risk instance (already flushed).
    """
    get_initiative(initiative_id)
    risk = Risk(
        initiative_id=initiative_id,
        title=data["title"],
        description=data["description"],
        severity=data.get("severity") or "MEDIUM",
        status=data.get("status") or "OPEN",
        mitigation_plan=data.get("mitigation_plan"),
        owner=data.get("owner"),
    )
    if risk.status == "CLOSED":
        risk.resolved_at = datetime.now(timezone.utc)
    db.session.add(risk)
    db.session.flush()

    if risk.severity in ("HIGH", "CRITICAL"):
        logger.warning(
            "High-severity risk logged: initiative=%s risk=%s severity=%s",
            initiative_id, risk.id, risk.severity,
            extra={"initiative_id": initiative_id},
        )
    return risk


def update_risk(initiative_id, risk_id, data):
    """Update a risk. Closing without an explicit ``resolved_at`` stamps now.

    Raises:
        NotFoundError: If the risk does not belong to the initiative.
    """
    risk = db.session.get(Risk, risk_id)
    if not risk or risk.initiative_id != initiative_id:
        raise NotFoundError(resource="Risk", resource_id=risk_id)

    for field in ("title", "description", "severity", "status", "mitigation_plan", "owner"):
        if field in data:
            setattr(risk, field, data[field])

    if "resolved_at" in data:
        risk.resolved_at = data["resolved_at"]
    elif data.get("status") == "CLOSED" and risk.resolved_at is None:
        risk.resolved_at = datetime.now(timezone.utc)

    db.session.flush()
    return risk


# ── Dependency ───────────────────────────────────────────────────────────


def list_dependencies(initiative_id):
    return get_initiative(initiative_id).dependencies.all()


def create_dependency(initiative_id, data):
    """Register a dependency.

    Returns:
        Dependency instance (already flushed).
    """
    get_initiative(initiative_id)
    dep = Dependency(
        initiative_id=initiative_id,
        name=data["name"],
        description=data.get("description"),
        dependency_type=data["type"],
        external_system=data.get("external_system"),
        due_date=data.get("due_date"),
        status=data.get("status") or "OPEN",
    )
    db.session.add(dep)
    db.session.flush()
    return dep
