"""
PilotGB Control Tower
RAID blueprint — risks and dependencies logged against an initiative.

Endpoints summary:
    RISK        /api/v1/initiatives/<id>/risks               GET, POST
                /api/v1/initiatives/<id>/risks/<rid>         PATCH

    DEPENDENCY  /api/v1/initiatives/<id>/dependencies        GET, POST
"""

import logging

from flask import Blueprint, jsonify

from app.blueprints import (
    check_choice,
    coerce_dates,
    coerce_datetimes,
    json_body,
    optional_text,
    require_text,
)
from app.models.initiative import RISK_LEVELS
from app.models.raid import DEPENDENCY_STATUSES, RISK_STATUSES
from app.services import raid_service
from app.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

raid_bp = Blueprint("raid", __name__, url_prefix="/api/v1")


# ═══════════════════════════════════════════════════════════════════════════
#  RISK
# ═══════════════════════════════════════════════════════════════════════════

@raid_bp.route("/initiatives/<int:initiative_id>/risks", methods=["GET"])
def list_risks(initiative_id):
    risks = raid_service.list_risks(initiative_id)
    return jsonify({"risks": [r.to_dict() for r in risks]})


@raid_bp.route("/initiatives/<int:initiative_id>/risks", methods=["POST"])
def create_risk(initiative_id):
    data, err = json_body()
    if err:
        return err
    err = (
        require_text(data, "title", min_len=3, max_len=300)
        or require_text(data, "description", min_len=5)
        or check_choice(data, "severity", RISK_LEVELS)
        or check_choice(data, "status", RISK_STATUSES)
        or optional_text(data, "mitigation_plan", min_len=0)
        or optional_text(data, "owner", max_len=150)
    )
    if err:
        return err

    risk = raid_service.create_risk(initiative_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"risk": risk.to_dict()}), 201


@raid_bp.route("/initiatives/<int:initiative_id>/risks/<int:risk_id>", methods=["PATCH"])
def update_risk(initiative_id, risk_id):
    data, err = json_body()
    if err:
        return err
    err = (
        optional_text(data, "title", min_len=3, max_len=300)
        or optional_text(data, "description", min_len=5)
        or check_choice(data, "severity", RISK_LEVELS)
        or check_choice(data, "status", RISK_STATUSES)
        or optional_text(data, "mitigation_plan", min_len=0)
        or optional_text(data, "owner", max_len=150)
        or coerce_datetimes(data, "resolved_at")
    )
    if err:
        return err

    risk = raid_service.update_risk(initiative_id, risk_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"risk": risk.to_dict()})


# ═══════════════════════════════════════════════════════════════════════════
#  DEPENDENCY
# ═══════════════════════════════════════════════════════════════════════════

@raid_bp.route("/initiatives/<int:initiative_id>/dependencies", methods=["GET"])
def list_dependencies(initiative_id):
    deps = raid_service.list_dependencies(initiative_id)
    return jsonify({"dependencies": [d.to_dict() for d in deps]})


@raid_bp.route("/initiatives/<int:initiative_id>/dependencies", methods=["POST"])
def create_dependency(initiative_id):
    data, err = json_body()
    if err:
        return err
    err = (
        require_text(data, "name", min_len=2, max_len=200)
        or require_text(data, "type", min_len=2, max_len=100)
        or optional_text(data, "description", min_len=0)
        or optional_text(data, "external_system", max_len=200)
        or check_choice(data, "status", DEPENDENCY_STATUSES)
        or coerce_dates(data, "due_date")
    )
    if err:
        return err

    dep = raid_service.create_dependency(initiative_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"dependency": dep.to_dict()}), 201
