"""
PilotGB Control Tower
Initiative blueprint — initiative CRUD, lifecycle transitions, checklist,
stage approvals and scope of work.

Endpoints:
    INITIATIVE   /api/v1/initiatives                                    GET, POST
                 /api/v1/initiatives/<id>                               GET, PATCH

    LIFECYCLE    /api/v1/initiatives/<id>/transition                    POST
                 /api/v1/initiatives/<id>/transition-readiness          GET
                 /api/v1/initiatives/<id>/checklists/<cid>              PATCH
                 /api/v1/initiatives/<id>/approvals/<aid>               PATCH

    SCOPE        /api/v1/initiatives/<id>/sow                           GET, PATCH

Service errors (NotFoundError, ValidationError, TransitionError) are
translated by the app-level handlers registered in create_app.
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import (
    check_bool,
    check_choice,
    coerce_dates,
    json_body,
    optional_text,
    require_text,
)
from app.models.initiative import (
    HEALTH_STATUSES,
    INITIATIVE_STATUSES,
    PROJECT_TYPES,
    RISK_LEVELS,
    SOW_STATUSES,
    STAGE_SEQUENCE,
)
from app.services import initiative_service as init_svc
from app.services import stage_lifecycle
from app.utils.errors import E, api_error
from app.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

initiative_bp = Blueprint("initiative", __name__, url_prefix="/api/v1")


def _validate_initiative_fields(data, creating):
    return (
        require_text(data, "name", min_len=3, max_len=200, required=creating)
        or require_text(data, "description", min_len=10, required=creating)
        or check_choice(data, "health_status", HEALTH_STATUSES)
        or check_choice(data, "risk_level", RISK_LEVELS)
        or check_choice(data, "project_type", PROJECT_TYPES)
        or optional_text(data, "sow_reference", max_len=100)
        or optional_text(data, "engagement_lead", max_len=150)
        or optional_text(data, "project_manager", max_len=150)
        or optional_text(data, "data_architect", max_len=150)
        or coerce_dates(data, "start_date", "target_date")
    )


# ═══════════════════════════════════════════════════════════════════════════
#  INITIATIVE CRUD
# ═══════════════════════════════════════════════════════════════════════════

@initiative_bp.route("/initiatives", methods=["GET"])
def list_initiatives():
    filters = {
        "stage": request.args.get("stage"),
        "status": request.args.get("status"),
        "health_status": request.args.get("health_status"),
    }
    err = (
        check_choice(filters, "stage", STAGE_SEQUENCE)
        or check_choice(filters, "status", INITIATIVE_STATUSES)
        or check_choice(filters, "health_status", HEALTH_STATUSES)
    )
    if err:
        return err
    initiatives = init_svc.list_initiatives(filters)
    return jsonify({"initiatives": [i.to_dict(include_children=True) for i in initiatives]})


@initiative_bp.route("/initiatives", methods=["POST"])
def create_initiative():
    data, err = json_body()
    if err:
        return err
    err = _validate_initiative_fields(data, creating=True)
    if err:
        return err

    initiative = init_svc.create_initiative(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"initiative": initiative.to_dict(include_children=True)}), 201


@initiative_bp.route("/initiatives/<int:initiative_id>", methods=["GET"])
def get_initiative(initiative_id):
    initiative = init_svc.get_initiative(initiative_id)
    return jsonify({"initiative": initiative.to_dict(include_children=True)})


@initiative_bp.route("/initiatives/<int:initiative_id>", methods=["PATCH"])
def update_initiative(initiative_id):
    data, err = json_body()
    if err:
        return err
    if "stage" in data:
        return api_error(
            E.VALIDATION_INVALID,
            "stage changes only through the transition endpoint",
        )
    err = (
        check_choice(data, "status", INITIATIVE_STATUSES)
        or _validate_initiative_fields(data, creating=False)
    )
    if err:
        return err

    initiative = init_svc.update_initiative(initiative_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"initiative": initiative.to_dict(include_children=True)})


# ═══════════════════════════════════════════════════════════════════════════
#  LIFECYCLE
# ═══════════════════════════════════════════════════════════════════════════

@initiative_bp.route("/initiatives/<int:initiative_id>/transition", methods=["POST"])
def transition_initiative(initiative_id):
    """Move the initiative to another stage.

    Body: {target_stage, reason?, actor?, allow_regression?}
    Returns: {"initiative"} or 400 with the TransitionError payload.
    """
    data, err = json_body()
    if err:
        return err
    err = (
        require_text(data, "target_stage")
        or optional_text(data, "reason", max_len=500)
        or optional_text(data, "actor", max_len=120)
        or check_bool(data, "allow_regression")
    )
    if err:
        return err

    initiative = stage_lifecycle.request_transition(
        initiative_id,
        data["target_stage"],
        reason=data.get("reason"),
        actor=data.get("actor"),
        allow_regression=bool(data.get("allow_regression", False)),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"initiative": initiative.to_dict(include_children=True)})


@initiative_bp.route("/initiatives/<int:initiative_id>/transition-readiness", methods=["GET"])
def transition_readiness(initiative_id):
    """Explain whether the initiative can move. Query: target_stage (optional)."""
    target = request.args.get("target_stage") or None
    return jsonify(stage_lifecycle.check_transition_readiness(initiative_id, target))


@initiative_bp.route(
    "/initiatives/<int:initiative_id>/checklists/<int:checklist_id>", methods=["PATCH"],
)
def update_checklist_item(initiative_id, checklist_id):
    data, err = json_body()
    if err:
        return err
    err = check_bool(data, "completed", required=True)
    if err:
        return err

    item = init_svc.toggle_checklist_item(initiative_id, checklist_id, data["completed"])
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"checklist": item.to_dict()})


@initiative_bp.route(
    "/initiatives/<int:initiative_id>/approvals/<int:approval_id>", methods=["PATCH"],
)
def update_approval(initiative_id, approval_id):
    """Body: {approved, approved_by?, notes?}. Approving needs approved_by."""
    data, err = json_body()
    if err:
        return err
    err = (
        check_bool(data, "approved", required=True)
        or optional_text(data, "approved_by", min_len=2, max_len=150)
        or optional_text(data, "notes", min_len=0)
    )
    if err:
        return err

    approval = init_svc.update_stage_approval(initiative_id, approval_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"approval": approval.to_dict()})


# ═══════════════════════════════════════════════════════════════════════════
#  SCOPE OF WORK
# ═══════════════════════════════════════════════════════════════════════════

@initiative_bp.route("/initiatives/<int:initiative_id>/sow", methods=["GET"])
def get_scope_of_work(initiative_id):
    scope, approvals = init_svc.get_scope_with_approvals(initiative_id)
    return jsonify({
        "scope": scope.to_dict(),
        "approvals": [a.to_dict() for a in approvals],
    })


@initiative_bp.route("/initiatives/<int:initiative_id>/sow", methods=["PATCH"])
def update_scope_of_work(initiative_id):
    data, err = json_body()
    if err:
        return err
    err = (
        optional_text(data, "summary", min_len=10)
        or optional_text(data, "deliverables", min_len=10)
        or check_choice(data, "status", SOW_STATUSES)
        or check_choice(data, "project_type", PROJECT_TYPES)
        or check_bool(data, "pm_approved")
        or check_bool(data, "architect_approved")
    )
    if err:
        return err

    scope = init_svc.update_scope_of_work(initiative_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"scope": scope.to_dict()})
