"""
PilotGB Control Tower
Team onboarding blueprint.

Endpoints:
    MEMBER      /api/v1/team-members                                   GET, POST
    ASSIGNMENT  /api/v1/initiatives/<id>/team-members                  POST
                /api/v1/initiatives/<id>/team-members/<mid>            PATCH  (onboarding status)
    ACCESS      /api/v1/initiatives/<id>/access                        POST
                /api/v1/initiatives/<id>/access/<aid>                  PATCH
"""

import logging

from flask import Blueprint, jsonify

from app.blueprints import (
    check_bool,
    check_choice,
    check_int,
    coerce_dates,
    json_body,
    optional_text,
    require_text,
)
from app.models.team import ACCESS_STATUSES, ONBOARDING_STATUSES
from app.services import team_service
from app.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

team_bp = Blueprint("team", __name__, url_prefix="/api/v1")


# ── Team members ─────────────────────────────────────────────────────────────

@team_bp.route("/team-members", methods=["GET"])
def list_members():
    members = team_service.list_members()
    return jsonify({"members": [m.to_dict() for m in members]})


@team_bp.route("/team-members", methods=["POST"])
def create_member():
    data, err = json_body()
    if err:
        return err
    err = (
        require_text(data, "name", min_len=2, max_len=150)
        or require_text(data, "email", max_len=254)
        or require_text(data, "role_title", min_len=2, max_len=150)
        or require_text(data, "team", min_len=2, max_len=150)
        or check_choice(data, "onboarding_status", ONBOARDING_STATUSES)
        or coerce_dates(data, "start_date")
    )
    if err:
        return err

    member = team_service.create_member(data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"member": member.to_dict()}), 201


# ── Assignments ──────────────────────────────────────────────────────────────

@team_bp.route("/initiatives/<int:initiative_id>/team-members", methods=["POST"])
def assign_member(initiative_id):
    data, err = json_body()
    if err:
        return err
    err = (
        check_int(data, "member_id")
        or require_text(data, "responsibility", min_len=2, max_len=200)
    )
    if err:
        return err

    assignment = team_service.assign_member(initiative_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"assignment": assignment.to_dict()}), 201


@team_bp.route("/initiatives/<int:initiative_id>/team-members/<int:member_id>", methods=["PATCH"])
def update_onboarding(initiative_id, member_id):
    data, err = json_body()
    if err:
        return err
    err = (
        check_choice(data, "onboarding_status", ONBOARDING_STATUSES, required=True)
        or coerce_dates(data, "start_date")
    )
    if err:
        return err

    member = team_service.update_onboarding(
        initiative_id, member_id, data["onboarding_status"],
        start_date=data.get("start_date"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"member": member.to_dict()})


# ── Access provisioning ──────────────────────────────────────────────────────

@team_bp.route("/initiatives/<int:initiative_id>/access", methods=["POST"])
def request_access(initiative_id):
    data, err = json_body()
    if err:
        return err
    err = (
        check_int(data, "member_id")
        or require_text(data, "system_name", min_len=2, max_len=200)
        or check_choice(data, "status", ACCESS_STATUSES)
        or optional_text(data, "notes", min_len=0)
    )
    if err:
        return err

    access = team_service.request_access(initiative_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"access": access.to_dict()}), 201


@team_bp.route("/initiatives/<int:initiative_id>/access/<int:access_id>", methods=["PATCH"])
def update_access(initiative_id, access_id):
    data, err = json_body()
    if err:
        return err
    err = (
        check_choice(data, "status", ACCESS_STATUSES)
        or check_bool(data, "fulfilled")
        or optional_text(data, "notes", min_len=0)
    )
    if err:
        return err

    access = team_service.update_access(initiative_id, access_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"access": access.to_dict()})
