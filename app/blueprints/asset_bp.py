"""
PilotGB Control Tower
Data asset blueprint.

Endpoints:
    /api/v1/initiatives/<id>/assets     GET, POST
    /api/v1/assets                      GET   (registry; ?type=, ?limit=, ?offset=)
"""

import logging

from flask import Blueprint, jsonify, request

from app.blueprints import check_choice, json_body, optional_text, paginate_query, require_text
from app.models.asset import ASSET_TYPES
from app.services import asset_service
from app.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

asset_bp = Blueprint("asset", __name__, url_prefix="/api/v1")


@asset_bp.route("/initiatives/<int:initiative_id>/assets", methods=["GET"])
def list_initiative_assets(initiative_id):
    assets = asset_service.list_assets(initiative_id)
    return jsonify({"assets": [a.to_dict() for a in assets]})


@asset_bp.route("/initiatives/<int:initiative_id>/assets", methods=["POST"])
def create_asset(initiative_id):
    data, err = json_body()
    if err:
        return err
    err = (
        require_text(data, "name", min_len=2, max_len=200)
        or check_choice(data, "type", ASSET_TYPES, required=True)
        or require_text(data, "owner_team", min_len=2, max_len=150)
        or optional_text(data, "steward", max_len=150)
        or optional_text(data, "acceptance_criteria", min_len=0)
        or optional_text(data, "notes", min_len=0)
    )
    if err:
        return err

    asset = asset_service.create_asset(initiative_id, data)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"asset": asset.to_dict()}), 201


@asset_bp.route("/assets", methods=["GET"])
def asset_registry():
    filters = {"type": request.args.get("type")}
    err = check_choice(filters, "type", ASSET_TYPES)
    if err:
        return err

    assets, total = paginate_query(asset_service.registry_query(filters["type"]))
    return jsonify({
        "assets": [a.to_dict(include_initiative=True) for a in assets],
        "total": total,
    })
