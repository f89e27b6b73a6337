"""Data asset registry service.

Transaction policy: flush() only; the route handler commits.
"""
import logging

from app.models import db
from app.models.asset import DataAsset
from app.services.initiative_service import get_initiative

logger = logging.getLogger(__name__)


def list_assets(initiative_id):
    return get_initiative(initiative_id).assets.all()


def create_asset(initiative_id, data):
    """Register an asset delivered by an initiative.

    Returns:
        DataAsset instance (already flushed).
    """
    get_initiative(initiative_id)
    asset = DataAsset(
        initiative_id=initiative_id,
        name=data["name"],
        asset_type=data["type"],
        owner_team=data["owner_team"],
        steward=data.get("steward"),
        acceptance_criteria=data.get("acceptance_criteria"),
        notes=data.get("notes"),
    )
    db.session.add(asset)
    db.session.flush()
    logger.info(
        "Asset registered: initiative=%s asset=%s type=%s",
        initiative_id, asset.id, asset.asset_type,
        extra={"initiative_id": initiative_id},
    )
    return asset


def registry_query(asset_type=None):
    """Query over all assets across initiatives, newest first, optionally by type."""
    q = DataAsset.query
    if asset_type:
        q = q.filter(DataAsset.asset_type == asset_type)
    return q.order_by(DataAsset.id.desc())
