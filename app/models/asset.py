"""Data asset registry model."""

from datetime import datetime, timezone

from app.models import db, to_iso

ASSET_TYPES = ("DATASET", "MODEL", "DASHBOARD", "PIPELINE", "REPORT", "OTHER")


def _utcnow():
    return datetime.now(timezone.utc)


class DataAsset(db.Model):
    """A dataset, model, dashboard or pipeline delivered by an initiative."""

    __tablename__ = "data_assets"

    id = db.Column(db.Integer, primary_key=True)
    initiative_id = db.Column(
        db.Integer, db.ForeignKey("initiatives.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    asset_type = db.Column(db.String(20), nullable=False, index=True)
    owner_team = db.Column(db.String(150), nullable=False)
    steward = db.Column(db.String(150), nullable=True)
    acceptance_criteria = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    def to_dict(self, include_initiative=False):
        result = {
            "id": self.id,
            "initiative_id": self.initiative_id,
            "name": self.name,
            "type": self.asset_type,
            "owner_team": self.owner_team,
            "steward": self.steward,
            "acceptance_criteria": self.acceptance_criteria,
            "notes": self.notes,
            "created_at": to_iso(self.created_at),
        }
        if include_initiative:
            result["initiative"] = self.initiative.to_summary() if self.initiative else None
        return result

    def __repr__(self):
        return f"<DataAsset {self.id}: {self.name} [{self.asset_type}]>"
