"""
PilotGB Control Tower
SQLAlchemy extension instance shared by every model module.

Usage:
    from app.models import db, to_iso
"""

from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def to_iso(value):
    """ISO-8601 string for a date/datetime column, None when empty.

    Datetimes are always written in UTC; SQLite drops the offset on read,
    so naive values are tagged as UTC before serialising.
    """
    if not value:
        return None
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
