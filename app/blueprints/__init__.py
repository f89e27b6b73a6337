"""
PilotGB Control Tower
Blueprint registry and shared request-validation helpers.

Validation helpers return ``None`` when the field is acceptable, or an
``api_error`` response tuple ready to ``return`` from a view, so checks
can be chained with ``or``::

    err = (require_text(data, "name", min_len=3)
           or check_choice(data, "risk_level", RISK_LEVELS))
    if err:
        return err
"""

from flask import request

from app.utils.errors import E, api_error
from app.utils.helpers import parse_date, parse_datetime


def paginate_query(query, default_limit=200, max_limit=1000):
    """Apply limit/offset pagination to a SQLAlchemy query.

    Query params:
        limit  — max items (default 200, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_list, total_count)
    """
    total = query.count()
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    items = query.limit(limit).offset(offset).all()
    return items, total


def json_body():
    """Return ``(data, err)`` for the request's JSON body.

    A missing or unparsable body reads as ``{}``; any JSON value other
    than an object is rejected with 400.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}, None
    if not isinstance(data, dict):
        return None, api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    return data, None


def require_text(data, field, min_len=1, max_len=None, required=True):
    """Validate a string field; strips it in place."""
    value = data.get(field)
    if value is None:
        if required:
            return api_error(E.VALIDATION_REQUIRED, f"{field} is required")
        return None
    if not isinstance(value, str):
        return api_error(E.VALIDATION_INVALID, f"{field} must be a string")
    value = value.strip()
    if len(value) < min_len:
        if not value and required:
            return api_error(E.VALIDATION_REQUIRED, f"{field} is required")
        return api_error(E.VALIDATION_INVALID, f"{field} must be at least {min_len} characters")
    if max_len and len(value) > max_len:
        return api_error(E.VALIDATION_INVALID, f"{field} must be ≤ {max_len} characters")
    data[field] = value
    return None


def optional_text(data, field, min_len=1, max_len=None):
    return require_text(data, field, min_len=min_len, max_len=max_len, required=False)


def check_choice(data, field, choices, required=False):
    value = data.get(field)
    if value is None:
        if required:
            return api_error(E.VALIDATION_REQUIRED, f"{field} is required")
        return None
    if value not in choices:
        return api_error(
            E.VALIDATION_INVALID,
            f"Invalid {field}: {value}",
            details={"allowed": list(choices)},
        )
    return None


def check_bool(data, field, required=False):
    value = data.get(field)
    if value is None:
        if required:
            return api_error(E.VALIDATION_REQUIRED, f"{field} is required")
        return None
    if not isinstance(value, bool):
        return api_error(E.VALIDATION_INVALID, f"{field} must be a boolean")
    return None


def check_int(data, field, required=True):
    value = data.get(field)
    if value is None:
        if required:
            return api_error(E.VALIDATION_REQUIRED, f"{field} is required")
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        return api_error(E.VALIDATION_INVALID, f"{field} must be an integer")
    return None


def coerce_dates(data, *fields):
    """Replace ISO date strings with ``date`` objects in place."""
    for field in fields:
        if data.get(field) in (None, ""):
            if field in data:
                data[field] = None
            continue
        parsed = parse_date(data[field])
        if parsed is None:
            return api_error(E.VALIDATION_INVALID, f"{field} must be an ISO date")
        data[field] = parsed
    return None


def coerce_datetimes(data, *fields):
    """Replace ISO datetime strings with aware ``datetime`` objects in place."""
    for field in fields:
        if data.get(field) in (None, ""):
            if field in data:
                data[field] = None
            continue
        parsed = parse_datetime(data[field])
        if parsed is None:
            return api_error(E.VALIDATION_INVALID, f"{field} must be an ISO datetime")
        data[field] = parsed
    return None
