"""Standardised API error responses.

Usage
-----
    from app.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Initiative not found")
    return api_error(E.VALIDATION_REQUIRED, "target_stage is required")
    return api_error(E.MISSING_APPROVALS, "Stage progression requires approvals.",
                     details={"missing_approvals": ["DATA_ARCHITECT"]})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants.

    Convention:
     • ERR_  prefix for every application error
     • ERR_STAGE_ / ERR_SCOPE_ / ERR_MISSING_ / ERR_INCOMPLETE_ for
       lifecycle-gate rejections
    """

    # Validation – HTTP 400 (malformed input) / 422 (business rule)
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    VALIDATION_CONSTRAINT = "ERR_VALIDATION_CONSTRAINT"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / duplicate – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"

    # Lifecycle gate – HTTP 400
    TRANSITION = "ERR_TRANSITION"
    STAGE_UNKNOWN = "ERR_STAGE_UNKNOWN"
    STAGE_NOOP = "ERR_STAGE_NOOP"
    STAGE_SKIP = "ERR_STAGE_SKIP"
    STAGE_REGRESSION = "ERR_STAGE_REGRESSION"
    SCOPE_NOT_APPROVED = "ERR_SCOPE_NOT_APPROVED"
    SCOPE_NOT_SIGNED_OFF = "ERR_SCOPE_NOT_SIGNED_OFF"
    MISSING_APPROVALS = "ERR_MISSING_APPROVALS"
    INCOMPLETE_CHECKLIST = "ERR_INCOMPLETE_CHECKLIST"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.VALIDATION_CONSTRAINT: 422,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400`` (every lifecycle-gate code).
    details : dict, optional
        Extra structured payload (missing approvals, incomplete checklist items, etc.).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status
