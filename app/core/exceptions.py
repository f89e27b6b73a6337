"""
Platform-wide exception hierarchy.

Services raise these types; ``create_app`` registers one handler per type
so every blueprint gets the same HTTP status codes and error body.

Lifecycle-gate rejections have their own hierarchy in
``app.services.stage_lifecycle`` (TransitionError and subclasses).

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Initiative", resource_id=42)
    raise ValidationError("Approver name is required", details={"approved_by": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist, or does not belong to its parent.

    Args:
        resource: Human-readable entity name (e.g. "Initiative", "Checklist item").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)

    @property
    def public_message(self) -> str:
        return f"{self.resource} not found"


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule in the service layer.

    Distinct from HTTP 400 (malformed input, caught in blueprint). Examples:
    approving a stage without an approver name, signing off a scope of work
    that lacks one of its approvals.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would violate a uniqueness rule.

    Maps to HTTP 409.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)
