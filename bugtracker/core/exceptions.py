"""
Domain exception hierarchy.

Services raise these; the app-level error handlers registered in
``bugtracker.create_app`` turn them into structured JSON responses via
``bugtracker.utils.errors.api_error``.  Blueprints never build error bodies
for these cases themselves.

Usage:
    from bugtracker.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Bug", resource_id=bug_id)
    raise ValidationError("title is required", details={"title": "required"})
"""


class NotFoundError(Exception):
    """Raised when a referenced Project/Module/Bug/User id does not resolve.

    Args:
        resource: Human-readable entity name (e.g. "Project", "Bug").
        resource_id: The id that was looked up. Logged, not returned.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class ValidationError(Exception):
    """Raised when input is malformed, missing, or violates a write rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown; keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ForbiddenError(Exception):
    """Raised when the access policy or a transition guard denies the actor.

    Args:
        message: Reason shown to the caller.
        actor_id: Principal id, for logs only.
        action: Policy action that was denied, for logs only.
    """

    def __init__(self, message: str = "Forbidden", *, actor_id: str | None = None,
                 action: str | None = None) -> None:
        self.actor_id = actor_id
        self.action = action
        super().__init__(message)


class ConflictError(Exception):
    """Raised on a duplicate unique field or a stale ``from`` status.

    Args:
        message: Human-readable explanation.
        code: ``duplicate`` for unique-field clashes, ``state`` for a stale
              status precondition.
    """

    def __init__(self, message: str, *, code: str = "duplicate") -> None:
        self.code = code
        super().__init__(message)


class InvalidTransitionError(Exception):
    """Raised when the requested status change is not in the transition table."""

    def __init__(self, from_status: str, to_status: str) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid transition: {from_status} -> {to_status}")


class AuthenticationError(Exception):
    """Raised when credentials or a bearer token cannot be accepted."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)
