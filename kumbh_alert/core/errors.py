"""
Domain error taxonomy.

Every error raised by the store, engines and services derives from
AlertHubError. The HTTP layer maps them to responses through the
`status_code` attribute; nothing in the core retries on any of them.
"""

from typing import Optional


class AlertHubError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(AlertHubError):
    """A referenced record id does not exist (or has disappeared)."""

    status_code = 404
    default_message = "Record not found"


class InvalidMatch(AlertHubError):
    """Business-rule violation in lost/found pairing or person correlation."""

    status_code = 400
    default_message = "Invalid match"


class InvalidTransition(AlertHubError):
    """Lifecycle step not allowed from the record's current status."""

    status_code = 409
    default_message = "Invalid status transition"


class ValidationFailed(AlertHubError):
    """Business validation that pydantic cannot express (duplicate email, unknown QR code)."""

    status_code = 400
    default_message = "Validation failed"


class StaleRecord(AlertHubError):
    """A conditional write found the record changed since it was read."""

    status_code = 409
    default_message = "Record changed concurrently"


class Unauthorized(AlertHubError):
    """Missing or invalid credentials, or a deactivated account."""

    status_code = 401
    default_message = "Not authorized"


class Forbidden(AlertHubError):
    """Actor's role is not allowed to perform the action."""

    status_code = 403
    default_message = "Forbidden"


class StoreTimeout(AlertHubError):
    """A store operation exceeded the caller-imposed deadline."""

    status_code = 504
    default_message = "Database operation timeout"


class StoreUnavailable(AlertHubError):
    """The underlying persistence layer is unreachable."""

    status_code = 503
    default_message = "Database not available"


class PartialMatchError(AlertHubError):
    """
    A lost/found pairing was only half applied.

    `rolled_back` tells the operator whether the first record was restored.
    When it is False, `first_id` still points at `second_id` and needs
    manual reconciliation.
    """

    status_code = 500
    default_message = "Pairing partially applied"

    def __init__(self, first_id: str, second_id: str, rolled_back: bool, cause: Optional[Exception] = None):
        self.first_id = first_id
        self.second_id = second_id
        self.rolled_back = rolled_back
        self.cause = cause
        state = "rolled back" if rolled_back else "NOT rolled back, manual reconciliation required"
        super().__init__(
            f"Pairing {first_id} <-> {second_id} failed on the second update ({state}): {cause}"
        )
