"""
Domain Error Taxonomy

Every error raised by the order lifecycle carries the HTTP status it maps to
and a short machine-readable code, so the API layer and the kitchen client
agree on how a failure is reported without string matching.
"""

from typing import Any, Optional


class OrderingError(Exception):
    """Base class for all order lifecycle errors."""

    status_code: int = 500
    code: str = "error"

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(OrderingError):
    """Malformed or missing required input."""

    status_code = 400
    code = "validation_error"


class NotFoundError(OrderingError):
    """Unknown or inactive restaurant, or unknown order id."""

    status_code = 404
    code = "not_found"


class InvalidTransitionError(OrderingError):
    """Requested status change is not legal from the current status."""

    status_code = 400
    code = "invalid_transition"

    def __init__(
        self,
        current: Optional[str],
        requested: Optional[str],
        message: Optional[str] = None,
    ):
        self.current = getattr(current, "value", current)
        self.requested = getattr(requested, "value", requested)
        super().__init__(
            message or f"Cannot move order from {self.current} to {self.requested}",
            detail={"current": self.current, "requested": self.requested},
        )


class AuthorizationError(OrderingError):
    """Caller is not allowed to act on the requested restaurant."""

    status_code = 403
    code = "forbidden"


class TransportError(OrderingError):
    """Network failure, timeout or server error seen by a client."""

    status_code = 503
    code = "transport_error"
