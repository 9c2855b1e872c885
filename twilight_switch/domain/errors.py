from __future__ import annotations


class TwilightError(Exception):
    """Base for errors that map onto an HTTP response."""

    status_code = 500
    kind = "error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(TwilightError):
    status_code = 400
    kind = "validation_error"


class NotFoundError(TwilightError):
    status_code = 404
    kind = "not_found"


class ConflictError(TwilightError):
    # The dashboard expects 400 for "relay control while in AUTO"
    status_code = 400
    kind = "conflict"


class UnauthorizedError(TwilightError):
    status_code = 401
    kind = "unauthorized"


class InfrastructureError(TwilightError):
    status_code = 500
    kind = "infrastructure_error"
