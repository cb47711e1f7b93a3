"""Application error taxonomy

Every error raised on purpose by route handlers, services and realtime
handlers is an ``AppError``. The exception handlers registered in
``app.main`` translate them (and low-level library errors) into JSON
responses of the form ``{"detail": ..., "error_code": ...}``.
"""

from typing import Any, Optional


class AppError(Exception):
    """Operational error with an HTTP status and a stable error code"""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> dict:
        body = {"detail": self.message, "error_code": self.error_code}
        if self.details is not None:
            body["errors"] = self.details
        return body


class ValidationFailed(AppError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "INVALID_TOKEN"


class PermissionDenied(AppError):
    status_code = 403
    error_code = "INSUFFICIENT_PERMISSIONS"


class NotFoundError(AppError):
    status_code = 404
    error_code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    error_code = "CONFLICT"


class InvalidStatusTransition(ConflictError):
    error_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity: str, current: str, requested: str):
        super().__init__(
            f"Cannot change {entity} status from '{current}' to '{requested}'",
            details={"current": current, "requested": requested},
        )
        self.current = current
        self.requested = requested
