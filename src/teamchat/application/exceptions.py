from __future__ import annotations


class AppError(Exception):
    """Base application error.

    ``status_code`` and ``code`` describe how the error reaches an HTTP client:
    the body is ``{"detail": ..., "code": ...}``.
    """

    status_code = 500
    code = "internal_error"

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"


class ConflictError(AppError):
    """An idempotency token was replayed with a different message."""

    status_code = 409
    code = "idempotency_conflict"


class ValidationError(AppError):
    status_code = 422
    code = "invalid_message"


class ProtocolError(AppError):
    """Malformed realtime control message. Logged and dropped, never sent back."""

    status_code = 400
    code = "protocol_error"
