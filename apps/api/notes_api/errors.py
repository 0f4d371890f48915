"""Application exception types."""

from typing import Any

from notes_api.schemas.error import ErrorResponse, ValidationErrorDetail


class ApiError(Exception):
    """Structured API error rendered as the ``{success: false, ...}`` envelope."""

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        error: ValidationErrorDetail | None = None,
        headers: dict[str, Any] | None = None,
    ) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(message=message, error=error)
        self.headers = headers
        super().__init__(message)


def not_found(message: str = "Resource not found") -> ApiError:
    return ApiError(status_code=404, message=message)


__all__ = ["ApiError", "not_found"]
