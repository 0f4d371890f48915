"""API error response schemas."""

from typing import Any

from pydantic import BaseModel


class ValidationErrorDetail(BaseModel):
    key: str | None = None
    value: Any = None
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: ValidationErrorDetail | None = None
