"""Structured error response schemas."""
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """A single rejected input field."""

    field: str
    rejected_value: Optional[Any] = None
    message: str


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""

    status: int
    error: str
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    path: str
    field_errors: Optional[list[FieldError]] = None
