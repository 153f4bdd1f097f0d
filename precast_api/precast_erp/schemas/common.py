from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ORMRead(BaseModel):
    """Read model built from a mapped row: id plus the audit timestamps every table carries."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime = Field(..., description="UTC")
    updated_at: datetime = Field(..., description="UTC")


class MessageResponse(BaseModel):
    message: str


class ErrorInfo(BaseModel):
    type: str = Field(
        ...,
        description="validation_error | not_found | conflict | service_error | ai_service_error | http_error | internal_error",
    )
    message: str
    details: Optional[Any] = Field(default=None, description="Field errors, upstream status or other context")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Body of every non-2xx response produced by the exception handlers in api.main."""
    status: int
    error: ErrorInfo
    correlation_id: Optional[str] = Field(default=None, description="Echo of the X-Correlation-ID header")
    path: Optional[str] = None
    method: Optional[str] = None
    timestamp: datetime
