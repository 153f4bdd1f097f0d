from __future__ import annotations

from typing import Any, Optional


class ServiceError(Exception):
    """
    Base class for business-rule failures raised by the service layer.

    The message is the human readable text returned to API clients; the
    exception handlers in precast_erp.api.main map each subclass to a status code.
    """

    status_code: int = 400
    error_type: str = "service_error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailedError(ServiceError):
    """Input is missing or inconsistent."""

    error_type = "validation_error"


class NotFoundError(ServiceError):
    """A referenced record does not exist."""

    status_code = 404
    error_type = "not_found"


class ConflictError(ServiceError):
    """Duplicate record or a state transition that is not allowed."""

    status_code = 409
    error_type = "conflict"


class AIServiceError(ServiceError):
    """The external AI service failed or returned a non-success response."""

    status_code = 502
    error_type = "ai_service_error"
