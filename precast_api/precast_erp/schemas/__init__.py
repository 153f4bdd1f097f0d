"""
Public Pydantic schemas used by FastAPI routes, services, and tests.

Schemas are grouped by business module (contacts, hr, purchasing, ...) next to
the shared envelopes in `common`.
"""

from .common import ErrorResponse, MessageResponse  # noqa: F401
