"""
Core application utilities for settings, logging, errors and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with correlation ids
- Domain error types mapped to HTTP responses
- Dependency helpers (DB session, AI client)
"""
