from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from precast_erp.core.errors import ServiceError
from precast_erp.core.logging import configure_logging, correlation_id_var
from precast_erp.core.settings import get_app_settings
from precast_erp.db.run_migrations import main as run_alembic
from precast_erp.db.seed import seed_all
from precast_erp.schemas.common import ErrorInfo, ErrorResponse, MessageResponse

# Domain routers
from precast_erp.api.routes.contacts import router as contacts_router
from precast_erp.api.routes.drafting import router as drafting_router
from precast_erp.api.routes.estimates import router as estimates_router
from precast_erp.api.routes.hr import router as hr_router
from precast_erp.api.routes.projects import router as projects_router
from precast_erp.api.routes.purchasing import router as purchasing_router
from precast_erp.api.routes.quality import router as quality_router
from precast_erp.api.routes.reports import router as reports_router
from precast_erp.api.routes.sales import router as sales_router
from precast_erp.api.routes.shipping import router as shipping_router
from precast_erp.api.routes.yard import router as yard_router

settings = get_app_settings()

# Configure structured logging once at import
configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Liveness probe."},
    {"name": "Contacts", "description": "Customer and partner contacts, interactions, import/export."},
    {"name": "Estimating", "description": "Quantity take-offs, pricing and estimate PDFs."},
    {"name": "Projects", "description": "Projects, tasks, team members, budget and progress."},
    {"name": "Drafting", "description": "Drawings, revisions, markups, CAD and approval workflows."},
    {"name": "HR", "description": "Employees, time tracking, leave, certifications and training."},
    {"name": "Purchasing", "description": "Vendors, purchase orders and receiving."},
    {"name": "Yard", "description": "Yard locations, materials, movements and equipment."},
    {"name": "Quality", "description": "Pieces, inspections, defects, mix designs and tests."},
    {"name": "Shipping", "description": "Shipments, deliveries, drivers, vehicles and dispatches."},
    {"name": "Sales", "description": "Leads, opportunities, quotes and jobs."},
    {"name": "Reports", "description": "Exportable business reports (CSV/Excel/PDF)."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Put the request correlation_id in the logging context and the request state.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    token_corr = correlation_id_var.set(corr)
    request.state.correlation_id = corr

    started = time.perf_counter()
    try:
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
    finally:
        correlation_id_var.reset(token_corr)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    """
    Map business-rule failures from the service layer to their status code.
    """
    if exc.status_code >= 500:
        logger.error("Service failure on %s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    HTTPException from routes and unmatched paths (starlette base class), in the standard envelope.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=_validation_details(exc),
    )


def _validation_details(exc: RequestValidationError) -> list[dict]:
    # `input` and `ctx` may hold values that are not JSON serializable.
    return [{k: v for k, v in err.items() if k in ("type", "loc", "msg")} for err in exc.errors()]


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and optional seeding on service startup.

    This ensures the database schema is up to date. Seeding is opt-in via settings.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            # env.py drives its own event loop, so keep it off this one.
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except Exception as exc:
            logger.exception("Migration step failed: %s", exc)
            # Keep serving; readiness is judged by the health probe and later requests.

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)


# Build API v1 router and include sub-routers
api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


for domain_router in (
    contacts_router,
    estimates_router,
    projects_router,
    drafting_router,
    hr_router,
    purchasing_router,
    yard_router,
    quality_router,
    shipping_router,
    sales_router,
    reports_router,
):
    api_v1.include_router(domain_router)

# Attach api_v1 to app
app.include_router(api_v1)
