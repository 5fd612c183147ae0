"""Formloom API - FastAPI Application Entry Point."""

import logging
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from formloom_api import __version__
from formloom_api.config.env import get_cors_allowed_origins, get_log_level, json_logs_enabled
from formloom_api.context import organization_id_var, request_id_var, user_id_var
from formloom_api.middleware import LoggingRedactionMiddleware, get_safe_headers
from formloom_api.pricing.problem_details import QuotaExceededError, create_problem_details_response
from formloom_api.routers import (
    ai,
    forms,
    health,
    organizations,
    public_forms,
    responses,
    templates,
    workspaces,
)
from formloom_api.schemas import ProblemDetail
from formloom_api.utils import configure_json_logging

PROBLEM_TYPE_BASE = "https://api.formloom.app/problems"

app = FastAPI(
    title="Formloom API",
    description="Multi-tenant form builder with AI-assisted form generation and RFC 9457 error handling.",
    version=__version__,
)

# Structured JSON logging
# Set FORMLOOM_JSON_LOGS=false to disable (defaults to true)
if json_logs_enabled():
    configure_json_logging(log_level=get_log_level())
    logger = logging.getLogger(__name__)
    logger.info("Structured JSON logging enabled")

# CORS: credentials mode cannot use wildcard origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

app.add_middleware(LoggingRedactionMiddleware)


def _instance() -> str:
    """Opaque problem instance built from the request id."""
    request_id = request_id_var.get()
    return f"urn:formloom:trace:{request_id}" if request_id else f"urn:formloom:trace:{uuid.uuid4()}"


# ============================================================================
# HTTP Request Completion Logging Middleware
# ============================================================================


@app.middleware("http")
async def http_completion_logging_middleware(request: Request, call_next):
    """Log every HTTP request completion.

    - Every HTTP request emits "http.request.completed"
    - Fields: method, path, status_code, duration_ms (+ context vars)
    - Logs even on exceptions (status_code=500)
    - Clears per-request contextvars at start and end
    """
    user_id_var.set("")
    organization_id_var.set("")

    start_time = time.perf_counter()
    status_code = 500  # Default to 500 in case of unhandled exception

    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000

        logging.getLogger(__name__).info(
            "http.request.completed",
            extra={
                "event": "http.request.completed",
                "method": request.method,
                "path": request.url.path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

        user_id_var.set("")
        organization_id_var.set("")


# ============================================================================
# Request ID Middleware (MUST BE OUTERMOST)
# ============================================================================


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Generate and propagate request_id for observability.

    - Accepts X-Request-ID header from client (optional)
    - Generates new UUID if not provided
    - Sets context variable for logging
    - Returns X-Request-ID in response headers

    Registered last so it is the outermost middleware and the context
    variable is set before inner middlewares run.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request_id_var.set(request_id)

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# RFC 9457 Global Exception Handlers
# ============================================================================


@app.exception_handler(QuotaExceededError)
async def quota_exceeded_handler(request: Request, exc: QuotaExceededError) -> JSONResponse:
    """AI usage gate rejection with the violated-policies extension."""
    problem = exc.problem
    return create_problem_details_response(
        type_uri=problem.type,
        title=problem.title,
        status=problem.status,
        detail=problem.detail,
        instance=_instance(),
        violated_policies=problem.violated_policies,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with RFC 9457 Problem Details format.

    Returns application/problem+json with top-level RFC 9457 fields.
    No {"detail": ...} wrapper. Handler-set headers (WWW-Authenticate) are kept.
    """
    detail_value = exc.detail if exc.detail is not None else _get_title_for_status(exc.status_code)

    problem = ProblemDetail(
        type=f"{PROBLEM_TYPE_BASE}/http-{exc.status_code}",
        title=_get_title_for_status(exc.status_code),
        status=exc.status_code,
        detail=detail_value,
        instance=_instance(),
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with RFC 9457 Problem Details format.

    Invalid input is a 400 Bad Request for every endpoint.
    """
    errors = exc.errors()
    first_error = errors[0] if errors else {}
    field = ".".join(str(loc) for loc in first_error.get("loc", []))
    msg = first_error.get("msg", "Validation error")

    problem = ProblemDetail(
        type=f"{PROBLEM_TYPE_BASE}/validation-error",
        title="Request Validation Failed",
        status=status.HTTP_400_BAD_REQUEST,
        detail=f"Invalid field '{field}': {msg}",
        instance=_instance(),
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with RFC 9457 Problem Details format."""
    problem = ProblemDetail(
        type=f"{PROBLEM_TYPE_BASE}/internal-error",
        title="Internal Server Error",
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred. Please try again later.",
        instance=_instance(),
    )

    logging.getLogger(__name__).error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={
            "event": "http.unhandled_exception",
            "path": request.url.path,
            "headers": get_safe_headers(request),
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


def _get_title_for_status(status_code: int) -> str:
    """Get human-readable title for HTTP status code."""
    titles = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        405: "Method Not Allowed",
        409: "Conflict",
        500: "Internal Server Error",
        502: "Bad Gateway",
        503: "Service Unavailable",
    }
    return titles.get(status_code, f"HTTP {status_code}")


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(organizations.router)
app.include_router(workspaces.router)
app.include_router(forms.router)
app.include_router(responses.router)
app.include_router(public_forms.router)
app.include_router(ai.router)
app.include_router(templates.router)
