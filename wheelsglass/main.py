"""
main.py — Wheels & Glass CRM application

Builds the FastAPI app: lifespan (logging, schema sync, technician
directory), request-id/security-header middleware, the shared error
envelope, session cookies, and the router mounts.

Called by: uvicorn (wheelsglass.main:app)
Depends on: config, logging_config, startup, routers/*, services/technician_service.py
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from . import background
from .config import APP_VERSION, settings
from .exceptions import CRMError
from .http_client import close_clients
from .logging_config import setup_logging
from .routers import activity, auth, customers, jobs, quotes, technicians, vin
from .schemas.errors import ErrorResponse
from .services.technician_service import build_directory
from .startup import run_startup_migrations


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    run_startup_migrations()
    app.state.technicians = build_directory()
    logger.info("Wheels & Glass CRM v{} started", APP_VERSION)
    yield
    await background.drain()
    await close_clients()


app = FastAPI(title="Wheels & Glass CRM", version=APP_VERSION, lifespan=lifespan)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    https_only=settings.is_production,
    same_site="lax",
)


# ── Request ID + security headers ────────────────────────────────────


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = uuid.uuid4().hex[:8]
    request.state.request_id = request_id
    start = time.perf_counter()
    with logger.contextualize(request_id=request_id):
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "{} {} → {} ({:.0f}ms)",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["X-API-Version"] = "v1"
    return response


# ── Error envelope ───────────────────────────────────────────────────


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "")


def _error(
    request: Request,
    status: int,
    error: str,
    details: list | None = None,
    headers: dict | None = None,
    **extra,
) -> JSONResponse:
    body = ErrorResponse(
        error=error, status_code=status, request_id=_request_id(request), details=details,
    ).model_dump()
    body.update(extra)
    return JSONResponse(status_code=status, content=body, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(request, exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(CRMError)
async def crm_error_handler(request: Request, exc: CRMError):
    return _error(request, exc.status_code, exc.message, exc.details, **getattr(exc, "extra", {}))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        details.append({
            "field": ".".join(loc) or "body",
            "message": str(err.get("msg", "")),
            "type": str(err.get("type", "")),
        })
    logger.info("Validation failed on {}: {}", request.url.path, details)
    return _error(request, 400, "Validation failed", details)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(
        "Unhandled error on {} {} [{}]", request.method, request.url.path, _request_id(request),
    )
    return _error(request, 500, "Internal server error", message=str(exc))


# ── Routes ───────────────────────────────────────────────────────────


@app.get("/health")
async def health():
    return {"status": "ok", "version": APP_VERSION}


app.include_router(auth.router)
app.include_router(quotes.router)
app.include_router(customers.router)
app.include_router(technicians.router)
app.include_router(jobs.router)
app.include_router(activity.router)
app.include_router(vin.router)
