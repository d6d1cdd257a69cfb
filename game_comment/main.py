from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pythonjsonlogger import jsonlogger
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import routes_admin, routes_public
from .auth.routes_auth import router as auth_router
from .auth.seed import seed_admin
from .config import Settings, get_settings
from .database import engine
from .rate_limit import PageRateLimiter
from .schemas import HealthResponse
from .tenancy import TenantSchema, init_schema

__version__ = "1.0.0"

log = logging.getLogger("game_comment")

# ---------------------------------------------------------------------------
# Structured logging
# ---------------------------------------------------------------------------

_LOG_HANDLER_NAME = "game_comment.stdout"


def _configure_logging(settings: Settings) -> None:
    """Configure structured JSON logging when log_format=json (default)."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    if any(h.get_name() == _LOG_HANDLER_NAME for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_LOG_HANDLER_NAME)
    if settings.log_format == "json":
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                "%(asctime)s %(name)s %(levelname)s %(message)s",
                rename_fields={"asctime": "timestamp", "levelname": "level"},
            )
        )
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root.addHandler(handler)


# ---------------------------------------------------------------------------
# Startup bootstrap: best effort; request handlers report anything missing
# ---------------------------------------------------------------------------

def bootstrap(tenant: TenantSchema, settings: Settings) -> None:
    try:
        init_schema(engine, tenant)
    except Exception as exc:
        log.error("Database initialisation failed for project %s: %s", tenant.prefix, exc)
        return
    try:
        seed_admin(tenant, settings.admin_password)
    except Exception as exc:
        log.error("Admin seeding failed for project %s: %s", tenant.prefix, exc)


# ---------------------------------------------------------------------------
# Error envelope: every failure answers {"message": ...}
# ---------------------------------------------------------------------------

def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    err = errors[0]
    if err.get("type") == "value_error" and err.get("ctx", {}).get("error") is not None:
        return str(err["ctx"]["error"])
    loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
    field = ".".join(loc)
    return f"{field}: {err.get('msg')}" if field else str(err.get("msg"))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": _validation_message(exc)})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error."})


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app(settings: Optional[Settings] = None, *, run_bootstrap: bool = True) -> FastAPI:
    """
    Build the API for one tenant.

    The tenant prefix and rate limiter belong to the returned app
    (``app.state``); the database engine is process-wide.
    """
    settings = settings or get_settings()
    _configure_logging(settings)

    tenant = TenantSchema.for_prefix(settings.project_prefix)
    log.info("Using project prefix: %s", tenant.prefix)
    if run_bootstrap:
        bootstrap(tenant, settings)

    app = FastAPI(
        title="Game Comment API",
        version=__version__,
        description="Comments and ratings for embeddable web games, with an admin dashboard API.",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.tenant = tenant
    app.state.limiter = PageRateLimiter.from_settings(settings)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    app.include_router(auth_router)
    app.include_router(routes_admin.router)
    app.include_router(routes_public.router)

    @app.get("/health", response_model=HealthResponse, tags=["meta"])
    def health() -> HealthResponse:
        return HealthResponse(
            status="ok",
            timestamp=datetime.now(timezone.utc),
            message="Game comment API is running.",
        )

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the module-level app with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level)
