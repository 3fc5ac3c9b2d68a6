"""
BuildMarket Backend: FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires settings, the Database, the services, middleware,
       exception handlers and routers. Everything a handler needs hangs off
       app.state, so tests build an app around an in-memory database.
Who:   uvicorn (uvicorn buildmarket.main:app) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │  Middleware:  RateLimit → RequestID → Logging → GZip/CORS│
    │  Routes:      /health  /api/playstyle  /api/compatibility│
    │               /api/profiles  /api/builds  /api/users     │
    │               /api/leaderboard  /api/admin               │
    │  app.state:   settings, database, *_service              │
    │  Handlers:    400 │ 403 │ 404 │ 409 │ 429 │ 500 │ 503     │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   logging → config check → wait for the database (tenacity)
    Shutdown:  dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from buildmarket import __version__
from buildmarket.config import Settings, settings as default_settings
from buildmarket.database import Database
from buildmarket.exceptions import (
    BuildMarketError,
    ConflictError,
    DatabaseError,
    DatabaseUnavailableError,
    ForbiddenError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
)
from buildmarket.middleware.logging import RequestLoggingMiddleware
from buildmarket.middleware.rate_limit import RateLimitMiddleware
from buildmarket.middleware.request_id import RequestIDMiddleware, request_id_var
from buildmarket.routes import (
    admin,
    builds,
    compatibility,
    health,
    leaderboard,
    profiles,
    users,
)
from buildmarket.services.build_service import BuildService
from buildmarket.services.moderation_service import ModerationService
from buildmarket.services.profile_service import ProfileService
from buildmarket.services.purchase_service import PurchaseService
from buildmarket.services.review_service import ReviewService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure root logging once for the process.

    Format: 2024-01-15T12:00:00 [INFO] buildmarket.access: GET /api/builds 200 ...
    Docker captures stdout, so that's the only handler.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app_settings: Settings = app.state.settings
    database: Database = app.state.database

    setup_logging(app_settings.log_level)
    logger.info("=" * 60)
    logger.info("BuildMarket Backend %s starting up...", __version__)

    try:
        app_settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: health checks and the public feed still work
        logger.error("Configuration error: %s", str(e))

    try:
        await database.wait_until_ready(
            max_attempts=app_settings.db_connect_max_attempts,
            min_wait=app_settings.db_connect_min_wait,
            max_wait=app_settings.db_connect_max_wait,
        )
    except DatabaseUnavailableError as e:
        # Keep serving so /health can report "disconnected" to the orchestrator
        logger.error("Starting without a database: %s", e.message)

    logger.info("Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("BuildMarket Backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the BuildMarketError hierarchy onto HTTP responses.

    Handler hierarchy:
        ValidationError           → 400
        ForbiddenError            → 403
        NotFoundError             → 404
        ConflictError             → 409
        RateLimitExceededError    → 429 (+ Retry-After)
        DatabaseError             → 500 (generic message)
        DatabaseUnavailableError  → 503 (+ Retry-After)
        BuildMarketError (base)   → 500
        Exception (fallback)      → 500

    Internal details (SQL, driver errors, stack traces) are logged, never
    returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        logger.warning("[%s] Forbidden %s %s", request_id_var.get(""), request.method, request.url.path)
        return _error_response(403, "forbidden", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(409, "conflict", exc.message, exc.context)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return _error_response(
            429,
            "rate_limit_exceeded",
            exc.message,
            exc.context,
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context
        )
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(DatabaseUnavailableError)
    async def handle_database_unavailable(request: Request, exc: DatabaseUnavailableError):
        logger.error("[%s] Database unavailable: %s", request_id_var.get(""), exc.context)
        return _error_response(
            503, "service_unavailable", exc.message, headers={"Retry-After": "30"}
        )

    @app.exception_handler(BuildMarketError)
    async def handle_app_error(request: Request, exc: BuildMarketError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Assemble the application.

    Args:
        settings: Defaults to the environment-loaded settings.
        database: Defaults to Database.from_settings(settings). Tests pass an
                  in-memory SQLite database here.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="BuildMarket API",
        description=(
            "Marketplace for sports-game player builds. Buyers browse listings "
            "ranked by how well each build matches their playstyle."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Set here, not in lifespan: test transports don't always run lifespan events
    profile_service = ProfileService()
    review_service = ReviewService()
    app.state.settings = settings
    app.state.database = database or Database.from_settings(settings)
    app.state.profile_service = profile_service
    app.state.review_service = review_service
    app.state.build_service = BuildService(profiles=profile_service, reviews=review_service)
    app.state.purchase_service = PurchaseService()
    app.state.moderation_service = ModerationService()

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
    )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(compatibility.router)
    app.include_router(profiles.router)
    app.include_router(builds.router)
    app.include_router(users.router)
    app.include_router(leaderboard.router)
    app.include_router(admin.router)

    return app


# uvicorn buildmarket.main:app
app = create_app()
