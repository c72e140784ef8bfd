"""
LensCritique Backend: FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers;
       lifespan() owns logging setup and the shared clients.
Who:   uvicorn (`uvicorn app.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware: RequestID → RateLimit → Logging → GZip → CORS   │
    │                                                              │
    │  Routes:  /api/auth  /api/navigation  /api/onboarding        │
    │           /api/feed  /api/posts  /api/profile  /api/admin    │
    │           /health                                            │
    │                                                              │
    │  Collaborators (managed backend):                            │
    │     Postgres (SQLAlchemy/asyncpg)   auth REST   storage REST │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config validation → auth-state listener
    Shutdown: listener removed → HTTP clients closed → engine disposed
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import dispose_engine
from app.exceptions import (
    AuthenticationRequiredError,
    DatabaseError,
    EmailNotConfirmedError,
    IdentityServiceError,
    LensCritiqueError,
    NotFoundError,
    OnboardingRequiredError,
    PermissionDeniedError,
    ProfileUnavailableError,
    SchemaMissingError,
    StorageError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import admin, auth, feed, health, navigation, onboarding, posts, profile
from app.services.identity import AuthChangeEvent, AuthSession, identity_client
from app.services.storage_service import object_storage

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Root logger to stdout at settings.log_level; quiets chatty libraries."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)


def log_auth_event(event: AuthChangeEvent, session: Optional[AuthSession]) -> None:
    if event is AuthChangeEvent.SIGNED_IN and session is not None:
        logger.info("Auth state: %s user=%s", event.value, session.user.id)
    else:
        logger.info("Auth state: %s", event.value)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("LensCritique Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: /health and the error responses explain the problem
        logger.error("Configuration error: %s", e)

    subscription = identity_client.on_auth_state_change(log_auth_event)

    logger.info("Backend: %s (bucket '%s')", settings.backend_url, settings.storage_bucket)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("LensCritique Backend shutting down...")
    subscription.unsubscribe()
    await identity_client.aclose()
    await object_storage.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    redirect_to: Optional[str] = None,
    dismissible: bool = True,
    remediation: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
        "dismissible": dismissible,
    }
    if details:
        content["details"] = details
    if redirect_to:
        content["redirect_to"] = redirect_to
    if remediation:
        content["remediation"] = remediation
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy onto HTTP responses.

        ValidationError              → 400 validation_error
        AuthenticationRequiredError  → 401 authentication_required (→ /auth)
        EmailNotConfirmedError       → 401 email_not_confirmed
        OnboardingRequiredError      → 403 onboarding_required (→ /onboarding)
        PermissionDeniedError        → 403 permission_denied (sticky, → /admin)
        NotFoundError                → 404 not_found
        RateLimitExceededError       → 429, built by RateLimitMiddleware
        DatabaseError                → 500 server_error (generic message)
        StorageError                 → 502 storage_error
        IdentityServiceError         → upstream 4xx or 502, identity_error
        SchemaMissingError           → 503 schema_missing (sticky)
        ProfileUnavailableError      → 503 profile_unavailable
        LensCritiqueError / Exception→ 500

    Internal details (SQL, stack traces) are logged, never returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return error_response(400, "validation_error", exc.message, details=exc.context)

    @app.exception_handler(EmailNotConfirmedError)
    async def handle_email_not_confirmed(request: Request, exc: EmailNotConfirmedError):
        return error_response(
            401, "email_not_confirmed", exc.message, details={"type": "confirmation"}
        )

    @app.exception_handler(AuthenticationRequiredError)
    async def handle_authentication_required(request: Request, exc: AuthenticationRequiredError):
        return error_response(
            401, "authentication_required", exc.message, redirect_to=exc.redirect_to
        )

    @app.exception_handler(OnboardingRequiredError)
    async def handle_onboarding_required(request: Request, exc: OnboardingRequiredError):
        return error_response(
            403, "onboarding_required", exc.message, redirect_to=exc.redirect_to
        )

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.warning("[%s] Policy denial: %s", request_id_var.get(""), exc.message)
        return error_response(
            403,
            "permission_denied",
            exc.message,
            details=exc.context,
            dismissible=False,
            remediation=exc.remediation,
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(404, "not_found", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return error_response(
            500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        logger.error(
            "[%s] Storage error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return error_response(502, "storage_error", exc.message)

    @app.exception_handler(IdentityServiceError)
    async def handle_identity_error(request: Request, exc: IdentityServiceError):
        return error_response(exc.status_code, "identity_error", exc.message)

    @app.exception_handler(SchemaMissingError)
    async def handle_schema_missing(request: Request, exc: SchemaMissingError):
        logger.error("[%s] %s", request_id_var.get(""), exc.message)
        return error_response(
            503,
            "schema_missing",
            exc.message,
            details={"table": exc.table},
            dismissible=False,
        )

    @app.exception_handler(ProfileUnavailableError)
    async def handle_profile_unavailable(request: Request, exc: ProfileUnavailableError):
        return error_response(503, "profile_unavailable", exc.message)

    @app.exception_handler(LensCritiqueError)
    async def handle_app_error(request: Request, exc: LensCritiqueError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), exc, exc_info=True)
        return error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="LensCritique API",
        description=(
            "Peer photo critique: publish photos, collect structured ratings "
            "and feedback, and unlock live posting by reviewing others first."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware ────────────────────────────────────────────────────────
    # Last added runs first: RequestID → RateLimit → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(navigation.router)
    app.include_router(onboarding.router)
    app.include_router(feed.router)
    app.include_router(posts.router)
    app.include_router(profile.router)
    app.include_router(admin.router)
    app.include_router(health.router)

    return app


app = create_app()
