"""
api/main.py -- FastAPI application entry point for the Civic Auth service.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for configured browser origins
  3. log_requests          -- one log line per request with latency

Lifespan reads Settings once and builds every collaborator explicitly:
  engine -> UserStore + LoginHistoryStore -> PasswordHasher + TokenService
         -> AuthService -> optional admin seed
All of it hangs off app.state; route handlers and the auth gate read from there.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorResponse, HealthResponse, IssueDetail
from api.routes.admin import router as admin_router
from api.routes.auth import router as auth_router
from auth.passwords import PasswordHasher
from auth.schemas import issues_from_errors
from auth.service import AuthService
from auth.store import LoginHistoryStore, UserStore, make_engine
from auth.tokens import TokenService
from core.config import get_settings
from core.errors import AppError, UnauthorizedError, ValidationError

API_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("civicauth.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the auth collaborators on startup; dispose the engine on shutdown.

    Startup order matters:
      1. Engine + schema -- both stores share it so the FK holds.
      2. Hasher + token service -- plain values from Settings, passed in once.
      3. AuthService -- login history always wired in the running app.
      4. Admin seed last -- needs the service.
    """
    settings = get_settings()
    logger.info("Civic Auth API starting up")

    engine = make_engine(settings.database_url)
    user_store = UserStore(engine)
    app.state.user_store = user_store
    app.state.history_store = LoginHistoryStore(engine)
    app.state.tokens = TokenService(settings.secret_key)
    app.state.auth_service = AuthService(
        users=user_store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        tokens=app.state.tokens,
        history=app.state.history_store,
    )
    logger.info("Auth initialized (database=%s)", engine.url.render_as_string(hide_password=True))

    if settings.admin_bootstrap_enabled:
        try:
            created = app.state.auth_service.ensure_admin(
                settings.admin_email, settings.admin_password, settings.admin_name
            )
        except ValidationError as exc:
            logger.error(
                "Refusing to start: ADMIN_* settings rejected (%s)", ", ".join(i.field for i in exc.issues)
            )
            raise
        if created:
            logger.info("Seeded admin account %s", settings.admin_email.lower())
        else:
            logger.info("Admin account %s already present", settings.admin_email.lower())

    yield

    user_store.close()
    logger.info("Civic Auth API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Civic Auth API",
    description="Sign-up, login and role-based NGO provisioning.",
    version=API_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        # Unhandled errors re-raise out of call_next; they still get a line, as a 500.
        ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms %s",
            request.method,
            request.url.path,
            status_code,
            ms,
            request.client.host if request.client else "unknown",
        )


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(admin_router, prefix="/api", tags=["Admin"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope: {"error", "code"} plus
# "issues" for validation failures. Clients can always read body["error"].
# ---------------------------------------------------------------------------


def _error_response(status_code: int, body: ErrorResponse, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True), headers=headers)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a typed auth-core error with its own status code."""
    issues = None
    if isinstance(exc, ValidationError):
        issues = [IssueDetail.from_issue(i) for i in exc.issues]
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    if exc.status_code >= 500:
        logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc)
    return _error_response(
        exc.status_code,
        ErrorResponse(error=exc.message, code=exc.code, issues=issues),
        headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with per-field issues when FastAPI rejects a body or query param."""
    issues = [IssueDetail.from_issue(i) for i in issues_from_errors(list(exc.errors()))]
    return _error_response(400, ErrorResponse(error="Invalid request", code="validation_error", issues=issues))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return the standard envelope for framework-level HTTP errors (404, 405...)."""
    return _error_response(
        exc.status_code,
        ErrorResponse(error=str(exc.detail), code=f"http_{exc.status_code}"),
        getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log only. The exception text is echoed in the
    body in debug mode; production clients get the generic message.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    detail = str(exc) if get_settings().debug else None
    return _error_response(
        500,
        ErrorResponse(error="An unexpected error occurred.", code="internal_error", detail=detail),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"], response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    """Return liveness, version and database reachability."""
    database_ok = request.app.state.user_store.ping()
    return HealthResponse(version=API_VERSION, database="ok" if database_ok else "error")
