"""FastAPI application entry point."""

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from crm.core.config import settings
from crm.core.errors import CRMError, ValidationFailed
from crm.core.logging_config import configure_logging
from crm.core.rate_limit import limiter
from crm.core.structured_logging import request_log_context
from crm.db.session import engine
from crm.schemas.common import error_body

configure_logging()
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,
    )
    logger.info("Sentry initialized for error tracking")

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Workspace CRM API",
    description="Multi-tenant CRM: workspaces, deals, checklists and task automation",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.state.limiter = limiter

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Requested-With", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Propagate or assign X-Request-ID."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ============================================================================
# Error handling
# ============================================================================


@app.exception_handler(CRMError)
async def crm_error_handler(request: Request, exc: CRMError):
    if exc.status_code in (401, 403):
        logger.info("%s: %s", exc.code, exc.message, extra=request_log_context(request))
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.details),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return await crm_error_handler(request, ValidationFailed(details=details))


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error: %s", exc.orig, extra=request_log_context(request))
    return JSONResponse(
        status_code=409,
        content=error_body("CONFLICT", "Conflicting record already exists"),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content=error_body("RATE_LIMITED", f"Rate limit exceeded: {exc.detail}"),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", extra=request_log_context(request))
    message = str(exc) if settings.expose_error_details else "Internal server error"
    return JSONResponse(status_code=500, content=error_body("INTERNAL_ERROR", message))


# ============================================================================
# Routers
# ============================================================================

from crm.routers import auth, chat, clients, deals, members, platform, tasks, workspaces  # noqa: E402

app.include_router(auth.router)
app.include_router(workspaces.router)
app.include_router(deals.router)
app.include_router(clients.router)
app.include_router(tasks.router)
app.include_router(members.router)
app.include_router(chat.router)

# Platform administration (global flag, separate from workspace roles)
app.include_router(platform.router)


# ============================================================================
# Health Check
# ============================================================================


@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
