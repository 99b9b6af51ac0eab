from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import inspect

from envshare.config import settings
from envshare.database import engine
from envshare.errors import VaultError, error_response
from envshare.logging_config import setup_logging
from envshare.middleware.logging import LoggingMiddleware
from envshare.middleware.rate_limit import limiter
from envshare.routers import health, secrets
from envshare.scheduler import shutdown_scheduler, start_scheduler

# Database tables are managed by Alembic migrations
# Run: alembic upgrade head

REQUIRED_TABLES = frozenset({"secrets", "api_keys"})

logger = structlog.get_logger()


def check_database_tables() -> None:
    """Refuse to start against a database that has not been migrated."""
    existing = set(inspect(engine).get_table_names())
    missing = sorted(REQUIRED_TABLES - existing)
    if missing:
        raise RuntimeError(
            f"Database tables missing: {', '.join(missing)}. Run `alembic upgrade head` first."
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging, verify the schema, and run the sweep scheduler."""
    setup_logging()
    check_database_tables()
    if settings.sweep_scheduler_enabled:
        start_scheduler()
    yield
    shutdown_scheduler()


app = FastAPI(
    title="EnvShare",
    description="Share encrypted secrets that expire after a number of reads or a time window",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Vault errors map to responses in one place
app.add_exception_handler(VaultError, error_response)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", error_type=type(exc).__name__, exc_info=exc)
    response = JSONResponse(
        status_code=500,
        content={"status": 500, "message": "Internal Server Error"},
    )
    # Runs outside LoggingMiddleware, so the header is added here
    correlation_id = structlog.contextvars.get_contextvars().get("correlation_id")
    if correlation_id:
        response.headers["X-Correlation-ID"] = correlation_id
    return response


# Request logging with correlation IDs
app.add_middleware(LoggingMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Routers
app.include_router(health.router, prefix="/v1", tags=["health"])
app.include_router(secrets.router, prefix="/v1", tags=["secrets"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
