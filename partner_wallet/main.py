"""FastAPI application entry point."""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from redis.exceptions import RedisError

from partner_wallet.api import events_router, partners_router, transfers_router
from partner_wallet.config import get_settings
from partner_wallet.logging_config import configure_logging, get_logger
from partner_wallet.sessions import SessionRegistry
from partner_wallet.utils.db import close_db, engine, init_db
from partner_wallet.utils.errors import ErrorCode, TransferError
from partner_wallet.utils.json_utils import ORJSONResponse
from partner_wallet.utils.redis_client import close_redis, get_redis, init_redis

settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_logs=settings.app_env == "production",
    app_env=settings.app_env,
)
logger = get_logger(__name__)

API_V1_PREFIX = "/api/v1"


# =============================================================================
# Lifespan Events
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown of shared connections."""
    logger.info("application_starting", app_env=settings.app_env)

    await init_db()
    await init_redis()
    app.state.sessions = SessionRegistry()

    logger.info("application_started")
    yield

    closed = await app.state.sessions.close_all()
    await close_redis()
    await close_db()
    logger.info("application_stopped", sessions_closed=closed)


# =============================================================================
# Error Handlers
# =============================================================================

STATUS_BY_CODE = {
    ErrorCode.PARTNER_NOT_FOUND.value: status.HTTP_404_NOT_FOUND,
    ErrorCode.FORBIDDEN.value: status.HTTP_403_FORBIDDEN,
    ErrorCode.CONCURRENT_MODIFICATION.value: status.HTTP_409_CONFLICT,
    ErrorCode.PARTIAL_FAILURE.value: status.HTTP_409_CONFLICT,
}


def get_request_id(request: Request) -> str:
    return request.headers.get("X-Request-ID", str(uuid.uuid4()))


def create_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
) -> dict[str, Any]:
    """Create standardized error response."""
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
        "traceId": trace_id,
    }


async def transfer_error_handler(request: Request, exc: TransferError) -> ORJSONResponse:
    """Map transfer errors to HTTP responses."""
    trace_id = get_request_id(request)
    status_code = STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)

    logger.warning("transfer_error", code=exc.code, message=exc.message, trace_id=trace_id)

    content = create_error_response(
        code=exc.code,
        message=exc.message,
        details=exc.details,
        trace_id=trace_id,
    )
    content["error"]["recoverable"] = exc.recoverable
    return ORJSONResponse(status_code=status_code, content=content)


async def http_exception_handler(request: Request, exc: HTTPException) -> ORJSONResponse:
    """Handle HTTP exceptions."""
    trace_id = get_request_id(request)

    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = {**exc.detail, "traceId": trace_id}
    else:
        content = create_error_response(
            code="HTTP_ERROR",
            message=str(exc.detail),
            trace_id=trace_id,
        )

    return ORJSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TransferError, transfer_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)


app = FastAPI(
    title="Partner Wallet API",
    description="Hierarchical partner balance transfers",
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)
register_error_handlers(app)


# =============================================================================
# Health Check
# =============================================================================


@app.get("/health", tags=["Health"], summary="Health check endpoint")
async def health_check() -> dict[str, Any]:
    """Database and Redis connectivity."""
    health_status = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "database": "unknown",
            "redis": "disabled",
        },
    }

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["services"]["database"] = "healthy"
    except (SQLAlchemyError, OSError) as e:
        health_status["services"]["database"] = f"unhealthy: {e}"
        health_status["status"] = "degraded"
        logger.error("database_health_check_failed", error=str(e))

    current_redis = get_redis()
    if current_redis is not None:
        try:
            await current_redis.ping()
            health_status["services"]["redis"] = "healthy"
        except RedisError as e:
            health_status["services"]["redis"] = f"unhealthy: {e}"
            health_status["status"] = "degraded"
            logger.error("redis_health_check_failed", error=str(e))

    return health_status


app.include_router(transfers_router, prefix=API_V1_PREFIX)
app.include_router(partners_router, prefix=API_V1_PREFIX)
app.include_router(events_router, prefix=API_V1_PREFIX)
