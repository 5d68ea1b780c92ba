"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.routes import courses, streaks, study_plans, tasks
from app.config import settings
from app.core.errors import ConflictError, DomainError, UpstreamError
from app.db.exceptions import ConnectionError as DatabaseConnectionError
from app.middleware.rate_limiter import limiter, rate_limit_exceeded_handler
from app.middleware.request_id import RequestIdFilter, RequestIDMiddleware
from app.models.envelope import ApiError, error_response
from app.services.redis_client import close_redis, get_redis

logger = logging.getLogger(__name__)

# Configure logging format based on dev_mode
if not settings.dev_mode:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='{"time":"%(asctime)s","level":"%(levelname)s","name":"%(name)s",'
               '"request_id":"%(request_id)s","message":"%(message)s"}',
    )
else:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s",
    )

for _handler in logging.getLogger().handlers:
    _handler.addFilter(RequestIdFilter())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    yield
    # Shutdown
    await close_redis()  # Close Redis connection pool

app = FastAPI(
    title="Engine Board API",
    description="Streaks and adaptive exam study plans for students",
    version="0.1.0",
    openapi_url="/api/v1/openapi.json",
    docs_url="/docs" if settings.dev_mode else None,
    redoc_url="/redoc" if settings.dev_mode else None,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Security headers middleware
# ---------------------------------------------------------------------------

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if not settings.dev_mode:
            response.headers["Strict-Transport-Security"] = (
                "max-age=63072000; includeSubDomains"
            )
        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIDMiddleware)


# ---------------------------------------------------------------------------
# Global exception handlers
# ---------------------------------------------------------------------------

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(DomainError)
async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    data = None
    if isinstance(exc, UpstreamError):
        logger.error("Upstream failure on %s %s: %s", request.method, request.url.path, exc.detail)
    elif isinstance(exc, ConflictError):
        data = exc.payload
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(
            error_response([ApiError(code=exc.code, message=exc.message, field=exc.field)], data=data)
        ),
    )


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        ApiError(
            code="VALIDATION_ERROR",
            message=err.get("msg", "Invalid value"),
            field=".".join(str(part) for part in err.get("loc", ())[1:]) or None,
        )
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content=error_response(errors))


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    codes = {401: "UNAUTHORIZED", 403: "FORBIDDEN", 404: "NOT_FOUND", 405: "METHOD_NOT_ALLOWED"}
    code = codes.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response([ApiError(code=code, message=str(exc.detail))]),
        headers=exc.headers,
    )


@app.exception_handler(DatabaseConnectionError)
async def _database_unavailable_handler(request: Request, exc: DatabaseConnectionError) -> JSONResponse:
    logger.error("Database unavailable on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content=error_response([ApiError(code="SERVICE_UNAVAILABLE", message="Database unavailable")]),
    )


@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=True)
    detail = str(exc) if settings.dev_mode else "Internal server error"
    return JSONResponse(
        status_code=500,
        content=error_response([ApiError(code="INTERNAL_ERROR", message=detail)]),
    )


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
)


# ---------------------------------------------------------------------------
# Routers: all under /api/v1/
# ---------------------------------------------------------------------------

app.include_router(streaks.router, prefix="/api/v1/streaks", tags=["streaks"])
app.include_router(study_plans.router, prefix="/api/v1/study-plans", tags=["study-plans"])
app.include_router(courses.router, prefix="/api/v1/courses", tags=["courses"])
app.include_router(tasks.router, prefix="/api/v1/tasks", tags=["tasks"])

# ---------------------------------------------------------------------------
# System endpoints
# ---------------------------------------------------------------------------


@app.get("/health")
async def health_check() -> dict:
    """Liveness check: verifies the API process is alive."""
    return {
        "status": "healthy",
        "services": {
            "llm_api": "ok" if settings.perplexity_api_key else "not_configured",
            "email": "ok" if settings.resend_api_key else "not_configured",
        },
    }


@app.get("/health/ready")
async def readiness_check() -> JSONResponse:
    """Readiness check: verifies DB and Redis are reachable."""
    checks: dict[str, str] = {}

    # Check database
    try:
        from app.db.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception:
        checks["database"] = "unavailable"

    # Check Redis
    try:
        redis_client = await get_redis()
        await redis_client.ping()
        checks["redis"] = "ok"
    except Exception:
        checks["redis"] = "unavailable"

    all_ok = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ready" if all_ok else "degraded", "services": checks},
    )


@app.get("/api/v1/version")
async def version() -> dict:
    """Return build / version metadata."""
    return {
        "version": app.version,
        "title": app.title,
        "api_prefix": "/api/v1",
    }
