"""
Sport Bar POS - FastAPI Backend Application
"""

import asyncio
import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app.cache import cache
from app.config import settings
from app.database import SessionLocal
from app.errors import AppError
from app.rate_limit import limiter
from app.realtime.manager import ConnectionManager
from app.realtime.relay import RealtimeRelay
from app.api import auth, categories, products, tables, orders, reports, realtime

logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def build_relay() -> RealtimeRelay:
    """Local delivery, or Redis fan out across API processes when enabled"""
    redis_client = cache.client if settings.realtime_fanout_enabled else None
    return RealtimeRelay(ConnectionManager(), redis_client, settings.realtime_channel)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Sport Bar POS API", version="1.0.0", environment=settings.environment)
    listener = None
    if app.state.relay.redis is not None:
        listener = asyncio.create_task(app.state.relay.listen())
    yield
    if listener is not None:
        listener.cancel()
    await cache.close()
    logger.info("Shutting down Sport Bar POS API")


# Create FastAPI application
app = FastAPI(
    title="Sport Bar POS",
    description="Point-of-sale backend for sport bars and restaurants",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.relay = build_relay()
app.state.limiter = limiter

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error translation
def request_context(request: Request) -> dict:
    return {"method": request.method, "path": request.url.path}


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("Application error", error_code=exc.error_code, error=exc.message, **request_context(request))
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation failed", "error_code": "VALIDATION_ERROR", "errors": errors},
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    message = str(exc.orig).lower()
    logger.warning("Integrity error", error=str(exc.orig), **request_context(request))
    if "unique" in message or "duplicate" in message:
        return JSONResponse(
            status_code=409,
            content={"detail": "Resource already exists", "error_code": "DUPLICATE_VALUE"},
        )
    if "foreign key" in message:
        return JSONResponse(
            status_code=400,
            content={"detail": "Referenced resource does not exist", "error_code": "FOREIGN_KEY_VIOLATION"},
        )
    return JSONResponse(
        status_code=400,
        content={"detail": "Required field missing", "error_code": "REQUIRED_FIELD"},
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}", "error_code": "RATE_LIMIT_EXCEEDED"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error", error=str(exc), exc_info=exc, **request_context(request))
    detail = str(exc) if settings.is_development else "Internal server error"
    return JSONResponse(status_code=500, content={"detail": detail, "error_code": "INTERNAL_ERROR"})


# Health check endpoints
@app.get("/health")
async def health():
    """Basic health check"""
    return {"status": "healthy", "service": "api", "version": "1.0.0"}


@app.get("/health/ready")
async def ready():
    """Readiness check with dependency verification"""
    checks = {}

    # Check database
    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"failed: {str(e)}"

    # Check Redis
    try:
        await cache.ping()
        checks["redis"] = "ok"
    except Exception as e:
        checks["redis"] = f"failed: {str(e)}"

    all_ok = all(v == "ok" for v in checks.values())

    return JSONResponse(
        status_code=200 if all_ok else 503,
        content={"status": "ready" if all_ok else "not_ready", "checks": checks},
    )


# Include API routers
app.include_router(auth.router, prefix=f"{settings.api_prefix}/auth", tags=["Authentication"])
app.include_router(categories.router, prefix=f"{settings.api_prefix}/categories", tags=["Categories"])
app.include_router(products.router, prefix=f"{settings.api_prefix}/products", tags=["Products"])
app.include_router(tables.router, prefix=f"{settings.api_prefix}/tables", tags=["Tables"])
app.include_router(orders.router, prefix=f"{settings.api_prefix}/orders", tags=["Orders"])
app.include_router(reports.router, prefix=f"{settings.api_prefix}/reports", tags=["Reports"])

# Include realtime websocket
app.include_router(realtime.router, tags=["Realtime"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
