"""
Venue Booking API - application entry point.

- Reservation engine that never double-books a venue under concurrent load
- Status state machine and append-only payment ledger with audit history
- Post-commit booking notifications over Redis pub/sub
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from venuebook.api.middleware import RequestLoggingMiddleware
from venuebook.api.router import api_router
from venuebook.core.config import get_settings
from venuebook.core.exceptions import ReservationError, ValidationError
from venuebook.core.logging import get_logger, setup_logging
from venuebook.core.metrics import metrics_endpoint
from venuebook.infrastructure.redis_client import close_redis, get_redis, get_redis_status
from venuebook.services.strategy_factory import get_notifier

settings = get_settings()
logger = get_logger(__name__)

RETRY_AFTER_SECONDS = "1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        notification_backend=settings.NOTIFICATION_BACKEND,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Notifications will be logged only")

    yield

    # Let in-flight notifications finish before the connection goes away
    await get_notifier().drain()
    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Venue reservation API with concurrency-safe bookings, approvals and payments",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(ReservationError)
async def reservation_error_handler(request: Request, exc: ReservationError):
    if exc.status_code >= 500:
        logger.warning("request_rejected", error=type(exc).__name__, detail=exc.message)
    else:
        logger.info("request_rejected", error=type(exc).__name__, detail=exc.message)
    headers = {"Retry-After": RETRY_AFTER_SECONDS} if exc.retryable else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are reported like any other ValidationError."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'invalid request')}" if location else "Invalid request"
    error = ValidationError(message)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "redis": await get_redis_status(),
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
