"""
FastAPI application factory.

* Registers routes for trips, trip requests, driver availability,
  notifications and health.
* Closes the Redis pool used for notification events on shutdown.
* Maps domain errors to JSON responses and applies rate limiting.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.errors import register_error_handlers
from src.api.middleware import limiter
from src.api.routes import drivers, health, notifications, trip_requests, trips
from src.config import settings
from src.infrastructure.redis_client import close_redis

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Trip booking API starting")
    yield
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Trip Booking API",
        description=(
            "Companies post trips, drivers request or are requested for them. "
            "Covers the trip lifecycle, two-way request negotiation, "
            "notifications and post-trip ratings."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_error_handlers(app)

    # Routers
    app.include_router(health.router, prefix="/api/v1")
    app.include_router(trips.router, prefix="/api/v1")
    app.include_router(trip_requests.router, prefix="/api/v1")
    app.include_router(drivers.router, prefix="/api/v1")
    app.include_router(notifications.router, prefix="/api/v1")

    return app
