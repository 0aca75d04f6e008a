# backend/booking_engine/main.py
"""
FastAPI application for the booking engine.

Run with:
    uvicorn booking_engine.main:app --reload
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import FastAPI, Response

from .core.config import settings
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes import public

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown."""
    logger.info("Booking engine starting up...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(
        f"Defaults: timezone={settings.default_timezone}, "
        f"interval={settings.default_slot_interval}min, "
        f"usage cycle={settings.usage_cycle_days} days"
    )
    yield
    logger.info("Booking engine shutting down...")


app = FastAPI(
    title="Booking Engine API",
    description="Resource availability and usage quotas for storefront bookings",
    version="1.0.0",
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None,
    lifespan=app_lifespan,
)

app.include_router(public.router)


@app.get("/health")
def health_check() -> dict:
    return {"status": "healthy", "environment": settings.environment}


@app.get("/metrics", include_in_schema=False)
def metrics_endpoint() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
        headers={"Cache-Control": "no-store"},
    )
