"""RentEase — FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rentease.api.v1.auth import router as auth_router
from rentease.api.v1.bookings import router as bookings_router
from rentease.api.v1.items import router as items_router
from rentease.api.v1.wallet import router as wallet_router
from rentease.config import settings
from rentease.exceptions import RentEaseError, rentease_error_handler

# Root logger config so rentease.* loggers reach stderr.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "%s %s starting (platform fee %s%%, maintenance mode %s)",
        settings.app_name,
        settings.app_version,
        settings.platform_fee_percent,
        "on" if settings.maintenance_mode else "off",
    )
    yield
    from rentease.database import engine

    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Peer-to-peer rental marketplace: bookings, wallet ledger, and item availability.",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Domain errors become {"error": kind, "detail": message}
app.add_exception_handler(RentEaseError, rentease_error_handler)  # type: ignore[arg-type]

for router in (auth_router, items_router, bookings_router, wallet_router):
    app.include_router(router)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "service": settings.app_name}


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Service banner, including whether writes are currently paused."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "maintenance_mode": str(settings.maintenance_mode).lower(),
    }
