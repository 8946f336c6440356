"""Shared API dependencies — single import point for all routers.

Re-exports database session and authentication dependencies so that router
modules can import everything they need from one place::

    from rentease.api.deps import get_db, get_current_active_user
"""

import logging

from fastapi import HTTPException, status

from rentease.auth.dependencies import (
    get_current_active_user,
    get_current_user,
)
from rentease.config import settings
from rentease.database import get_db

logger = logging.getLogger(__name__)


async def require_not_in_maintenance() -> None:
    """Raise 503 on money-moving writes while maintenance mode is switched on.

    Reads are never blocked, so users can still see bookings and balances.
    """
    if settings.maintenance_mode:
        logger.info("Rejected write during maintenance mode")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "message": settings.maintenance_message,
                "maintenance_mode": True,
            },
        )


__all__ = [
    "get_db",
    "get_current_user",
    "get_current_active_user",
    "require_not_in_maintenance",
]
