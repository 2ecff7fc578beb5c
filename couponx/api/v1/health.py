"""Versioned health check: version, uptime and database connectivity."""

import time

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from couponx import __version__
from couponx.core.config import settings
from couponx.core.database import check_db_connected, get_db
from couponx.models.base import utcnow
from couponx.schemas.health import HealthResponse

router = APIRouter()

_STARTED_AT = time.monotonic()


@router.get("", response_model=HealthResponse)
def get_health(db: Session = Depends(get_db)) -> HealthResponse:
    """For monitoring; the bare /health route answers without touching the database."""
    return HealthResponse(
        version=__version__,
        environment=settings.APP_ENV,
        timestamp=utcnow(),
        uptime_seconds=round(time.monotonic() - _STARTED_AT, 3),
        database="connected" if check_db_connected(db) else "disconnected",
    )
