"""Response body of the versioned health check."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from couponx.schemas.common import ApiModel


class HealthResponse(ApiModel):
    status: Literal["ok"] = "ok"
    version: str
    environment: str = Field(description="APP_ENV of the running process")
    timestamp: datetime
    uptime_seconds: float = Field(description="Seconds since the process imported the app")
    database: Literal["connected", "disconnected"]
