"""Core app configuration, database and error types."""

from couponx.core.config import get_settings, settings
from couponx.core.database import get_db
from couponx.core.errors import AppError

__all__ = ["AppError", "get_settings", "settings", "get_db"]
