"""
CLI entrypoint for the token cleanup job. Run from cron, e.g.:

  python -m couponx.retention

Or hourly: 0 * * * * cd /path/to/couponx && .venv/bin/python -m couponx.retention
"""

import logging
import sys

from couponx.core.database import SessionLocal
from couponx.services.retention import run_token_cleanup

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Delete expired refresh tokens and clear lapsed reset/verification tokens."""
    db = SessionLocal()
    try:
        refresh_deleted, cleared = run_token_cleanup(db)
        logger.info(
            "Token cleanup completed: refresh_tokens_deleted=%s one_time_tokens_cleared=%s",
            refresh_deleted,
            cleared,
        )
        return 0
    except Exception as e:
        logger.exception("Token cleanup job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
