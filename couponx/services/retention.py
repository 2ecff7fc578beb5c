"""Token housekeeping: delete expired refresh tokens and clear lapsed reset/verification tokens."""

import logging

from sqlalchemy.orm import Session

from couponx.models import RefreshToken, User
from couponx.models.base import utcnow

logger = logging.getLogger(__name__)


def run_token_cleanup(session: Session) -> tuple[int, int]:
    """
    Purge expired refresh tokens and expired one-time tokens.

    Returns (refresh_tokens_deleted, one_time_tokens_cleared). Idempotent: safe to run repeatedly.
    """
    now = utcnow()
    refresh_deleted = (
        session.query(RefreshToken)
        .filter(RefreshToken.expires_at < now)
        .delete(synchronize_session=False)
    )
    resets_cleared = (
        session.query(User)
        .filter(User.password_reset_expires.is_not(None), User.password_reset_expires < now)
        .update(
            {User.password_reset_token_hash: None, User.password_reset_expires: None},
            synchronize_session=False,
        )
    )
    verifications_cleared = (
        session.query(User)
        .filter(User.email_verification_expires.is_not(None), User.email_verification_expires < now)
        .update(
            {User.email_verification_token_hash: None, User.email_verification_expires: None},
            synchronize_session=False,
        )
    )
    session.commit()

    cleared = resets_cleared + verifications_cleared
    if refresh_deleted > 0 or cleared > 0:
        logger.info(
            "Token cleanup: cutoff=%s, refresh_tokens_deleted=%s, one_time_tokens_cleared=%s",
            now.isoformat(),
            refresh_deleted,
            cleared,
        )
    return (refresh_deleted, cleared)
