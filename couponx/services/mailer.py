"""Outgoing mail over SMTP: password reset and email verification links."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from couponx.core.config import Settings

logger = logging.getLogger(__name__)

APP_NAME = "CouponX"


def send_email(settings: "Settings", to_email: str, subject: str, text_content: str) -> bool:
    """
    Send a plain-text email. Returns True when handed to the SMTP server.

    When SMTP_HOST is not configured the message is logged and not sent.
    SMTP failures are logged and reported as False; callers never fail a
    request because a mail could not be delivered.
    """
    if not settings.SMTP_HOST:
        logger.info("SMTP not configured; email to %s not sent (subject=%r)", to_email, subject)
        return False

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = settings.MAIL_FROM
    message["To"] = to_email
    message.attach(MIMEText(text_content, "plain"))

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            server.starttls()
            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD.get_secret_value())
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email to %s: %s", to_email, e)
        return False

    logger.info("Email sent to %s (subject=%r)", to_email, subject)
    return True


def send_password_reset_email(settings: "Settings", to_email: str, username: str, token: str) -> bool:
    link = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"
    body = (
        f"Hi {username},\n\n"
        f"Someone asked to reset the password for your {APP_NAME} account.\n"
        f"Use this link within 10 minutes to choose a new one:\n\n{link}\n\n"
        "If you did not ask for this, you can ignore this email.\n"
    )
    return send_email(settings, to_email, f"{APP_NAME} password reset", body)


def send_verification_email(settings: "Settings", to_email: str, username: str, token: str) -> bool:
    link = f"{settings.FRONTEND_URL.rstrip('/')}/verify-email?token={token}"
    body = (
        f"Welcome to {APP_NAME}, {username}!\n\n"
        f"Confirm your email address with this link:\n\n{link}\n"
    )
    return send_email(settings, to_email, f"Confirm your {APP_NAME} email", body)
