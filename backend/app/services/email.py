"""Outgoing email over SMTP.

smtplib is blocking, so delivery runs in a worker thread. With no
SMTP_HOST configured (development, tests) messages are logged instead of
sent and `send_email` returns False.

Callers decide whether a failure is fatal: welcome and notification mails
log and carry on, password reset and report delivery surface the error.
"""

import asyncio
import logging
import mimetypes
import smtplib
from email.message import EmailMessage
from pathlib import Path

from app.config import settings

logger = logging.getLogger("cargoflow.email")


class EmailDeliveryError(Exception):
    """SMTP refused or failed to deliver a message."""


def email_configured() -> bool:
    return bool(settings.smtp_host)


def _build_message(
    to: list[str],
    subject: str,
    body: str,
    html: str | None = None,
    attachments: list[str] | None = None,
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = settings.smtp_from or settings.smtp_user
    msg["To"] = ", ".join(to)
    msg["Subject"] = subject
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")

    for path in attachments or []:
        ctype, _ = mimetypes.guess_type(path)
        maintype, subtype = (ctype or "application/octet-stream").split("/", 1)
        msg.add_attachment(
            Path(path).read_bytes(),
            maintype=maintype,
            subtype=subtype,
            filename=Path(path).name,
        )
    return msg


def _deliver(msg: EmailMessage) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls()
        if settings.smtp_user:
            smtp.login(settings.smtp_user, settings.smtp_password)
        smtp.send_message(msg)


async def send_email(
    to: str | list[str],
    subject: str,
    body: str,
    html: str | None = None,
    attachments: list[str] | None = None,
) -> bool:
    """Send a message. Returns True if handed to SMTP, False if email is disabled.

    Raises:
        EmailDeliveryError: SMTP is configured but delivery failed.
    """
    recipients = [to] if isinstance(to, str) else list(to)

    if not email_configured():
        logger.info("SMTP not configured; skipping email %r to %s", subject, recipients)
        return False

    msg = _build_message(recipients, subject, body, html, attachments)
    try:
        await asyncio.to_thread(_deliver, msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email %r to %s: %s", subject, recipients, e)
        raise EmailDeliveryError(str(e)) from e

    logger.info("Sent email %r to %s", subject, recipients)
    return True


# ── Templates ────────────────────────────────────────────────

def verification_email(first_name: str, token: str) -> tuple[str, str]:
    link = f"{settings.frontend_url}/verify-email/{token}"
    subject = "Welcome to CargoFlow - verify your email"
    body = (
        f"Hello {first_name},\n\n"
        "Your CargoFlow account has been created. Please confirm your email "
        f"address by opening the link below:\n\n{link}\n\n"
        "If you did not create this account you can ignore this message."
    )
    return subject, body


def password_reset_email(first_name: str, token: str) -> tuple[str, str]:
    link = f"{settings.frontend_url}/reset-password/{token}"
    subject = "CargoFlow password reset"
    body = (
        f"Hello {first_name},\n\n"
        "We received a request to reset your password. The link below is "
        f"valid for {settings.password_reset_expire_minutes} minutes:\n\n{link}\n\n"
        "If you did not request a reset, no action is needed."
    )
    return subject, body


def tracking_update_email(
    contact_name: str, tracking_number: str, status: str, description: str
) -> tuple[str, str]:
    subject = f"Shipment {tracking_number}: {status.replace('_', ' ').title()}"
    body = (
        f"Hello {contact_name},\n\n"
        f"There is a new update on shipment {tracking_number}:\n\n"
        f"  {description}\n\n"
        f"Track it any time at {settings.frontend_url}/track/{tracking_number}"
    )
    return subject, body
