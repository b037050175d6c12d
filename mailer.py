import smtplib
from email.message import EmailMessage

import structlog

from config import settings

log = structlog.get_logger(__name__)


class EmailNotConfigured(RuntimeError):
    pass


def is_configured() -> bool:
    return bool(settings.email_user and settings.email_password)


def send_email(to: str, subject: str, body: str) -> None:
    """Send a plain-text message through the configured SMTP account."""
    if not is_configured():
        raise EmailNotConfigured("EMAIL_USER / EMAIL_PASSWORD are not set")
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.email_user
    msg["To"] = to
    msg.set_content(body)
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as s:
        if settings.smtp_tls:
            s.starttls()
        s.login(settings.email_user, settings.email_password)
        s.send_message(msg)
    log.info("email_sent", to=to, subject=subject)
