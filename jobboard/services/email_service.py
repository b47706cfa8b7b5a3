"""
Verification e-mail delivery over SMTP.

When SMTP is not configured (no SMTP_HOST) the code is logged instead, which
is how local development signs in.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from jobboard.common.config import Settings, get_settings
from jobboard.common.error_handling import service_operation

logger = logging.getLogger(__name__)

PURPOSE_REGISTRATION = "registration"
PURPOSE_LOGIN = "login"

_SUBJECTS = {
    PURPOSE_REGISTRATION: "Verify your Job Board account",
    PURPOSE_LOGIN: "Your Job Board login code",
}


def build_verification_message(sender: str, to: str, code: str, purpose: str, ttl_minutes: int) -> MIMEMultipart:
    """Plain text plus HTML message carrying the code."""
    subject = _SUBJECTS.get(purpose, _SUBJECTS[PURPOSE_LOGIN])
    action = "complete your registration" if purpose == PURPOSE_REGISTRATION else "sign in"

    text_body = (
        f"Your verification code is {code}.\n\n"
        f"Enter it to {action}. The code expires in {ttl_minutes} minutes.\n"
        "If you did not request this, you can ignore this e-mail.\n"
    )
    html_body = (
        "<div style=\"font-family: sans-serif\">"
        f"<p>Enter this code to {action}:</p>"
        f"<p style=\"font-size: 24px; letter-spacing: 4px\"><strong>{code}</strong></p>"
        f"<p>The code expires in {ttl_minutes} minutes.</p>"
        "</div>"
    )

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = to
    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    return msg


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception_type((smtplib.SMTPException, OSError)),
    reraise=True,
)
def _smtp_send(settings: Settings, msg: MIMEMultipart) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
        server.starttls()
        if settings.smtp_username:
            server.login(settings.smtp_username, settings.smtp_password or "")
        server.sendmail(msg["From"], [msg["To"]], msg.as_string())


@service_operation("send verification email", fallback_value=False)
def send_verification_email(
    to: str,
    code: str,
    purpose: str = PURPOSE_REGISTRATION,
    settings: Optional[Settings] = None,
) -> bool:
    """
    Send a verification code.

    Returns:
        True if the message was handed to the SMTP server, False if SMTP is
        not configured or delivery failed.
    """
    settings = settings or get_settings()
    ttl = (
        settings.verification_code_ttl_minutes
        if purpose == PURPOSE_REGISTRATION
        else settings.login_code_ttl_minutes
    )

    if not settings.email_enabled:
        logger.info(f"SMTP not configured, {purpose} code for {to}: {code}")
        return False

    msg = build_verification_message(settings.mail_sender, to, code, purpose, ttl)
    _smtp_send(settings, msg)
    logger.info(f"Sent {purpose} code to {to}")
    return True
