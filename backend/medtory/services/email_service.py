# Overview: Outbound email for invitations and password-reset links.

"""
Email Service

Sends HTML mail over SMTP using the MAIL_* settings. When MAIL_SUPPRESS_SEND
is on (tests, local dev) nothing leaves the process: messages are appended to
`outbox` instead so callers and tests can inspect them.
"""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from flask import current_app

# Captured messages while MAIL_SUPPRESS_SEND is on
outbox: list[EmailMessage] = []


class EmailError(Exception):
    """Raised when a message could not be handed to the SMTP server."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _build_message(to_email: str, subject: str, html_body: str) -> EmailMessage:
    cfg = current_app.config
    msg = EmailMessage()
    msg["From"] = formataddr((cfg["MAIL_FROM_NAME"], cfg["MAIL_FROM_ADDRESS"]))
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content("This message requires an HTML-capable mail client.")
    msg.add_alternative(html_body, subtype="html")
    return msg


def send_email(to_email: str, subject: str, html_body: str) -> None:
    """Deliver one message or raise EmailError."""
    if not to_email:
        raise EmailError("Recipient address is required")

    msg = _build_message(to_email, subject, html_body)
    cfg = current_app.config

    if cfg.get("MAIL_SUPPRESS_SEND"):
        outbox.append(msg)
        current_app.logger.info("Email suppressed (to=%s, subject=%s)", to_email, subject)
        return

    try:
        with smtplib.SMTP(cfg["MAIL_SERVER"], cfg["MAIL_PORT"], timeout=cfg["MAIL_TIMEOUT_SECONDS"]) as smtp:
            if cfg.get("MAIL_USE_TLS"):
                smtp.starttls()
            if cfg.get("MAIL_USERNAME"):
                smtp.login(cfg["MAIL_USERNAME"], cfg.get("MAIL_PASSWORD") or "")
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        current_app.logger.warning("Email delivery failed (to=%s): %s", to_email, exc)
        raise EmailError(f"Email delivery failed: {exc}", details={"to": to_email}) from exc

    current_app.logger.info("Email sent (to=%s, subject=%s)", to_email, subject)


def reset_url(token: str) -> str:
    base = current_app.config["FRONTEND_BASE_URL"].rstrip("/")
    return f"{base}/reset-password?token={token}"


def send_invitation(employee, token: str) -> None:
    link = reset_url(token)
    body = (
        f"<h3>Welcome to MedTory, {employee.employee_name}!</h3>"
        f"<p>An account has been created for you as <strong>{employee.position}</strong>.</p>"
        f"<p>Your username is <strong>{employee.username}</strong>.</p>"
        f"<p>Click the link below to set your password. The link expires in 48 hours.</p>"
        f"<p><a href='{link}'>Set My Password</a></p>"
    )
    send_email(employee.contact_info, "Welcome to MedTory - Activate Account", body)


def send_reset_link(employee, token: str) -> None:
    link = reset_url(token)
    body = (
        f"<h3>Password Reset Request</h3>"
        f"<p>Hello {employee.employee_name},</p>"
        f"<p>Click the link below to choose a new password. The link expires in 24 hours.</p>"
        f"<p><a href='{link}'>Reset Password</a></p>"
        f"<p>If you didn't request this, you can ignore this email.</p>"
    )
    send_email(employee.contact_info, "MedTory - Password Reset", body)
