"""Outgoing mail over SMTP with retries, plus the account notification templates.

When MAIL_REAL_SEND is false nothing leaves the process: the mail is logged and a
``MOCK-`` message id is returned, so local and test runs need no SMTP server.
``Mailer.send`` reports failures in its result instead of raising; callers decide
whether a failed delivery matters.
"""

from __future__ import annotations

import logging
import secrets
import smtplib
import time
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from functools import lru_cache
from typing import TYPE_CHECKING

from app.core.config import get_settings
from app.core.security import mask_email

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

APP_NAME = "CFC App"


@dataclass
class MailResult:
    success: bool
    message_id: str | None = None
    error: str | None = None
    retry_count: int = 0


class Mailer:
    """SMTP sender configured from settings; SSL on port 465, STARTTLS otherwise."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def _build_message(self, to: str, subject: str, html: str | None, text: str | None) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.settings.MAIL_FROM
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid()
        msg.set_content(text or "")
        if html:
            msg.add_alternative(html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        s = self.settings
        password = s.MAIL_PASSWORD.get_secret_value() if s.MAIL_PASSWORD else None
        if s.MAIL_PORT == 465:
            with smtplib.SMTP_SSL(s.MAIL_HOST, s.MAIL_PORT, timeout=s.MAIL_TIMEOUT_SEC) as server:
                if s.MAIL_USER and password:
                    server.login(s.MAIL_USER, password)
                server.send_message(msg)
            return
        with smtplib.SMTP(s.MAIL_HOST, s.MAIL_PORT, timeout=s.MAIL_TIMEOUT_SEC) as server:
            server.starttls()
            if s.MAIL_USER and password:
                server.login(s.MAIL_USER, password)
            server.send_message(msg)

    def send(self, to: str, subject: str, html: str | None = None, text: str | None = None) -> MailResult:
        """Send one mail; retries up to MAIL_MAX_RETRY times on SMTP/socket errors."""
        if not to or not subject or not (html or text):
            logger.warning("Mail not sent: recipient, subject and body are required")
            return MailResult(success=False, error="Recipient, subject and a body are required.")

        if not self.settings.MAIL_REAL_SEND:
            mock_id = f"MOCK-{int(time.time() * 1000)}-{secrets.token_hex(4)}"
            logger.info(
                "Mail send simulated",
                extra={"to": mask_email(to), "subject": subject, "message_id": mock_id},
            )
            return MailResult(success=True, message_id=mock_id)

        msg = self._build_message(to, subject, html, text)
        attempt = 0
        while True:
            try:
                self._deliver(msg)
            except (smtplib.SMTPException, OSError) as e:
                if attempt < self.settings.MAIL_MAX_RETRY:
                    attempt += 1
                    logger.warning(
                        "Mail send failed, retrying (%s/%s): %s",
                        attempt,
                        self.settings.MAIL_MAX_RETRY,
                        type(e).__name__,
                        extra={"to": mask_email(to)},
                    )
                    time.sleep(self.settings.MAIL_RETRY_INTERVAL_SEC)
                    continue
                logger.error(
                    "Mail send failed after %s retries: %s",
                    attempt,
                    e,
                    extra={"to": mask_email(to), "subject": subject},
                )
                return MailResult(success=False, error="Mail delivery failed.", retry_count=attempt)
            logger.info("Mail sent", extra={"to": mask_email(to), "subject": subject, "message_id": msg["Message-ID"]})
            return MailResult(success=True, message_id=msg["Message-ID"], retry_count=attempt)


def send_welcome_mail(mailer: Mailer, to: str, username: str) -> MailResult:
    return mailer.send(
        to=to,
        subject=f"[{APP_NAME}] Registration successful",
        html=(
            f"<h1>Welcome to {APP_NAME}</h1>"
            f"<p>Your username: {username}</p>"
            "<p>Keep your account details safe and do not share them.</p>"
        ),
        text=f"Welcome to {APP_NAME}. Your username: {username}. Keep your account details safe.",
    )


def send_verification_code(mailer: Mailer, to: str, code: str, expire_minutes: int) -> MailResult:
    return mailer.send(
        to=to,
        subject=f"[{APP_NAME}] Verification code (valid for {expire_minutes} minutes)",
        html=(
            '<div style="padding: 20px; font-family: Arial;">'
            "<h3>Your verification code is:</h3>"
            f'<p style="font-size: 24px; font-weight: bold; color: #0066cc;">{code}</p>'
            f"<p>The code is valid for {expire_minutes} minutes. Do not share it with anyone.</p>"
            "</div>"
        ),
        text=f"Your verification code is {code}. It is valid for {expire_minutes} minutes.",
    )


def send_password_reset_notice(mailer: Mailer, to: str, username: str) -> MailResult:
    return mailer.send(
        to=to,
        subject=f"[{APP_NAME}] Password reset",
        html=(
            "<h1>Password reset</h1>"
            f"<p>The password of account {username} has been reset. Log in with the new password.</p>"
            "<p>If this was not you, contact an administrator.</p>"
        ),
        text=(
            f"The password of account {username} has been reset. "
            "If this was not you, contact an administrator."
        ),
    )


@lru_cache
def get_mailer() -> Mailer:
    """Dependency: mailer built from settings."""
    return Mailer(get_settings())
