"""Outbound email over SMTP (aiosmtplib).

Unlike a fire-and-forget notifier, every send either succeeds or raises:
``MissingConfiguration`` when SMTP or the public base URL is not set up,
``DeliveryError`` when the SMTP server rejects or cannot be reached. Callers
decide whether a failure aborts their transaction.

With ``EMAIL_DRY_RUN`` enabled messages are logged instead of sent, which is
how local development works without an SMTP account.
"""

import html
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from urllib.parse import urlencode

import aiosmtplib

from shelf.config import settings as _settings
from shelf.core.exceptions import DeliveryError, MissingConfiguration
from shelf.utils.logging_utils import redact_email

logger = logging.getLogger(__name__)

INVITE_ACCEPT_PATH = "/invite/accept"
INVITE_DECLINE_PATH = "/invite/decline"
VERIFY_EMAIL_PATH = "/verify-email"


class EmailService:
    """Thin wrapper around aiosmtplib for the app's transactional emails."""

    def __init__(self, smtp_host: Optional[str], smtp_port: int, smtp_username: Optional[str],
                 smtp_password: Optional[str], from_email: Optional[str], from_name: str,
                 use_tls: bool, app_base_url: Optional[str], dry_run: bool = False):
        self._host = smtp_host
        self._port = smtp_port
        self._username = smtp_username or None
        self._password = smtp_password or None
        self._from_email = from_email
        self._from_name = from_name
        self._use_tls = use_tls
        self._base_url = (app_base_url or "").rstrip("/")
        self._dry_run = dry_run

    @property
    def is_configured(self) -> bool:
        """True when an SMTP host and sender address are present."""
        return bool(self._host and self._from_email)

    def build_link(self, path: str, token: str) -> str:
        """
        Absolute link into the web app carrying *token* as a query parameter.

        Raises:
            MissingConfiguration: APP_BASE_URL is not set
        """
        if not self._base_url:
            raise MissingConfiguration("APP_BASE_URL is not configured.")
        return f"{self._base_url}{path}?{urlencode({'token': token})}"

    async def send_email(self, to_email: str, subject: str, html_body: str,
                         text_body: str) -> None:
        """
        Send one message.

        Raises:
            MissingConfiguration: SMTP is not configured and dry-run is off
            DeliveryError: the SMTP exchange failed
        """
        if self._dry_run:
            logger.info("Email dry-run to %s: %s\n%s", redact_email(to_email), subject, text_body)
            return

        if not self.is_configured:
            raise MissingConfiguration()

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self._from_name} <{self._from_email}>"
        msg["To"] = to_email
        msg["Reply-To"] = self._from_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=self._host,
                port=self._port,
                username=self._username,
                password=self._password,
                start_tls=self._use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", redact_email(to_email), exc)
            raise DeliveryError() from exc

        logger.info("Email sent to %s: %s", redact_email(to_email), subject)

    async def send_invite_email(self, to_email: str, accept_url: str, decline_url: str,
                                invited_by: Optional[str] = None) -> None:
        """Send the accept/decline links for a member invite."""
        inviter = f"{invited_by} has invited you" if invited_by else "You have been invited"
        safe_inviter = html.escape(inviter)
        safe_accept = html.escape(accept_url, quote=True)
        safe_decline = html.escape(decline_url, quote=True)

        subject = "Shelf invite"
        html_body = f"""
<div style="font-family: system-ui, -apple-system, sans-serif; line-height: 1.5;">
  <p>{safe_inviter} to Shelf.</p>
  <p><a href="{safe_accept}">Accept invite</a></p>
  <p><a href="{safe_decline}">Decline invite</a></p>
  <p style="color: #718096; font-size: 14px;">
    This invite expires in {_settings.INVITE_TOKEN_TTL_DAYS} days.
  </p>
</div>"""
        text_body = (
            f"{inviter} to Shelf.\n\n"
            f"Accept: {accept_url}\n"
            f"Decline: {decline_url}"
        )
        await self.send_email(to_email, subject, html_body, text_body)

    async def send_verification_email(self, to_email: str, verify_url: str,
                                      display_name: Optional[str] = None) -> None:
        """Send an email-address confirmation link."""
        greeting = display_name or to_email
        safe_greeting = html.escape(greeting)
        safe_url = html.escape(verify_url, quote=True)
        hours = _settings.EMAIL_VERIFICATION_TTL_HOURS

        subject = "Confirm your Shelf email"
        html_body = f"""
<div style="font-family: system-ui, -apple-system, sans-serif; line-height: 1.5;">
  <p>Hi {safe_greeting},</p>
  <p>Confirm your email address to start using Shelf.</p>
  <p><a href="{safe_url}">Confirm email</a></p>
  <p style="color: #718096; font-size: 14px;">This link expires in {hours} hours.</p>
</div>"""
        text_body = (
            f"Hi {greeting},\n\n"
            f"Confirm your email address:\n{verify_url}\n\n"
            f"This link expires in {hours} hours."
        )
        await self.send_email(to_email, subject, html_body, text_body)


# Module-level singleton, constructed once from loaded settings
email_service = EmailService(
    smtp_host=_settings.SMTP_HOST,
    smtp_port=_settings.SMTP_PORT,
    smtp_username=_settings.SMTP_USERNAME,
    smtp_password=_settings.SMTP_PASSWORD,
    from_email=_settings.SMTP_FROM_EMAIL,
    from_name=_settings.SMTP_FROM_NAME,
    use_tls=_settings.SMTP_USE_TLS,
    app_base_url=_settings.APP_BASE_URL,
    dry_run=_settings.EMAIL_DRY_RUN,
)


def get_email_service() -> EmailService:
    """FastAPI dependency returning the configured mailer."""
    return email_service
