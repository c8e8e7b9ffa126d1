"""Email verification for assigned accounts."""

import enum
import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.config import settings
from shelf.core.exceptions import (
    DeliveryError,
    EmailMismatch,
    Forbidden,
    InvalidToken,
    MissingConfiguration,
)
from shelf.crud.user import user_crud
from shelf.models.user import EmailVerificationToken, User
from shelf.services.email_service import VERIFY_EMAIL_PATH, EmailService
from shelf.services.token_service import issue_token, redeem_token
from shelf.utils.datetime_utils import utc_now
from shelf.utils.email_utils import normalize_email
from shelf.utils.logging_utils import redact_email

logger = logging.getLogger(__name__)


class ResendStatus(str, enum.Enum):
    SENT = "sent"
    ALREADY_VERIFIED = "already_verified"


class VerificationService:
    """Issues, resends and redeems email verification tokens."""

    def __init__(self, mailer: EmailService):
        self._mailer = mailer

    async def issue_verification(
        self, db: AsyncSession, user: User, best_effort: bool = False
    ) -> str:
        """
        Replace the user's live verification token with a new one and email it.

        The user row is locked first so concurrent issues serialize and leave
        a single live token.

        By default the email is sent before commit; if sending fails the
        session is rolled back and the previously delivered link keeps working.
        With ``best_effort`` the session (including any pending changes of the
        caller) is committed first and a failed send is only logged.

        Returns the raw token.

        Raises:
            MissingConfiguration: no base URL to build the link (nothing written)
            DeliveryError, MissingConfiguration: sending failed and not ``best_effort``
        """
        raw_token, token_hash = issue_token()
        verify_url = self._mailer.build_link(VERIFY_EMAIL_PATH, raw_token)
        email = normalize_email(user.email)
        display_name = user.display_name
        now = utc_now()

        await user_crud.get_by_id(db, user.id, for_update=True)
        await db.execute(
            delete(EmailVerificationToken).where(
                EmailVerificationToken.user_id == user.id,
                EmailVerificationToken.used_at.is_(None),
            )
        )
        db.add(
            EmailVerificationToken(
                user_id=user.id,
                email=email,
                token_hash=token_hash,
                expires_at=now + timedelta(hours=settings.EMAIL_VERIFICATION_TTL_HOURS),
                created_at=now,
            )
        )

        if best_effort:
            await db.commit()
            try:
                await self._mailer.send_verification_email(email, verify_url, display_name)
            except (DeliveryError, MissingConfiguration):
                logger.warning(
                    "Verification email to %s not delivered; user can resend", redact_email(email)
                )
            return raw_token

        await db.flush()
        try:
            await self._mailer.send_verification_email(email, verify_url, display_name)
        except (DeliveryError, MissingConfiguration):
            await db.rollback()
            raise
        await db.commit()
        return raw_token

    async def resend(self, db: AsyncSession, user: User) -> ResendStatus:
        """Re-issue the verification email unless the address is already verified."""
        if not user.is_assigned:
            raise Forbidden("Finish setting up your household first.")
        if user.is_verified:
            return ResendStatus.ALREADY_VERIFIED

        await self.issue_verification(db, user)
        return ResendStatus.SENT

    async def verify_with_token(self, db: AsyncSession, raw_token: Optional[str]) -> UUID:
        """
        Mark the token's account as verified and drop its other tokens.

        Returns the user id.
        """
        record = await redeem_token(db, EmailVerificationToken, raw_token)

        user = await user_crud.get_by_id(db, record.user_id)
        if user is None:
            raise InvalidToken()
        if normalize_email(user.email) != record.email:
            raise EmailMismatch()

        now = utc_now()
        user.email_verified_at = now
        record.used_at = now
        await db.execute(
            delete(EmailVerificationToken).where(
                EmailVerificationToken.user_id == user.id,
                EmailVerificationToken.id != record.id,
            )
        )
        await db.commit()

        logger.info("Email verified for user %s", user.id)
        return user.id
