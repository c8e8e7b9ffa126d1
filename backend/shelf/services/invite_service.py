"""Member invitation lifecycle: reserve, accept, decline, revoke, list."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.config import settings
from shelf.core.exceptions import (
    DeliveryError,
    EmailInUse,
    Forbidden,
    InviteAlreadyActive,
    InviteNotActive,
    InviteNotFound,
    MissingConfiguration,
)
from shelf.core.logging_config import get_logger
from shelf.crud.invite import invite_crud
from shelf.crud.user import user_crud
from shelf.models.invite import (
    ACTIVE_INVITE_STATUSES,
    InviteAction,
    InviteStatus,
    InviteToken,
    MemberInvite,
)
from shelf.models.user import User, UserRole
from shelf.services.email_service import INVITE_ACCEPT_PATH, INVITE_DECLINE_PATH, EmailService
from shelf.services.token_service import issue_token, redeem_token
from shelf.utils.datetime_utils import utc_now
from shelf.utils.email_utils import normalize_email
from shelf.utils.logging_utils import redact_email

logger = get_logger(__name__)


def require_owner(user: User) -> None:
    """Raise Forbidden unless *user* owns a household."""
    if user.role != UserRole.OWNER or user.household_id is None:
        raise Forbidden("Only the household owner can do this.")


@dataclass
class InviteCheck:
    """What the sign-up screen needs to know about an email address."""

    invite_status: str  # reserved | accepted | none
    has_user: bool
    user_role: Optional[UserRole]
    blocked_for_owner: bool


class InviteService:
    """Owner-side and invitee-side invite operations."""

    def __init__(self, mailer: EmailService):
        self._mailer = mailer

    async def reserve(self, db: AsyncSession, owner: User, email: str) -> MemberInvite:
        """
        Reserve *email* for the owner's household and email the invitee.

        The invite, its token and the email form one unit: if delivery fails
        the transaction is rolled back and the error re-raised.

        Raises:
            Forbidden: caller is not an owner
            EmailInUse: an account already uses the email
            InviteAlreadyActive: the email already has a reserved/accepted invite
            MissingConfiguration, DeliveryError: the email could not be sent
        """
        require_owner(owner)
        email = normalize_email(email)
        household_id = owner.household_id

        raw_token, token_hash = issue_token()
        accept_url = self._mailer.build_link(INVITE_ACCEPT_PATH, raw_token)
        decline_url = self._mailer.build_link(INVITE_DECLINE_PATH, raw_token)

        if await user_crud.get_by_email(db, email) is not None:
            raise EmailInUse()
        if await invite_crud.find_active_by_email(db, email) is not None:
            raise InviteAlreadyActive()

        now = utc_now()
        invite = MemberInvite(
            household_id=household_id,
            email=email,
            status=InviteStatus.RESERVED,
            invited_by=owner.id,
            invited_at=now,
        )
        db.add(invite)
        try:
            await db.flush()
        except IntegrityError:
            # Lost a race against a concurrent reservation of the same email
            await db.rollback()
            raise InviteAlreadyActive()

        db.add(
            InviteToken(
                household_id=household_id,
                invite_id=invite.id,
                email=email,
                token_hash=token_hash,
                expires_at=now + timedelta(days=settings.INVITE_TOKEN_TTL_DAYS),
                created_at=now,
            )
        )
        await db.flush()

        try:
            await self._mailer.send_invite_email(email, accept_url, decline_url, owner.display_name)
        except (DeliveryError, MissingConfiguration):
            await db.rollback()
            logger.warning(
                "invite_reservation_rolled_back",
                household_id=str(household_id),
                email=redact_email(email),
            )
            raise

        await db.commit()
        logger.info(
            "invite_reserved",
            household_id=str(household_id),
            invite_id=str(invite.id),
            email=redact_email(email),
        )
        return invite

    async def _redeem(self, db: AsyncSession, raw_token: Optional[str], action: InviteAction) -> UUID:
        token = await redeem_token(db, InviteToken, raw_token)

        invite = await invite_crud.get_by_id(db, token.invite_id, for_update=True)
        if invite is None:
            raise InviteNotActive()
        if invite.status != InviteStatus.RESERVED:
            raise InviteNotActive()

        invite.apply(action)
        token.used_at = utc_now()
        await db.commit()

        logger.info(
            "invite_redeemed",
            invite_id=str(invite.id),
            action=action.value,
            status=invite.status.value,
        )
        return invite.household_id

    async def accept_with_token(self, db: AsyncSession, raw_token: Optional[str]) -> UUID:
        """Accept a reserved invite. Returns the inviting household id."""
        return await self._redeem(db, raw_token, InviteAction.ACCEPT)

    async def decline_with_token(self, db: AsyncSession, raw_token: Optional[str]) -> UUID:
        """Decline a reserved invite. Returns the inviting household id."""
        return await self._redeem(db, raw_token, InviteAction.DECLINE)

    async def revoke(self, db: AsyncSession, owner: User, email: str) -> int:
        """
        Revoke every active invite for *email* in the owner's household.

        Returns the number of invites revoked.
        """
        require_owner(owner)
        email = normalize_email(email)

        invites = await invite_crud.find_by_email(
            db, email, statuses=ACTIVE_INVITE_STATUSES, household_id=owner.household_id
        )
        if not invites:
            raise InviteNotFound()

        for invite in invites:
            invite.apply(InviteAction.REVOKE)
        await db.commit()

        logger.info(
            "invite_revoked",
            household_id=str(owner.household_id),
            email=redact_email(email),
            count=len(invites),
        )
        return len(invites)

    async def list_invites(self, db: AsyncSession, owner: User) -> list[MemberInvite]:
        """Reserved invites of the owner's household, newest first."""
        require_owner(owner)
        return await invite_crud.list_for_household(db, owner.household_id, InviteStatus.RESERVED)

    async def check_status(self, db: AsyncSession, email: str) -> InviteCheck:
        """Report invite and account state for an email address."""
        email = normalize_email(email)

        invites = await invite_crud.find_by_email(db, email)
        statuses = {invite.status for invite in invites}
        if InviteStatus.RESERVED in statuses:
            invite_status = InviteStatus.RESERVED.value
        elif InviteStatus.ACCEPTED in statuses:
            invite_status = InviteStatus.ACCEPTED.value
        else:
            invite_status = "none"

        user = await user_crud.get_by_email(db, email) if email else None
        user_role = user.role if user is not None else None

        return InviteCheck(
            invite_status=invite_status,
            has_user=user is not None,
            user_role=user_role,
            blocked_for_owner=user_role == UserRole.MEMBER or invite_status != "none",
        )
