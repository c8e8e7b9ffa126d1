"""Binding accounts to households: owner creation, member join, member list."""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shelf.config import settings
from shelf.core.exceptions import (
    AlreadyAssigned,
    EmailInUse,
    EmailReservedForMember,
    InvalidDisplayName,
    InviteNotAccepted,
    MissingConfiguration,
)
from shelf.core.logging_config import get_logger
from shelf.crud.invite import invite_crud
from shelf.crud.product import product_crud
from shelf.crud.user import user_crud
from shelf.models.invite import InviteAction, InviteStatus
from shelf.models.user import Household, User, UserRole
from shelf.services.invite_service import require_owner
from shelf.services.verification_service import VerificationService
from shelf.utils.email_utils import normalize_email

logger = get_logger(__name__)


def clean_display_name(display_name: Optional[str]) -> str:
    """Trim a display name and check its length (1 to DISPLAY_NAME_MAX_LENGTH)."""
    cleaned = (display_name or "").strip()
    if not cleaned or len(cleaned) > settings.DISPLAY_NAME_MAX_LENGTH:
        raise InvalidDisplayName(
            f"Display name must be 1-{settings.DISPLAY_NAME_MAX_LENGTH} characters."
        )
    return cleaned


@dataclass
class MemberListItem:
    """Row of the owner's member list: a joined member or an accepted invite."""

    type: str  # "member" | "invite"
    key: str
    user_id: Optional[UUID]
    display_name: Optional[str]
    email: str
    status_label: Optional[str]


class MembershipService:
    """Assigns roles exactly once and lists household membership."""

    def __init__(self, verification: VerificationService):
        self._verification = verification

    @staticmethod
    def _ensure_unassigned(user: User) -> None:
        if user.role is not None or user.household_id is not None:
            raise AlreadyAssigned()

    async def _issue_verification_or_rollback(self, db: AsyncSession, user: User) -> None:
        """Commit the assignment together with a fresh verification token."""
        try:
            await self._verification.issue_verification(db, user, best_effort=True)
        except MissingConfiguration:
            await db.rollback()
            raise

    async def create_owner(self, db: AsyncSession, user: User, display_name: str) -> UUID:
        """
        Create a household owned by *user*.

        Orphan products (created before households existed) are adopted by
        the new household. A verification email is sent after commit.

        Returns the new household id.
        """
        self._ensure_unassigned(user)
        name = clean_display_name(display_name)
        email = normalize_email(user.email)

        if await invite_crud.find_active_by_email(db, email) is not None:
            raise EmailReservedForMember()

        other = await user_crud.get_by_email(db, email)
        if other is not None and other.id != user.id:
            raise EmailInUse()

        household = Household(name="Household", owner_id=user.id)
        db.add(household)
        await db.flush()

        user.display_name = name
        user.household_id = household.id
        user.role = UserRole.OWNER
        user.email_verified_at = None

        adopted = await product_crud.adopt_orphans(db, household.id, user.id)

        household_id = household.id
        await self._issue_verification_or_rollback(db, user)

        logger.info(
            "household_created",
            household_id=str(household_id),
            user_id=str(user.id),
            adopted_products=adopted,
        )
        return household_id

    async def join_household(self, db: AsyncSession, user: User, display_name: str) -> UUID:
        """
        Join the household whose invite for this email was accepted.

        Returns the joined household id.
        """
        self._ensure_unassigned(user)
        name = clean_display_name(display_name)
        email = normalize_email(user.email)

        invites = await invite_crud.find_by_email(db, email, statuses=[InviteStatus.ACCEPTED])
        if not invites:
            raise InviteNotAccepted()
        invite = invites[0]

        invite.apply(InviteAction.CONSUME)
        household_id = invite.household_id

        user.display_name = name
        user.household_id = household_id
        user.role = UserRole.MEMBER
        user.email_verified_at = None

        await self._issue_verification_or_rollback(db, user)

        logger.info("household_joined", household_id=str(household_id), user_id=str(user.id))
        return household_id

    async def list_members(self, db: AsyncSession, owner: User) -> list[MemberListItem]:
        """Members plus accepted invites that have not joined yet, sorted by name."""
        require_owner(owner)

        members = await user_crud.list_members(db, owner.household_id)
        member_emails = {normalize_email(m.email) for m in members}
        accepted = await invite_crud.list_for_household(db, owner.household_id, InviteStatus.ACCEPTED)

        items = [
            MemberListItem(
                type="member",
                key=str(member.id),
                user_id=member.id,
                display_name=member.display_name,
                email=member.email,
                status_label=None,
            )
            for member in members
        ]
        items.extend(
            MemberListItem(
                type="invite",
                key=str(invite.id),
                user_id=None,
                display_name=None,
                email=invite.email,
                status_label="Invite accepted",
            )
            for invite in accepted
            if invite.email not in member_emails
        )

        items.sort(key=lambda item: (item.display_name or item.email).casefold())
        return items

    async def update_display_name(self, db: AsyncSession, user: User, display_name: str) -> User:
        user.display_name = clean_display_name(display_name)
        await db.commit()
        return user

    async def update_api_key(self, db: AsyncSession, user: User, api_key: Optional[str]) -> User:
        """Store a trimmed API key; a blank value clears it."""
        user.api_key = (api_key or "").strip() or None
        await db.commit()
        return user
