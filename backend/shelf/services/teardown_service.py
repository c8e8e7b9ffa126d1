"""Account and household removal with full cleanup of dependent records.

Every step is a bulk ``DELETE ... WHERE`` so a retried teardown simply
matches nothing the second time.
"""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.core.exceptions import Forbidden, MemberNotFound
from shelf.core.logging_config import get_logger
from shelf.crud.product import product_crud
from shelf.crud.user import user_crud
from shelf.models.invite import InviteToken, MemberInvite
from shelf.models.user import (
    AuthAccount,
    EmailVerificationToken,
    Household,
    RefreshToken,
    User,
    UserRole,
)
from shelf.services.invite_service import require_owner
from shelf.utils.email_utils import normalize_email

logger = get_logger(__name__)


class TeardownService:
    """Removes members, self-leaving accounts and whole households."""

    @staticmethod
    async def _delete_invites(db: AsyncSession, *criteria) -> None:
        """Delete invites matching *criteria* along with their tokens."""
        invite_ids = select(MemberInvite.id).where(*criteria).scalar_subquery()
        await db.execute(delete(InviteToken).where(InviteToken.invite_id.in_(invite_ids)))
        await db.execute(delete(MemberInvite).where(*criteria))

    async def delete_account(self, db: AsyncSession, user_id: UUID, email: str) -> None:
        """
        Delete a user and everything tied to it.

        Removes invites and invite tokens for the email, verification tokens
        by email and by user, credential records, sessions, then the user row.
        Does not commit.
        """
        email = normalize_email(email)

        await self._delete_invites(db, MemberInvite.email == email)
        await db.execute(delete(InviteToken).where(InviteToken.email == email))
        await db.execute(
            delete(EmailVerificationToken).where(
                (EmailVerificationToken.email == email)
                | (EmailVerificationToken.user_id == user_id)
            )
        )
        await db.execute(delete(AuthAccount).where(AuthAccount.user_id == user_id))
        await db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
        await db.execute(delete(User).where(User.id == user_id))

    async def remove_member(self, db: AsyncSession, owner: User, member_id: UUID) -> None:
        """Owner removes a member of their own household."""
        require_owner(owner)
        household_id = owner.household_id

        member = await user_crud.get_by_id(db, member_id)
        if (
            member is None
            or member.role != UserRole.MEMBER
            or member.household_id != household_id
        ):
            raise MemberNotFound()

        email = member.email
        await product_crud.clear_updated_by(db, household_id, member_id)
        await self.delete_account(db, member_id, email)
        await db.commit()

        logger.info("member_removed", household_id=str(household_id), user_id=str(member_id))

    async def leave_household(self, db: AsyncSession, user: User) -> None:
        """A member deletes their own account and leaves the household."""
        if user.role != UserRole.MEMBER or user.household_id is None:
            raise Forbidden("Only members can leave a household.")

        user_id, household_id, email = user.id, user.household_id, user.email
        await product_crud.clear_updated_by(db, household_id, user_id)
        await self.delete_account(db, user_id, email)
        await db.commit()

        logger.info("member_left", household_id=str(household_id), user_id=str(user_id))

    async def delete_household(self, db: AsyncSession, owner: User) -> None:
        """Owner deletes the household, its products and invites, and every account in it."""
        require_owner(owner)
        household_id = owner.household_id

        products = await product_crud.delete_by_household(db, household_id)
        await self._delete_invites(db, MemberInvite.household_id == household_id)

        accounts = [(u.id, u.email) for u in await user_crud.list_household_users(db, household_id)]
        for user_id, email in accounts:
            await self.delete_account(db, user_id, email)

        await db.execute(delete(Household).where(Household.id == household_id))
        await db.commit()

        logger.info(
            "household_deleted",
            household_id=str(household_id),
            products=products,
            accounts=len(accounts),
        )


teardown_service = TeardownService()
