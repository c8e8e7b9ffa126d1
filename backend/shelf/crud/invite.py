"""CRUD operations for member invites."""

from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.models.invite import ACTIVE_INVITE_STATUSES, InviteStatus, MemberInvite


class InviteCRUD:
    """Lookups over MemberInvite. Emails passed in must already be normalized."""

    @staticmethod
    async def get_by_id(db: AsyncSession, invite_id: UUID, for_update: bool = False) -> Optional[MemberInvite]:
        query = select(MemberInvite).where(MemberInvite.id == invite_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def find_by_email(
        db: AsyncSession,
        email: str,
        statuses: Iterable[InviteStatus] = ACTIVE_INVITE_STATUSES,
        household_id: Optional[UUID] = None,
    ) -> list[MemberInvite]:
        """Invites for *email* in the given statuses, newest first."""
        query = select(MemberInvite).where(
            MemberInvite.email == email,
            MemberInvite.status.in_(list(statuses)),
        )
        if household_id is not None:
            query = query.where(MemberInvite.household_id == household_id)
        result = await db.execute(query.order_by(MemberInvite.invited_at.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def find_active_by_email(db: AsyncSession, email: str) -> Optional[MemberInvite]:
        """First reserved or accepted invite for the email, in any household."""
        result = await db.execute(
            select(MemberInvite)
            .where(
                MemberInvite.email == email,
                MemberInvite.status.in_(ACTIVE_INVITE_STATUSES),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_household(
        db: AsyncSession, household_id: UUID, status: InviteStatus
    ) -> list[MemberInvite]:
        result = await db.execute(
            select(MemberInvite)
            .where(MemberInvite.household_id == household_id, MemberInvite.status == status)
            .order_by(MemberInvite.invited_at.desc())
        )
        return list(result.scalars().all())


invite_crud = InviteCRUD()
