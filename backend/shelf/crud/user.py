"""CRUD operations for users and sessions."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.models.user import RefreshToken, User, UserRole
from shelf.utils.datetime_utils import utc_now


class UserCRUD:
    """CRUD operations for User model."""

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        """Get user by (already normalized) email."""
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID, for_update: bool = False) -> Optional[User]:
        """Get user by ID."""
        query = select(User).where(User.id == user_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_household_users(db: AsyncSession, household_id: UUID) -> list[User]:
        """Every account bound to the household, owner included."""
        result = await db.execute(select(User).where(User.household_id == household_id))
        return list(result.scalars().all())

    @staticmethod
    async def list_members(db: AsyncSession, household_id: UUID) -> list[User]:
        """Accounts with the member role in the household."""
        result = await db.execute(
            select(User).where(
                User.household_id == household_id,
                User.role == UserRole.MEMBER,
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def update_last_login(db: AsyncSession, user_id: UUID) -> None:
        await db.execute(update(User).where(User.id == user_id).values(last_login_at=utc_now()))
        await db.commit()


class RefreshTokenCRUD:
    """CRUD operations for login sessions."""

    @staticmethod
    async def create(
        db: AsyncSession, user_id: UUID, token_hash: str, expires_at: datetime
    ) -> RefreshToken:
        refresh_token = RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
        db.add(refresh_token)
        await db.commit()
        return refresh_token

    @staticmethod
    async def get_by_token_hash(db: AsyncSession, token_hash: str) -> Optional[RefreshToken]:
        result = await db.execute(select(RefreshToken).where(RefreshToken.token_hash == token_hash))
        return result.scalar_one_or_none()

    @staticmethod
    async def revoke(db: AsyncSession, token_hash: str) -> None:
        await db.execute(
            update(RefreshToken)
            .where(RefreshToken.token_hash == token_hash, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=utc_now())
        )
        await db.commit()


user_crud = UserCRUD()
refresh_token_crud = RefreshTokenCRUD()
