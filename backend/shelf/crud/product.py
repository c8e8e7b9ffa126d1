"""CRUD operations for products."""

from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.models.product import Product
from shelf.utils.datetime_utils import utc_now


class ProductCRUD:
    """CRUD operations for Product model, always scoped to a household."""

    @staticmethod
    async def list_by_household(db: AsyncSession, household_id: UUID) -> list[Product]:
        result = await db.execute(
            select(Product)
            .where(Product.household_id == household_id)
            .order_by(Product.updated_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get(db: AsyncSession, household_id: UUID, product_id: UUID) -> Optional[Product]:
        result = await db.execute(
            select(Product).where(Product.id == product_id, Product.household_id == household_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def adopt_orphans(db: AsyncSession, household_id: UUID, user_id: UUID) -> int:
        """Move products without a household into *household_id*."""
        result = await db.execute(
            update(Product)
            .where(Product.household_id.is_(None))
            .values(household_id=household_id, updated_by=user_id, updated_at=utc_now())
        )
        return result.rowcount or 0

    @staticmethod
    async def clear_updated_by(db: AsyncSession, household_id: UUID, user_id: UUID) -> int:
        result = await db.execute(
            update(Product)
            .where(Product.household_id == household_id, Product.updated_by == user_id)
            .values(updated_by=None)
        )
        return result.rowcount or 0

    @staticmethod
    async def delete_by_household(db: AsyncSession, household_id: UUID) -> int:
        result = await db.execute(
            delete(Product)
            .where(Product.household_id == household_id)
        )
        return result.rowcount or 0


product_crud = ProductCRUD()
