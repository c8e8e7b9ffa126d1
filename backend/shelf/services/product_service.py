"""Household product list."""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from shelf.core.exceptions import InvalidProduct, ProductNotFound
from shelf.crud.product import product_crud
from shelf.models.product import AmountUnit, Product
from shelf.models.user import User
from shelf.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

DEFAULT_TAG = "#other"
LEGACY_TAGS = {"#uncategorized": DEFAULT_TAG}

# Accepted input unit -> (stored unit, multiplier)
UNIT_CONVERSIONS = {
    "pcs": (AmountUnit.PCS, Decimal(1)),
    "g": (AmountUnit.G, Decimal(1)),
    "grams": (AmountUnit.G, Decimal(1)),
    "kg": (AmountUnit.G, Decimal(1000)),
    "ml": (AmountUnit.ML, Decimal(1)),
    "milliliters": (AmountUnit.ML, Decimal(1)),
    "l": (AmountUnit.ML, Decimal(1000)),
}


def normalize_tag(tag: Optional[str]) -> str:
    """``"Dairy"`` -> ``"#dairy"``; blank -> ``#other``."""
    cleaned = (tag or "").strip().lower()
    if not cleaned or cleaned == "#":
        return DEFAULT_TAG
    if not cleaned.startswith("#"):
        cleaned = f"#{cleaned}"
    return LEGACY_TAGS.get(cleaned, cleaned)


def normalize_amount(value: Decimal, unit: str) -> tuple[Decimal, AmountUnit]:
    """Convert an amount to its stored unit (kg -> g, l -> ml)."""
    key = (unit or "").strip().lower()
    if key not in UNIT_CONVERSIONS:
        raise InvalidProduct("Unit must be one of: pcs, g, ml, kg, l.")
    if value is None or value <= 0:
        raise InvalidProduct("Amount must be greater than 0.")
    stored_unit, factor = UNIT_CONVERSIONS[key]
    return value * factor, stored_unit


def _normalize_min_amount(
    value: Optional[Decimal], unit: Optional[str], amount_unit: AmountUnit
) -> Optional[Decimal]:
    if value is None:
        return None
    min_value, min_unit = normalize_amount(value, unit or amount_unit.value)
    if min_unit != amount_unit:
        raise InvalidProduct("Minimum amount must use the same kind of unit as the amount.")
    return min_value


class ProductService:
    """Create, update, delete and list products of the caller's household."""

    @staticmethod
    async def list_products(db: AsyncSession, user: User) -> list[Product]:
        return await product_crud.list_by_household(db, user.household_id)

    @staticmethod
    async def create(
        db: AsyncSession,
        user: User,
        name: str,
        tag: Optional[str],
        amount_value: Decimal,
        amount_unit: str,
        min_amount_value: Optional[Decimal] = None,
        min_amount_unit: Optional[str] = None,
    ) -> Product:
        name = (name or "").strip()
        if not name:
            raise InvalidProduct("Name is required.")
        value, unit = normalize_amount(amount_value, amount_unit)

        now = utc_now()
        product = Product(
            household_id=user.household_id,
            name=name,
            tag=normalize_tag(tag),
            amount_value=value,
            amount_unit=unit,
            min_amount_value=_normalize_min_amount(min_amount_value, min_amount_unit, unit),
            updated_by=user.id,
            created_at=now,
            updated_at=now,
        )
        db.add(product)
        await db.commit()
        return product

    @staticmethod
    async def update(
        db: AsyncSession,
        user: User,
        product_id: UUID,
        name: str,
        tag: Optional[str],
        amount_value: Decimal,
        amount_unit: str,
        min_amount_value: Optional[Decimal] = None,
        min_amount_unit: Optional[str] = None,
    ) -> Product:
        product = await product_crud.get(db, user.household_id, product_id)
        if product is None:
            raise ProductNotFound()

        name = (name or "").strip()
        if not name:
            raise InvalidProduct("Name is required.")
        value, unit = normalize_amount(amount_value, amount_unit)

        product.name = name
        product.tag = normalize_tag(tag)
        product.amount_value = value
        product.amount_unit = unit
        product.min_amount_value = _normalize_min_amount(min_amount_value, min_amount_unit, unit)
        product.updated_by = user.id
        product.updated_at = utc_now()
        await db.commit()
        return product

    @staticmethod
    async def delete(db: AsyncSession, user: User, product_id: UUID) -> None:
        product = await product_crud.get(db, user.household_id, product_id)
        if product is None:
            raise ProductNotFound()
        await db.delete(product)
        await db.commit()
        logger.info("Product %s deleted by user %s", product_id, user.id)


product_service = ProductService()
