"""Product Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shelf.models.product import AmountUnit


class ProductWrite(BaseModel):
    """Create/update payload. Units accept pcs, g, ml, kg, l."""

    name: str = Field(..., max_length=255)
    tag: Optional[str] = Field(None, max_length=64)
    amount_value: Decimal
    amount_unit: str
    min_amount_value: Optional[Decimal] = None
    min_amount_unit: Optional[str] = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    household_id: Optional[UUID] = None
    name: str
    tag: str
    amount_value: Decimal
    amount_unit: AmountUnit
    min_amount_value: Optional[Decimal] = None
    is_low_stock: bool
    updated_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime
