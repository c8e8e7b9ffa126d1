"""Product model."""

import enum
import uuid

from sqlalchemy import Column, DateTime, Enum as SQLEnum, ForeignKey, Index, Numeric, String

from shelf.core.database import Base
from shelf.core.db_types import UUID
from shelf.utils.datetime_utils import utc_now_lambda


class AmountUnit(str, enum.Enum):
    """Units products are stored in. kg and l are converted on input."""

    PCS = "pcs"
    G = "g"
    ML = "ml"


class Product(Base):
    """A tracked item on a household's shelf."""

    __tablename__ = "products"
    __table_args__ = (Index("ix_products_household_updated", "household_id", "updated_at"),)

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    # Null only for rows created before households existed; adopted by the first owner
    household_id = Column(
        UUID(), ForeignKey("households.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name = Column(String(255), nullable=False)
    tag = Column(String(64), nullable=False, default="#other")
    amount_value = Column(Numeric(14, 3), nullable=False)
    amount_unit = Column(
        SQLEnum(AmountUnit, name="amount_unit", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    min_amount_value = Column(Numeric(14, 3), nullable=True)
    # Weak attribution: cleared when the user is removed, never cascaded
    updated_by = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)
    updated_at = Column(DateTime, default=utc_now_lambda, nullable=False)

    @property
    def is_low_stock(self) -> bool:
        if self.min_amount_value is None:
            return False
        return self.amount_value <= self.min_amount_value

    def __repr__(self):
        return f"<Product {self.name}>"
