"""SQLAlchemy models package."""

from shelf.models.user import (
    AuthAccount,
    EmailVerificationToken,
    Household,
    RefreshToken,
    User,
    UserRole,
)
from shelf.models.invite import InviteStatus, InviteToken, MemberInvite
from shelf.models.product import AmountUnit, Product

__all__ = [
    "AuthAccount",
    "EmailVerificationToken",
    "Household",
    "RefreshToken",
    "User",
    "UserRole",
    "InviteStatus",
    "InviteToken",
    "MemberInvite",
    "AmountUnit",
    "Product",
]
