"""User, household, credential and session models."""

import enum
import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    String,
    UniqueConstraint,
)

from shelf.core.database import Base
from shelf.core.db_types import UUID
from shelf.utils.datetime_utils import utc_now, utc_now_lambda


class UserRole(str, enum.Enum):
    """Household role. Unassigned accounts have no role."""

    OWNER = "owner"
    MEMBER = "member"


class Household(Base):
    """A private group sharing one product list."""

    __tablename__ = "households"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, default="Household")
    # No FK: the owner row itself points back here through users.household_id
    owner_id = Column(UUID(), nullable=False, index=True)
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)

    def __repr__(self):
        return f"<Household {self.id}>"


class User(Base):
    """An authenticated account, optionally bound to one household."""

    __tablename__ = "users"
    __table_args__ = (
        # Role and household are assigned together, exactly once
        CheckConstraint(
            "(role IS NULL) = (household_id IS NULL)",
            name="ck_users_role_household",
        ),
    )

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True, index=True)
    display_name = Column(String(64), nullable=True)
    role = Column(
        SQLEnum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    household_id = Column(
        UUID(), ForeignKey("households.id", ondelete="CASCADE"), nullable=True, index=True
    )
    email_verified_at = Column(DateTime, nullable=True)
    api_key = Column(String(255), nullable=True)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)
    updated_at = Column(DateTime, default=utc_now_lambda, onupdate=utc_now_lambda, nullable=False)

    @property
    def is_assigned(self) -> bool:
        return self.role is not None

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER

    @property
    def is_member(self) -> bool:
        return self.role == UserRole.MEMBER

    @property
    def is_verified(self) -> bool:
        return self.email_verified_at is not None

    def __repr__(self):
        return f"<User {self.id}>"


class AuthAccount(Base):
    """Credential record linking a login provider identity to a user."""

    __tablename__ = "auth_accounts"
    __table_args__ = (
        UniqueConstraint("provider", "provider_account_id", name="uq_auth_accounts_provider_id"),
    )

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider = Column(String(32), nullable=False)
    provider_account_id = Column(String(255), nullable=False)
    secret_hash = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)


class RefreshToken(Base):
    """A login session, identified by the hash of its refresh token id."""

    __tablename__ = "refresh_tokens"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token_hash = Column(String(255), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)

    @property
    def is_expired(self) -> bool:
        return utc_now() > self.expires_at

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None


class EmailVerificationToken(Base):
    """One-time token proving control of an account's email address."""

    __tablename__ = "email_verification_tokens"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Address the link was sent to; must still match the account on redemption
    email = Column(String(255), nullable=False, index=True)
    # SHA-256 of the raw token; the raw value only ever appears in the email
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)

    @property
    def is_expired(self) -> bool:
        return utc_now() > self.expires_at
