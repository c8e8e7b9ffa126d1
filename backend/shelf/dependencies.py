"""FastAPI dependencies for authentication, authorization and services."""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.core.database import get_db
from shelf.core.exceptions import EmailNotVerified, Forbidden, Unauthenticated
from shelf.core.security import decode_token
from shelf.crud.user import user_crud
from shelf.models.user import User, UserRole
from shelf.services.email_service import EmailService, get_email_service
from shelf.services.invite_service import InviteService
from shelf.services.membership_service import MembershipService
from shelf.services.verification_service import VerificationService

# Missing credentials are reported as Unauthenticated, not FastAPI's default 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the user from a bearer access token.

    Raises:
        Unauthenticated: missing, malformed or expired token, or unknown user
    """
    if credentials is None:
        raise Unauthenticated()

    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise Unauthenticated("Could not validate credentials.")

    if payload.get("type") != "access":
        raise Unauthenticated("Could not validate credentials.")

    try:
        user_id = UUID(payload.get("sub") or "")
    except ValueError:
        raise Unauthenticated("Could not validate credentials.")

    user = await user_crud.get_by_id(db, user_id)
    if user is None:
        raise Unauthenticated("Could not validate credentials.")

    # Picked up by the request logging middleware
    request.state.user_email = user.email
    return user


async def get_assigned_user(current_user: User = Depends(get_current_user)) -> User:
    """Require an account that already has a household and role."""
    if current_user.role is None or current_user.household_id is None:
        raise Forbidden("Create or join a household first.")
    return current_user


async def get_verified_user(current_user: User = Depends(get_assigned_user)) -> User:
    """Require an assigned account with a confirmed email address."""
    if current_user.email_verified_at is None:
        raise EmailNotVerified()
    return current_user


async def get_owner(current_user: User = Depends(get_assigned_user)) -> User:
    if current_user.role != UserRole.OWNER:
        raise Forbidden("Only the household owner can do this.")
    return current_user


async def get_verified_owner(current_user: User = Depends(get_verified_user)) -> User:
    if current_user.role != UserRole.OWNER:
        raise Forbidden("Only the household owner can do this.")
    return current_user


def get_verification_service(
    mailer: EmailService = Depends(get_email_service),
) -> VerificationService:
    return VerificationService(mailer)


def get_invite_service(mailer: EmailService = Depends(get_email_service)) -> InviteService:
    return InviteService(mailer)


def get_membership_service(
    verification: VerificationService = Depends(get_verification_service),
) -> MembershipService:
    return MembershipService(verification)
