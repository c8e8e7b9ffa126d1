"""Member invitation API endpoints."""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.config import settings
from shelf.core.database import get_db
from shelf.dependencies import get_invite_service, get_verified_owner
from shelf.models.user import User
from shelf.schemas.auth import TokenRequest
from shelf.schemas.household import (
    InviteCreate,
    InviteRedeemResponse,
    InviteResponse,
    InviteRevoke,
    InviteRevokeResponse,
    InviteStatusResponse,
)
from shelf.services.invite_service import InviteService
from shelf.services.rate_limit_service import RateLimitService, get_rate_limit_service

router = APIRouter()


@router.post("", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
async def reserve_invite(
    request: Request,
    data: InviteCreate,
    current_user: User = Depends(get_verified_owner),
    db: AsyncSession = Depends(get_db),
    invites: InviteService = Depends(get_invite_service),
    rate_limiter: RateLimitService = Depends(get_rate_limit_service),
):
    """Reserve an email for the household and send the invite."""
    await rate_limiter.check_rate_limit(
        request, max_requests=10, window_seconds=3600, identifier=f"user:{current_user.id}"
    )
    invite = await invites.reserve(db, current_user, data.email)
    return invite


@router.get("", response_model=list[InviteResponse])
async def list_invites(
    current_user: User = Depends(get_verified_owner),
    db: AsyncSession = Depends(get_db),
    invites: InviteService = Depends(get_invite_service),
):
    """Pending (reserved) invites, newest first."""
    return await invites.list_invites(db, current_user)


@router.post("/revoke", response_model=InviteRevokeResponse)
async def revoke_invite(
    data: InviteRevoke,
    current_user: User = Depends(get_verified_owner),
    db: AsyncSession = Depends(get_db),
    invites: InviteService = Depends(get_invite_service),
):
    revoked = await invites.revoke(db, current_user, data.email)
    return InviteRevokeResponse(revoked=revoked)


@router.post("/accept", response_model=InviteRedeemResponse)
async def accept_invite(
    request: Request,
    data: TokenRequest,
    db: AsyncSession = Depends(get_db),
    invites: InviteService = Depends(get_invite_service),
    rate_limiter: RateLimitService = Depends(get_rate_limit_service),
):
    """Accept an invite from the emailed link. No sign-in required."""
    await rate_limiter.check_rate_limit(
        request,
        max_requests=settings.TOKEN_ENDPOINT_MAX_REQUESTS,
        window_seconds=settings.TOKEN_ENDPOINT_WINDOW_SECONDS,
    )
    household_id = await invites.accept_with_token(db, data.token)
    return InviteRedeemResponse(household_id=household_id)


@router.post("/decline", response_model=InviteRedeemResponse)
async def decline_invite(
    request: Request,
    data: TokenRequest,
    db: AsyncSession = Depends(get_db),
    invites: InviteService = Depends(get_invite_service),
    rate_limiter: RateLimitService = Depends(get_rate_limit_service),
):
    """Decline an invite from the emailed link. No sign-in required."""
    await rate_limiter.check_rate_limit(
        request,
        max_requests=settings.TOKEN_ENDPOINT_MAX_REQUESTS,
        window_seconds=settings.TOKEN_ENDPOINT_WINDOW_SECONDS,
    )
    household_id = await invites.decline_with_token(db, data.token)
    return InviteRedeemResponse(household_id=household_id)


@router.get("/status", response_model=InviteStatusResponse)
async def invite_status(
    request: Request,
    email: str = Query(..., min_length=1, max_length=255),
    db: AsyncSession = Depends(get_db),
    invites: InviteService = Depends(get_invite_service),
    rate_limiter: RateLimitService = Depends(get_rate_limit_service),
):
    """Whether an email may sign up as owner, or is reserved for a member."""
    await rate_limiter.check_rate_limit(request, max_requests=30, window_seconds=60)
    check = await invites.check_status(db, email)
    return InviteStatusResponse(
        invite_status=check.invite_status,
        has_user=check.has_user,
        user_role=check.user_role,
        blocked_for_owner=check.blocked_for_owner,
    )
