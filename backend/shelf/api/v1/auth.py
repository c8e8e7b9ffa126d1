"""Authentication and account API endpoints."""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.config import settings
from shelf.core.database import get_db
from shelf.dependencies import (
    get_current_user,
    get_membership_service,
    get_verification_service,
)
from shelf.models.user import User
from shelf.schemas.auth import (
    AccessTokenResponse,
    RefreshTokenRequest,
    ResendVerificationResponse,
    SignInRequest,
    SignUpRequest,
    TokenRequest,
    TokenResponse,
    VerifyEmailResponse,
)
from shelf.schemas.user import ApiKeyUpdate, DisplayNameUpdate, User as UserSchema
from shelf.services.credential_service import credential_service
from shelf.services.membership_service import MembershipService
from shelf.services.rate_limit_service import RateLimitService, get_rate_limit_service
from shelf.services.verification_service import VerificationService

router = APIRouter()


@router.post("/sign-up", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    request: Request,
    data: SignUpRequest,
    db: AsyncSession = Depends(get_db),
    rate_limiter: RateLimitService = Depends(get_rate_limit_service),
):
    """Create an unassigned account and sign it in."""
    await rate_limiter.check_rate_limit(request, max_requests=5, window_seconds=3600)

    user = await credential_service.sign_up(db, data.email, data.password)
    access_token, refresh_token = await credential_service.open_session(db, user.id)
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=UserSchema.from_model(user),
    )


@router.post("/sign-in", response_model=TokenResponse)
async def sign_in(
    request: Request,
    data: SignInRequest,
    db: AsyncSession = Depends(get_db),
    rate_limiter: RateLimitService = Depends(get_rate_limit_service),
):
    await rate_limiter.check_rate_limit(request, max_requests=5, window_seconds=300)

    user = await credential_service.authenticate(db, data.email, data.password)
    access_token, refresh_token = await credential_service.open_session(db, user.id)
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=UserSchema.from_model(user),
    )


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    request: Request,
    data: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db),
    rate_limiter: RateLimitService = Depends(get_rate_limit_service),
):
    """Rotate the refresh token and issue a new access token."""
    await rate_limiter.check_rate_limit(request, max_requests=10, window_seconds=60)

    access_token, refresh_token = await credential_service.refresh_session(db, data.refresh_token)
    return AccessTokenResponse(access_token=access_token, refresh_token=refresh_token)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    data: RefreshTokenRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await credential_service.close_session(db, data.refresh_token)


@router.get("/me", response_model=UserSchema)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserSchema.from_model(current_user)


@router.patch("/me", response_model=UserSchema)
async def update_me(
    data: DisplayNameUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    membership: MembershipService = Depends(get_membership_service),
):
    """Change the display name (1-32 characters after trimming)."""
    user = await membership.update_display_name(db, current_user, data.display_name)
    return UserSchema.from_model(user)


@router.put("/me/api-key", response_model=UserSchema)
async def update_api_key(
    data: ApiKeyUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    membership: MembershipService = Depends(get_membership_service),
):
    user = await membership.update_api_key(db, current_user, data.api_key)
    return UserSchema.from_model(user)


@router.post("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(
    request: Request,
    data: TokenRequest,
    db: AsyncSession = Depends(get_db),
    verification: VerificationService = Depends(get_verification_service),
    rate_limiter: RateLimitService = Depends(get_rate_limit_service),
):
    """Confirm an email address with the token from the emailed link."""
    await rate_limiter.check_rate_limit(
        request,
        max_requests=settings.TOKEN_ENDPOINT_MAX_REQUESTS,
        window_seconds=settings.TOKEN_ENDPOINT_WINDOW_SECONDS,
    )
    user_id = await verification.verify_with_token(db, data.token)
    return VerifyEmailResponse(user_id=str(user_id))


@router.post("/resend-verification", response_model=ResendVerificationResponse)
async def resend_verification(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    verification: VerificationService = Depends(get_verification_service),
    rate_limiter: RateLimitService = Depends(get_rate_limit_service),
):
    """Send a fresh verification link. The new link replaces any earlier one."""
    await rate_limiter.check_rate_limit(
        request,
        max_requests=settings.RESEND_VERIFICATION_MAX_REQUESTS,
        window_seconds=settings.RESEND_VERIFICATION_WINDOW_SECONDS,
        identifier=f"user:{current_user.id}",
        scope="resend-verification",
    )

    resend_status = await verification.resend(db, current_user)
    return ResendVerificationResponse(status=resend_status.value)
