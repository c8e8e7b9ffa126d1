"""Authentication Pydantic schemas."""

from pydantic import BaseModel, EmailStr, Field

from shelf.schemas.user import User


class SignUpRequest(BaseModel):
    """Schema for creating a password account."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=256)


class SignInRequest(BaseModel):
    """Schema for signing in."""

    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """Schema for token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: User


class RefreshTokenRequest(BaseModel):
    """Schema for refresh and sign-out requests."""

    refresh_token: str


class AccessTokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRequest(BaseModel):
    """A one-time token taken from an emailed link."""

    token: str = Field(..., min_length=1, max_length=512)


class VerifyEmailResponse(BaseModel):
    verified: bool = True
    user_id: str


class ResendVerificationResponse(BaseModel):
    status: str  # "sent" | "already_verified"
