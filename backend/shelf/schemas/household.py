"""Household and invitation Pydantic schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from shelf.models.invite import InviteStatus
from shelf.models.user import UserRole


class DisplayNameRequest(BaseModel):
    """Body of create-owner and join; length is checked by the service."""

    display_name: str = Field(..., max_length=256)


class HouseholdAssignmentResponse(BaseModel):
    household_id: UUID
    role: UserRole


class InviteCreate(BaseModel):
    email: EmailStr


class InviteRevoke(BaseModel):
    email: EmailStr


class InviteRevokeResponse(BaseModel):
    revoked: int


class InviteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    household_id: UUID
    email: str
    status: InviteStatus
    invited_at: datetime
    accepted_at: Optional[datetime] = None


class InviteRedeemResponse(BaseModel):
    household_id: UUID


class InviteStatusResponse(BaseModel):
    invite_status: str  # reserved | accepted | none
    has_user: bool
    user_role: Optional[UserRole] = None
    blocked_for_owner: bool


class MemberListItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str
    key: str
    user_id: Optional[UUID] = None
    display_name: Optional[str] = None
    email: str
    status_label: Optional[str] = None
