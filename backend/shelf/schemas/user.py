"""User Pydantic schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from shelf.models.user import UserRole


class User(BaseModel):
    """Account as returned to its owner."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    display_name: Optional[str] = None
    role: Optional[UserRole] = None
    household_id: Optional[UUID] = None
    email_verified_at: Optional[datetime] = None
    has_api_key: bool = False
    created_at: datetime

    @classmethod
    def from_model(cls, user) -> "User":
        data = cls.model_validate(user)
        data.has_api_key = bool(user.api_key)
        return data


class DisplayNameUpdate(BaseModel):
    display_name: str = Field(..., max_length=256)


class ApiKeyUpdate(BaseModel):
    """Blank or null clears the stored key."""

    api_key: Optional[str] = Field(None, max_length=255)
