"""Household membership API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.core.database import get_db
from shelf.dependencies import (
    get_assigned_user,
    get_current_user,
    get_membership_service,
    get_owner,
    get_verified_owner,
)
from shelf.models.user import User, UserRole
from shelf.schemas.household import (
    DisplayNameRequest,
    HouseholdAssignmentResponse,
    MemberListItem,
)
from shelf.services.membership_service import MembershipService
from shelf.services.teardown_service import teardown_service

router = APIRouter()


@router.post("/owner", response_model=HouseholdAssignmentResponse, status_code=status.HTTP_201_CREATED)
async def create_owner(
    data: DisplayNameRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    membership: MembershipService = Depends(get_membership_service),
):
    """Create a new household with the caller as its owner."""
    household_id = await membership.create_owner(db, current_user, data.display_name)
    return HouseholdAssignmentResponse(household_id=household_id, role=UserRole.OWNER)


@router.post("/join", response_model=HouseholdAssignmentResponse)
async def join_household(
    data: DisplayNameRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    membership: MembershipService = Depends(get_membership_service),
):
    """Join the household whose invite for the caller's email was accepted."""
    household_id = await membership.join_household(db, current_user, data.display_name)
    return HouseholdAssignmentResponse(household_id=household_id, role=UserRole.MEMBER)


@router.get("/members", response_model=list[MemberListItem])
async def list_members(
    current_user: User = Depends(get_verified_owner),
    db: AsyncSession = Depends(get_db),
    membership: MembershipService = Depends(get_membership_service),
):
    return await membership.list_members(db, current_user)


@router.delete("/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    member_id: UUID,
    current_user: User = Depends(get_verified_owner),
    db: AsyncSession = Depends(get_db),
):
    """Remove a member and delete their account."""
    await teardown_service.remove_member(db, current_user, member_id)


@router.post("/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_household(
    current_user: User = Depends(get_assigned_user),
    db: AsyncSession = Depends(get_db),
):
    """Leave the household. Deletes the caller's account."""
    await teardown_service.leave_household(db, current_user)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_household(
    current_user: User = Depends(get_owner),
    db: AsyncSession = Depends(get_db),
):
    """Delete the household, its products and every account in it."""
    await teardown_service.delete_household(db, current_user)
