"""Product API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from shelf.core.database import get_db
from shelf.dependencies import get_verified_user
from shelf.models.user import User
from shelf.schemas.product import ProductResponse, ProductWrite
from shelf.services.product_service import product_service

router = APIRouter()


@router.get("", response_model=list[ProductResponse])
async def list_products(
    current_user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db),
):
    """Household products, most recently updated first."""
    return await product_service.list_products(db, current_user)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    data: ProductWrite,
    current_user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db),
):
    return await product_service.create(db, current_user, **data.model_dump())


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID,
    data: ProductWrite,
    current_user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db),
):
    return await product_service.update(db, current_user, product_id, **data.model_dump())


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: UUID,
    current_user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db),
):
    await product_service.delete(db, current_user, product_id)
