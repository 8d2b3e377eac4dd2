"""Checkout routes — lend and return copies."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from library_service.database import get_db
from library_service.schemas.checkout import CheckoutCreate, CheckoutResponse
from library_service.services.checkout_service import CheckoutService

router = APIRouter(prefix="/checkouts", tags=["Checkouts"])


def get_checkout_service(db: AsyncSession = Depends(get_db)) -> CheckoutService:
    return CheckoutService(db)


@router.post("", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def create_checkout(
    data: CheckoutCreate,
    service: CheckoutService = Depends(get_checkout_service),
):
    """Check out a copy to a patron for the standard loan period."""
    checkout = await service.create_checkout(copy_id=data.copy_id, patron_id=data.patron_id)
    return CheckoutResponse.model_validate(checkout)


@router.get("/{checkout_id}", response_model=CheckoutResponse)
async def get_checkout(
    checkout_id: int,
    service: CheckoutService = Depends(get_checkout_service),
):
    return CheckoutResponse.model_validate(await service.get_checkout(checkout_id))


@router.post("/{checkout_id}/return", response_model=CheckoutResponse)
async def return_checkout(
    checkout_id: int,
    service: CheckoutService = Depends(get_checkout_service),
):
    return CheckoutResponse.model_validate(await service.return_checkout(checkout_id))


@router.get("", response_model=list[CheckoutResponse])
async def list_patron_checkouts(
    patron_id: int = Query(..., gt=0),
    active_only: bool = False,
    service: CheckoutService = Depends(get_checkout_service),
):
    """A patron's loans, newest first; ``active_only`` hides returned ones."""
    checkouts = await service.list_patron_checkouts(patron_id, active_only=active_only)
    return [CheckoutResponse.model_validate(c) for c in checkouts]
