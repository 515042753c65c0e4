from typing import Any, List, Optional
from fastapi import APIRouter, Depends, status as http_status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from rent_backoffice.api import deps
from rent_backoffice.models.enums import PaymentStatus
from rent_backoffice.schemas.billing import (
    RentPaymentResponse, RentPaymentCreate, PaymentRecord, RentStatusReport,
)
from rent_backoffice.schemas.responses import SuccessResponse
from rent_backoffice.services.rent_service import RentService
from rent_backoffice.utils.time import Clock

router = APIRouter()


@router.get("", response_model=SuccessResponse[List[RentPaymentResponse]])
async def list_rent_payments(
    tenant_id: Optional[UUID] = None,
    status: Optional[PaymentStatus] = None,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    payments = await RentService.list_payments(db, tenant_id=tenant_id, status=status)
    return SuccessResponse(data=payments)


@router.post(
    "", response_model=SuccessResponse[RentPaymentResponse], status_code=http_status.HTTP_201_CREATED
)
async def create_rent_payment(
    payment_in: RentPaymentCreate,
    db: AsyncSession = Depends(deps.get_db),
    clock: Clock = Depends(deps.get_clock),
) -> Any:
    """
    Add an obligation by hand. Only one per tenant and unit per month;
    a second one for the same month is rejected with 409.
    """
    payment = await RentService.create_payment(db, payment_in, clock.today())
    return SuccessResponse(data=payment, message="Rent payment created")


@router.get("/status", response_model=SuccessResponse[RentStatusReport])
async def rent_status(
    db: AsyncSession = Depends(deps.get_db),
    clock: Clock = Depends(deps.get_clock),
) -> Any:
    """
    This month's billing gaps: primary bindings past their due day with no
    payment on file, plus every late payment.
    """
    report = await RentService.rent_status(db, clock.today())
    return SuccessResponse(data=report)


@router.get("/{payment_id}", response_model=SuccessResponse[RentPaymentResponse])
async def get_rent_payment(
    payment_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    payment = await RentService.get_payment(db, payment_id)
    return SuccessResponse(data=payment)


@router.put("/{payment_id}", response_model=SuccessResponse[RentPaymentResponse])
async def record_rent_payment(
    payment_id: UUID,
    payment_in: PaymentRecord,
    db: AsyncSession = Depends(deps.get_db),
    clock: Clock = Depends(deps.get_clock),
) -> Any:
    """Record a payment received outside the system as paid or partial."""
    payment = await RentService.record_payment(db, payment_id, payment_in, clock.today())
    return SuccessResponse(data=payment, message="Payment recorded")
