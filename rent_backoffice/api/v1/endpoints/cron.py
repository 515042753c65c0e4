"""Scheduler-triggered billing runs"""

from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rent_backoffice.api import deps
from rent_backoffice.models.enums import NoticeTier
from rent_backoffice.schemas.billing import DueRentResult, LateRentResult, EligibilityResult
from rent_backoffice.schemas.responses import SuccessResponse
from rent_backoffice.services.billing_generator import BillingPeriodGenerator
from rent_backoffice.services.late_status_engine import LateStatusEngine
from rent_backoffice.services.notification_service import NotificationDispatcher
from rent_backoffice.services.payment_link_service import PaymentLinkProvider
from rent_backoffice.utils.time import Clock

router = APIRouter()


@router.post("/due-rent", response_model=SuccessResponse[DueRentResult])
async def run_due_rent(
    db: AsyncSession = Depends(deps.get_db),
    clock: Clock = Depends(deps.get_billing_clock),
    link_provider: PaymentLinkProvider = Depends(deps.get_link_provider),
    dispatcher: NotificationDispatcher = Depends(deps.get_dispatcher),
) -> Any:
    """
    Create this month's obligations for bindings due today, then catch up
    bindings whose due day has already passed.
    """
    generator = BillingPeriodGenerator(clock, link_provider, dispatcher)
    result = await generator.run(db)
    return SuccessResponse(
        data=result,
        message=f"Processed {result.processed} binding(s), created {result.created} payment(s)",
    )


@router.post("/late-rent", response_model=SuccessResponse[LateRentResult])
async def run_late_rent(
    db: AsyncSession = Depends(deps.get_db),
    clock: Clock = Depends(deps.get_billing_clock),
    dispatcher: NotificationDispatcher = Depends(deps.get_dispatcher),
) -> Any:
    """Mark overdue payments late, send reminders and report notice eligibility."""
    result = await LateStatusEngine(clock, dispatcher).run_sweep(db)
    return SuccessResponse(
        data=result,
        message=f"{len(result.transitioned)} payment(s) marked late",
    )


async def _eligibility(db: AsyncSession, clock: Clock, dispatcher: NotificationDispatcher, tier: NoticeTier):
    results = await LateStatusEngine(clock, dispatcher).list_notice_eligibility(db, tier)
    return SuccessResponse(
        data=EligibilityResult(
            run_date=clock.today(),
            tier=tier,
            eligible_count=len(results),
            results=results,
        ),
        message=f"{len(results)} payment(s) eligible for {tier.value.upper()}",
    )


@router.get("/form-n4", response_model=SuccessResponse[EligibilityResult])
async def list_n4_eligible(
    db: AsyncSession = Depends(deps.get_db),
    clock: Clock = Depends(deps.get_billing_clock),
    dispatcher: NotificationDispatcher = Depends(deps.get_dispatcher),
) -> Any:
    """Late payments old enough for an N4 notice"""
    return await _eligibility(db, clock, dispatcher, NoticeTier.N4)


@router.get("/form-l1", response_model=SuccessResponse[EligibilityResult])
async def list_l1_eligible(
    db: AsyncSession = Depends(deps.get_db),
    clock: Clock = Depends(deps.get_billing_clock),
    dispatcher: NotificationDispatcher = Depends(deps.get_dispatcher),
) -> Any:
    """Late payments old enough for an L1 application"""
    return await _eligibility(db, clock, dispatcher, NoticeTier.L1)
