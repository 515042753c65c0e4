"""API Dependencies"""

from typing import Optional
from fastapi import Depends, Query

from rent_backoffice.config import settings
from rent_backoffice.database import get_db
from rent_backoffice.services.binding_reconciler import BindingReconciler, binding_reconciler
from rent_backoffice.services.notification_service import (
    NotificationDispatcher,
    get_notification_dispatcher,
)
from rent_backoffice.services.payment_link_service import (
    PaymentLinkProvider,
    get_payment_link_provider,
)
from rent_backoffice.utils.time import Clock, SystemClock

__all__ = [
    "get_db",
    "get_clock",
    "get_billing_clock",
    "get_dispatcher",
    "get_link_provider",
    "get_reconciler",
]


def get_clock() -> Clock:
    """Today's date in the billing timezone"""
    return SystemClock(settings.BILLING_TIMEZONE)


def get_billing_clock(
    clock: Clock = Depends(get_clock),
    day: Optional[int] = Query(
        None, ge=1, le=31,
        description="Replay the run as if today were this day of the current month",
    ),
) -> Clock:
    """
    Clock for scheduler-triggered runs.

    The optional ``day`` override pins the date to that day of the current
    month, clamped to the month's length.
    """
    return clock.with_day(day)


def get_dispatcher() -> NotificationDispatcher:
    return get_notification_dispatcher()


def get_link_provider() -> PaymentLinkProvider:
    return get_payment_link_provider()


def get_reconciler() -> BindingReconciler:
    return binding_reconciler
