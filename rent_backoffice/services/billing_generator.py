"""Billing Period Generator - one rent obligation per tenant per month"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rent_backoffice.core.exceptions import CollaboratorError, IncompleteBindingError
from rent_backoffice.models.enums import PaymentStatus, NotificationType
from rent_backoffice.models.payment import RentPayment
from rent_backoffice.schemas.billing import SweepItem, DueRentResult
from rent_backoffice.services.binding_store import BindingStore, BillableBinding
from rent_backoffice.services.notification_service import (
    NotificationDispatcher, TenantContact, ObligationNotice, NotificationContext,
)
from rent_backoffice.services.payment_link_service import PaymentLinkProvider
from rent_backoffice.services.payment_store import PaymentStore
from rent_backoffice.utils.time import (
    Clock, clamp_due_date, days_late, due_days_matching, month_bounds,
)

logger = logging.getLogger(__name__)

CREATED_AND_NOTIFIED = "payment_created_and_notification_sent"
CREATED_LATE = "payment_created_late"
SKIPPED_EXISTING = "skipped_existing"
FAILED = "failed"


def _describe(error: Exception) -> str:
    if isinstance(error, CollaboratorError):
        return error.message
    return f"{type(error).__name__}: {error}"


def _incomplete_item(error: IncompleteBindingError) -> SweepItem:
    logger.warning(
        "Primary binding cannot be billed",
        extra={"binding_id": str(error.binding_id), "missing": error.missing},
    )
    return SweepItem(
        status=FAILED,
        tenant_id=error.tenant_id,
        unit_id=error.unit_id,
        error=error.message,
    )


class BillingPeriodGenerator:
    """
    Creates this month's rent obligations from primary bindings.

    ``generate_due_today`` bills bindings whose due day is today and notifies
    the tenant. ``catch_up`` bills bindings whose due day already passed this
    month with nothing on file, as late and without a notice. Both are safe to
    run repeatedly: an existing obligation for the month is left alone, and the
    unique (tenant, unit, period_start) constraint settles concurrent runs.
    """

    def __init__(
        self,
        clock: Clock,
        link_provider: PaymentLinkProvider,
        dispatcher: NotificationDispatcher,
    ):
        self.clock = clock
        self.link_provider = link_provider
        self.dispatcher = dispatcher

    async def run(self, db: AsyncSession) -> DueRentResult:
        """Due-today sweep followed by the catch-up sweep."""
        today = self.clock.today()
        results = await self.generate_due_today(db)
        reported = {
            (item.tenant_id, item.unit_id) for item in results
            if item.status == FAILED and item.payment_id is None
        }
        catch_up = [
            item for item in await self.catch_up(db)
            if not (item.status == FAILED and item.payment_id is None
                    and (item.tenant_id, item.unit_id) in reported)
        ]
        created = sum(
            1 for item in results + catch_up
            if item.payment_id is not None and item.status != SKIPPED_EXISTING
        )
        return DueRentResult(
            run_date=today,
            processed=len(results) + len(catch_up),
            created=created,
            results=results,
            catch_up=catch_up,
        )

    async def generate_due_today(self, db: AsyncSession) -> List[SweepItem]:
        today = self.clock.today()
        day, overflow_from = due_days_matching(today)
        bindings, incomplete = await BindingStore.list_bindings_due_on(db, day, overflow_from)
        logger.info(
            "Generating rent due today",
            extra={"run_date": today.isoformat(), "bindings": len(bindings), "incomplete": len(incomplete)},
        )

        items = [_incomplete_item(e) for e in incomplete]
        for binding in bindings:
            items.append(await self._process(db, binding, today, notify=True))
        return items

    async def catch_up(self, db: AsyncSession) -> List[SweepItem]:
        today = self.clock.today()
        bindings, incomplete = await BindingStore.list_billable_bindings(db)

        items = [_incomplete_item(e) for e in incomplete]
        for binding in bindings:
            due_date = clamp_due_date(today.year, today.month, binding.rent_due_day)
            if due_date >= today:
                continue
            items.append(await self._process(db, binding, today, notify=False))
        if items:
            logger.info("Catch-up billed %d binding(s)", len(items), extra={"run_date": today.isoformat()})
        return items

    async def _process(
        self,
        db: AsyncSession,
        binding: BillableBinding,
        today: date,
        notify: bool,
    ) -> SweepItem:
        due_date = clamp_due_date(today.year, today.month, binding.rent_due_day)
        item = SweepItem(
            status=FAILED,
            tenant_id=binding.tenant_id,
            unit_id=binding.unit_id,
            tenant=binding.tenant_name,
            unit=binding.unit_number,
            amount=binding.rent_amount,
            due_date=due_date,
        )
        try:
            return await self._bill(db, binding, today, due_date, notify, item)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception(
                "Failed to bill binding",
                extra={"binding_id": str(binding.binding_id), "tenant_id": str(binding.tenant_id)},
            )
            item.status = FAILED
            item.error = str(e)
            return item

    async def _bill(
        self,
        db: AsyncSession,
        binding: BillableBinding,
        today: date,
        due_date: date,
        notify: bool,
        item: SweepItem,
    ) -> SweepItem:
        period_start, period_end = month_bounds(today)
        existing = await PaymentStore.find_obligation(
            db, binding.tenant_id, binding.unit_id, period_start, period_end
        )
        if existing is not None:
            item.status = SKIPPED_EXISTING
            item.payment_id = existing.id
            return item

        status = PaymentStatus.LATE if due_date < today else PaymentStatus.PENDING
        link = await self._request_link(binding)

        obligation = await PaymentStore.insert_obligation(db, RentPayment(
            tenant_id=binding.tenant_id,
            unit_id=binding.unit_id,
            amount=binding.rent_amount,
            due_date=due_date,
            period_start=period_start,
            status=status,
            payment_link=link,
        ))
        if obligation is None:
            item.status = SKIPPED_EXISTING
            return item

        item.payment_id = obligation.id
        item.days_late = days_late(due_date, today) if status == PaymentStatus.LATE else None
        logger.info(
            "Created rent obligation",
            extra={
                "payment_id": str(obligation.id),
                "tenant_id": str(binding.tenant_id),
                "due_date": due_date.isoformat(),
                "status": status.value,
            },
        )

        if not notify:
            item.status = CREATED_LATE
            return item

        context = NotificationContext(
            type=NotificationType.RENT_LATE if status == PaymentStatus.LATE else NotificationType.RENT_DUE,
            days_late=item.days_late,
        )
        notice = ObligationNotice(
            obligation_id=obligation.id,
            amount=binding.rent_amount,
            due_date=due_date,
            payment_link=link,
        )
        try:
            message_id = await self.dispatcher.notify(
                TenantContact(binding.tenant_name, binding.tenant_phone, binding.tenant_email),
                notice,
                binding.unit_number,
                binding.property_address,
                context,
            )
        except Exception as e:
            error = _describe(e)
            logger.exception(
                "Rent due notification failed: %s", error,
                extra={"payment_id": str(notice.obligation_id)},
            )
            await PaymentStore.record_notification(
                db, binding.tenant_id, notice.obligation_id, context.type,
                message_id=None, sent_at=None, error=error,
            )
            item.status = FAILED
            item.error = error
            return item

        sent_at = self.clock.now()
        await PaymentStore.record_notification(
            db, binding.tenant_id, notice.obligation_id, context.type,
            message_id=message_id, sent_at=sent_at,
        )
        await PaymentStore.mark_notified(db, notice.obligation_id, sent_at)
        item.status = CREATED_AND_NOTIFIED
        item.notification_id = message_id
        return item

    async def _request_link(self, binding: BillableBinding) -> Optional[str]:
        try:
            return await self.link_provider.generate_link(
                binding.tenant_email,
                binding.tenant_name,
                binding.rent_amount,
                f"Rent payment for unit {binding.unit_number}",
            )
        except CollaboratorError as e:
            logger.warning(
                "Payment link not generated: %s", e.message,
                extra={"tenant_id": str(binding.tenant_id)},
            )
            return None
        except Exception:
            logger.exception(
                "Payment link provider crashed",
                extra={"tenant_id": str(binding.tenant_id)},
            )
            return None
