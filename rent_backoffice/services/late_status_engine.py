"""Late Status Transition Engine - pending to late, reminders, N4/L1 eligibility"""

import logging
from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from rent_backoffice.config import settings
from rent_backoffice.core.exceptions import CollaboratorError
from rent_backoffice.models.enums import PaymentStatus, NoticeTier, NotificationType
from rent_backoffice.schemas.billing import SweepItem, NoticeEligibility, LateRentResult
from rent_backoffice.services.notification_service import (
    NotificationDispatcher, TenantContact, ObligationNotice, NotificationContext,
)
from rent_backoffice.services.payment_store import PaymentStore, ObligationView
from rent_backoffice.utils.time import Clock, days_late, local_date

logger = logging.getLogger(__name__)

NOTIFICATION_SENT = "notification_sent"
RECENTLY_NOTIFIED = "skipped_recently_notified"
FAILED = "failed"


class LateStatusEngine:
    """
    Daily sweep over unpaid obligations.

    pending -> late is the only transition made here, and it is a
    compare-and-set on the pending status, so a payment recorded while the
    sweep runs is kept. Notice eligibility is computed on every read and
    never stored.
    """

    def __init__(
        self,
        clock: Clock,
        dispatcher: NotificationDispatcher,
        n4_threshold_days: Optional[int] = None,
        l1_threshold_days: Optional[int] = None,
        reminder_interval_days: Optional[int] = None,
        billing_timezone: Optional[str] = None,
    ):
        self.clock = clock
        self.dispatcher = dispatcher
        self.n4_threshold_days = (
            n4_threshold_days if n4_threshold_days is not None else settings.N4_THRESHOLD_DAYS
        )
        self.l1_threshold_days = (
            l1_threshold_days if l1_threshold_days is not None else settings.L1_THRESHOLD_DAYS
        )
        self.reminder_interval_days = (
            reminder_interval_days if reminder_interval_days is not None
            else settings.LATE_REMINDER_INTERVAL_DAYS
        )
        self.billing_timezone = billing_timezone or settings.BILLING_TIMEZONE

    def threshold(self, tier: NoticeTier) -> int:
        return self.n4_threshold_days if tier == NoticeTier.N4 else self.l1_threshold_days

    async def run_sweep(self, db: AsyncSession) -> LateRentResult:
        today = self.clock.today()
        transitioned, errors = await self.transition_overdue(db)

        views = await PaymentStore.list_obligation_views(db, PaymentStatus.LATE)
        reminders = []
        for view in views:
            late_by = days_late(view.due_date, today)
            if late_by < self.n4_threshold_days:
                reminders.append(await self._remind(db, view, late_by, today))

        result = LateRentResult(
            run_date=today,
            transitioned=transitioned,
            reminders=reminders,
            n4_eligible=self.eligibility(views, NoticeTier.N4, today),
            l1_eligible=self.eligibility(views, NoticeTier.L1, today),
            errors=errors,
        )
        logger.info(
            "Late rent sweep finished",
            extra={
                "run_date": today.isoformat(),
                "transitioned": len(result.transitioned),
                "reminders": len(result.reminders),
                "n4_eligible": len(result.n4_eligible),
                "l1_eligible": len(result.l1_eligible),
                "errors": len(result.errors),
            },
        )
        return result

    async def transition_overdue(self, db: AsyncSession) -> Tuple[List[UUID], List[SweepItem]]:
        """Move pending obligations due before today to late."""
        today = self.clock.today()
        overdue = await PaymentStore.list_obligations_by_status(db, PaymentStatus.PENDING, due_before=today)
        snapshot = [(p.id, p.tenant_id, p.unit_id, p.due_date) for p in overdue]

        transitioned, errors = [], []
        for payment_id, tenant_id, unit_id, due_date in snapshot:
            try:
                changed = await PaymentStore.update_obligation_status(
                    db, payment_id, PaymentStatus.LATE, expected=[PaymentStatus.PENDING]
                )
            except SQLAlchemyError as e:
                await db.rollback()
                logger.exception("Failed to mark payment %s late", payment_id)
                errors.append(SweepItem(
                    status=FAILED, payment_id=payment_id, tenant_id=tenant_id,
                    unit_id=unit_id, due_date=due_date, error=str(e),
                ))
                continue
            if changed:
                transitioned.append(payment_id)
            else:
                logger.info("Payment %s changed status during the sweep, left as is", payment_id)
        return transitioned, errors

    async def list_notice_eligibility(self, db: AsyncSession, tier: NoticeTier) -> List[NoticeEligibility]:
        views = await PaymentStore.list_obligation_views(db, PaymentStatus.LATE)
        return self.eligibility(views, tier, self.clock.today())

    def eligibility(
        self,
        views: List[ObligationView],
        tier: NoticeTier,
        today: date,
    ) -> List[NoticeEligibility]:
        threshold = self.threshold(tier)
        eligible = []
        for view in views:
            late_by = days_late(view.due_date, today)
            if late_by >= threshold:
                eligible.append(NoticeEligibility(
                    tier=tier,
                    payment_id=view.obligation_id,
                    tenant_id=view.tenant_id,
                    tenant=view.tenant_name,
                    unit_id=view.unit_id,
                    unit=view.unit_number,
                    amount=view.amount,
                    due_date=view.due_date,
                    days_late=late_by,
                ))
        return eligible

    def _recently_notified(self, view: ObligationView, today: date) -> bool:
        if view.last_notified_at is None or self.reminder_interval_days <= 0:
            return False
        notified_on = local_date(view.last_notified_at, self.billing_timezone)
        return (today - notified_on).days < self.reminder_interval_days

    async def _remind(self, db: AsyncSession, view: ObligationView, late_by: int, today: date) -> SweepItem:
        item = SweepItem(
            status=FAILED,
            payment_id=view.obligation_id,
            tenant_id=view.tenant_id,
            unit_id=view.unit_id,
            tenant=view.tenant_name,
            unit=view.unit_number,
            amount=view.amount,
            due_date=view.due_date,
            days_late=late_by,
        )
        if self._recently_notified(view, today):
            item.status = RECENTLY_NOTIFIED
            return item

        try:
            message_id = await self.dispatcher.notify(
                TenantContact(view.tenant_name, view.tenant_phone),
                ObligationNotice(view.obligation_id, view.amount, view.due_date, view.payment_link),
                view.unit_number,
                view.property_address,
                NotificationContext(NotificationType.RENT_LATE, days_late=late_by),
            )
        except Exception as e:
            error = e.message if isinstance(e, CollaboratorError) else f"{type(e).__name__}: {e}"
            logger.exception(
                "Late reminder failed: %s", error,
                extra={"payment_id": str(view.obligation_id)},
            )
            item.error = error
            try:
                await PaymentStore.record_notification(
                    db, view.tenant_id, view.obligation_id, NotificationType.RENT_LATE,
                    message_id=None, sent_at=None, error=error,
                )
            except SQLAlchemyError:
                await db.rollback()
                logger.exception("Could not record failed reminder for %s", view.obligation_id)
            return item

        try:
            sent_at = self.clock.now()
            await PaymentStore.record_notification(
                db, view.tenant_id, view.obligation_id, NotificationType.RENT_LATE,
                message_id=message_id, sent_at=sent_at,
            )
            await PaymentStore.mark_notified(db, view.obligation_id, sent_at)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("Could not record reminder for %s", view.obligation_id)
            item.error = str(e)
            item.notification_id = message_id
            return item

        item.status = NOTIFICATION_SENT
        item.notification_id = message_id
        return item
