"""Rent Service - obligation reads, payment recording and the monthly status report"""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from rent_backoffice.core.exceptions import DuplicateObligationError, NotFoundError
from rent_backoffice.models.enums import PaymentStatus, RecordedPaymentStatus
from rent_backoffice.models.payment import RentPayment
from rent_backoffice.schemas.billing import (
    PaymentRecord, RentPaymentCreate, RentStatusReport, NotBilledItem, LateItem,
)
from rent_backoffice.services.binding_store import BindingStore
from rent_backoffice.services.payment_store import PaymentStore
from rent_backoffice.utils.time import clamp_due_date, days_late, month_bounds

logger = logging.getLogger(__name__)


class RentService:
    @staticmethod
    async def get_payment(db: AsyncSession, payment_id: UUID) -> RentPayment:
        payment = await PaymentStore.get_obligation(db, payment_id)
        if payment is None:
            raise NotFoundError("Rent payment", payment_id)
        return payment

    @staticmethod
    async def list_payments(
        db: AsyncSession,
        tenant_id: Optional[UUID] = None,
        status: Optional[PaymentStatus] = None,
    ) -> List[RentPayment]:
        return await PaymentStore.list_obligations(db, tenant_id=tenant_id, status=status)

    @staticmethod
    async def create_payment(db: AsyncSession, data: RentPaymentCreate, today: date) -> RentPayment:
        """
        Enter an obligation by hand.

        Same one-per-month rule as the billing sweep: a second obligation for
        the tenant/unit in the due date's month is refused. A due date already
        past is created as late.
        """
        if await BindingStore.get_tenant(db, data.tenant_id) is None:
            raise NotFoundError("Tenant", data.tenant_id)
        if await BindingStore.get_unit(db, data.unit_id) is None:
            raise NotFoundError("Unit", data.unit_id)

        period_start, period_end = month_bounds(data.due_date)
        duplicate = DuplicateObligationError(data.tenant_id, data.unit_id, period_start)
        if await PaymentStore.find_obligation(
            db, data.tenant_id, data.unit_id, period_start, period_end
        ) is not None:
            raise duplicate

        status = PaymentStatus.LATE if data.due_date < today else PaymentStatus.PENDING
        payment = await PaymentStore.insert_obligation(db, RentPayment(
            tenant_id=data.tenant_id,
            unit_id=data.unit_id,
            amount=data.amount,
            due_date=data.due_date,
            period_start=period_start,
            status=status,
            payment_link=data.payment_link,
        ))
        if payment is None:
            raise duplicate
        logger.info(
            "Created rent payment by hand",
            extra={"payment_id": str(payment.id), "status": status.value},
        )
        return payment

    @staticmethod
    async def record_payment(
        db: AsyncSession,
        payment_id: UUID,
        data: PaymentRecord,
        today: date,
    ) -> RentPayment:
        """
        Record an externally received payment as paid or partial.

        This is the only way an obligation leaves pending/late; the late sweep
        never touches paid or partial rows afterwards.
        """
        await RentService.get_payment(db, payment_id)
        status = PaymentStatus(RecordedPaymentStatus(data.status).value)
        await PaymentStore.update_obligation_status(
            db,
            payment_id,
            status,
            payment_date=data.payment_date or today,
            payment_method=data.payment_method,
        )
        logger.info(
            "Recorded rent payment",
            extra={"payment_id": str(payment_id), "status": status.value},
        )
        return await RentService.get_payment(db, payment_id)

    @staticmethod
    async def rent_status(db: AsyncSession, today: date) -> RentStatusReport:
        """Primary bindings not yet billed this month, and every late obligation."""
        period_start, period_end = month_bounds(today)
        rows = await BindingStore.list_all_primary_rows(db)

        not_billed = []
        for row in rows:
            tenant_name = row.tenant.full_name if row.tenant else str(row.tenant_id)
            unit_label = row.unit.unit_number if row.unit else str(row.unit_id)
            item = NotBilledItem(
                tenant_id=row.tenant_id,
                tenant=tenant_name,
                unit_id=row.unit_id,
                unit=unit_label,
                rent_amount=row.rent_amount,
            )
            missing = row.missing_terms()
            if missing:
                item.problem = f"missing {', '.join(missing)}"
                not_billed.append(item)
                continue

            due_date = clamp_due_date(today.year, today.month, row.rent_due_day)
            if due_date > today:
                continue
            existing = await PaymentStore.find_obligation(
                db, row.tenant_id, row.unit_id, period_start, period_end
            )
            if existing is None:
                item.due_date = due_date
                item.days_past_due = days_late(due_date, today)
                not_billed.append(item)

        late = [
            LateItem(
                payment_id=p.id,
                tenant_id=p.tenant_id,
                unit_id=p.unit_id,
                amount=p.amount,
                due_date=p.due_date,
                days_late=days_late(p.due_date, today),
            )
            for p in await PaymentStore.list_obligations_by_status(db, PaymentStatus.LATE)
        ]
        return RentStatusReport(run_date=today, not_billed=not_billed, late=late)
