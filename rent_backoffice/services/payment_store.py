"""Payment Store - rent_payments and notifications persistence"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rent_backoffice.core.exceptions import IncompleteBindingError
from rent_backoffice.models.enums import (
    PaymentStatus, NotificationType, NotificationChannel, NotificationStatus,
)
from rent_backoffice.models.payment import RentPayment, Notification
from rent_backoffice.models.property import Unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObligationView:
    """Obligation joined with tenant, unit and property, detached from the session."""
    obligation_id: UUID
    tenant_id: UUID
    unit_id: UUID
    amount: Decimal
    due_date: date
    status: PaymentStatus
    payment_link: Optional[str]
    last_notified_at: Optional[datetime]
    tenant_name: str
    tenant_phone: str
    unit_number: str
    property_address: str

    @classmethod
    def from_row(cls, payment: RentPayment) -> "ObligationView":
        tenant = payment.tenant
        unit = payment.unit
        if tenant is None or unit is None or unit.property is None:
            raise IncompleteBindingError(payment.id, ["tenant/unit/property"])
        return cls(
            obligation_id=payment.id,
            tenant_id=payment.tenant_id,
            unit_id=payment.unit_id,
            amount=Decimal(payment.amount),
            due_date=payment.due_date,
            status=PaymentStatus(payment.status),
            payment_link=payment.payment_link,
            last_notified_at=payment.last_notified_at,
            tenant_name=tenant.full_name,
            tenant_phone=tenant.phone,
            unit_number=unit.unit_number,
            property_address=unit.property.full_address,
        )


class PaymentStore:
    """Service layer for rent_payments. Every write is its own transaction."""

    @staticmethod
    async def get_obligation(db: AsyncSession, obligation_id: UUID) -> Optional[RentPayment]:
        result = await db.execute(select(RentPayment).execution_options(populate_existing=True).where(RentPayment.id == obligation_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def find_obligation(
        db: AsyncSession,
        tenant_id: UUID,
        unit_id: UUID,
        period_start: date,
        period_end: date,
    ) -> Optional[RentPayment]:
        """Any obligation for tenant/unit whose due date falls inside the period."""
        result = await db.execute(
            select(RentPayment).execution_options(populate_existing=True)
            .where(
                RentPayment.tenant_id == tenant_id,
                RentPayment.unit_id == unit_id,
                RentPayment.due_date >= period_start,
                RentPayment.due_date <= period_end,
            )
            .limit(1)
        )
        return result.scalars().first()

    @staticmethod
    async def insert_obligation(db: AsyncSession, obligation: RentPayment) -> Optional[RentPayment]:
        """Insert one obligation.

        Returns None when the one-per-month constraint rejects it, which means a
        concurrent sweep got there first.
        """
        db.add(obligation)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info(
                "Obligation already exists for period",
                extra={"tenant_id": str(obligation.tenant_id), "period_start": str(obligation.period_start)},
            )
            return None
        await db.refresh(obligation)
        return obligation

    @staticmethod
    async def list_obligations_by_status(
        db: AsyncSession,
        status: PaymentStatus,
        due_before: Optional[date] = None,
    ) -> List[RentPayment]:
        stmt = select(RentPayment).execution_options(populate_existing=True).where(RentPayment.status == status)
        if due_before is not None:
            stmt = stmt.where(RentPayment.due_date < due_before)
        result = await db.execute(stmt.order_by(RentPayment.due_date))
        return list(result.scalars().all())

    @staticmethod
    async def list_obligation_views(db: AsyncSession, status: PaymentStatus) -> List[ObligationView]:
        result = await db.execute(
            select(RentPayment).execution_options(populate_existing=True)
            .where(RentPayment.status == status)
            .options(
                selectinload(RentPayment.tenant),
                selectinload(RentPayment.unit).selectinload(Unit.property),
            )
            .order_by(RentPayment.due_date)
        )
        return [ObligationView.from_row(row) for row in result.scalars().all()]

    @staticmethod
    async def list_obligations(
        db: AsyncSession,
        tenant_id: Optional[UUID] = None,
        status: Optional[PaymentStatus] = None,
    ) -> List[RentPayment]:
        stmt = select(RentPayment).execution_options(populate_existing=True)
        if tenant_id is not None:
            stmt = stmt.where(RentPayment.tenant_id == tenant_id)
        if status is not None:
            stmt = stmt.where(RentPayment.status == status)
        result = await db.execute(stmt.order_by(RentPayment.due_date.desc()))
        return list(result.scalars().all())

    @staticmethod
    async def update_obligation_status(
        db: AsyncSession,
        obligation_id: UUID,
        status: PaymentStatus,
        payment_date: Optional[date] = None,
        expected: Optional[List[PaymentStatus]] = None,
        payment_method: Optional[str] = None,
    ) -> bool:
        """Set status on one row.

        With ``expected``, the update only applies while the row is still in
        one of those statuses (compare-and-set). Returns whether a row changed.
        """
        values = {"status": status}
        if payment_date is not None:
            values["payment_date"] = payment_date
        if payment_method is not None:
            values["payment_method"] = payment_method
        stmt = update(RentPayment).where(RentPayment.id == obligation_id)
        if expected:
            stmt = stmt.where(RentPayment.status.in_(expected))
        result = await db.execute(
            stmt.values(**values).execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount == 1

    @staticmethod
    async def mark_notified(db: AsyncSession, obligation_id: UUID, at: datetime) -> None:
        await db.execute(
            update(RentPayment)
            .where(RentPayment.id == obligation_id)
            .values(last_notified_at=at)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    @staticmethod
    async def record_notification(
        db: AsyncSession,
        tenant_id: UUID,
        payment_id: Optional[UUID],
        type: NotificationType,
        message_id: Optional[str],
        sent_at: Optional[datetime],
        error: Optional[str] = None,
        channel: NotificationChannel = NotificationChannel.WHATSAPP,
    ) -> Notification:
        notification = Notification(
            tenant_id=tenant_id,
            payment_id=payment_id,
            type=type,
            channel=channel,
            status=NotificationStatus.SENT if message_id else NotificationStatus.FAILED,
            message_id=message_id,
            sent_at=sent_at if message_id else None,
            error=error,
        )
        db.add(notification)
        await db.commit()
        await db.refresh(notification)
        return notification

    @staticmethod
    async def list_notifications(db: AsyncSession, payment_id: UUID) -> List[Notification]:
        result = await db.execute(
            select(Notification)
            .where(Notification.payment_id == payment_id)
            .order_by(Notification.created_at)
        )
        return list(result.scalars().all())
