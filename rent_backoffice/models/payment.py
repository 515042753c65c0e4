"""Rent obligations and the notification log"""

from sqlalchemy import (
    Column, String, Text, Date, DateTime, Numeric, ForeignKey, Enum,
    UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship

from rent_backoffice.models.base import BaseModel
from rent_backoffice.models.enums import (
    PaymentStatus, NotificationType, NotificationChannel, NotificationStatus,
)


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


class RentPayment(BaseModel):
    """
    One tenant's rent obligation for one unit and one calendar month.

    period_start (first day of the due date's month) carries the
    one-per-month uniqueness so overlapping sweeps cannot double-bill.
    """
    __tablename__ = "rent_payments"
    __table_args__ = (
        UniqueConstraint("tenant_id", "unit_id", "period_start", name="uq_rent_payments_period"),
    )

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="RESTRICT"), nullable=False, index=True)
    unit_id = Column(Uuid(as_uuid=True), ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    period_start = Column(Date, nullable=False)
    payment_date = Column(Date, nullable=True)
    status = Column(
        Enum(PaymentStatus, name="payment_status", values_callable=_enum_values),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_method = Column(String(50), nullable=True)
    payment_link = Column(Text, nullable=True)
    last_notified_at = Column(DateTime, nullable=True)

    tenant = relationship("Tenant")
    unit = relationship("Unit")
    notifications = relationship("Notification", back_populates="payment")

    def __repr__(self) -> str:
        return f"<RentPayment {self.due_date} {self.amount} - {self.status}>"


class Notification(BaseModel):
    """Every delivery attempt made on behalf of an obligation, sent or failed"""
    __tablename__ = "notifications"

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="RESTRICT"), nullable=False, index=True)
    payment_id = Column(Uuid(as_uuid=True), ForeignKey("rent_payments.id", ondelete="SET NULL"), nullable=True, index=True)
    type = Column(Enum(NotificationType, name="notification_type", values_callable=_enum_values), nullable=False)
    channel = Column(
        Enum(NotificationChannel, name="notification_channel", values_callable=_enum_values),
        default=NotificationChannel.WHATSAPP,
        nullable=False,
    )
    status = Column(
        Enum(NotificationStatus, name="notification_status", values_callable=_enum_values),
        default=NotificationStatus.PENDING,
        nullable=False,
    )
    message_id = Column(String(255), nullable=True)
    error = Column(Text, nullable=True)
    sent_at = Column(DateTime, nullable=True)

    payment = relationship("RentPayment", back_populates="notifications")

    def __repr__(self) -> str:
        return f"<Notification {self.type} {self.status}>"
