"""Models Package - Export all models for easy imports"""

from rent_backoffice.models.base import BaseModel
from rent_backoffice.models.enums import *
from rent_backoffice.models.property import Property, Unit
from rent_backoffice.models.tenant import Tenant, TenantUnit
from rent_backoffice.models.payment import RentPayment, Notification


__all__ = [
    "BaseModel",

    # Portfolio
    "Property",
    "Unit",

    # Tenants and bindings
    "Tenant",
    "TenantUnit",

    # Billing
    "RentPayment",
    "Notification",

    # Enums
    "PaymentStatus",
    "RecordedPaymentStatus",
    "NoticeTier",
    "NotificationType",
    "NotificationChannel",
    "NotificationStatus",
]
