"""Centralized Enum Definitions"""

import enum


# Rent obligations
class PaymentStatus(str, enum.Enum):
    """Lifecycle of a rent obligation. Only PENDING -> LATE is automatic."""
    PENDING = "pending"
    LATE = "late"
    PARTIAL = "partial"
    PAID = "paid"


class RecordedPaymentStatus(str, enum.Enum):
    """Statuses an external payment-recording action may set"""
    PARTIAL = "partial"
    PAID = "paid"


class NoticeTier(str, enum.Enum):
    """Ontario Landlord and Tenant Board forms for non-payment of rent"""
    N4 = "n4"
    L1 = "l1"


# Notifications
class NotificationType(str, enum.Enum):
    RENT_DUE = "rent_due"
    RENT_LATE = "rent_late"
    RECEIPT = "receipt"
    FORM_N4 = "form_n4"
    FORM_L1 = "form_l1"


class NotificationChannel(str, enum.Enum):
    WHATSAPP = "whatsapp"
    EMAIL = "email"


class NotificationStatus(str, enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
