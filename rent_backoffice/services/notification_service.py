"""Notification dispatch for rent notices (WhatsApp Cloud API).

Dispatchers send one message and return the provider's delivery id, or raise
CollaboratorError. Recording the attempt is the caller's job.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

import httpx

from rent_backoffice.config import settings
from rent_backoffice.core.exceptions import CollaboratorError
from rent_backoffice.models.enums import NotificationType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantContact:
    name: str
    phone: str
    email: Optional[str] = None


@dataclass(frozen=True)
class ObligationNotice:
    obligation_id: uuid.UUID
    amount: Decimal
    due_date: date
    payment_link: Optional[str] = None


@dataclass(frozen=True)
class NotificationContext:
    type: NotificationType
    days_late: Optional[int] = None


TEMPLATES = {
    NotificationType.RENT_DUE: "rent_due_notification",
    NotificationType.RENT_LATE: "rent_late_notification",
}


class NotificationDispatcher:
    """Contract for notification collaborators"""

    async def notify(
        self,
        tenant: TenantContact,
        obligation: ObligationNotice,
        unit_number: str,
        property_address: str,
        context: NotificationContext,
    ) -> str:
        raise NotImplementedError


def format_phone(phone: str) -> str:
    digits = "".join(ch for ch in phone if ch.isdigit())
    if not digits:
        raise CollaboratorError(f"Invalid phone number: {phone!r}")
    return f"+{digits}"


def build_template_payload(
    tenant: TenantContact,
    obligation: ObligationNotice,
    unit_number: str,
    property_address: str,
    context: NotificationContext,
    language: str,
) -> dict:
    """Template message body for the Cloud API /messages endpoint."""
    template = TEMPLATES.get(context.type)
    if template is None:
        raise CollaboratorError(f"No WhatsApp template for {context.type.value}")

    amount = Decimal(obligation.amount)
    if context.type == NotificationType.RENT_LATE:
        detail = {"type": "text", "text": str(context.days_late or 0)}
    else:
        detail = {
            "type": "date_time",
            "date_time": {"fallback_value": obligation.due_date.strftime("%B %d, %Y")},
        }
    parameters = [
        {"type": "text", "text": tenant.name},
        detail,
        {
            "type": "currency",
            "currency": {
                "fallback_value": f"${amount:,.2f}",
                "code": "CAD",
                "amount_1000": int(amount * 1000),
            },
        },
        {"type": "text", "text": f"{unit_number}, {property_address}"},
        {"type": "text", "text": obligation.payment_link or ""},
    ]
    return {
        "messaging_product": "whatsapp",
        "to": format_phone(tenant.phone),
        "type": "template",
        "template": {
            "name": template,
            "language": {"code": language},
            "components": [{"type": "body", "parameters": parameters}],
        },
    }


class WhatsAppDispatcher(NotificationDispatcher):
    """Sends template messages through the Meta WhatsApp Cloud API."""

    def __init__(
        self,
        access_token: str,
        phone_number_id: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.url = (
            f"{settings.WHATSAPP_API_BASE_URL.rstrip('/')}/"
            f"{settings.WHATSAPP_API_VERSION}/{phone_number_id}/messages"
        )
        self.transport = transport

    async def notify(self, tenant, obligation, unit_number, property_address, context) -> str:
        payload = build_template_payload(
            tenant, obligation, unit_number, property_address, context,
            settings.WHATSAPP_TEMPLATE_LANGUAGE,
        )
        try:
            async with httpx.AsyncClient(
                transport=self.transport,
                timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
            ) as client:
                resp = await client.post(
                    self.url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.access_token}"},
                )
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CollaboratorError(f"WhatsApp send failed: {e}") from e

        try:
            message_id = data["messages"][0]["id"]
        except (KeyError, IndexError, TypeError):
            raise CollaboratorError(f"Unexpected WhatsApp response: {data!r}")
        logger.info(
            "WhatsApp %s sent",
            context.type.value,
            extra={"obligation_id": str(obligation.obligation_id), "message_id": message_id},
        )
        return message_id


class LoggingDispatcher(NotificationDispatcher):
    """Used when WhatsApp is not configured or in the test environment."""

    async def notify(self, tenant, obligation, unit_number, property_address, context) -> str:
        message_id = f"log-{uuid.uuid4().hex}"
        logger.info(
            "Notification skipped (WhatsApp not configured): %s to %s for unit %s",
            context.type.value,
            tenant.name,
            unit_number,
            extra={"obligation_id": str(obligation.obligation_id), "message_id": message_id},
        )
        return message_id


def get_notification_dispatcher() -> NotificationDispatcher:
    if settings.is_test or not (settings.WHATSAPP_ACCESS_TOKEN and settings.WHATSAPP_PHONE_NUMBER_ID):
        return LoggingDispatcher()
    return WhatsAppDispatcher(settings.WHATSAPP_ACCESS_TOKEN, settings.WHATSAPP_PHONE_NUMBER_ID)
