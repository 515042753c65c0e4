"""Unit tests for the WhatsApp dispatcher and payment-link provider."""

import json
import pytest
import httpx
from datetime import date
from decimal import Decimal
from urllib.parse import urlparse, parse_qs
from uuid import uuid4

from rent_backoffice.core.exceptions import CollaboratorError
from rent_backoffice.models.enums import NotificationType
from rent_backoffice.services.notification_service import (
    LoggingDispatcher,
    NotificationContext,
    ObligationNotice,
    TenantContact,
    WhatsAppDispatcher,
    build_template_payload,
    format_phone,
    get_notification_dispatcher,
)
from rent_backoffice.services.payment_link_service import InteracRequestLinkProvider


TENANT = TenantContact(name="Tara Singh", phone="+1 (416) 555-0100", email="tara@example.com")


def _notice():
    return ObligationNotice(
        obligation_id=uuid4(),
        amount=Decimal("1800.00"),
        due_date=date(2025, 3, 1),
        payment_link="https://pay.test/r/1",
    )


def test_format_phone_strips_punctuation():
    assert format_phone("+1 (416) 555-0100") == "+14165550100"


def test_format_phone_rejects_empty():
    with pytest.raises(CollaboratorError):
        format_phone("n/a")


def test_rent_due_payload():
    payload = build_template_payload(
        TENANT, _notice(), "101", "12 Maple St, Toronto",
        NotificationContext(NotificationType.RENT_DUE), "en_US",
    )
    assert payload["to"] == "+14165550100"
    assert payload["template"]["name"] == "rent_due_notification"
    params = payload["template"]["components"][0]["parameters"]
    assert params[0]["text"] == "Tara Singh"
    assert params[1]["date_time"]["fallback_value"] == "March 01, 2025"
    assert params[2]["currency"]["amount_1000"] == 1800000
    assert params[4]["text"] == "https://pay.test/r/1"


def test_rent_late_payload_carries_days_late():
    payload = build_template_payload(
        TENANT, _notice(), "101", "12 Maple St, Toronto",
        NotificationContext(NotificationType.RENT_LATE, days_late=3), "en_US",
    )
    assert payload["template"]["name"] == "rent_late_notification"
    assert payload["template"]["components"][0]["parameters"][1]["text"] == "3"


def test_payload_without_template_fails():
    with pytest.raises(CollaboratorError):
        build_template_payload(
            TENANT, _notice(), "101", "addr",
            NotificationContext(NotificationType.RECEIPT), "en_US",
        )


@pytest.mark.asyncio
async def test_whatsapp_dispatcher_returns_message_id():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        seen["path"] = request.url.path
        return httpx.Response(200, json={"messages": [{"id": "wamid.123"}]})

    dispatcher = WhatsAppDispatcher("token-abc", "55501", transport=httpx.MockTransport(handler))
    message_id = await dispatcher.notify(
        TENANT, _notice(), "101", "12 Maple St", NotificationContext(NotificationType.RENT_DUE)
    )

    assert message_id == "wamid.123"
    assert seen["auth"] == "Bearer token-abc"
    assert seen["path"].endswith("/55501/messages")
    assert seen["body"]["messaging_product"] == "whatsapp"


@pytest.mark.asyncio
async def test_whatsapp_dispatcher_http_error_is_collaborator_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": "boom"}))
    dispatcher = WhatsAppDispatcher("token", "55501", transport=transport)
    with pytest.raises(CollaboratorError):
        await dispatcher.notify(
            TENANT, _notice(), "101", "addr", NotificationContext(NotificationType.RENT_DUE)
        )


@pytest.mark.asyncio
async def test_whatsapp_dispatcher_unexpected_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"messages": []}))
    dispatcher = WhatsAppDispatcher("token", "55501", transport=transport)
    with pytest.raises(CollaboratorError):
        await dispatcher.notify(
            TENANT, _notice(), "101", "addr", NotificationContext(NotificationType.RENT_DUE)
        )


@pytest.mark.asyncio
async def test_whatsapp_dispatcher_non_json_body():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>gateway</html>"))
    dispatcher = WhatsAppDispatcher("token", "55501", transport=transport)
    with pytest.raises(CollaboratorError):
        await dispatcher.notify(
            TENANT, _notice(), "101", "addr", NotificationContext(NotificationType.RENT_DUE)
        )


@pytest.mark.asyncio
async def test_logging_dispatcher_returns_synthetic_id():
    message_id = await LoggingDispatcher().notify(
        TENANT, _notice(), "101", "addr", NotificationContext(NotificationType.RENT_DUE)
    )
    assert message_id.startswith("log-")


def test_test_environment_uses_logging_dispatcher():
    assert isinstance(get_notification_dispatcher(), LoggingDispatcher)


@pytest.mark.asyncio
async def test_interac_link_contains_request_details():
    provider = InteracRequestLinkProvider("https://interac.test/request")
    link = await provider.generate_link("tara@example.com", "Tara Singh", Decimal("1800"), "Rent payment for unit 101")

    parsed = urlparse(link)
    query = parse_qs(parsed.query)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://interac.test/request"
    assert query["email"] == ["tara@example.com"]
    assert query["amount"] == ["1800.00"]
    assert query["message"] == ["Rent payment for unit 101"]
    assert query["reference"][0].startswith("rent-")


@pytest.mark.asyncio
async def test_interac_links_are_unique():
    provider = InteracRequestLinkProvider("https://interac.test/request")
    first = await provider.generate_link("tara@example.com", "Tara", Decimal("10"), "memo")
    second = await provider.generate_link("tara@example.com", "Tara", Decimal("10"), "memo")
    assert first != second


@pytest.mark.asyncio
async def test_interac_link_requires_email():
    with pytest.raises(CollaboratorError):
        await InteracRequestLinkProvider().generate_link(None, "Tara", Decimal("10"), "memo")


@pytest.mark.asyncio
async def test_interac_link_rejects_zero_amount():
    with pytest.raises(CollaboratorError):
        await InteracRequestLinkProvider().generate_link("tara@example.com", "Tara", Decimal("0"), "memo")
