"""Integration tests: payment recording and the monthly rent status report."""

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from uuid import uuid4

from rent_backoffice.core.exceptions import DuplicateObligationError, NotFoundError
from rent_backoffice.models.enums import PaymentStatus, RecordedPaymentStatus
from rent_backoffice.schemas.billing import PaymentRecord, RentPaymentCreate
from rent_backoffice.services.late_status_engine import LateStatusEngine
from rent_backoffice.services.rent_service import RentService
from rent_backoffice.utils.time import FixedClock

from tests.conftest import (
    RecordingDispatcher,
    create_binding,
    create_payment,
    create_tenant,
    create_unit,
)


@pytest.mark.asyncio
async def test_record_full_payment(db):
    unit = await create_unit(db)
    tenant = await create_tenant(db)
    payment = await create_payment(db, tenant, unit, date(2025, 3, 1), PaymentStatus.LATE)

    updated = await RentService.record_payment(
        db,
        payment.id,
        PaymentRecord(status=RecordedPaymentStatus.PAID, payment_method="e-transfer"),
        today=date(2025, 3, 6),
    )

    assert updated.status == PaymentStatus.PAID
    assert updated.payment_date == date(2025, 3, 6)
    assert updated.payment_method == "e-transfer"


@pytest.mark.asyncio
async def test_record_partial_payment_with_explicit_date(db):
    unit = await create_unit(db)
    tenant = await create_tenant(db)
    payment = await create_payment(db, tenant, unit, date(2025, 3, 1))

    updated = await RentService.record_payment(
        db,
        payment.id,
        PaymentRecord(status="partial", payment_date=date(2025, 3, 2)),
        today=date(2025, 3, 6),
    )

    assert updated.status == PaymentStatus.PARTIAL
    assert updated.payment_date == date(2025, 3, 2)


@pytest.mark.asyncio
async def test_recorded_payment_survives_late_sweep(db):
    unit = await create_unit(db)
    tenant = await create_tenant(db)
    payment = await create_payment(db, tenant, unit, date(2025, 3, 1))
    await RentService.record_payment(
        db, payment.id, PaymentRecord(status="partial"), today=date(2025, 3, 1)
    )

    result = await LateStatusEngine(FixedClock(date(2025, 3, 20)), RecordingDispatcher()).run_sweep(db)

    assert result.transitioned == []
    assert (await RentService.get_payment(db, payment.id)).status == PaymentStatus.PARTIAL


@pytest.mark.asyncio
async def test_record_unknown_payment_is_not_found(db):
    with pytest.raises(NotFoundError):
        await RentService.record_payment(
            db, uuid4(), PaymentRecord(status="paid"), today=date(2025, 3, 1)
        )


@pytest.mark.asyncio
async def test_list_payments_filters(db):
    unit_a = await create_unit(db, "101")
    unit_b = await create_unit(db, "102")
    ana = await create_tenant(db, first_name="Ana", email="ana@example.com")
    ben = await create_tenant(db, first_name="Ben", email="ben@example.com")
    await create_payment(db, ana, unit_a, date(2025, 2, 1), PaymentStatus.PAID)
    await create_payment(db, ana, unit_a, date(2025, 3, 1), PaymentStatus.LATE)
    await create_payment(db, ben, unit_b, date(2025, 3, 1))

    assert len(await RentService.list_payments(db, tenant_id=ana.id)) == 2
    late = await RentService.list_payments(db, status=PaymentStatus.LATE)
    assert [p.tenant_id for p in late] == [ana.id]


@pytest.mark.asyncio
async def test_rent_status_report(db):
    units = [await create_unit(db, str(n)) for n in (101, 102, 103, 104)]
    unbilled = await create_tenant(db, first_name="Ana", email="ana@example.com")
    billed = await create_tenant(db, first_name="Ben", email="ben@example.com")
    upcoming = await create_tenant(db, first_name="Cy", email="cy@example.com")
    broken = await create_tenant(db, first_name="Di", email="di@example.com")
    await create_binding(db, unbilled, units[0], rent_due_day=1)
    await create_binding(db, billed, units[1], rent_due_day=1)
    await create_binding(db, upcoming, units[2], rent_due_day=25)
    await create_binding(db, broken, units[3], rent_due_day=None)
    late = await create_payment(db, billed, units[1], date(2025, 3, 1), PaymentStatus.LATE)

    report = await RentService.rent_status(db, date(2025, 3, 10))

    by_tenant = {item.tenant_id: item for item in report.not_billed}
    assert set(by_tenant) == {unbilled.id, broken.id}
    assert by_tenant[unbilled.id].due_date == date(2025, 3, 1)
    assert by_tenant[unbilled.id].days_past_due == 9
    assert by_tenant[unbilled.id].rent_amount == Decimal("1800.00")
    assert "rent_due_day" in by_tenant[broken.id].problem

    assert [item.payment_id for item in report.late] == [late.id]
    assert report.late[0].days_late == 9


def _manual(tenant_id, unit_id, due_date, amount="1800.00") -> RentPaymentCreate:
    return RentPaymentCreate(tenant_id=tenant_id, unit_id=unit_id, amount=amount, due_date=due_date)


@pytest.mark.asyncio
async def test_create_payment_by_hand(db):
    unit = await create_unit(db)
    tenant = await create_tenant(db)

    payment = await RentService.create_payment(
        db, _manual(tenant.id, unit.id, date(2025, 3, 15)), today=date(2025, 3, 1)
    )

    assert payment.status == PaymentStatus.PENDING
    assert payment.amount == Decimal("1800.00")
    assert payment.period_start == date(2025, 3, 1)


@pytest.mark.asyncio
async def test_create_payment_with_past_due_date_is_late(db):
    unit = await create_unit(db)
    tenant = await create_tenant(db)

    payment = await RentService.create_payment(
        db, _manual(tenant.id, unit.id, date(2025, 2, 1)), today=date(2025, 3, 1)
    )

    assert payment.status == PaymentStatus.LATE
    assert payment.period_start == date(2025, 2, 1)


@pytest.mark.asyncio
async def test_create_payment_refuses_second_in_same_month(db):
    unit = await create_unit(db)
    tenant = await create_tenant(db)
    await create_payment(db, tenant, unit, date(2025, 3, 1))
    tenant_id, unit_id = tenant.id, unit.id

    with pytest.raises(DuplicateObligationError):
        await RentService.create_payment(
            db, _manual(tenant_id, unit_id, date(2025, 3, 20)), today=date(2025, 3, 1)
        )

    assert len(await RentService.list_payments(db, tenant_id=tenant_id)) == 1


@pytest.mark.asyncio
async def test_create_payment_unique_constraint_reports_duplicate(db):
    """A row inserted between the lookup and the insert still yields a conflict."""
    unit = await create_unit(db)
    tenant = await create_tenant(db)
    await create_payment(db, tenant, unit, date(2025, 3, 1))
    tenant_id, unit_id = tenant.id, unit.id

    with patch(
        "rent_backoffice.services.rent_service.PaymentStore.find_obligation",
        new=AsyncMock(return_value=None),
    ):
        with pytest.raises(DuplicateObligationError):
            await RentService.create_payment(
                db, _manual(tenant_id, unit_id, date(2025, 3, 1)), today=date(2025, 3, 1)
            )

    assert len(await RentService.list_payments(db, tenant_id=tenant_id)) == 1


@pytest.mark.asyncio
async def test_create_payment_next_month_is_allowed(db):
    unit = await create_unit(db)
    tenant = await create_tenant(db)
    await create_payment(db, tenant, unit, date(2025, 3, 1))
    tenant_id, unit_id = tenant.id, unit.id

    payment = await RentService.create_payment(
        db, _manual(tenant_id, unit_id, date(2025, 4, 1)), today=date(2025, 3, 1)
    )

    assert payment.period_start == date(2025, 4, 1)
    assert len(await RentService.list_payments(db, tenant_id=tenant_id)) == 2


@pytest.mark.asyncio
async def test_create_payment_unknown_unit(db):
    tenant = await create_tenant(db)
    with pytest.raises(NotFoundError):
        await RentService.create_payment(
            db, _manual(tenant.id, uuid4(), date(2025, 3, 1)), today=date(2025, 3, 1)
        )
