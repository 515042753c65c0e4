"""Unit tests for BindingReconciler input checks and blocking rules."""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from uuid import uuid4
from sqlalchemy.ext.asyncio import AsyncSession

from rent_backoffice.core.exceptions import (
    BindingConsistencyError,
    InvalidRentTermsError,
    NotFoundError,
)
from rent_backoffice.models.tenant import Tenant, TenantUnit
from rent_backoffice.models.property import Unit
from rent_backoffice.services.binding_reconciler import BindingReconciler

STORE = "rent_backoffice.services.binding_reconciler.BindingStore"


@pytest.mark.asyncio
async def test_negative_rent_rejected_before_any_read():
    db = AsyncMock(spec=AsyncSession)
    with patch(f"{STORE}.get_tenant", new_callable=AsyncMock) as mock_get_tenant:
        with pytest.raises(InvalidRentTermsError):
            await BindingReconciler().assign_primary_binding(
                db, uuid4(), uuid4(), rent_amount=Decimal("-5")
            )
        assert not mock_get_tenant.called
    assert not db.commit.called


@pytest.mark.asyncio
@pytest.mark.parametrize("due_day", [0, 32, True, "5"])
async def test_due_day_out_of_range_rejected(due_day):
    db = AsyncMock(spec=AsyncSession)
    with pytest.raises(InvalidRentTermsError):
        await BindingReconciler().assign_primary_binding(db, uuid4(), uuid4(), rent_due_day=due_day)


@pytest.mark.asyncio
async def test_non_numeric_rent_rejected():
    db = AsyncMock(spec=AsyncSession)
    with pytest.raises(InvalidRentTermsError):
        await BindingReconciler().assign_primary_binding(db, uuid4(), uuid4(), rent_amount="lots")


@pytest.mark.asyncio
async def test_unknown_tenant_is_not_found():
    db = AsyncMock(spec=AsyncSession)
    with patch(f"{STORE}.get_tenant", new_callable=AsyncMock) as mock_get_tenant:
        mock_get_tenant.return_value = None
        with pytest.raises(NotFoundError):
            await BindingReconciler().assign_primary_binding(
                db, uuid4(), uuid4(), rent_amount=Decimal("1800"), rent_due_day=1
            )


@pytest.mark.asyncio
async def test_tenant_with_two_primaries_is_blocked():
    db = AsyncMock(spec=AsyncSession)
    tenant_id = uuid4()
    primaries = [
        TenantUnit(id=uuid4(), tenant_id=tenant_id, unit_id=uuid4(), is_primary=True),
        TenantUnit(id=uuid4(), tenant_id=tenant_id, unit_id=uuid4(), is_primary=True),
    ]
    with patch(f"{STORE}.get_tenant", new_callable=AsyncMock) as mock_get_tenant, \
            patch(f"{STORE}.get_unit", new_callable=AsyncMock) as mock_get_unit, \
            patch(f"{STORE}.list_primary_bindings", new_callable=AsyncMock) as mock_primaries, \
            patch(f"{STORE}.set_primary_flag", new_callable=AsyncMock) as mock_set_flag:
        mock_get_tenant.return_value = Tenant(id=tenant_id)
        mock_get_unit.return_value = Unit(id=uuid4())
        mock_primaries.return_value = primaries

        with pytest.raises(BindingConsistencyError) as exc_info:
            await BindingReconciler().assign_primary_binding(
                db, tenant_id, uuid4(), rent_amount=Decimal("1800"), rent_due_day=1
            )

        assert exc_info.value.primary_count == 2
        assert not mock_set_flag.called


@pytest.mark.asyncio
async def test_first_binding_requires_both_terms():
    db = AsyncMock(spec=AsyncSession)
    tenant_id = uuid4()
    with patch(f"{STORE}.get_tenant", new_callable=AsyncMock) as mock_get_tenant, \
            patch(f"{STORE}.get_unit", new_callable=AsyncMock) as mock_get_unit, \
            patch(f"{STORE}.list_primary_bindings", new_callable=AsyncMock) as mock_primaries, \
            patch(f"{STORE}.list_bindings", new_callable=AsyncMock) as mock_bindings, \
            patch(f"{STORE}.upsert_binding", new_callable=AsyncMock) as mock_upsert:
        mock_get_tenant.return_value = Tenant(id=tenant_id)
        mock_get_unit.return_value = Unit(id=uuid4())
        mock_primaries.return_value = []
        mock_bindings.return_value = []

        with pytest.raises(InvalidRentTermsError):
            await BindingReconciler().assign_primary_binding(
                db, tenant_id, uuid4(), rent_amount=Decimal("1800")
            )
        assert not mock_upsert.called
