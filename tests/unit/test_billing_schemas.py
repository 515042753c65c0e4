"""Unit tests for tenant, binding and billing schemas."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4
from pydantic import ValidationError

from rent_backoffice.schemas.tenant import BindingAssign, TenantCreate, UNSET
from rent_backoffice.schemas.billing import PaymentRecord
from rent_backoffice.models.enums import RecordedPaymentStatus


def test_binding_assign_omitted_fields_are_unset():
    data = BindingAssign(unit_id=uuid4(), rent_amount=Decimal("2000"))
    terms = data.terms()
    assert terms["rent_amount"] == Decimal("2000")
    assert terms["rent_due_day"] is UNSET
    assert terms["lease_start"] is UNSET
    assert terms["lease_end"] is UNSET


def test_binding_assign_explicit_null_is_kept():
    data = BindingAssign.model_validate({"unit_id": str(uuid4()), "rent_due_day": None})
    terms = data.terms()
    assert terms["rent_due_day"] is None
    assert terms["rent_amount"] is UNSET


def test_binding_assign_rejects_due_day_out_of_range():
    with pytest.raises(ValidationError):
        BindingAssign(unit_id=uuid4(), rent_due_day=0)
    with pytest.raises(ValidationError):
        BindingAssign(unit_id=uuid4(), rent_due_day=32)


def test_binding_assign_rejects_negative_rent():
    with pytest.raises(ValidationError):
        BindingAssign(unit_id=uuid4(), rent_amount=Decimal("-1"))


def test_binding_assign_rejects_lease_end_before_start():
    with pytest.raises(ValidationError):
        BindingAssign(
            unit_id=uuid4(),
            lease_start=date(2025, 6, 1),
            lease_end=date(2025, 5, 31),
        )


def test_unset_is_falsy_singleton():
    assert not UNSET
    assert type(UNSET)() is UNSET


def test_tenant_create_without_unit():
    data = TenantCreate(first_name="Tara", last_name="Singh", phone="+14165550100")
    assert data.unit_id is None
    assert data.email is None


def test_tenant_create_invalid_email():
    with pytest.raises(ValidationError):
        TenantCreate(first_name="Tara", last_name="Singh", phone="+14165550100", email="not-an-email")


def test_payment_record_accepts_paid_and_partial():
    assert PaymentRecord(status="paid").status == RecordedPaymentStatus.PAID
    assert PaymentRecord(status="partial").status == RecordedPaymentStatus.PARTIAL


def test_payment_record_rejects_engine_statuses():
    with pytest.raises(ValidationError):
        PaymentRecord(status="late")
    with pytest.raises(ValidationError):
        PaymentRecord(status="pending")
