from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal

from rent_backoffice.models.enums import PaymentStatus, RecordedPaymentStatus, NoticeTier


class SweepItem(BaseModel):
    """Per-item outcome of a sweep. Failures are reported here, not raised."""
    status: str
    tenant_id: Optional[UUID] = None
    unit_id: Optional[UUID] = None
    payment_id: Optional[UUID] = None
    tenant: Optional[str] = None
    unit: Optional[str] = None
    amount: Optional[Decimal] = None
    due_date: Optional[date] = None
    days_late: Optional[int] = None
    notification_id: Optional[str] = None
    error: Optional[str] = None


class DueRentResult(BaseModel):
    run_date: date
    processed: int = 0
    created: int = 0
    results: List[SweepItem] = Field(default_factory=list)
    catch_up: List[SweepItem] = Field(default_factory=list)


class NoticeEligibility(BaseModel):
    """One obligation eligible for a legal notice, as handed to the forms component"""
    tier: NoticeTier
    payment_id: UUID
    tenant_id: UUID
    tenant: str
    unit_id: UUID
    unit: str
    amount: Decimal
    due_date: date
    days_late: int


class EligibilityResult(BaseModel):
    run_date: date
    tier: NoticeTier
    eligible_count: int
    results: List[NoticeEligibility]


class LateRentResult(BaseModel):
    run_date: date
    transitioned: List[UUID] = Field(default_factory=list)
    reminders: List[SweepItem] = Field(default_factory=list)
    n4_eligible: List[NoticeEligibility] = Field(default_factory=list)
    l1_eligible: List[NoticeEligibility] = Field(default_factory=list)
    errors: List[SweepItem] = Field(default_factory=list)


class RentPaymentResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    unit_id: UUID
    amount: Decimal
    due_date: date
    period_start: date
    payment_date: Optional[date] = None
    status: PaymentStatus
    payment_method: Optional[str] = None
    payment_link: Optional[str] = None
    last_notified_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class RentPaymentCreate(BaseModel):
    """Obligation entered by hand, e.g. a month the sweep could not bill"""
    tenant_id: UUID
    unit_id: UUID
    amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    due_date: date
    payment_link: Optional[str] = None


class PaymentRecord(BaseModel):
    """External payment recording: only paid/partial can be set by hand"""
    status: RecordedPaymentStatus
    payment_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)


class NotBilledItem(BaseModel):
    tenant_id: UUID
    tenant: str
    unit_id: UUID
    unit: str
    rent_amount: Optional[Decimal] = None
    due_date: Optional[date] = None
    days_past_due: Optional[int] = None
    problem: Optional[str] = None


class LateItem(BaseModel):
    payment_id: UUID
    tenant_id: UUID
    unit_id: UUID
    amount: Decimal
    due_date: date
    days_late: int


class RentStatusReport(BaseModel):
    run_date: date
    not_billed: List[NotBilledItem] = Field(default_factory=list)
    late: List[LateItem] = Field(default_factory=list)
