from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, EmailStr, model_validator
from uuid import UUID
from datetime import date
from decimal import Decimal


class UnsetType:
    """Marker for "field omitted" as opposed to an explicit null."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET = UnsetType()


class TenantBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: str = Field(..., min_length=7, max_length=30)


class BindingTerms(BaseModel):
    """
    Rent terms on a binding update.

    Omitting a field leaves it unchanged, sending null clears it, sending a
    value sets it. Use ``terms()`` to get only the fields the caller sent.
    """
    rent_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    rent_due_day: Optional[int] = Field(None, ge=1, le=31)
    lease_start: Optional[date] = None
    lease_end: Optional[date] = None

    @model_validator(mode="after")
    def check_lease_order(self):
        if self.lease_start and self.lease_end and self.lease_end < self.lease_start:
            raise ValueError("lease_end must not precede lease_start")
        return self

    def terms(self) -> dict:
        fields = ("rent_amount", "rent_due_day", "lease_start", "lease_end")
        return {
            name: getattr(self, name) if name in self.model_fields_set else UNSET
            for name in fields
        }


class BindingAssign(BindingTerms):
    unit_id: UUID


class TenantCreate(TenantBase):
    unit_id: Optional[UUID] = None
    rent_amount: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    rent_due_day: Optional[int] = Field(None, ge=1, le=31)
    lease_start: Optional[date] = None


class BindingResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    unit_id: UUID
    rent_amount: Optional[Decimal] = None
    rent_due_day: Optional[int] = None
    is_primary: bool
    lease_start: Optional[date] = None
    lease_end: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class TenantResponse(TenantBase):
    id: UUID
    email: Optional[str] = None
    primary_binding: Optional[BindingResponse] = None
    bindings: List[BindingResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
