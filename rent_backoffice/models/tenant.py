from sqlalchemy import (
    Column, String, Boolean, Date, Integer, Numeric, ForeignKey, Index,
    UniqueConstraint, CheckConstraint, Uuid, text,
)
from sqlalchemy.orm import relationship

from rent_backoffice.models.base import BaseModel


class Tenant(BaseModel):
    """Person renting a unit. Rent terms are carried by the tenant's bindings."""
    __tablename__ = "tenants"

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(30), nullable=False)  # WhatsApp-enabled

    bindings = relationship("TenantUnit", back_populates="tenant")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Tenant {self.full_name}>"


class TenantUnit(BaseModel):
    """
    Binding between a tenant and a unit, carrying the rent terms.

    At most one binding per tenant is primary; the partial unique index below
    backs the reconciler's own check. Bindings are demoted, never deleted.
    """
    __tablename__ = "tenant_units"
    __table_args__ = (
        UniqueConstraint("tenant_id", "unit_id", name="uq_tenant_units_tenant_unit"),
        Index(
            "uq_tenant_units_one_primary",
            "tenant_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary"),
        ),
        CheckConstraint("rent_amount IS NULL OR rent_amount >= 0", name="ck_tenant_units_rent_amount"),
        CheckConstraint(
            "rent_due_day IS NULL OR (rent_due_day >= 1 AND rent_due_day <= 31)",
            name="ck_tenant_units_rent_due_day",
        ),
    )

    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="RESTRICT"), nullable=False, index=True)
    unit_id = Column(Uuid(as_uuid=True), ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, index=True)
    rent_amount = Column(Numeric(10, 2), nullable=True)
    rent_due_day = Column(Integer, nullable=True)
    is_primary = Column(Boolean, default=False, nullable=False)
    lease_start = Column(Date, nullable=True)
    lease_end = Column(Date, nullable=True)

    tenant = relationship("Tenant", back_populates="bindings")
    unit = relationship("Unit", back_populates="bindings")

    def missing_terms(self) -> list[str]:
        missing = []
        if self.rent_amount is None:
            missing.append("rent_amount")
        if self.rent_due_day is None:
            missing.append("rent_due_day")
        return missing

    def __repr__(self) -> str:
        flag = " primary" if self.is_primary else ""
        return f"<TenantUnit {self.tenant_id}->{self.unit_id}{flag}>"
