"""Binding Store - tenant_units persistence and record mapping"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, List, Tuple
from uuid import UUID

from sqlalchemy import select, update, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rent_backoffice.core.exceptions import IncompleteBindingError
from rent_backoffice.models.property import Unit
from rent_backoffice.models.tenant import Tenant, TenantUnit


@dataclass(frozen=True)
class BillableBinding:
    """Primary binding with everything the generator and dispatcher need.

    Built once per sweep so the per-item loop never touches ORM state.
    """
    binding_id: UUID
    tenant_id: UUID
    unit_id: UUID
    rent_amount: Decimal
    rent_due_day: int
    tenant_name: str
    tenant_email: Optional[str]
    tenant_phone: str
    unit_number: str
    property_address: str

    @classmethod
    def from_row(cls, binding: TenantUnit) -> "BillableBinding":
        missing = binding.missing_terms()
        if missing:
            raise IncompleteBindingError(binding.id, missing, binding.tenant_id, binding.unit_id)
        tenant = binding.tenant
        unit = binding.unit
        if tenant is None or unit is None or unit.property is None:
            raise IncompleteBindingError(binding.id, ["tenant/unit/property"], binding.tenant_id, binding.unit_id)
        return cls(
            binding_id=binding.id,
            tenant_id=binding.tenant_id,
            unit_id=binding.unit_id,
            rent_amount=Decimal(binding.rent_amount),
            rent_due_day=int(binding.rent_due_day),
            tenant_name=tenant.full_name,
            tenant_email=tenant.email,
            tenant_phone=tenant.phone,
            unit_number=unit.unit_number,
            property_address=unit.property.full_address,
        )


def _with_parties(stmt):
    return stmt.options(
        selectinload(TenantUnit.tenant),
        selectinload(TenantUnit.unit).selectinload(Unit.property),
    )


class BindingStore:
    """Service layer for tenant_units reads and single-row writes"""

    @staticmethod
    async def get_tenant(db: AsyncSession, tenant_id: UUID) -> Optional[Tenant]:
        result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_unit(db: AsyncSession, unit_id: UUID) -> Optional[Unit]:
        result = await db.execute(select(Unit).where(Unit.id == unit_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def find_primary_binding(db: AsyncSession, tenant_id: UUID) -> Optional[TenantUnit]:
        """The tenant's primary binding, or None.

        Raises MultipleResultsFound if the tenant has more than one primary;
        callers that must survive that state use list_primary_bindings.
        """
        result = await db.execute(
            select(TenantUnit).execution_options(populate_existing=True).where(
                TenantUnit.tenant_id == tenant_id,
                TenantUnit.is_primary.is_(True),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_primary_bindings(db: AsyncSession, tenant_id: UUID) -> List[TenantUnit]:
        result = await db.execute(
            select(TenantUnit).execution_options(populate_existing=True)
            .where(TenantUnit.tenant_id == tenant_id, TenantUnit.is_primary.is_(True))
            .order_by(TenantUnit.updated_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def find_binding(db: AsyncSession, tenant_id: UUID, unit_id: UUID) -> Optional[TenantUnit]:
        result = await db.execute(
            select(TenantUnit).execution_options(populate_existing=True).where(
                TenantUnit.tenant_id == tenant_id,
                TenantUnit.unit_id == unit_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_bindings(db: AsyncSession, tenant_id: UUID) -> List[TenantUnit]:
        result = await db.execute(
            select(TenantUnit).execution_options(populate_existing=True)
            .where(TenantUnit.tenant_id == tenant_id)
            .order_by(TenantUnit.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def upsert_binding(db: AsyncSession, binding: TenantUnit) -> TenantUnit:
        """Insert or update one binding row in its own transaction."""
        db.add(binding)
        await db.commit()
        await db.refresh(binding)
        return binding

    @staticmethod
    async def set_primary_flag(db: AsyncSession, binding_id: UUID, is_primary: bool) -> None:
        """Flip is_primary on a single row and commit."""
        await db.execute(
            update(TenantUnit)
            .where(TenantUnit.id == binding_id)
            .values(is_primary=is_primary)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

    @staticmethod
    async def list_primary_rows_due_on(
        db: AsyncSession,
        day: int,
        overflow_from: Optional[int] = None,
    ) -> List[TenantUnit]:
        """Primary bindings due on ``day``; with ``overflow_from`` also every due day >= it."""
        due = TenantUnit.rent_due_day == day
        if overflow_from is not None:
            due = or_(due, TenantUnit.rent_due_day >= overflow_from)
        result = await db.execute(
            _with_parties(
                select(TenantUnit).execution_options(populate_existing=True).where(and_(TenantUnit.is_primary.is_(True), due))
            ).order_by(TenantUnit.rent_due_day, TenantUnit.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_all_primary_rows(db: AsyncSession) -> List[TenantUnit]:
        result = await db.execute(
            _with_parties(
                select(TenantUnit).execution_options(populate_existing=True).where(TenantUnit.is_primary.is_(True))
            ).order_by(TenantUnit.rent_due_day, TenantUnit.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_bindings_due_on(
        db: AsyncSession,
        day: int,
        overflow_from: Optional[int] = None,
    ) -> Tuple[List[BillableBinding], List[IncompleteBindingError]]:
        """Billable records for primary bindings due on ``day``.

        Rows that cannot be billed come back as errors in the second list
        instead of aborting the whole read.
        """
        rows = await BindingStore.list_primary_rows_due_on(db, day, overflow_from)
        return _split_billable(rows)

    @staticmethod
    async def list_billable_bindings(
        db: AsyncSession,
    ) -> Tuple[List[BillableBinding], List[IncompleteBindingError]]:
        rows = await BindingStore.list_all_primary_rows(db)
        return _split_billable(rows)


def _split_billable(rows) -> Tuple[List[BillableBinding], List[IncompleteBindingError]]:
    records, errors = [], []
    for row in rows:
        try:
            records.append(BillableBinding.from_row(row))
        except IncompleteBindingError as e:
            errors.append(e)
    return records, errors


def lease_dates_valid(lease_start: Optional[date], lease_end: Optional[date]) -> bool:
    return lease_start is None or lease_end is None or lease_end >= lease_start
