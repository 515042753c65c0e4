"""Registry Service - tenants, properties and units"""

import logging
from typing import Optional, List, Dict, Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rent_backoffice.core.exceptions import InvalidRentTermsError, NotFoundError
from rent_backoffice.models.property import Property, Unit
from rent_backoffice.models.tenant import Tenant, TenantUnit
from rent_backoffice.schemas.property import PropertyCreate, UnitCreate
from rent_backoffice.schemas.tenant import TenantCreate, BindingResponse
from rent_backoffice.services.binding_reconciler import BindingReconciler
from rent_backoffice.services.binding_store import BindingStore

logger = logging.getLogger(__name__)


class PropertyService:
    """Service layer for properties and their units"""

    @staticmethod
    async def create_property(db: AsyncSession, data: PropertyCreate) -> Property:
        prop = Property(**data.model_dump())
        db.add(prop)
        await db.commit()
        await db.refresh(prop)
        return prop

    @staticmethod
    async def get_property(db: AsyncSession, property_id: UUID) -> Optional[Property]:
        result = await db.execute(select(Property).where(Property.id == property_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_unit(db: AsyncSession, property_id: UUID, data: UnitCreate) -> Dict[str, Any]:
        prop = await PropertyService.get_property(db, property_id)
        if prop is None:
            raise NotFoundError("Property", property_id)
        unit = Unit(property_id=prop.id, unit_number=data.unit_number)
        db.add(unit)
        await db.commit()
        await db.refresh(unit)
        return {
            "id": unit.id,
            "property_id": prop.id,
            "unit_number": unit.unit_number,
            "label": f"{unit.unit_number}, {prop.full_address}",
        }

    @staticmethod
    async def list_units(db: AsyncSession, property_id: Optional[UUID] = None) -> List[Dict[str, Any]]:
        stmt = select(Unit).options(selectinload(Unit.property))
        if property_id is not None:
            stmt = stmt.where(Unit.property_id == property_id)
        result = await db.execute(stmt.order_by(Unit.unit_number))
        return [
            {
                "id": u.id,
                "property_id": u.property_id,
                "unit_number": u.unit_number,
                "label": f"{u.unit_number}, {u.property.full_address}",
            }
            for u in result.scalars().all()
        ]


class TenantService:
    """Service layer for tenants. Binding changes go through the reconciler."""

    @staticmethod
    async def create_tenant(
        db: AsyncSession,
        data: TenantCreate,
        reconciler: BindingReconciler,
    ) -> Dict[str, Any]:
        """
        Create a tenant and, when a unit is given, its first primary binding.

        The unit and rent terms are checked before the tenant row is written
        so a bad request leaves nothing behind.
        """
        if data.unit_id is not None:
            if data.rent_amount is None or data.rent_due_day is None:
                raise InvalidRentTermsError(
                    "rent_amount and rent_due_day are required when assigning a unit"
                )
            if await BindingStore.get_unit(db, data.unit_id) is None:
                raise NotFoundError("Unit", data.unit_id)

        tenant = Tenant(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            phone=data.phone,
        )
        db.add(tenant)
        await db.commit()
        await db.refresh(tenant)
        tenant_id = tenant.id
        logger.info("Created tenant", extra={"tenant_id": str(tenant_id)})

        if data.unit_id is not None:
            await reconciler.assign_primary_binding(
                db,
                tenant_id,
                data.unit_id,
                rent_amount=data.rent_amount,
                rent_due_day=data.rent_due_day,
                lease_start=data.lease_start,
            )
        return await TenantService.get_tenant_detail(db, tenant_id)

    @staticmethod
    async def list_tenants(db: AsyncSession) -> List[Dict[str, Any]]:
        result = await db.execute(
            select(Tenant).execution_options(populate_existing=True)
            .options(selectinload(Tenant.bindings))
            .order_by(Tenant.last_name, Tenant.first_name)
        )
        return [
            _tenant_detail(t, sorted(t.bindings, key=lambda b: b.created_at))
            for t in result.scalars().all()
        ]

    @staticmethod
    async def get_tenant_detail(db: AsyncSession, tenant_id: UUID) -> Dict[str, Any]:
        tenant = await BindingStore.get_tenant(db, tenant_id)
        if tenant is None:
            raise NotFoundError("Tenant", tenant_id)
        return _tenant_detail(tenant, await BindingStore.list_bindings(db, tenant_id))


def _tenant_detail(tenant: Tenant, rows: List[TenantUnit]) -> Dict[str, Any]:
    bindings = [BindingResponse.model_validate(b) for b in rows]
    primary = [b for b in bindings if b.is_primary]
    return {
        "id": tenant.id,
        "first_name": tenant.first_name,
        "last_name": tenant.last_name,
        "email": tenant.email,
        "phone": tenant.phone,
        "primary_binding": primary[0] if len(primary) == 1 else None,
        "bindings": bindings,
    }
