from typing import Any, List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from rent_backoffice.api import deps
from rent_backoffice.schemas.responses import SuccessResponse
from rent_backoffice.schemas.tenant import (
    TenantCreate,
    TenantResponse,
    BindingAssign,
    BindingResponse,
)
from rent_backoffice.services.binding_reconciler import BindingReconciler
from rent_backoffice.services.registry_service import TenantService

router = APIRouter()


@router.post("", response_model=SuccessResponse[TenantResponse], status_code=status.HTTP_201_CREATED)
async def create_tenant(
    tenant_in: TenantCreate,
    db: AsyncSession = Depends(deps.get_db),
    reconciler: BindingReconciler = Depends(deps.get_reconciler),
) -> Any:
    """
    Register a tenant. With ``unit_id`` the tenant is bound to that unit as
    primary, which requires rent_amount and rent_due_day.
    """
    tenant = await TenantService.create_tenant(db, tenant_in, reconciler)
    return SuccessResponse(data=tenant, message="Tenant created successfully")


@router.get("", response_model=SuccessResponse[List[TenantResponse]])
async def list_tenants(
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    tenants = await TenantService.list_tenants(db)
    return SuccessResponse(data=tenants)


@router.get("/{tenant_id}", response_model=SuccessResponse[TenantResponse])
async def get_tenant(
    tenant_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    tenant = await TenantService.get_tenant_detail(db, tenant_id)
    return SuccessResponse(data=tenant)


@router.put("/{tenant_id}/binding", response_model=SuccessResponse[BindingResponse])
async def assign_binding(
    tenant_id: UUID,
    binding_in: BindingAssign,
    db: AsyncSession = Depends(deps.get_db),
    reconciler: BindingReconciler = Depends(deps.get_reconciler),
) -> Any:
    """
    Make a unit the tenant's primary binding and update its rent terms.

    Omitted fields are left unchanged and explicit nulls clear the field.
    Moving to a new unit carries omitted rent terms over from the old one.
    """
    binding = await reconciler.assign_primary_binding(
        db, tenant_id, binding_in.unit_id, **binding_in.terms()
    )
    return SuccessResponse(data=binding, message="Primary binding updated")


@router.post("/{tenant_id}/binding/repair", response_model=SuccessResponse[BindingResponse])
async def repair_binding(
    tenant_id: UUID,
    unit_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    reconciler: BindingReconciler = Depends(deps.get_reconciler),
) -> Any:
    """Keep ``unit_id`` as the only primary binding when a tenant has ended up with several."""
    binding = await reconciler.repair_primary_binding(db, tenant_id, unit_id)
    return SuccessResponse(data=binding, message="Primary binding repaired")
