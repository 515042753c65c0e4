from typing import Any, List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from rent_backoffice.api import deps
from rent_backoffice.schemas.property import (
    PropertyCreate,
    PropertyResponse,
    UnitCreate,
    UnitResponse,
)
from rent_backoffice.schemas.responses import SuccessResponse
from rent_backoffice.services.registry_service import PropertyService

router = APIRouter()


@router.post("", response_model=SuccessResponse[PropertyResponse], status_code=status.HTTP_201_CREATED)
async def create_property(
    property_in: PropertyCreate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    prop = await PropertyService.create_property(db, property_in)
    return SuccessResponse(data=prop, message="Property created successfully")


@router.post(
    "/{property_id}/units",
    response_model=SuccessResponse[UnitResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_unit(
    property_id: UUID,
    unit_in: UnitCreate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    unit = await PropertyService.create_unit(db, property_id, unit_in)
    return SuccessResponse(data=unit, message="Unit created successfully")


@router.get("/units", response_model=SuccessResponse[List[UnitResponse]])
async def list_units(
    property_id: Optional[UUID] = None,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """All units, optionally for one property, labelled with the full address"""
    units = await PropertyService.list_units(db, property_id)
    return SuccessResponse(data=units)
