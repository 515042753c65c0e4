from pydantic import BaseModel, Field, ConfigDict
from uuid import UUID


class PropertyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    province: str = Field("ON", min_length=2, max_length=50)
    postal_code: str = Field(..., min_length=3, max_length=20)


class PropertyResponse(PropertyCreate):
    id: UUID

    model_config = ConfigDict(from_attributes=True)


class UnitCreate(BaseModel):
    unit_number: str = Field(..., min_length=1, max_length=50)


class UnitResponse(BaseModel):
    id: UUID
    property_id: UUID
    unit_number: str
    label: str

    model_config = ConfigDict(from_attributes=True)
