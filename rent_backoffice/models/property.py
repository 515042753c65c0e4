from sqlalchemy import Column, String, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from rent_backoffice.models.base import BaseModel


class Property(BaseModel):
    """A building in the landlord's portfolio"""
    __tablename__ = "properties"

    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    province = Column(String(50), nullable=False)
    postal_code = Column(String(20), nullable=False)

    units = relationship("Unit", back_populates="property", cascade="save-update, merge")

    @property
    def full_address(self) -> str:
        return f"{self.address}, {self.city}, {self.province} {self.postal_code}"

    def __repr__(self) -> str:
        return f"<Property {self.name}>"


class Unit(BaseModel):
    """Rentable unit inside a property. Rent terms live on the binding, not here."""
    __tablename__ = "units"

    property_id = Column(Uuid(as_uuid=True), ForeignKey("properties.id", ondelete="RESTRICT"), nullable=False, index=True)
    unit_number = Column(String(50), nullable=False)

    property = relationship("Property", back_populates="units")
    bindings = relationship("TenantUnit", back_populates="unit")

    def __repr__(self) -> str:
        return f"<Unit {self.unit_number}>"
