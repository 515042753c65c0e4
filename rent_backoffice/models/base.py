"""Base Models"""

import uuid
from sqlalchemy import Column, DateTime, Uuid

from rent_backoffice.database import Base
from rent_backoffice.utils.time import get_utc_now


class BaseModel(Base):
    """
    Base model class with common fields for all models.

    Provides:
    - UUID primary key
    - created_at timestamp
    - updated_at timestamp
    """
    __abstract__ = True

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    created_at = Column(DateTime, default=get_utc_now, nullable=False)
    updated_at = Column(DateTime, default=get_utc_now, onupdate=get_utc_now, nullable=False)
