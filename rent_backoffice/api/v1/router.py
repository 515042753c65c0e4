"""API V1 Router"""

from fastapi import APIRouter

# Import endpoint routers
from rent_backoffice.api.v1.endpoints import cron, tenants, properties, rent

# Create API v1 router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(cron.router, prefix="/cron", tags=["Scheduled Runs"])
api_router.include_router(properties.router, prefix="/properties", tags=["Properties"])
api_router.include_router(tenants.router, prefix="/tenants", tags=["Tenants"])
api_router.include_router(rent.router, prefix="/rent", tags=["Rent"])
