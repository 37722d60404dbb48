"""API Routes module"""
from fastapi import APIRouter

from .tickets import router as tickets_router
from .chemicals import router as chemicals_router
from .erp import router as erp_router
from .preferences import router as preferences_router

# Main API router
api_router = APIRouter()

# Ticket sub-routers carry their own /tickets prefix
api_router.include_router(tickets_router, tags=["Tickets"])
api_router.include_router(chemicals_router, prefix="/chemicals", tags=["Chemicals"])
api_router.include_router(erp_router, prefix="/erp", tags=["ERP"])
api_router.include_router(preferences_router, prefix="/preferences", tags=["Preferences"])

__all__ = ["api_router"]
