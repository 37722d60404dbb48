"""
Ticket Routes Module

- crud.py: create, save draft, list, archived, get, update
- lifecycle.py: manual status change, comments
- dashboard.py: dashboard statistics, recent activity
"""

from fastapi import APIRouter

from .schemas import AddCommentRequest, StatusUpdateRequest, TicketListResponse, TicketResponse
from .crud import router as crud_router
from .lifecycle import router as lifecycle_router
from .dashboard import router as dashboard_router

router = APIRouter()

# Fixed paths (/dashboard/stats, /activity/recent) must be registered before /{ticket_id}
router.include_router(dashboard_router, prefix="/tickets")
router.include_router(crud_router, prefix="/tickets")
router.include_router(lifecycle_router, prefix="/tickets")

__all__ = [
    "router",
    "AddCommentRequest",
    "StatusUpdateRequest",
    "TicketListResponse",
    "TicketResponse",
]
