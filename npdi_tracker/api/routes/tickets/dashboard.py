"""
Ticket Dashboard Routes

Pipeline statistics and the recent-activity feed.
"""

from fastapi import APIRouter, Depends, Query

from ...deps import get_current_user_dep, get_dashboard_service, get_ticket_service
from ....domain.models import ActorContext
from ....services.dashboard_service import DashboardService
from ....services.ticket_service import TicketService

router = APIRouter()


@router.get("/dashboard/stats")
async def get_dashboard_stats(
    actor: ActorContext = Depends(get_current_user_dep),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Status/priority/SBU counts, cycle times, aging and throughput"""
    return service.get_stats()


@router.get("/activity/recent")
async def get_recent_activity(
    days: int = Query(7, ge=1, le=365),
    limit: int = Query(10, ge=1, le=200),
    actor: ActorContext = Depends(get_current_user_dep),
    service: TicketService = Depends(get_ticket_service),
):
    return service.get_recent_activity(days=days, limit=limit)
