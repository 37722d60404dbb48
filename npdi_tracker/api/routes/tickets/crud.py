"""
Ticket CRUD Routes

Create, save-as-draft, list, get and update endpoints.
"""

from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, Query, status

from ...deps import get_current_user_dep, get_ticket_service
from ....domain.models import ActorContext
from ....services.ticket_service import TicketService
from ....utils.logger import get_logger
from .schemas import TicketListResponse, TicketResponse

logger = get_logger(__name__)
router = APIRouter()


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: Dict[str, Any] = Body(...),
    actor: ActorContext = Depends(get_current_user_dep),
    service: TicketService = Depends(get_ticket_service),
):
    """
    Create a new ticket

    Status is SUBMITTED unless the body asks for DRAFT. When a CAS number is
    present and ``skipAutopopulate`` is not set, PubChem data fills any field
    the user left out.
    """
    ticket = await service.create_ticket(payload, actor)
    return TicketResponse(message="Ticket created successfully", ticket=ticket)


@router.post("/drafts", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def save_draft(
    payload: Dict[str, Any] = Body(...),
    actor: ActorContext = Depends(get_current_user_dep),
    service: TicketService = Depends(get_ticket_service),
):
    """Save a ticket as DRAFT; submission requirements are not checked"""
    ticket = await service.save_draft(payload, actor)
    return TicketResponse(message="Draft saved successfully", ticket=ticket)


@router.get("", response_model=TicketListResponse)
async def list_tickets(
    status: Optional[str] = Query(None, description="Comma-separated statuses"),
    sbu: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Matches product name, ticket number or CAS number"),
    created_by: Optional[str] = Query(None, alias="createdBy"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: ActorContext = Depends(get_current_user_dep),
    service: TicketService = Depends(get_ticket_service),
):
    """List active tickets (COMPLETED and CANCELED excluded unless asked for)"""
    return service.list_tickets(
        status=status,
        sbu=sbu,
        priority=priority,
        search=search,
        created_by=created_by,
        page=page,
        limit=limit,
    )


@router.get("/archived", response_model=TicketListResponse)
async def list_archived_tickets(
    status: Optional[str] = Query(None, description="COMPLETED and/or CANCELED"),
    sbu: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: ActorContext = Depends(get_current_user_dep),
    service: TicketService = Depends(get_ticket_service),
):
    return service.list_archived_tickets(
        status=status, sbu=sbu, priority=priority, search=search, page=page, limit=limit
    )


@router.get("/{ticket_id}")
async def get_ticket(
    ticket_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    service: TicketService = Depends(get_ticket_service),
):
    """Full ticket document, also used by the export collaborators"""
    return {"ticket": service.get_ticket(ticket_id)}


@router.put("/{ticket_id}", response_model=TicketResponse)
async def update_ticket(
    ticket_id: str,
    payload: Dict[str, Any] = Body(...),
    actor: ActorContext = Depends(get_current_user_dep),
    service: TicketService = Depends(get_ticket_service),
):
    """
    Update ticket fields

    COMPLETED and CANCELED tickets are locked (423) unless the same update
    moves the status away from them.
    """
    ticket = await service.update_ticket(ticket_id, payload, actor)
    return TicketResponse(message="Ticket updated successfully", ticket=ticket)
