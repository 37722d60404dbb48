"""
Ticket Lifecycle Routes

Manual status changes and comments.
"""

from fastapi import APIRouter, Depends, status

from ...deps import get_current_user_dep, get_ticket_service
from ....domain.models import ActorContext
from ....services.ticket_service import TicketService
from .schemas import AddCommentRequest, StatusUpdateRequest, TicketResponse

router = APIRouter()


@router.patch("/{ticket_id}/status", response_model=TicketResponse)
async def update_status(
    ticket_id: str,
    request: StatusUpdateRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: TicketService = Depends(get_ticket_service),
):
    """
    Set a ticket's status

    Re-setting the current status changes nothing. Moving into SUBMITTED
    checks the template's required fields.
    """
    ticket = await service.set_status(ticket_id, request.status, actor, reason=request.reason)
    return TicketResponse(message="Ticket status updated successfully", ticket=ticket)


@router.post("/{ticket_id}/comments", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    ticket_id: str,
    request: AddCommentRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    service: TicketService = Depends(get_ticket_service),
):
    ticket = await service.add_comment(ticket_id, request.content, actor)
    return TicketResponse(message="Comment added successfully", ticket=ticket)
