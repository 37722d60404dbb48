"""
Ticket Schemas

Request and response models for ticket API endpoints. Ticket bodies stay
free-form dicts: the engine normalizes and validates them against the
domain model.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ....domain.enums import TicketStatus


# =============================================================================
# Requests
# =============================================================================

class StatusUpdateRequest(BaseModel):
    """Manual status change"""
    status: TicketStatus
    reason: Optional[str] = Field(None, max_length=2000)


class AddCommentRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


# =============================================================================
# Responses
# =============================================================================

class TicketResponse(BaseModel):
    message: str
    ticket: Dict[str, Any]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class TicketListResponse(BaseModel):
    tickets: List[Dict[str, Any]]
    pagination: Pagination
