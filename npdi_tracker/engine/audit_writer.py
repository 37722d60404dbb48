"""Audit Writer - Append-only status history entries on ticket documents

Entries are appended to the in-memory document; the caller persists the
ticket once, so field changes and their history land in one write.
"""
from typing import Any, Dict, List, Optional

from ..domain.enums import HistoryAction, TicketStatus
from ..domain.models import ActorContext, StatusHistoryEntry
from ..utils.paths import get_path
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

COMMENT_PREVIEW_LENGTH = 50

# (label, dotted path) of fields whose edits are called out in TICKET_EDIT entries
SIGNIFICANT_FIELDS = (
    ("Product name", "productName"),
    ("SBU", "sbu"),
    ("Priority", "priority"),
    ("CAS number", "chemicalProperties.casNumber"),
    ("Product line", "productLine"),
    ("Assignee", "assignedTo"),
)


def describe_significant_changes(current: Dict[str, Any], update: Dict[str, Any]) -> List[str]:
    """One diff sentence per significant field the update actually changes"""
    changes = []
    for label, path in SIGNIFICANT_FIELDS:
        new_value = get_path(update, path)
        old_value = get_path(current, path)
        if new_value and new_value != old_value:
            changes.append(f'{label} changed from "{old_value}" to "{new_value}"')
    return changes


def preview(content: str, length: int = COMMENT_PREVIEW_LENGTH) -> str:
    content = content.strip()
    return content[:length] + ("..." if len(content) > length else "")


class AuditWriter:
    """
    Write status history entries (append-only)

    ``changedBy`` is always the actor's stable id; the display name and a
    user snapshot are stored alongside.
    """

    def write_event(
        self,
        ticket: Dict[str, Any],
        action: HistoryAction,
        actor: ActorContext,
        reason: str,
        status: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Append a single entry to ``ticket['statusHistory']``"""
        entry = StatusHistoryEntry(
            status=status or ticket["status"],
            changed_by=actor.stable_id,
            changed_by_name=actor.display_name,
            changed_at=utc_now(),
            reason=reason,
            action=action,
            details=details,
            user_info=actor.user_info(),
        ).model_dump(by_alias=True, exclude_none=True)
        ticket.setdefault("statusHistory", []).append(entry)

        logger.debug(
            f"History entry {entry['action']} on {ticket.get('ticketNumber')}",
            extra={"ticket_id": ticket.get("ticketId"), "action": entry["action"], "actor_id": actor.stable_id}
        )
        return entry

    def write_ticket_created(self, ticket: Dict[str, Any], actor: ActorContext) -> Dict[str, Any]:
        if ticket["status"] == TicketStatus.DRAFT.value:
            reason = f"Draft ticket created by {actor.display_name}"
        else:
            reason = f"Ticket created with status: {ticket['status']} by {actor.display_name}"
        return self.write_event(ticket, HistoryAction.TICKET_CREATED, actor, reason)

    def write_ticket_edit(self, ticket: Dict[str, Any], actor: ActorContext, changes: List[str]) -> Dict[str, Any]:
        """One entry for all significant changes of an update"""
        return self.write_event(
            ticket,
            HistoryAction.TICKET_EDIT,
            actor,
            f"Ticket edited by {actor.display_name}: {', '.join(changes)}",
        )

    def write_status_change(
        self,
        ticket: Dict[str, Any],
        actor: ActorContext,
        old_status: str,
        new_status: str,
        reason: Optional[str] = None,
        manual: bool = False,
    ) -> Dict[str, Any]:
        details = None
        if manual:
            reason = reason or f"Status manually changed from {old_status} to {new_status}"
            details = {"previousStatus": old_status, "newStatus": new_status, "changeType": "manual"}
        else:
            reason = reason or f"Status changed from {old_status} to {new_status}"
        return self.write_event(
            ticket,
            HistoryAction.STATUS_CHANGE,
            actor,
            f"{reason} by {actor.display_name}",
            status=new_status,
            details=details,
        )

    def write_sku_assignment(
        self,
        ticket: Dict[str, Any],
        actor: ActorContext,
        old_base_number: Optional[str],
        new_base_number: str,
    ) -> Dict[str, Any]:
        if old_base_number:
            reason = f'SKU base number changed from "{old_base_number}" to "{new_base_number}" by {actor.display_name}'
        else:
            reason = f'SKU base number assigned: "{new_base_number}" by {actor.display_name}'
        return self.write_event(ticket, HistoryAction.SKU_ASSIGNMENT, actor, reason)

    def write_npdi_initiated(
        self,
        ticket: Dict[str, Any],
        actor: ActorContext,
        previous_ticket_number: str,
        new_ticket_number: str,
        tracking: Dict[str, Any],
    ) -> Dict[str, Any]:
        return self.write_event(
            ticket,
            HistoryAction.NPDI_INITIATED,
            actor,
            (
                f"NPDI initiated by {actor.display_name}. Ticket number changed from "
                f'"{previous_ticket_number}" to "{new_ticket_number}". '
                f"NPDI Tracking: {tracking.get('trackingNumber')}"
            ),
            status=TicketStatus.NPDI_INITIATED.value,
            details={
                "previousTicketNumber": previous_ticket_number,
                "newTicketNumber": new_ticket_number,
                "npdiTrackingNumber": tracking.get("trackingNumber"),
                "initiatedAt": tracking.get("initiatedAt"),
            },
        )

    def write_comment_added(self, ticket: Dict[str, Any], actor: ActorContext, content: str) -> Dict[str, Any]:
        return self.write_event(
            ticket,
            HistoryAction.COMMENT_ADDED,
            actor,
            f'Comment added by {actor.display_name}: "{preview(content)}"',
        )
