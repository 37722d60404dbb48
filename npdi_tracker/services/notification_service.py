"""Notification Service - Microsoft Teams webhook cards

Dispatch is best-effort: every failure is logged and reported as ``False``,
never raised to the ticket operation that triggered it.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..config.integration_settings import IntegrationSettingsProvider, TeamsConfig, get_integration_settings_provider
from ..config.settings import settings
from ..domain.errors import NotificationError
from ..domain.models import ActorContext
from ..utils.logger import get_logger

logger = get_logger(__name__)

WEBHOOK_TIMEOUT_SECONDS = 10

STATUS_COLORS = {
    "DRAFT": "Attention",
    "SUBMITTED": "Good",
    "IN_PROCESS": "Accent",
    "NPDI_INITIATED": "Accent",
    "COMPLETED": "Good",
    "CANCELED": "Warning",
}

ACTION_STATUS_CHANGE = "status_change"
ACTION_CREATED = "created"
ACTION_COMMENT = "comment"


def build_adaptive_card(
    title: str,
    message: str,
    ticket: Dict[str, Any],
    action_type: str,
    actor: Optional[ActorContext] = None,
    old_status: Optional[str] = None,
    new_status: Optional[str] = None,
    frontend_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Adaptive Card v1.4 wrapped in a Teams message envelope"""
    base_url = (frontend_url or settings.frontend_url).rstrip("/")
    facts: List[Dict[str, str]] = [
        {"title": "Ticket Number:", "value": ticket.get("ticketNumber") or "N/A"},
        {"title": "Product Name:", "value": ticket.get("productName") or "N/A"},
        {"title": "SBU:", "value": ticket.get("sbu") or "N/A"},
        {"title": "Priority:", "value": ticket.get("priority") or "MEDIUM"},
    ]
    if action_type == ACTION_STATUS_CHANGE:
        facts.append({"title": "Status Changed:", "value": f"{old_status} → {new_status}"})
        if actor:
            facts.append({"title": "Changed By:", "value": actor.display_name or actor.email or "Unknown"})
    if ticket.get("createdBy"):
        facts.append({"title": "Ticket Creator:", "value": ticket.get("createdByName") or ticket["createdBy"]})

    return {
        "type": "message",
        "attachments": [
            {
                "contentType": "application/vnd.microsoft.card.adaptive",
                "contentUrl": None,
                "content": {
                    "$schema": "http://adaptivecards.io/schemas/adaptive-card.json",
                    "type": "AdaptiveCard",
                    "version": "1.4",
                    "body": [
                        {
                            "type": "TextBlock",
                            "text": title,
                            "weight": "Bolder",
                            "size": "Large",
                            "wrap": True,
                            "color": STATUS_COLORS.get(new_status or "", "Default"),
                        },
                        {"type": "TextBlock", "text": message, "wrap": True, "spacing": "Small"},
                        {"type": "FactSet", "facts": facts, "spacing": "Medium"},
                    ],
                    "actions": [
                        {
                            "type": "Action.OpenUrl",
                            "title": "View Ticket",
                            "url": f"{base_url}/tickets/{ticket.get('ticketId')}",
                        }
                    ],
                },
            }
        ],
    }


class NotificationService:
    """Posts ticket events to the configured Teams channel"""

    def __init__(
        self,
        settings_provider: Optional[IntegrationSettingsProvider] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings_provider = settings_provider or get_integration_settings_provider()
        self._client = client

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient() as client:
                yield client

    @staticmethod
    def _is_wanted(config: TeamsConfig, action_type: str) -> bool:
        if action_type == ACTION_STATUS_CHANGE:
            return config.notify_on_status_change
        if action_type == ACTION_CREATED:
            return config.notify_on_ticket_created
        if action_type == ACTION_COMMENT:
            return config.notify_on_comment_added
        return True

    async def _post(self, webhook_url: str, card: Dict[str, Any]) -> None:
        async with self._session() as client:
            try:
                response = await client.post(webhook_url, json=card, timeout=WEBHOOK_TIMEOUT_SECONDS)
            except httpx.HTTPError as e:
                raise NotificationError(f"Teams webhook unreachable: {e}") from e
        if response.status_code >= 400:
            raise NotificationError(
                f"Teams webhook error: {response.status_code}",
                details={"response": response.text[:200]}
            )

    async def send_notification(
        self,
        title: str,
        message: str,
        ticket: Dict[str, Any],
        action_type: str,
        actor: Optional[ActorContext] = None,
        old_status: Optional[str] = None,
        new_status: Optional[str] = None,
    ) -> bool:
        """
        Send one card. Returns True if delivered, False if skipped or failed.
        """
        try:
            config = self.settings_provider.get().teams
            if not config.enabled:
                logger.debug("Teams notifications disabled")
                return False
            if not self._is_wanted(config, action_type):
                logger.debug(f"Teams notifications for {action_type} disabled")
                return False
            if not config.webhook_url:
                logger.info("Teams webhook URL not configured")
                return False

            card = build_adaptive_card(title, message, ticket, action_type, actor, old_status, new_status)
            await self._post(config.webhook_url, card)
        except Exception as e:
            logger.error(
                f"Failed to send Teams notification for {ticket.get('ticketNumber')}: {e}",
                extra={
                    "ticket_id": ticket.get("ticketId"),
                    "action": action_type,
                    "error_code": getattr(e, "error_code", type(e).__name__),
                }
            )
            return False

        logger.info(
            f"Teams notification sent for ticket {ticket.get('ticketNumber')}",
            extra={"ticket_id": ticket.get("ticketId"), "action": action_type}
        )
        return True

    async def notify_status_change(
        self, ticket: Dict[str, Any], old_status: str, new_status: str, actor: ActorContext
    ) -> bool:
        return await self.send_notification(
            title="Ticket Status Updated",
            message=f"Your ticket has been updated from {old_status} to {new_status}",
            ticket=ticket,
            action_type=ACTION_STATUS_CHANGE,
            actor=actor,
            old_status=old_status,
            new_status=new_status,
        )

    async def notify_ticket_created(self, ticket: Dict[str, Any], actor: ActorContext) -> bool:
        return await self.send_notification(
            title="New NPDI Ticket Created",
            message="A new product development ticket has been created",
            ticket=ticket,
            action_type=ACTION_CREATED,
            actor=actor,
        )

    async def notify_comment_added(self, ticket: Dict[str, Any], content: str, actor: ActorContext) -> bool:
        return await self.send_notification(
            title="New Comment Added",
            message=content,
            ticket=ticket,
            action_type=ACTION_COMMENT,
            actor=actor,
        )
