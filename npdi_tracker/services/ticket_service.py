"""Ticket Service - NPDI ticket lifecycle business logic

Every mutating operation loads the document, applies field changes and
appends history entries in memory, then persists with a single write.
"""
import math
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from .chemical_enrichment import ChemicalEnrichmentClient
from .normalizer import normalize_ticket_payload, normalize_update_payload
from .notification_service import NotificationService
from .submission_validator import SubmissionValidator
from ..config.integration_settings import IntegrationSettingsProvider, get_integration_settings_provider
from ..config.settings import settings
from ..domain.enums import TERMINAL_STATUSES, SKUType, TicketStatus
from ..domain.errors import (
    DuplicateBulkSkuError, DuplicateTicketNumberError, LockedResourceError, ValidationError
)
from ..domain.models import CAS_PATTERN, ActorContext, Ticket, TicketComment
from ..engine.audit_writer import AuditWriter, describe_significant_changes
from ..repositories.ticket_repo import TicketRepository, build_ticket_query
from ..utils.idgen import generate_ticket_id
from ..utils.paths import get_path, right_merge
from ..utils.time import coerce_datetime, days_ago, utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)

TERMINAL_VALUES = [status.value for status in TERMINAL_STATUSES]

# Sections merged key-by-key with enrichment data; user keys win
ENRICHED_SECTIONS = ("chemicalProperties", "hazardClassification", "corpbaseData")

# Keys owned by the engine, never taken from an update payload
PROTECTED_UPDATE_KEYS = (
    "ticketId", "createdBy", "createdByEmployeeId", "createdByName",
    "statusHistory", "comments", "createdAt", "updatedAt",
)

ACTIVITY_PREVIEW_LENGTH = 100


def merge_enrichment(enriched: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
    """
    ``{**enriched, **user}`` at the top level and inside each enriched section

    Enrichment only fills gaps; anything the user supplied, including empty
    strings, is kept.
    """
    base = {key: value for key, value in enriched.items() if key != "error"}
    merged = right_merge(base, user)
    for section in ENRICHED_SECTIONS:
        if enriched.get(section) or user.get(section):
            merged[section] = right_merge(enriched.get(section), user.get(section))
    return merged


def count_bulk_variants(variants: Any) -> int:
    if not isinstance(variants, list):
        return 0
    return sum(1 for sku in variants if isinstance(sku, dict) and sku.get("type") == SKUType.BULK.value)


def _parse_status(value: Any) -> TicketStatus:
    try:
        return TicketStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid status: {value}",
            details={"status": value, "allowed": [s.value for s in TicketStatus]}
        )


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class TicketService:
    """Service for NPDI ticket operations"""

    def __init__(
        self,
        repo: Optional[TicketRepository] = None,
        validator: Optional[SubmissionValidator] = None,
        enrichment: Optional[ChemicalEnrichmentClient] = None,
        notifier: Optional[NotificationService] = None,
        settings_provider: Optional[IntegrationSettingsProvider] = None,
        audit: Optional[AuditWriter] = None,
    ):
        self.repo = repo or TicketRepository()
        self.validator = validator or SubmissionValidator()
        self.settings_provider = settings_provider or get_integration_settings_provider()
        self.enrichment = enrichment or ChemicalEnrichmentClient(settings_provider=self.settings_provider)
        self.notifier = notifier or NotificationService(self.settings_provider)
        self.audit = audit or AuditWriter()

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _validate_document(doc: Dict[str, Any]) -> Dict[str, Any]:
        """Schema-check a ticket document and return its canonical camelCase form"""
        try:
            ticket = Ticket.model_validate(doc)
        except PydanticValidationError as e:
            errors = [
                {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            raise ValidationError("Ticket validation failed", details={"errors": errors})
        return ticket.model_dump(by_alias=True, exclude_none=True)

    def _should_enrich(self, data: Dict[str, Any], skip: bool) -> bool:
        cas = get_path(data, "chemicalProperties.casNumber")
        if skip or not isinstance(cas, str) or not re.match(CAS_PATTERN, cas):
            return False
        pubchem = self.settings_provider.get().pubchem
        return pubchem.enabled and pubchem.auto_population

    # =========================================================================
    # Create
    # =========================================================================

    async def create_ticket(
        self,
        payload: Dict[str, Any],
        actor: ActorContext,
        draft: bool = False,
    ) -> Dict[str, Any]:
        """
        Create a ticket in SUBMITTED (or DRAFT) status

        Raises:
            SubmissionRequirementsError: SUBMITTED ticket misses template fields
            ValidationError: Payload does not fit the ticket schema
        """
        data = normalize_ticket_payload(payload, settings.default_sbu)
        skip_enrichment = bool(data.pop("skipAutopopulate", False))
        for key in PROTECTED_UPDATE_KEYS + ("ticketNumber",):
            data.pop(key, None)

        if draft or data.get("status") == TicketStatus.DRAFT.value:
            data["status"] = TicketStatus.DRAFT.value
        else:
            data["status"] = TicketStatus.SUBMITTED.value

        if self._should_enrich(data, skip_enrichment):
            cas = data["chemicalProperties"]["casNumber"]
            enriched = await self.enrichment.enrich_or_degrade(cas)
            if enriched.get("error"):
                logger.warning(
                    f"Creating ticket without PubChem data: {enriched['error']}",
                    extra={"cas_number": cas, "actor_id": actor.stable_id}
                )
            data = merge_enrichment(enriched, data)

        now = utc_now()
        data.update({
            "ticketId": generate_ticket_id(),
            "createdBy": actor.stable_id,
            "createdByEmployeeId": actor.stable_id if actor.stable_id != actor.email else None,
            "createdByName": actor.display_name,
            "createdAt": now,
            "updatedAt": now,
        })

        template = self.validator.resolve_template(data, actor)
        if template and not data.get("template"):
            data["template"] = template.template_id
        if data["status"] == TicketStatus.SUBMITTED.value:
            self.validator.validate(data, actor)

        data["ticketNumber"] = self.repo.next_ticket_number(settings.ticket_number_prefix, now.year)
        doc = self._validate_document(data)
        self.audit.write_ticket_created(doc, actor)
        self.repo.create(doc)

        logger.info(
            f"Ticket {doc['ticketNumber']} created with status {doc['status']}",
            extra={"ticket_id": doc["ticketId"], "ticket_number": doc["ticketNumber"], "actor_id": actor.stable_id}
        )
        await self.notifier.notify_ticket_created(doc, actor)
        return doc

    async def save_draft(self, payload: Dict[str, Any], actor: ActorContext) -> Dict[str, Any]:
        return await self.create_ticket(payload, actor, draft=True)

    # =========================================================================
    # Update
    # =========================================================================

    async def update_ticket(
        self,
        ticket_id: str,
        payload: Dict[str, Any],
        actor: ActorContext,
    ) -> Dict[str, Any]:
        """
        Apply a field-level update

        Raises:
            TicketNotFoundError: Unknown ticket
            LockedResourceError: Ticket is COMPLETED/CANCELED and the update keeps it there
            DuplicateBulkSkuError: More than one BULK SKU variant
            DuplicateTicketNumberError: NPDI number already used by another ticket
            SubmissionRequirementsError: Moving into SUBMITTED with missing fields
        """
        current = self.repo.get_or_raise(ticket_id)
        update = normalize_update_payload(payload)
        for key in PROTECTED_UPDATE_KEYS:
            update.pop(key, None)

        old_status = current["status"]
        new_status = update.get("status")
        if new_status is not None:
            new_status = _parse_status(new_status).value
        status_changing = new_status is not None and new_status != old_status

        if old_status in TERMINAL_VALUES and not status_changing:
            raise LockedResourceError(
                f"Ticket is {old_status} and can no longer be edited",
                details={"currentStatus": old_status, "ticketId": ticket_id}
            )

        bulk_count = count_bulk_variants(update.get("skuVariants"))
        if bulk_count > 1:
            raise DuplicateBulkSkuError(
                "Only one BULK SKU is allowed per ticket",
                details={"bulkCount": bulk_count, "ticketId": ticket_id}
            )

        old_ticket_number = current["ticketNumber"]
        tracking = update.get("npdiTracking") if isinstance(update.get("npdiTracking"), dict) else {}
        tracking_number = tracking.get("trackingNumber")
        is_npdi_initiation = bool(tracking_number) and not get_path(current, "npdiTracking.trackingNumber")

        requested_number = update.pop("ticketNumber", None)
        new_ticket_number = old_ticket_number
        if is_npdi_initiation and new_status == TicketStatus.NPDI_INITIATED.value:
            new_ticket_number = requested_number or tracking_number
            if new_ticket_number != old_ticket_number:
                existing = self.repo.find_by_ticket_number(new_ticket_number, exclude_ticket_id=ticket_id)
                if existing:
                    raise DuplicateTicketNumberError(
                        f'Ticket number "{new_ticket_number}" is already in use by another ticket '
                        f"({existing['ticketId']}). Please use a unique NPDI tracking number.",
                        details={"ticketNumber": new_ticket_number, "conflictingTicketId": existing["ticketId"]}
                    )
                update["ticketNumber"] = new_ticket_number

        changes = describe_significant_changes(current, update)
        old_base_number = get_path(current, "partNumber.baseNumber")
        new_base_number = get_path(update, "partNumber.baseNumber")

        merged = {**current, **update}
        merged["updatedAt"] = utc_now()
        if status_changing and new_status == TicketStatus.SUBMITTED.value:
            self.validator.validate(merged, actor)

        doc = self._validate_document(merged)

        if changes:
            self.audit.write_ticket_edit(doc, actor, changes)
        if status_changing:
            self.audit.write_status_change(doc, actor, old_status, new_status)
        if new_base_number and new_base_number != old_base_number:
            self.audit.write_sku_assignment(doc, actor, old_base_number, new_base_number)
        if is_npdi_initiation:
            self.audit.write_npdi_initiated(doc, actor, old_ticket_number, new_ticket_number, tracking)

        self.repo.save(doc)
        logger.info(
            f"Ticket {doc['ticketNumber']} updated",
            extra={"ticket_id": ticket_id, "actor_id": actor.stable_id, "status": doc["status"]}
        )

        if status_changing:
            await self.notifier.notify_status_change(doc, old_status, new_status, actor)
        return doc

    async def set_status(
        self,
        ticket_id: str,
        status: Any,
        actor: ActorContext,
        reason: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Manually set a ticket's status

        Setting the current status again is a no-op: no history entry and no
        notification.
        """
        target = _parse_status(status).value
        ticket = self.repo.get_or_raise(ticket_id)
        old_status = ticket["status"]

        if old_status == target:
            logger.info(
                f"Ticket {ticket['ticketNumber']} already {target}; nothing to change",
                extra={"ticket_id": ticket_id, "status": target}
            )
            return ticket

        ticket["status"] = target
        if target == TicketStatus.SUBMITTED.value:
            self.validator.validate(ticket, actor)

        ticket["updatedAt"] = utc_now()
        self.audit.write_status_change(ticket, actor, old_status, target, reason=reason, manual=True)
        self.repo.save(ticket)

        logger.info(
            f"Ticket {ticket['ticketNumber']} status {old_status} -> {target}",
            extra={"ticket_id": ticket_id, "actor_id": actor.stable_id, "status": target}
        )
        await self.notifier.notify_status_change(ticket, old_status, target, actor)
        return ticket

    async def add_comment(self, ticket_id: str, content: Optional[str], actor: ActorContext) -> Dict[str, Any]:
        """Append a comment and its COMMENT_ADDED history entry"""
        if not content or not content.strip():
            raise ValidationError("Comment content is required", details={"field": "content"})

        ticket = self.repo.get_or_raise(ticket_id)
        comment = TicketComment(
            user=actor.stable_id,
            user_name=actor.display_name,
            content=content.strip(),
            timestamp=utc_now(),
        ).model_dump(by_alias=True)
        ticket.setdefault("comments", []).append(comment)
        self.audit.write_comment_added(ticket, actor, content)
        ticket["updatedAt"] = comment["timestamp"]
        self.repo.save(ticket)

        await self.notifier.notify_comment_added(ticket, comment["content"], actor)
        return ticket

    # =========================================================================
    # Reads
    # =========================================================================

    def _paginate(self, query: Dict[str, Any], sort_field: str, page: int, limit: int) -> Dict[str, Any]:
        page = max(page, 1)
        limit = max(limit, 1)
        tickets = self.repo.list(query, sort_field=sort_field, skip=(page - 1) * limit, limit=limit)
        total = self.repo.count(query)
        return {
            "tickets": tickets,
            "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)},
        }

    def list_tickets(
        self,
        status: Optional[str] = None,
        sbu: Optional[str] = None,
        priority: Optional[str] = None,
        search: Optional[str] = None,
        created_by: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """
        Paginated active tickets, newest first

        ``status`` is a comma-separated list; without it COMPLETED and
        CANCELED tickets are excluded.
        """
        query = build_ticket_query(
            statuses=_split_csv(status),
            exclude_statuses=TERMINAL_VALUES,
            sbus=[sbu] if sbu else None,
            priorities=[priority] if priority else None,
            created_by=created_by,
            search=search,
        )
        return self._paginate(query, "createdAt", page, limit)

    def list_archived_tickets(
        self,
        status: Optional[str] = None,
        sbu: Optional[str] = None,
        priority: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """COMPLETED and CANCELED tickets, most recently updated first"""
        statuses = [s for s in _split_csv(status) if s in TERMINAL_VALUES] or TERMINAL_VALUES
        query = build_ticket_query(
            statuses=statuses,
            sbus=[sbu] if sbu else None,
            priorities=[priority] if priority else None,
            search=search,
        )
        return self._paginate(query, "updatedAt", page, limit)

    def get_ticket(self, ticket_id: str) -> Dict[str, Any]:
        return self.repo.get_or_raise(ticket_id)

    def get_recent_activity(self, days: int = 7, limit: int = 10, now=None) -> Dict[str, Any]:
        """History entries and comments inside the window, newest first"""
        cutoff = days_ago(now or utc_now(), days)
        activities: List[Dict[str, Any]] = []

        for ticket in self.repo.find_with_activity_since(cutoff):
            if ticket.get("status") == TicketStatus.CANCELED.value:
                continue
            base = {
                "ticketId": ticket.get("ticketId"),
                "ticketNumber": ticket.get("ticketNumber"),
                "productName": ticket.get("productName") or get_path(ticket, "chemicalProperties.casNumber") or "Untitled",
                "status": ticket.get("status"),
                "priority": ticket.get("priority"),
            }

            for entry in ticket.get("statusHistory") or []:
                changed_at = coerce_datetime(entry.get("changedAt"))
                if not entry.get("action") or changed_at is None or changed_at < cutoff:
                    continue
                details = entry.get("details") or {}
                activities.append({
                    **base,
                    "type": entry["action"],
                    "timestamp": changed_at,
                    "description": entry.get("reason", ""),
                    "user": entry.get("changedByName") or entry.get("changedBy") or "Unknown User",
                    "details": {
                        "action": entry["action"],
                        "previousStatus": details.get("previousStatus"),
                        "newStatus": details.get("newStatus") or entry.get("status"),
                    },
                })

            for comment in ticket.get("comments") or []:
                timestamp = coerce_datetime(comment.get("timestamp"))
                if timestamp is None or timestamp < cutoff:
                    continue
                content = comment.get("content", "")
                snippet = content[:ACTIVITY_PREVIEW_LENGTH] + ("..." if len(content) > ACTIVITY_PREVIEW_LENGTH else "")
                activities.append({
                    **base,
                    "type": "COMMENT_ADDED",
                    "timestamp": timestamp,
                    "description": f'Comment: "{snippet}"',
                    "user": comment.get("userName") or comment.get("user") or "Unknown User",
                    "details": {"action": "COMMENT_ADDED", "commentContent": content},
                })

        activities.sort(key=lambda activity: activity["timestamp"], reverse=True)
        return {
            "activities": activities[:limit],
            "total": len(activities),
            "cutoffDate": cutoff,
        }
