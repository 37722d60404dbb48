"""Ticket Repository - Data access for NPDI tickets"""
import re
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence

from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection

from .mongo_client import COUNTERS, TICKETS, get_collection
from ..domain.errors import TicketNotFoundError
from ..utils.idgen import format_ticket_number
from ..utils.logger import get_logger

logger = get_logger(__name__)


def build_ticket_query(
    statuses: Optional[Sequence[str]] = None,
    exclude_statuses: Optional[Sequence[str]] = None,
    sbus: Optional[Sequence[str]] = None,
    priorities: Optional[Sequence[str]] = None,
    created_by: Optional[str] = None,
    search: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the Mongo filter shared by list and count"""
    and_conditions: List[Dict[str, Any]] = []

    if statuses:
        and_conditions.append({"status": {"$in": list(statuses)}})
    elif exclude_statuses:
        and_conditions.append({"status": {"$nin": list(exclude_statuses)}})

    if sbus:
        and_conditions.append({"sbu": {"$in": list(sbus)}})
    if priorities:
        and_conditions.append({"priority": {"$in": list(priorities)}})
    if created_by:
        and_conditions.append({"$or": [
            {"createdBy": created_by},
            {"createdByEmployeeId": created_by},
        ]})
    if search:
        pattern = re.escape(search)
        and_conditions.append({"$or": [
            {"productName": {"$regex": pattern, "$options": "i"}},
            {"ticketNumber": {"$regex": pattern, "$options": "i"}},
            {"chemicalProperties.casNumber": {"$regex": pattern, "$options": "i"}},
        ]})

    if not and_conditions:
        return {}
    if len(and_conditions) == 1:
        return and_conditions[0]
    return {"$and": and_conditions}


def _strip_id(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is not None:
        doc.pop("_id", None)
    return doc


class TicketRepository:
    """Repository for ticket documents (camelCase, keyed by ticketId)"""

    def __init__(self):
        self._tickets: Collection = get_collection(TICKETS)
        self._counters: Collection = get_collection(COUNTERS)

    # =========================================================================
    # Ticket CRUD
    # =========================================================================

    def create(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a new ticket document"""
        stored = dict(doc)
        stored["_id"] = doc["ticketId"]
        self._tickets.insert_one(stored)
        logger.info(
            f"Created ticket: {doc['ticketNumber']}",
            extra={"ticket_id": doc["ticketId"], "ticket_number": doc["ticketNumber"]}
        )
        return doc

    def get(self, ticket_id: str) -> Optional[Dict[str, Any]]:
        """Get ticket by internal id"""
        return _strip_id(self._tickets.find_one({"_id": ticket_id}))

    def get_or_raise(self, ticket_id: str) -> Dict[str, Any]:
        """Get ticket by ID or raise error"""
        doc = self.get(ticket_id)
        if doc is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found", details={"ticketId": ticket_id})
        return doc

    def save(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace the whole document in one write

        Field updates and appended history entries land in the same document
        version; concurrent saves are last-write-wins.
        """
        stored = dict(doc)
        stored["_id"] = doc["ticketId"]
        result = self._tickets.replace_one({"_id": doc["ticketId"]}, stored)
        if result.matched_count == 0:
            raise TicketNotFoundError(f"Ticket {doc['ticketId']} not found")
        logger.info(f"Saved ticket: {doc['ticketNumber']}", extra={"ticket_id": doc["ticketId"]})
        return doc

    def find_by_ticket_number(
        self, ticket_number: str, exclude_ticket_id: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Find a ticket holding ``ticket_number``, optionally ignoring one ticket"""
        query: Dict[str, Any] = {"ticketNumber": ticket_number}
        if exclude_ticket_id:
            query["_id"] = {"$ne": exclude_ticket_id}
        return _strip_id(self._tickets.find_one(query))

    def next_ticket_number(self, prefix: str, year: int) -> str:
        """Draw the next sequence for the year atomically"""
        counter = self._counters.find_one_and_update(
            {"_id": f"ticketNumber-{year}"},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return format_ticket_number(prefix, year, counter["seq"])

    # =========================================================================
    # Queries
    # =========================================================================

    def list(
        self,
        query: Dict[str, Any],
        sort_field: str = "createdAt",
        skip: int = 0,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        """List tickets newest first"""
        cursor = self._tickets.find(query).sort(sort_field, DESCENDING).skip(skip).limit(limit)
        return [_strip_id(doc) for doc in cursor]

    def count(self, query: Dict[str, Any]) -> int:
        return self._tickets.count_documents(query)

    def iter_all(self, projection: Optional[Dict[str, int]] = None) -> Iterator[Dict[str, Any]]:
        """Stream every ticket (dashboard aggregation)"""
        for doc in self._tickets.find({}, projection):
            yield _strip_id(doc)

    def find_with_activity_since(self, since: datetime) -> List[Dict[str, Any]]:
        """Tickets with a history entry or comment at or after ``since``"""
        cursor = self._tickets.find(
            {"$or": [
                {"statusHistory.changedAt": {"$gte": since}},
                {"comments.timestamp": {"$gte": since}},
            ]},
            {"ticketId": 1, "ticketNumber": 1, "productName": 1, "status": 1, "priority": 1,
             "chemicalProperties.casNumber": 1,
             "statusHistory": 1, "comments": 1},
        )
        return [_strip_id(doc) for doc in cursor]
