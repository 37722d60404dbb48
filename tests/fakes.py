"""
Test doubles

In-memory stand-ins for the MongoDB repositories plus recording fakes for
the PubChem and Teams collaborators, so service and API tests run without a
database or network.
"""

import copy
import re
from typing import Any, Dict, List, Optional

from npdi_tracker.config.integration_settings import IntegrationSettingsProvider
from npdi_tracker.config.settings import Settings
from npdi_tracker.domain.errors import TicketNotFoundError
from npdi_tracker.domain.models import TicketTemplate
from npdi_tracker.utils.idgen import format_ticket_number
from npdi_tracker.utils.paths import get_path


# =============================================================================
# Mongo filter matching (subset used by build_ticket_query)
# =============================================================================

def _match_condition(value: Any, condition: Any) -> bool:
    if not isinstance(condition, dict):
        return value == condition
    for op, operand in condition.items():
        if op == "$in" and value not in operand:
            return False
        if op == "$nin" and value in operand:
            return False
        if op == "$ne" and value == operand:
            return False
        if op == "$gte" and (value is None or value < operand):
            return False
        if op == "$regex":
            flags = re.I if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(operand, value, flags):
                return False
    return True


def matches(doc: Dict[str, Any], query: Dict[str, Any], id_field: str = "ticketId") -> bool:
    for key, condition in query.items():
        if key == "$and":
            if not all(matches(doc, sub, id_field) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(doc, sub, id_field) for sub in condition):
                return False
        elif key == "_id":
            if not _match_condition(doc.get(id_field), condition):
                return False
        elif not _match_condition(get_path(doc, key), condition):
            return False
    return True


# =============================================================================
# Repositories
# =============================================================================

class FakeCollection:
    """Just enough of a pymongo Collection for find_one; keys compare by type like Mongo's"""

    def __init__(self, docs: Optional[List[Dict[str, Any]]] = None):
        self.docs = list(docs or [])
        self.queries: List[Dict[str, Any]] = []

    def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self.queries.append(query)
        doc = next((d for d in self.docs if matches(d, query, id_field="_id")), None)
        return copy.deepcopy(doc)


class InMemoryTicketRepository:
    """Mirrors TicketRepository; stored documents are deep-copied in and out"""

    def __init__(self):
        self.tickets: Dict[str, Dict[str, Any]] = {}
        self.sequences: Dict[int, int] = {}
        self.save_count = 0

    def create(self, doc):
        self.tickets[doc["ticketId"]] = copy.deepcopy(doc)
        return doc

    def get(self, ticket_id):
        doc = self.tickets.get(ticket_id)
        return copy.deepcopy(doc) if doc else None

    def get_or_raise(self, ticket_id):
        doc = self.get(ticket_id)
        if doc is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found", details={"ticketId": ticket_id})
        return doc

    def save(self, doc):
        if doc["ticketId"] not in self.tickets:
            raise TicketNotFoundError(f"Ticket {doc['ticketId']} not found")
        self.tickets[doc["ticketId"]] = copy.deepcopy(doc)
        self.save_count += 1
        return doc

    def find_by_ticket_number(self, ticket_number, exclude_ticket_id=None):
        for doc in self.tickets.values():
            if doc["ticketNumber"] == ticket_number and doc["ticketId"] != exclude_ticket_id:
                return copy.deepcopy(doc)
        return None

    def next_ticket_number(self, prefix, year):
        self.sequences[year] = self.sequences.get(year, 0) + 1
        return format_ticket_number(prefix, year, self.sequences[year])

    def list(self, query, sort_field="createdAt", skip=0, limit=50):
        docs = [d for d in self.tickets.values() if matches(d, query)]
        docs.sort(key=lambda d: d.get(sort_field), reverse=True)
        return [copy.deepcopy(d) for d in docs[skip:skip + limit]]

    def count(self, query):
        return sum(1 for d in self.tickets.values() if matches(d, query))

    def iter_all(self, projection=None):
        for doc in self.tickets.values():
            yield copy.deepcopy(doc)

    def find_with_activity_since(self, since):
        result = []
        for doc in self.tickets.values():
            history = [e.get("changedAt") for e in doc.get("statusHistory") or []]
            comments = [c.get("timestamp") for c in doc.get("comments") or []]
            if any(ts is not None and ts >= since for ts in history + comments):
                result.append(copy.deepcopy(doc))
        return result


class InMemoryTemplateRepository:
    def __init__(self, templates: Optional[List[TicketTemplate]] = None, user_templates=None):
        self.templates = {t.template_id: t for t in templates or []}
        self.user_templates: Dict[str, str] = dict(user_templates or {})

    def get(self, template_id):
        return self.templates.get(template_id)

    def get_default(self):
        return next((t for t in self.templates.values() if t.is_default and t.is_active), None)

    def get_template_id_for_user(self, stable_id):
        return self.user_templates.get(stable_id)


class InMemoryPreferencesRepository:
    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}

    def get(self, user_id):
        doc = self.docs.get(user_id)
        return copy.deepcopy(doc) if doc else None

    def upsert(self, doc):
        self.docs[doc["userId"]] = copy.deepcopy(doc)
        return doc


# =============================================================================
# Collaborators
# =============================================================================

class RecordingNotifier:
    def __init__(self):
        self.calls: List[tuple] = []

    async def notify_status_change(self, ticket, old_status, new_status, actor):
        self.calls.append(("status_change", ticket["ticketId"], old_status, new_status))
        return True

    async def notify_ticket_created(self, ticket, actor):
        self.calls.append(("created", ticket["ticketId"]))
        return True

    async def notify_comment_added(self, ticket, content, actor):
        self.calls.append(("comment", ticket["ticketId"], content))
        return True


class StubEnrichment:
    """Returns a canned bundle for every CAS number"""

    def __init__(self, bundle: Optional[Dict[str, Any]] = None):
        self.bundle = bundle or {}
        self.requested: List[str] = []

    async def enrich_or_degrade(self, cas_number):
        self.requested.append(cas_number)
        return copy.deepcopy(self.bundle)


def make_settings_provider(doc: Optional[Dict[str, Any]] = None, **env: Any) -> IntegrationSettingsProvider:
    """Provider over a fixed system settings document; env defaults switch integrations off"""
    env_defaults = {
        "pubchem_enabled": False,
        "palantir_enabled": False,
        "teams_enabled": False,
        "teams_webhook_url": "",
    }
    env_defaults.update(env)
    return IntegrationSettingsProvider(loader=lambda: doc, env=Settings(**env_defaults))


def make_template(
    template_id: str = "tpl-default",
    requirements: Optional[List[str]] = None,
    is_default: bool = True,
    is_active: bool = True,
    labels: Optional[Dict[str, str]] = None,
) -> TicketTemplate:
    fields = [{"fieldKey": key, "label": label} for key, label in (labels or {}).items()]
    return TicketTemplate.model_validate({
        "templateId": template_id,
        "name": f"Template {template_id}",
        "isDefault": is_default,
        "isActive": is_active,
        "submissionRequirements": requirements or [],
        "formConfiguration": {"sections": [{"sectionKey": "basic", "fields": fields}]},
    })


