"""Template Repository - Read-only access to ticket templates and user assignments"""
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo.collection import Collection

from .mongo_client import FORM_CONFIGURATIONS, TICKET_TEMPLATES, USERS, get_collection
from ..domain.models import TicketTemplate
from ..utils.logger import get_logger

logger = get_logger(__name__)


def id_candidates(template_id: Any) -> List[Any]:
    """
    Forms a template id may be stored under

    The admin console writes ObjectId keys; tickets and API callers carry
    them as hex strings.
    """
    candidates = [template_id]
    if isinstance(template_id, ObjectId):
        candidates.append(str(template_id))
    elif isinstance(template_id, str) and ObjectId.is_valid(template_id):
        candidates.append(ObjectId(template_id))
    return candidates


class TemplateRepository:
    """Templates, their form configurations and the users they are assigned to"""

    def __init__(self):
        self._templates: Collection = get_collection(TICKET_TEMPLATES)
        self._form_configs: Collection = get_collection(FORM_CONFIGURATIONS)
        self._users: Collection = get_collection(USERS)

    def _to_model(self, doc: Dict[str, Any]) -> TicketTemplate:
        doc = dict(doc)
        doc["templateId"] = str(doc.pop("_id"))
        form_config = doc.get("formConfiguration")
        # Templates may reference a stored form configuration by id
        if form_config is not None and not isinstance(form_config, dict):
            resolved = self._form_configs.find_one({"_id": {"$in": id_candidates(form_config)}})
            if resolved is None:
                logger.warning(f"Form configuration {form_config} missing for template {doc['templateId']}")
            doc["formConfiguration"] = resolved
        return TicketTemplate.model_validate(doc)

    def get(self, template_id: str) -> Optional[TicketTemplate]:
        doc = self._templates.find_one({"_id": {"$in": id_candidates(template_id)}})
        return self._to_model(doc) if doc else None

    def get_default(self) -> Optional[TicketTemplate]:
        """The active template flagged as default"""
        doc = self._templates.find_one({"isDefault": True, "isActive": True})
        return self._to_model(doc) if doc else None

    def get_template_id_for_user(self, stable_id: str) -> Optional[str]:
        """Template assigned to a user, looked up by employee id or email"""
        user = self._users.find_one({"$or": [{"employeeId": stable_id}, {"email": stable_id}]})
        if not user or not user.get("ticketTemplate"):
            return None
        return str(user["ticketTemplate"])
