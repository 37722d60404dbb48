"""Preferences Service - per-user UI settings"""
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from ..domain.errors import PreferenceSectionNotFoundError, ValidationError
from ..domain.models import PREFERENCE_SECTIONS, UserPreferences
from ..repositories.preferences_repo import PreferencesRepository
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PreferencesService:
    """
    Lazily-created preference documents

    Updates merge one level deep per section, so a partial section body only
    touches the keys it names.
    """

    def __init__(self, repo: Optional[PreferencesRepository] = None):
        self.repo = repo or PreferencesRepository()

    @staticmethod
    def _validated(doc: Dict[str, Any]) -> Dict[str, Any]:
        try:
            prefs = UserPreferences.model_validate(doc)
        except PydanticValidationError as e:
            errors = [
                {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
                for err in e.errors()
            ]
            raise ValidationError("Invalid preferences", details={"errors": errors})
        return prefs.model_dump(by_alias=True)

    def _defaults(self, user_id: str) -> Dict[str, Any]:
        now = utc_now()
        return UserPreferences(user_id=user_id, created_at=now, updated_at=now).model_dump(by_alias=True)

    def get_preferences(self, user_id: str) -> Dict[str, Any]:
        """Stored preferences, created with defaults on first read"""
        doc = self.repo.get(user_id)
        if doc is None:
            doc = self.repo.upsert(self._defaults(user_id))
            logger.info("Created default preferences", extra={"user_id": user_id})
        return doc

    def update_preferences(self, user_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        current = self.get_preferences(user_id)
        merged = dict(current)
        for section in PREFERENCE_SECTIONS:
            value = updates.get(section)
            if isinstance(value, dict):
                merged[section] = {**(current.get(section) or {}), **value}
        merged["updatedAt"] = utc_now()
        return self.repo.upsert(self._validated(merged))

    def update_section(self, user_id: str, section: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        if section not in PREFERENCE_SECTIONS:
            raise ValidationError(
                "Invalid preference section",
                details={"section": section, "allowed": list(PREFERENCE_SECTIONS)}
            )
        return self.update_preferences(user_id, {section: updates})

    def get_section(self, user_id: str, section: str) -> Dict[str, Any]:
        if section not in PREFERENCE_SECTIONS:
            raise PreferenceSectionNotFoundError(
                "Preference section not found", details={"section": section}
            )
        return self.get_preferences(user_id).get(section) or {}

    def reset_preferences(self, user_id: str) -> Dict[str, Any]:
        logger.info("Resetting preferences to defaults", extra={"user_id": user_id})
        return self.repo.upsert(self._defaults(user_id))
