"""User Preferences Repository"""
from typing import Any, Dict, Optional

from pymongo.collection import Collection

from .mongo_client import USER_PREFERENCES, get_collection
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PreferencesRepository:
    """One camelCase document per user, keyed by stable user id"""

    def __init__(self):
        self._prefs: Collection = get_collection(USER_PREFERENCES)

    def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        doc = self._prefs.find_one({"userId": user_id})
        if doc:
            doc.pop("_id", None)
        return doc

    def upsert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the user's document, creating it when absent"""
        self._prefs.replace_one({"userId": doc["userId"]}, dict(doc), upsert=True)
        logger.info("Saved user preferences", extra={"user_id": doc["userId"]})
        return doc
