"""System Settings Repository"""
from typing import Any, Dict, Optional

from pymongo.collection import Collection

from .mongo_client import SYSTEM_SETTINGS, get_collection

SYSTEM_SETTINGS_ID = "system"


class SettingsRepository:
    """Single admin-managed settings document"""

    def __init__(self):
        self._settings: Collection = get_collection(SYSTEM_SETTINGS)

    def get_system_settings(self) -> Optional[Dict[str, Any]]:
        doc = self._settings.find_one({"_id": SYSTEM_SETTINGS_ID})
        if doc:
            doc.pop("_id", None)
        return doc
