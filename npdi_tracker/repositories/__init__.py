"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection
from .ticket_repo import TicketRepository
from .template_repo import TemplateRepository
from .preferences_repo import PreferencesRepository
from .settings_repo import SettingsRepository

__all__ = [
    "get_database",
    "get_collection",
    "TicketRepository",
    "TemplateRepository",
    "PreferencesRepository",
    "SettingsRepository",
]
