"""Service layer - Business logic"""
from .ticket_service import TicketService
from .chemical_enrichment import ChemicalEnrichmentClient
from .reconciliation_service import ReconciliationService
from .submission_validator import SubmissionValidator
from .notification_service import NotificationService
from .dashboard_service import DashboardService
from .preferences_service import PreferencesService

__all__ = [
    "TicketService",
    "ChemicalEnrichmentClient",
    "ReconciliationService",
    "SubmissionValidator",
    "NotificationService",
    "DashboardService",
    "PreferencesService",
]
