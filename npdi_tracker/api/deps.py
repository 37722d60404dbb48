"""API Dependencies - identity and service providers for routes

Service providers exist so tests can swap in fakes via
``app.dependency_overrides``.
"""
from typing import Optional
from fastapi import Header

from ..domain.models import ActorContext
from ..services.dashboard_service import DashboardService
from ..services.chemical_enrichment import ChemicalEnrichmentClient
from ..services.preferences_service import PreferencesService
from ..services.reconciliation_service import ReconciliationService
from ..services.ticket_service import TicketService
from ..config.integration_settings import get_integration_settings_provider
from ..utils.jwt import get_current_user


async def get_current_user_dep(
    authorization: Optional[str] = Header(None)
) -> ActorContext:
    """
    Resolve the caller from the Authorization header

    Raises:
        AuthenticationError: Header missing or token invalid (rendered as 401)
    """
    return get_current_user(authorization)


def get_ticket_service() -> TicketService:
    return TicketService()


def get_dashboard_service() -> DashboardService:
    return DashboardService()


def get_preferences_service() -> PreferencesService:
    return PreferencesService()


def get_reconciliation_service() -> ReconciliationService:
    return ReconciliationService()


def get_enrichment_client() -> ChemicalEnrichmentClient:
    return ChemicalEnrichmentClient(settings_provider=get_integration_settings_provider())
