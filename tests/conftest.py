"""
Pytest Configuration and Fixtures

Services are wired to the in-memory doubles from ``tests.fakes``.
"""

from typing import Any, Dict

import pytest

from npdi_tracker.config.integration_settings import IntegrationSettingsProvider
from npdi_tracker.domain.models import ActorContext
from npdi_tracker.services.submission_validator import SubmissionValidator
from npdi_tracker.services.ticket_service import TicketService
from tests.fakes import (
    InMemoryTemplateRepository, InMemoryTicketRepository, RecordingNotifier, StubEnrichment,
    make_settings_provider, make_template
)

# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def actor() -> ActorContext:
    return ActorContext(
        stable_id="E12345",
        display_name="Pat Manager",
        role="PRODUCT_MANAGER",
        email="pat.manager@example.com",
    )


@pytest.fixture
def ops_actor() -> ActorContext:
    return ActorContext(
        stable_id="ops.user@example.com",
        display_name="Ops User",
        role="PM_OPS",
        email="ops.user@example.com",
    )


@pytest.fixture
def ticket_repo() -> InMemoryTicketRepository:
    return InMemoryTicketRepository()


@pytest.fixture
def template_repo() -> InMemoryTemplateRepository:
    return InMemoryTemplateRepository([make_template(requirements=["productName"], labels={"productName": "Product Name"})])


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def enrichment() -> StubEnrichment:
    return StubEnrichment()


@pytest.fixture
def settings_provider() -> IntegrationSettingsProvider:
    return make_settings_provider()


@pytest.fixture
def ticket_service(ticket_repo, template_repo, enrichment, notifier, settings_provider) -> TicketService:
    return TicketService(
        repo=ticket_repo,
        validator=SubmissionValidator(template_repo),
        enrichment=enrichment,
        notifier=notifier,
        settings_provider=settings_provider,
    )


@pytest.fixture
def ethanol_payload() -> Dict[str, Any]:
    return {
        "productName": "Ethanol absolute",
        "priority": "HIGH",
        "sbu": "P90",
        "chemicalProperties": {"casNumber": "64-17-5", "physicalState": "Liquid"},
    }
