"""Ticket lifecycle tests against the in-memory repository"""
from datetime import timedelta

import pytest

from npdi_tracker.domain.errors import (
    DuplicateBulkSkuError, DuplicateTicketNumberError, LockedResourceError,
    SubmissionRequirementsError, TicketNotFoundError, ValidationError
)
from npdi_tracker.services.chemical_enrichment import degraded_bundle
from npdi_tracker.services.submission_validator import SubmissionValidator
from npdi_tracker.services.ticket_service import TicketService, count_bulk_variants, merge_enrichment
from npdi_tracker.utils.time import utc_now
from tests.fakes import StubEnrichment, make_settings_provider


def actions(ticket):
    return [entry["action"] for entry in ticket["statusHistory"]]


ENRICHED = {
    "chemicalProperties": {
        "casNumber": "64-17-5",
        "pubchemCID": "702",
        "molecularFormula": "C2H6O",
        "molecularWeight": 46.07,
        "physicalState": "Liquid",
        "autoPopulated": True,
    },
    "hazardClassification": {"signalWord": "DANGER", "hazardStatements": ["H225"]},
    "skuVariants": [],
    "corpbaseData": {"productDescription": "Generated description"},
    "productName": "ethanol",
}


@pytest.fixture
def enriching_service(ticket_repo, template_repo, notifier):
    enrichment = StubEnrichment(ENRICHED)
    service = TicketService(
        repo=ticket_repo,
        validator=SubmissionValidator(template_repo),
        enrichment=enrichment,
        notifier=notifier,
        settings_provider=make_settings_provider(pubchem_enabled=True),
    )
    return service, enrichment


# =============================================================================
# Helpers
# =============================================================================

def test_merge_enrichment_keeps_user_values_including_blanks():
    user = {
        "productName": "Ethanol absolute",
        "chemicalProperties": {"casNumber": "64-17-5", "molecularFormula": ""},
        "hazardClassification": {"signalWord": "WARNING", "unNumber": None},
    }
    merged = merge_enrichment({**ENRICHED, "error": None}, user)

    assert merged["productName"] == "Ethanol absolute"
    assert merged["chemicalProperties"]["molecularFormula"] == ""
    assert merged["chemicalProperties"]["molecularWeight"] == 46.07
    assert merged["hazardClassification"]["signalWord"] == "WARNING"
    assert merged["hazardClassification"]["hazardStatements"] == ["H225"]
    assert "error" not in merged


def test_count_bulk_variants():
    assert count_bulk_variants([{"type": "BULK"}, {"type": "PREPACK"}, {"type": "BULK"}]) == 2
    assert count_bulk_variants(None) == 0


# =============================================================================
# Create
# =============================================================================

async def test_create_ticket_assigns_number_and_creation_entry(ticket_service, ticket_repo, notifier, actor, ethanol_payload):
    ticket = await ticket_service.create_ticket(ethanol_payload, actor)

    year = ticket["createdAt"].year
    assert ticket["ticketNumber"] == f"NPDI-{year}-0001"
    assert ticket["ticketId"].startswith("TKT-")
    assert ticket["status"] == "SUBMITTED"
    assert ticket["createdBy"] == "E12345"
    assert ticket["createdByEmployeeId"] == "E12345"
    assert ticket["createdByName"] == "Pat Manager"
    assert ticket["template"] == "tpl-default"

    assert actions(ticket) == ["TICKET_CREATED"]
    entry = ticket["statusHistory"][0]
    assert entry["changedBy"] == "E12345"
    assert entry["reason"] == "Ticket created with status: SUBMITTED by Pat Manager"
    assert entry["userInfo"]["displayName"] == "Pat Manager"

    assert ticket_repo.get(ticket["ticketId"])["ticketNumber"] == ticket["ticketNumber"]
    assert notifier.calls == [("created", ticket["ticketId"])]


async def test_ticket_numbers_increase_within_a_year(ticket_service, actor, ethanol_payload):
    first = await ticket_service.create_ticket(ethanol_payload, actor)
    second = await ticket_service.create_ticket(ethanol_payload, actor)

    assert first["ticketNumber"].endswith("-0001")
    assert second["ticketNumber"].endswith("-0002")


async def test_create_applies_default_sku_and_sbu(ticket_service, actor):
    ticket = await ticket_service.create_ticket({"productName": "Toluene", "sbu": ""}, actor)

    assert ticket["sbu"] == "P90"
    assert len(ticket["skuVariants"]) == 1
    sku = ticket["skuVariants"][0]
    assert sku["type"] == "PREPACK"
    assert sku["packageSize"] == {"value": 100, "unit": "g"}
    assert sku["pricing"]["currency"] == "USD"


async def test_email_only_actor_has_no_employee_id(ticket_service, ops_actor, ethanol_payload):
    ticket = await ticket_service.create_ticket(ethanol_payload, ops_actor)

    assert ticket["createdBy"] == "ops.user@example.com"
    assert "createdByEmployeeId" not in ticket


async def test_create_ignores_engine_owned_keys(ticket_service, actor, ethanol_payload):
    payload = {
        **ethanol_payload,
        "ticketNumber": "HAND-PICKED",
        "createdBy": "someone-else",
        "statusHistory": [{"status": "COMPLETED"}],
        "comments": [{"content": "injected"}],
    }
    ticket = await ticket_service.create_ticket(payload, actor)

    assert ticket["ticketNumber"] != "HAND-PICKED"
    assert ticket["createdBy"] == "E12345"
    assert actions(ticket) == ["TICKET_CREATED"]
    assert ticket["comments"] == []


async def test_requested_terminal_status_is_created_as_submitted(ticket_service, actor, ethanol_payload):
    ticket = await ticket_service.create_ticket({**ethanol_payload, "status": "COMPLETED"}, actor)
    assert ticket["status"] == "SUBMITTED"


async def test_submitted_ticket_missing_required_fields_is_rejected(ticket_service, ticket_repo, actor):
    with pytest.raises(SubmissionRequirementsError) as exc_info:
        await ticket_service.create_ticket({"chemicalProperties": {"casNumber": "64-17-5"}}, actor)

    assert exc_info.value.http_status == 400
    assert exc_info.value.details["missingFields"] == [{"fieldKey": "productName", "fieldLabel": "Product Name"}]
    assert exc_info.value.details["templateName"] == "Template tpl-default"
    assert ticket_repo.tickets == {}
    assert ticket_repo.sequences == {}


async def test_draft_skips_submission_requirements(ticket_service, actor):
    ticket = await ticket_service.save_draft({"chemicalProperties": {"casNumber": "64-17-5"}}, actor)

    assert ticket["status"] == "DRAFT"
    assert ticket["statusHistory"][0]["reason"] == "Draft ticket created by Pat Manager"


async def test_draft_status_in_payload_creates_draft(ticket_service, actor):
    ticket = await ticket_service.create_ticket({"status": "DRAFT"}, actor)
    assert ticket["status"] == "DRAFT"


async def test_invalid_cas_number_fails_schema_validation(ticket_service, ticket_repo, actor):
    with pytest.raises(ValidationError) as exc_info:
        await ticket_service.create_ticket(
            {"productName": "Mystery", "chemicalProperties": {"casNumber": "not-a-cas"}}, actor
        )

    fields = [error["field"] for error in exc_info.value.details["errors"]]
    assert any("casNumber" in field for field in fields)
    assert ticket_repo.tickets == {}


# =============================================================================
# Enrichment
# =============================================================================

async def test_enrichment_fills_gaps_without_overriding_user_input(enriching_service, actor):
    service, enrichment = enriching_service
    payload = {
        "productName": "Ethanol absolute",
        "chemicalProperties": {"casNumber": "64-17-5", "molecularFormula": ""},
        "hazardClassification": {"signalWord": "WARNING"},
    }
    ticket = await service.create_ticket(payload, actor)

    assert enrichment.requested == ["64-17-5"]
    assert ticket["productName"] == "Ethanol absolute"
    chemical = ticket["chemicalProperties"]
    assert chemical["molecularFormula"] == ""
    assert chemical["molecularWeight"] == 46.07
    assert chemical["pubchemCID"] == "702"
    assert chemical["autoPopulated"] is True
    assert ticket["hazardClassification"]["signalWord"] == "WARNING"
    assert ticket["hazardClassification"]["hazardStatements"] == ["H225"]
    assert ticket["corpbaseData"]["productDescription"] == "Generated description"
    # The default SKU from normalization wins over the empty enrichment list
    assert len(ticket["skuVariants"]) == 1


async def test_enrichment_fills_blank_payload_with_defaults(enriching_service, actor):
    service, _ = enriching_service
    ticket = await service.create_ticket(
        {"sbu": "", "status": "", "chemicalProperties": {"casNumber": "64-17-5"}}, actor
    )

    assert ticket["sbu"] == "P90"
    assert ticket["status"] == "SUBMITTED"
    assert ticket["productName"] == "ethanol"
    assert ticket["chemicalProperties"]["autoPopulated"] is True
    assert ticket["ticketNumber"].startswith("NPDI-")


async def test_enrichment_skipped_on_request(enriching_service, actor, ethanol_payload):
    service, enrichment = enriching_service
    ticket = await service.create_ticket({**ethanol_payload, "skipAutopopulate": True}, actor)

    assert enrichment.requested == []
    assert "skipAutopopulate" not in ticket


async def test_enrichment_not_attempted_when_pubchem_disabled(ticket_service, enrichment, actor, ethanol_payload):
    await ticket_service.create_ticket(ethanol_payload, actor)
    assert enrichment.requested == []


async def test_degraded_enrichment_still_creates_ticket(ticket_repo, template_repo, notifier, actor, ethanol_payload):
    service = TicketService(
        repo=ticket_repo,
        validator=SubmissionValidator(template_repo),
        enrichment=StubEnrichment(degraded_bundle("64-17-5", "PubChem is unreachable")),
        notifier=notifier,
        settings_provider=make_settings_provider(pubchem_enabled=True),
    )
    ticket = await service.create_ticket(ethanol_payload, actor)

    assert ticket["chemicalProperties"]["autoPopulated"] is False
    assert ticket["productName"] == "Ethanol absolute"
    assert "error" not in ticket
    assert ticket_repo.get(ticket["ticketId"]) is not None


# =============================================================================
# Update
# =============================================================================

async def test_update_records_significant_edit(ticket_service, ticket_repo, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    updated = await ticket_service.update_ticket(
        created["ticketId"], {"productName": "Ethanol 200 proof"}, actor
    )

    assert updated["productName"] == "Ethanol 200 proof"
    assert actions(updated) == ["TICKET_CREATED", "TICKET_EDIT"]
    assert updated["statusHistory"][-1]["reason"] == (
        'Ticket edited by Pat Manager: Product name changed from "Ethanol absolute" to "Ethanol 200 proof"'
    )
    assert updated["updatedAt"] >= created["updatedAt"]
    assert ticket_repo.save_count == 1


async def test_update_without_significant_change_adds_no_entry(ticket_service, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    updated = await ticket_service.update_ticket(created["ticketId"], {"productionType": "Procured"}, actor)

    assert updated["productionType"] == "Procured"
    assert actions(updated) == ["TICKET_CREATED"]


async def test_update_writes_entries_in_order_with_one_save(ticket_service, ticket_repo, notifier, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    updated = await ticket_service.update_ticket(
        created["ticketId"],
        {"productName": "Ethanol 96%", "status": "IN_PROCESS", "partNumber": {"baseNumber": "E7023"}},
        actor,
    )

    assert actions(updated) == ["TICKET_CREATED", "TICKET_EDIT", "STATUS_CHANGE", "SKU_ASSIGNMENT"]
    status_entry = updated["statusHistory"][2]
    assert status_entry["status"] == "IN_PROCESS"
    assert status_entry["reason"] == "Status changed from SUBMITTED to IN_PROCESS by Pat Manager"
    assert updated["statusHistory"][3]["reason"] == 'SKU base number assigned: "E7023" by Pat Manager'
    assert ticket_repo.save_count == 1
    assert ("status_change", created["ticketId"], "SUBMITTED", "IN_PROCESS") in notifier.calls


async def test_update_ignores_engine_owned_keys(ticket_service, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    updated = await ticket_service.update_ticket(
        created["ticketId"], {"createdBy": "intruder", "statusHistory": [], "ticketNumber": "X-1"}, actor
    )

    assert updated["createdBy"] == "E12345"
    assert updated["ticketNumber"] == created["ticketNumber"]
    assert actions(updated) == ["TICKET_CREATED"]


async def test_npdi_initiation_renumbers_ticket(ticket_service, ticket_repo, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    updated = await ticket_service.update_ticket(
        created["ticketId"],
        {"status": "NPDI_INITIATED", "npdiTracking": {"trackingNumber": "NPDI-7788"}},
        actor,
    )

    assert updated["ticketNumber"] == "NPDI-7788"
    assert updated["status"] == "NPDI_INITIATED"
    assert actions(updated) == ["TICKET_CREATED", "STATUS_CHANGE", "NPDI_INITIATED"]
    details = updated["statusHistory"][-1]["details"]
    assert details["previousTicketNumber"] == created["ticketNumber"]
    assert details["newTicketNumber"] == "NPDI-7788"
    assert details["npdiTrackingNumber"] == "NPDI-7788"
    assert ticket_repo.find_by_ticket_number("NPDI-7788")["ticketId"] == created["ticketId"]


async def test_npdi_initiation_prefers_requested_ticket_number(ticket_service, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    updated = await ticket_service.update_ticket(
        created["ticketId"],
        {
            "status": "NPDI_INITIATED",
            "ticketNumber": "NPDI-CUSTOM-1",
            "npdiTracking": {"trackingNumber": "TRK-1"},
        },
        actor,
    )
    assert updated["ticketNumber"] == "NPDI-CUSTOM-1"


async def test_npdi_number_collision_is_rejected(ticket_service, ticket_repo, actor, ethanol_payload):
    first = await ticket_service.create_ticket(ethanol_payload, actor)
    second = await ticket_service.create_ticket(ethanol_payload, actor)

    with pytest.raises(DuplicateTicketNumberError) as exc_info:
        await ticket_service.update_ticket(
            second["ticketId"],
            {"status": "NPDI_INITIATED", "npdiTracking": {"trackingNumber": first["ticketNumber"]}},
            actor,
        )

    assert exc_info.value.http_status == 409
    assert exc_info.value.details["conflictingTicketId"] == first["ticketId"]
    assert ticket_repo.get(second["ticketId"])["status"] == "SUBMITTED"


async def test_terminal_ticket_is_locked(ticket_service, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    await ticket_service.set_status(created["ticketId"], "COMPLETED", actor)

    with pytest.raises(LockedResourceError) as exc_info:
        await ticket_service.update_ticket(created["ticketId"], {"productName": "Changed"}, actor)

    assert exc_info.value.http_status == 423
    assert exc_info.value.details["currentStatus"] == "COMPLETED"


async def test_terminal_ticket_can_be_reopened(ticket_service, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    await ticket_service.set_status(created["ticketId"], "CANCELED", actor)

    reopened = await ticket_service.update_ticket(created["ticketId"], {"status": "IN_PROCESS"}, actor)
    assert reopened["status"] == "IN_PROCESS"


async def test_reopening_with_an_edit_records_both_in_order(ticket_service, ticket_repo, actor, ethanol_payload):
    created = await ticket_service.create_ticket({**ethanol_payload, "priority": "MEDIUM"}, actor)
    await ticket_service.set_status(created["ticketId"], "COMPLETED", actor)
    saves = ticket_repo.save_count

    reopened = await ticket_service.update_ticket(
        created["ticketId"], {"status": "IN_PROCESS", "priority": "HIGH"}, actor
    )

    assert reopened["status"] == "IN_PROCESS"
    assert reopened["priority"] == "HIGH"
    assert actions(reopened) == ["TICKET_CREATED", "STATUS_CHANGE", "TICKET_EDIT", "STATUS_CHANGE"]
    edit, status = reopened["statusHistory"][-2:]
    assert edit["reason"] == 'Ticket edited by Pat Manager: Priority changed from "MEDIUM" to "HIGH"'
    assert status["reason"] == "Status changed from COMPLETED to IN_PROCESS by Pat Manager"
    assert ticket_repo.save_count == saves + 1


async def test_second_bulk_sku_is_rejected(ticket_service, ticket_repo, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    variants = [
        {"type": "BULK", "packageSize": {"value": 25, "unit": "kg"}},
        {"type": "BULK", "packageSize": {"value": 50, "unit": "kg"}},
    ]

    with pytest.raises(DuplicateBulkSkuError):
        await ticket_service.update_ticket(created["ticketId"], {"skuVariants": variants}, actor)
    assert ticket_repo.save_count == 0


async def test_submitting_draft_checks_requirements(ticket_service, actor):
    draft = await ticket_service.save_draft({"priority": "LOW"}, actor)

    with pytest.raises(SubmissionRequirementsError):
        await ticket_service.update_ticket(draft["ticketId"], {"status": "SUBMITTED"}, actor)

    submitted = await ticket_service.update_ticket(
        draft["ticketId"], {"status": "SUBMITTED", "productName": "Benzene"}, actor
    )
    assert submitted["status"] == "SUBMITTED"


async def test_update_unknown_ticket(ticket_service, actor):
    with pytest.raises(TicketNotFoundError):
        await ticket_service.update_ticket("TKT-missing", {"productName": "x"}, actor)


async def test_update_with_unknown_status(ticket_service, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    with pytest.raises(ValidationError):
        await ticket_service.update_ticket(created["ticketId"], {"status": "ARCHIVED"}, actor)


# =============================================================================
# Manual status and comments
# =============================================================================

async def test_set_status_writes_manual_entry(ticket_service, notifier, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    ticket = await ticket_service.set_status(created["ticketId"], "IN_PROCESS", actor, reason="Picked up")

    entry = ticket["statusHistory"][-1]
    assert entry["action"] == "STATUS_CHANGE"
    assert entry["reason"] == "Picked up by Pat Manager"
    assert entry["details"] == {"previousStatus": "SUBMITTED", "newStatus": "IN_PROCESS", "changeType": "manual"}
    assert notifier.calls[-1] == ("status_change", created["ticketId"], "SUBMITTED", "IN_PROCESS")


async def test_set_same_status_is_a_no_op(ticket_service, ticket_repo, notifier, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    ticket = await ticket_service.set_status(created["ticketId"], "SUBMITTED", actor)

    assert actions(ticket) == ["TICKET_CREATED"]
    assert ticket_repo.save_count == 0
    assert notifier.calls == [("created", created["ticketId"])]


async def test_set_status_to_submitted_checks_requirements(ticket_service, ticket_repo, actor):
    draft = await ticket_service.save_draft({}, actor)

    with pytest.raises(SubmissionRequirementsError):
        await ticket_service.set_status(draft["ticketId"], "SUBMITTED", actor)
    assert ticket_repo.get(draft["ticketId"])["status"] == "DRAFT"


async def test_add_comment(ticket_service, notifier, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    ticket = await ticket_service.add_comment(created["ticketId"], "  Please confirm purity grade  ", actor)

    comment = ticket["comments"][0]
    assert comment["user"] == "E12345"
    assert comment["userName"] == "Pat Manager"
    assert comment["content"] == "Please confirm purity grade"
    assert ticket["statusHistory"][-1]["action"] == "COMMENT_ADDED"
    assert ticket["statusHistory"][-1]["reason"] == 'Comment added by Pat Manager: "Please confirm purity grade"'
    assert notifier.calls[-1] == ("comment", created["ticketId"], "Please confirm purity grade")


async def test_long_comment_is_previewed_in_history(ticket_service, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    content = "x" * 80
    ticket = await ticket_service.add_comment(created["ticketId"], content, actor)

    assert ticket["comments"][0]["content"] == content
    assert ticket["statusHistory"][-1]["reason"].endswith(f'"{"x" * 50}..."')


async def test_blank_comment_is_rejected(ticket_service, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    with pytest.raises(ValidationError):
        await ticket_service.add_comment(created["ticketId"], "   ", actor)


# =============================================================================
# Reads
# =============================================================================

async def test_list_excludes_terminal_tickets_by_default(ticket_service, actor, ethanol_payload):
    a = await ticket_service.create_ticket(ethanol_payload, actor)
    await ticket_service.create_ticket({**ethanol_payload, "productName": "Methanol"}, actor)
    await ticket_service.create_ticket({**ethanol_payload, "productName": "Acetone"}, actor)
    await ticket_service.set_status(a["ticketId"], "COMPLETED", actor)

    active = ticket_service.list_tickets()
    assert active["pagination"]["total"] == 2
    assert a["ticketId"] not in [t["ticketId"] for t in active["tickets"]]

    completed = ticket_service.list_tickets(status="COMPLETED")
    assert [t["ticketId"] for t in completed["tickets"]] == [a["ticketId"]]

    archived = ticket_service.list_archived_tickets()
    assert archived["pagination"]["total"] == 1


async def test_list_paginates_and_searches(ticket_service, actor, ethanol_payload):
    for name in ("Ethanol absolute", "Ethanol denatured", "Acetone"):
        await ticket_service.create_ticket({**ethanol_payload, "productName": name}, actor)

    page = ticket_service.list_tickets(search="ETHANOL", page=2, limit=1)
    assert page["pagination"] == {"page": 2, "limit": 1, "total": 2, "pages": 2}
    assert len(page["tickets"]) == 1

    assert ticket_service.list_tickets(created_by="E12345")["pagination"]["total"] == 3
    assert ticket_service.list_tickets(created_by="nobody")["pagination"]["total"] == 0


async def test_recent_activity_merges_history_and_comments(ticket_service, actor, ethanol_payload):
    created = await ticket_service.create_ticket(ethanol_payload, actor)
    await ticket_service.add_comment(created["ticketId"], "Looks good", actor)
    canceled = await ticket_service.create_ticket({**ethanol_payload, "productName": "Dropped"}, actor)
    await ticket_service.set_status(canceled["ticketId"], "CANCELED", actor)

    result = ticket_service.get_recent_activity(days=7, limit=10)

    assert result["total"] == 3
    assert {a["ticketId"] for a in result["activities"]} == {created["ticketId"]}
    comment_activity = next(a for a in result["activities"] if a["description"].startswith("Comment:"))
    assert comment_activity["description"] == 'Comment: "Looks good"'
    assert comment_activity["user"] == "Pat Manager"
    timestamps = [a["timestamp"] for a in result["activities"]]
    assert timestamps == sorted(timestamps, reverse=True)


async def test_recent_activity_respects_window(ticket_service, actor, ethanol_payload):
    await ticket_service.create_ticket(ethanol_payload, actor)
    result = ticket_service.get_recent_activity(days=7, now=utc_now() + timedelta(days=30))

    assert result["activities"] == []
    assert result["total"] == 0
