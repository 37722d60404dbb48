"""Template resolution and required-field checks"""
import pytest

from npdi_tracker.domain.errors import SubmissionRequirementsError
from npdi_tracker.services.submission_validator import SubmissionValidator
from tests.fakes import InMemoryTemplateRepository, make_template


@pytest.fixture
def templates():
    return InMemoryTemplateRepository(
        [
            make_template("tpl-default", ["productName"], is_default=True),
            make_template(
                "tpl-chem",
                ["productName", "chemicalProperties.casNumber", "skuVariants"],
                is_default=False,
                labels={"chemicalProperties.casNumber": "CAS Number"},
            ),
            make_template("tpl-retired", ["sbu"], is_default=False, is_active=False),
        ],
        user_templates={"E12345": "tpl-chem"},
    )


def test_stored_template_wins(templates, actor):
    template = SubmissionValidator(templates).resolve_template({"template": "tpl-default"}, actor)
    assert template.template_id == "tpl-default"


def test_inactive_stored_template_falls_back_to_user_template(templates, actor):
    template = SubmissionValidator(templates).resolve_template({"template": "tpl-retired"}, actor)
    assert template.template_id == "tpl-chem"


def test_unassigned_user_gets_default(templates, ops_actor):
    template = SubmissionValidator(templates).resolve_template({}, ops_actor)
    assert template.template_id == "tpl-default"


def test_missing_fields_use_form_labels(templates, actor):
    check = SubmissionValidator(templates).check(
        {"productName": "  ", "chemicalProperties": {}, "skuVariants": []}, actor
    )

    assert not check.is_valid
    assert check.missing_fields == [
        {"fieldKey": "productName", "fieldLabel": "productName"},
        {"fieldKey": "chemicalProperties.casNumber", "fieldLabel": "CAS Number"},
        {"fieldKey": "skuVariants", "fieldLabel": "skuVariants"},
    ]


def test_complete_ticket_passes(templates, actor):
    ticket = {
        "productName": "Ethanol",
        "chemicalProperties": {"casNumber": "64-17-5"},
        "skuVariants": [{"type": "PREPACK"}],
    }
    template = SubmissionValidator(templates).validate(ticket, actor)
    assert template.template_id == "tpl-chem"


def test_validate_raises_with_template_name(templates, actor):
    with pytest.raises(SubmissionRequirementsError) as exc_info:
        SubmissionValidator(templates).validate({"productName": "Ethanol"}, actor)

    assert exc_info.value.error_code == "SUBMISSION_REQUIREMENTS_NOT_MET"
    assert exc_info.value.details["templateName"] == "Template tpl-chem"
    assert "CAS Number" in exc_info.value.message


def test_no_template_means_nothing_to_enforce(ops_actor):
    validator = SubmissionValidator(InMemoryTemplateRepository())
    assert validator.validate({}, ops_actor) is None
