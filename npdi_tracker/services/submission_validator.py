"""Submission Requirements Validator - template-driven required fields for SUBMITTED"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..domain.errors import SubmissionRequirementsError
from ..domain.models import ActorContext, TicketTemplate
from ..repositories.template_repo import TemplateRepository
from ..utils.logger import get_logger
from ..utils.paths import get_path, is_empty

logger = get_logger(__name__)


@dataclass
class SubmissionCheck:
    missing_fields: List[Dict[str, str]] = field(default_factory=list)
    template: Optional[TicketTemplate] = None
    required_field_keys: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.missing_fields


class SubmissionValidator:
    """
    Checks a ticket document against its template's ``submissionRequirements``

    Template resolution: the ticket's stored template when still active, then
    the template assigned to the acting user, then the active default. With
    no template at all there is nothing to enforce.
    """

    def __init__(self, template_repo: Optional[TemplateRepository] = None):
        self.template_repo = template_repo or TemplateRepository()

    def resolve_template(self, ticket: Dict[str, Any], actor: ActorContext) -> Optional[TicketTemplate]:
        stored_id = ticket.get("template")
        if stored_id:
            template = self.template_repo.get(str(stored_id))
            if template and template.is_active:
                return template
            logger.warning(f"Stored template {stored_id} is missing or inactive, using the user's template")

        user_template_id = self.template_repo.get_template_id_for_user(actor.stable_id)
        if user_template_id:
            template = self.template_repo.get(user_template_id)
            if template and template.is_active:
                return template

        return self.template_repo.get_default()

    def check(self, ticket: Dict[str, Any], actor: ActorContext) -> SubmissionCheck:
        template = self.resolve_template(ticket, actor)
        if template is None:
            logger.warning(f"No template found for user {actor.stable_id}; submission not restricted")
            return SubmissionCheck()

        result = SubmissionCheck(template=template, required_field_keys=list(template.submission_requirements))
        for field_key in template.submission_requirements:
            if is_empty(get_path(ticket, field_key)):
                label = None
                if template.form_configuration:
                    label = template.form_configuration.field_label(field_key)
                result.missing_fields.append({"fieldKey": field_key, "fieldLabel": label or field_key})
        return result

    def validate(self, ticket: Dict[str, Any], actor: ActorContext) -> Optional[TicketTemplate]:
        """
        Raise SubmissionRequirementsError when required fields are empty

        Returns:
            The template that was enforced, if any
        """
        result = self.check(ticket, actor)
        if not result.is_valid:
            logger.info(
                f"Submission blocked: {len(result.missing_fields)} required fields missing",
                extra={"ticket_id": ticket.get("ticketId"), "actor_id": actor.stable_id}
            )
            raise SubmissionRequirementsError(result.missing_fields, template_name=result.template.name)
        return result.template
