"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, List, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class SubmissionRequirementsError(ValidationError):
    """Template-required fields are empty on a transition into SUBMITTED"""
    error_code = "SUBMISSION_REQUIREMENTS_NOT_MET"

    def __init__(self, missing_fields: List[Dict[str, str]], template_name: Optional[str] = None):
        labels = ", ".join(f["fieldLabel"] for f in missing_fields)
        super().__init__(
            f"Cannot submit ticket. Required fields are missing: {labels}",
            details={"missingFields": missing_fields, "templateName": template_name}
        )
        self.missing_fields = missing_fields


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class TicketNotFoundError(NotFoundError):
    """Ticket not found"""
    error_code = "TICKET_NOT_FOUND"


class CompoundNotFoundError(NotFoundError):
    """PubChem has no compound for the registry id"""
    error_code = "COMPOUND_NOT_FOUND"


class ErpRecordNotFoundError(NotFoundError):
    """No SAP MARA row matched the search"""
    error_code = "ERP_RECORD_NOT_FOUND"


class PreferenceSectionNotFoundError(NotFoundError):
    """Unknown user preferences section"""
    error_code = "PREFERENCE_SECTION_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict"""
    error_code = "CONFLICT"
    http_status = 409


class DuplicateTicketNumberError(ConflictError):
    """Ticket number already used by another ticket"""
    error_code = "DUPLICATE_TICKET_NUMBER"


class DuplicateBulkSkuError(ConflictError):
    """More than one BULK SKU variant on a ticket"""
    error_code = "DUPLICATE_BULK_SKU"


class LockedResourceError(DomainError):
    """Edit attempted on a COMPLETED or CANCELED ticket"""
    error_code = "TICKET_LOCKED"
    http_status = 423


# External Service Errors
class UpstreamUnavailableError(DomainError):
    """External data service failure"""
    error_code = "UPSTREAM_UNAVAILABLE"
    http_status = 502


class IntegrationDisabledError(UpstreamUnavailableError):
    """Integration switched off or missing credentials"""
    error_code = "INTEGRATION_DISABLED"
    http_status = 503


class UpstreamAuthenticationError(UpstreamUnavailableError):
    """Upstream rejected our credentials"""
    error_code = "UPSTREAM_AUTHENTICATION_FAILED"
    http_status = 401


class UpstreamTimeoutError(UpstreamUnavailableError):
    """Upstream did not answer in time"""
    error_code = "UPSTREAM_TIMEOUT"
    http_status = 504


class UpstreamRateLimitError(UpstreamUnavailableError):
    """Upstream request-rate ceiling hit"""
    error_code = "UPSTREAM_RATE_LIMITED"
    http_status = 429


class NotificationError(DomainError):
    """Webhook delivery failed; never surfaced to API callers"""
    error_code = "NOTIFICATION_ERROR"
    http_status = 502
