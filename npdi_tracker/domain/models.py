"""Domain Models - Pydantic schemas for all entities

Documents are persisted with camelCase keys (the shape the UI sends and the
shape template ``submissionRequirements`` paths refer to). Attributes are
snake_case with camelCase aliases; always dump with ``by_alias=True``.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel

from .enums import (
    TicketStatus, Priority, SBU, SKUType, PackageUnit, PhysicalState, HistoryAction,
    DateFormat, TimeFormat, Theme, DashboardView, FontSize
)

CAS_PATTERN = r"^\d{1,7}-\d{2}-\d$"


class CamelModel(BaseModel):
    """Base for persisted documents - camelCase on the wire, snake_case in code"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )


class OpenCamelModel(CamelModel):
    """Document section that keeps unknown keys (free-form form sections)"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="allow",
    )


# ============================================================================
# Identity
# ============================================================================

class ActorContext(BaseModel):
    """Authenticated caller, resolved once per request"""
    model_config = ConfigDict(extra="forbid")

    stable_id: str = Field(..., description="Employee id when known, else email")
    display_name: str = Field(..., description="Display name snapshot")
    role: str = Field(default="PRODUCT_MANAGER", description="Application role")
    email: Optional[str] = Field(None, description="User email")

    def user_info(self) -> Dict[str, Any]:
        """Snapshot stored on history entries"""
        return {
            "stableId": self.stable_id,
            "displayName": self.display_name,
            "email": self.email,
            "role": self.role,
        }


# ============================================================================
# SKU Variants
# ============================================================================

class PackageSize(CamelModel):
    value: float = Field(..., description="Package quantity")
    unit: PackageUnit = Field(..., description="Package unit")


class SkuPricing(OpenCamelModel):
    standard_cost: Optional[float] = None
    margin: Optional[float] = None
    limit_price: Optional[float] = None
    list_price: Optional[float] = None
    currency: str = "USD"


class SKUVariant(OpenCamelModel):
    type: SKUType = Field(..., description="Variant type; at most one BULK per ticket")
    sku: Optional[str] = None
    description: Optional[str] = None
    package_size: Optional[PackageSize] = None
    pricing: Optional[SkuPricing] = None


# ============================================================================
# Chemistry
# ============================================================================

class AdditionalProperties(OpenCamelModel):
    """Optional physical measurements parsed from PubChem narrative text"""
    boiling_point: Optional[str] = None
    melting_point: Optional[str] = None
    flash_point: Optional[str] = None
    density: Optional[str] = None
    vapor_pressure: Optional[str] = None
    vapor_density: Optional[str] = None
    refractive_index: Optional[str] = None
    physical_description: Optional[str] = None
    solubility: Optional[str] = None


class ChemicalProperties(OpenCamelModel):
    cas_number: Optional[str] = Field(None, pattern=CAS_PATTERN)
    molecular_formula: Optional[str] = None
    molecular_weight: Optional[float] = None
    iupac_name: Optional[str] = None
    canonical_smiles: Optional[str] = Field(None, alias="canonicalSMILES")
    isomeric_smiles: Optional[str] = Field(None, alias="isomericSMILES")
    inchi: Optional[str] = None
    inchi_key: Optional[str] = None
    pubchem_cid: Optional[str] = Field(None, alias="pubchemCID")
    x_log_p: Optional[float] = None
    tpsa: Optional[float] = None
    complexity: Optional[float] = None
    charge: Optional[int] = None
    h_bond_donor_count: Optional[int] = None
    h_bond_acceptor_count: Optional[int] = None
    heavy_atom_count: Optional[int] = None
    physical_state: Optional[PhysicalState] = None
    synonyms: List[str] = Field(default_factory=list)
    hazard_statements: List[str] = Field(default_factory=list)
    storage_temperature: Optional[str] = None
    additional_properties: Optional[AdditionalProperties] = None
    auto_populated: bool = False


class HazardClassification(OpenCamelModel):
    ghs_class: Optional[str] = None
    signal_word: Optional[str] = None
    hazard_statements: List[str] = Field(default_factory=list)
    precautionary_statements: List[str] = Field(default_factory=list)
    transport_class: Optional[str] = None
    un_number: Optional[str] = None
    pubchem_ghs: Optional[Dict[str, Any]] = Field(None, alias="pubchemGHS")


class CorpBaseData(OpenCamelModel):
    product_description: Optional[str] = None
    website_title: Optional[str] = None
    meta_description: Optional[str] = None
    key_features: List[str] = Field(default_factory=list)
    applications: List[str] = Field(default_factory=list)
    target_markets: List[str] = Field(default_factory=list)
    competitive_advantages: List[str] = Field(default_factory=list)
    technical_specifications: Optional[str] = None
    quality_standards: List[str] = Field(default_factory=list)
    ai_generated: Optional[bool] = None
    generated_at: Optional[datetime] = None


# ============================================================================
# Ticket
# ============================================================================

class PartNumber(OpenCamelModel):
    base_number: Optional[str] = None
    assigned_by: Optional[str] = None
    assigned_at: Optional[datetime] = None


class NpdiTracking(OpenCamelModel):
    tracking_number: Optional[str] = None
    initiated_at: Optional[datetime] = None
    initiated_by: Optional[str] = None


class StatusHistoryEntry(CamelModel):
    """One immutable audit record"""
    status: TicketStatus
    changed_by: Optional[str] = Field(None, description="Actor stable id")
    changed_by_name: Optional[str] = None
    changed_at: datetime
    reason: str = ""
    action: HistoryAction
    details: Optional[Dict[str, Any]] = None
    user_info: Optional[Dict[str, Any]] = None


class TicketComment(CamelModel):
    user: Optional[str] = None
    user_name: Optional[str] = None
    content: str
    timestamp: datetime


class Ticket(OpenCamelModel):
    """NPDI product ticket; descriptive sub-records are kept as given"""
    ticket_id: str = Field(..., description="Internal id (TKT-...)")
    ticket_number: str = Field(..., description="Human-readable NPDI-YYYY-NNNN")
    status: TicketStatus = TicketStatus.SUBMITTED
    priority: Priority = Priority.MEDIUM
    sbu: Optional[SBU] = None
    product_name: Optional[str] = None
    product_line: Optional[str] = None
    template: Optional[str] = None

    created_by: Optional[str] = None
    created_by_employee_id: Optional[str] = None
    created_by_name: Optional[str] = None
    assigned_to: Optional[str] = None

    chemical_properties: Optional[ChemicalProperties] = None
    hazard_classification: Optional[HazardClassification] = None
    sku_variants: List[SKUVariant] = Field(default_factory=list)
    part_number: Optional[PartNumber] = None
    npdi_tracking: Optional[NpdiTracking] = None
    corpbase_data: Optional[CorpBaseData] = None

    status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    comments: List[TicketComment] = Field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================================================
# Templates
# ============================================================================

class FormFieldConfig(OpenCamelModel):
    field_key: str
    label: Optional[str] = None


class FormSectionConfig(OpenCamelModel):
    section_key: Optional[str] = None
    title: Optional[str] = None
    fields: List[FormFieldConfig] = Field(default_factory=list)


class FormConfiguration(OpenCamelModel):
    sections: List[FormSectionConfig] = Field(default_factory=list)

    def field_label(self, field_key: str) -> Optional[str]:
        for section in self.sections:
            for field in section.fields:
                if field.field_key == field_key:
                    return field.label
        return None


class TicketTemplate(CamelModel):
    """Read-only here; managed by the admin console"""
    template_id: str
    name: str
    description: str = ""
    form_configuration: Optional[FormConfiguration] = None
    is_default: bool = False
    is_active: bool = True
    submission_requirements: List[str] = Field(default_factory=list)
    created_by_employee_id: Optional[str] = None


# ============================================================================
# User Preferences
# ============================================================================

class DisplayPreferences(CamelModel):
    timezone: str = "America/New_York"
    date_format: DateFormat = DateFormat.MM_DD_YYYY
    time_format: TimeFormat = TimeFormat.TWELVE_HOUR
    theme: Theme = Theme.LIGHT
    language: str = "en"


class EmailNotificationPreferences(CamelModel):
    enabled: bool = True
    new_ticket: bool = True
    status_change: bool = True
    comments: bool = True
    assignments: bool = True
    reminders: bool = True
    daily_digest: bool = False
    weekly_report: bool = False


class BrowserNotificationPreferences(CamelModel):
    enabled: bool = True
    new_ticket: bool = False
    status_change: bool = True
    comments: bool = True
    assignments: bool = True


class NotificationPreferences(CamelModel):
    email: EmailNotificationPreferences = Field(default_factory=EmailNotificationPreferences)
    browser: BrowserNotificationPreferences = Field(default_factory=BrowserNotificationPreferences)


class DefaultSort(CamelModel):
    field: str = "createdAt"
    order: str = Field("desc", pattern="^(asc|desc)$")


class DefaultFilter(CamelModel):
    status: List[TicketStatus] = Field(default_factory=list)
    priority: List[Priority] = Field(default_factory=list)
    assigned_to: Optional[str] = None


class DashboardPreferences(CamelModel):
    default_view: DashboardView = DashboardView.LIST
    items_per_page: int = Field(25, ge=10, le=100)
    show_completed_tickets: bool = False
    default_filter: DefaultFilter = Field(default_factory=DefaultFilter)
    default_sort: DefaultSort = Field(default_factory=DefaultSort)


class TicketFormPreferences(CamelModel):
    save_as_draft_by_default: bool = True
    auto_save_interval: int = Field(30, ge=10, le=300, description="Seconds")
    default_priority: Optional[Priority] = None
    show_help_text: bool = True


class AccessibilityPreferences(CamelModel):
    reduced_motion: bool = False
    high_contrast: bool = False
    font_size: FontSize = FontSize.MEDIUM
    screen_reader: bool = False


class AdvancedPreferences(CamelModel):
    show_developer_info: bool = False
    enable_experimental_features: bool = False
    compact_mode: bool = False


class UserPreferences(CamelModel):
    user_id: str
    display: DisplayPreferences = Field(default_factory=DisplayPreferences)
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    dashboard: DashboardPreferences = Field(default_factory=DashboardPreferences)
    ticket_form: TicketFormPreferences = Field(default_factory=TicketFormPreferences)
    accessibility: AccessibilityPreferences = Field(default_factory=AccessibilityPreferences)
    advanced: AdvancedPreferences = Field(default_factory=AdvancedPreferences)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


PREFERENCE_SECTIONS = ("display", "notifications", "dashboard", "ticketForm", "accessibility", "advanced")
