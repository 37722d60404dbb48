"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class TicketStatus(str, Enum):
    """NPDI ticket pipeline status"""
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    IN_PROCESS = "IN_PROCESS"
    NPDI_INITIATED = "NPDI_INITIATED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


# Edits to tickets in these states are rejected unless the edit moves the status away
TERMINAL_STATUSES = (TicketStatus.COMPLETED, TicketStatus.CANCELED)


class Priority(str, Enum):
    """Ticket priority"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class SBU(str, Enum):
    """Strategic business unit codes"""
    SBU_775 = "775"
    P90 = "P90"
    SBU_440 = "440"
    P87 = "P87"
    P89 = "P89"
    P85 = "P85"


class SKUType(str, Enum):
    """Package/pricing variant types"""
    BULK = "BULK"
    CONF = "CONF"
    SPEC = "SPEC"
    VAR = "VAR"
    PREPACK = "PREPACK"


class PackageUnit(str, Enum):
    MG = "mg"
    G = "g"
    KG = "kg"
    ML = "mL"
    L = "L"
    UNITS = "units"
    VIALS = "vials"
    PLATES = "plates"
    BULK = "bulk"


class PhysicalState(str, Enum):
    SOLID = "Solid"
    LIQUID = "Liquid"
    GAS = "Gas"
    POWDER = "Powder"
    CRYSTAL = "Crystal"


class HistoryAction(str, Enum):
    """Machine-readable tag on every status history entry"""
    TICKET_CREATED = "TICKET_CREATED"
    STATUS_CHANGE = "STATUS_CHANGE"
    SKU_ASSIGNMENT = "SKU_ASSIGNMENT"
    TICKET_EDIT = "TICKET_EDIT"
    COMMENT_ADDED = "COMMENT_ADDED"
    NPDI_INITIATED = "NPDI_INITIATED"


class ErpSearchType(str, Enum):
    """Enterprise (SAP MARA) search modes"""
    PART_NUMBER = "partNumber"
    PRODUCT_NAME = "productName"
    CAS_NUMBER = "casNumber"


class UserRole(str, Enum):
    PRODUCT_MANAGER = "PRODUCT_MANAGER"
    PM_OPS = "PM_OPS"
    ADMIN = "ADMIN"


# ============================================================================
# User Preference Enumerations
# ============================================================================

class DateFormat(str, Enum):
    MM_DD_YYYY = "MM/DD/YYYY"
    DD_MM_YYYY = "DD/MM/YYYY"
    YYYY_MM_DD = "YYYY-MM-DD"


class TimeFormat(str, Enum):
    TWELVE_HOUR = "12-hour"
    TWENTY_FOUR_HOUR = "24-hour"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class EmailDigest(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"


class DashboardView(str, Enum):
    LIST = "list"
    GRID = "grid"
    KANBAN = "kanban"


class FontSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
