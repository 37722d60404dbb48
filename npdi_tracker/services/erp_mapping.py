"""SAP MARA Field Mapping - translates ERP columns into ticket field paths

Each rule reads one or more MARA columns and writes a dotted ticket path.
Enum-typed targets are checked but a non-conforming value is still written
(with a warning) so a user can correct it in the form instead of losing it.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..domain.enums import SBU, PackageUnit
from ..utils.logger import get_logger

logger = get_logger(__name__)

# ============================================================================
# Lookup tables
# ============================================================================

BRAND_MAP: Dict[str, str] = {
    "SIGMA": "Sigma-Aldrich",
    "SIGMA-ALDRICH": "Sigma-Aldrich",
    "ALDRICH": "Sigma-Aldrich",
    "SUPELCO": "Supelco",
    "MERCK": "Merck Millipore",
    "MILLIPORE": "Merck Millipore",
    "MERK": "Merck Millipore",
    "SAFC": "SAFC",
    "FLUKA": "Fluka",
}

TEMPERATURE_CODE_MAP: Dict[str, str] = {
    "01": "Frozen (-20 deg)",
    "02": "CL (2-8 deg)",
    "03": "RT (15-25 deg)",
    "04": "Ambient",
    "28": "Ambient",
    "W1": "Ambient",
    "W2": "RT (15-25 deg)",
    "W3": "CL (2-8 deg)",
    "W4": "Frozen (-20 deg)",
}

# (pattern, storage value), evaluated in order against lowercased TEMPB_TEXT
TEMPERATURE_TEXT_RULES: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"room temp|ambient|\brt\b|15.*25|20.*25"), "Ambient"),
    (re.compile(r"refrigerat|cold|cool|2.*8"), "CL (2-8 deg)"),
    (re.compile(r"frozen|freez|-20|-80"), "Frozen"),
    (re.compile(r"controlled room"), "RT (15-25 deg)"),
)

QUALITY_SEGMENTS = {"100", "200", "300", "400", "500", "600"}

PRODUCTION_TYPE_MAP = {"F": "Procured", "E": "Produced"}

EXCLUDED_GPH_VALUES = {"1120999"}

VALID_SBUS = {member.value for member in SBU}
VALID_BASE_UNITS = {member.value.lower() for member in PackageUnit} | {"ea", "pc", "st", "pak"}


def normalize_brand(logo_text: str) -> str:
    """Exact brand-table hit first, then substring either way, else the raw text"""
    upper = logo_text.upper().strip()
    if upper in BRAND_MAP:
        return BRAND_MAP[upper]
    for key, brand in BRAND_MAP.items():
        if key in upper or upper in key:
            return brand
    return logo_text


def map_storage_temperature(code: Optional[str], text: Optional[str]) -> Optional[str]:
    """
    Storage temperature from TEMPB_TEXT when present, else from the TEMPB code

    Unrecognized text or codes pass through unchanged.
    """
    if text:
        lowered = text.lower().strip()
        for pattern, value in TEMPERATURE_TEXT_RULES:
            if pattern.search(lowered):
                return value
        return text
    if code:
        return TEMPERATURE_CODE_MAP.get(str(code).strip(), str(code))
    return None


def map_quality_segment(segment: str) -> str:
    value = str(segment).strip()
    return f"MQ{value}" if value in QUALITY_SEGMENTS else "N/A"


# ============================================================================
# Rule table
# ============================================================================

@dataclass(frozen=True)
class FieldRule:
    """Map the first non-empty source column to ``target``"""
    columns: Tuple[str, ...]
    target: str
    transform: Callable[[Any], Optional[Any]] = lambda value: value
    allowed: Optional[frozenset] = None
    metadata: bool = False


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
    return value


FIELD_RULES: Tuple[FieldRule, ...] = (
    FieldRule(("TEXT_SHORT",), "productName"),
    FieldRule(("TEXT_LONG",), "corpbaseData.productDescription"),
    FieldRule(("YYD_YSBU", "SPART"), "sbu", allowed=frozenset(VALID_SBUS)),
    FieldRule(("YYD_MEMBF_TEXT",), "businessLine.line"),
    FieldRule(
        ("YYD_GPHPL",), "businessLine.mainGroupGPH",
        transform=lambda value: None if str(value) in EXCLUDED_GPH_VALUES else value,
    ),
    FieldRule(("YYD_YLOGO_TEXT",), "brand", transform=normalize_brand),
    FieldRule(
        ("MEINS",), "pricingData.baseUnit",
        transform=lambda value: str(value).lower(), allowed=frozenset(VALID_BASE_UNITS),
    ),
    FieldRule(("YYD_CASNR",), "chemicalProperties.casNumber"),
    FieldRule(("YYD_QASEG",), "quality.mqQualityLevel", transform=map_quality_segment),
    FieldRule(("YYD_SOSUB",), "productionType", transform=lambda value: PRODUCTION_TYPE_MAP.get(str(value))),
    FieldRule(("ORG_PPL",), "primaryPlant"),
    FieldRule(("ORG_PPL_TEXT",), "primaryPlantDescription", metadata=True),
    FieldRule(("HERKL",), "countryOfOrigin"),
    FieldRule(("YYD_MFRNR",), "vendorInformation.vendorSAPNumber"),
    FieldRule(("MFRPN",), "vendorInformation.vendorProductNumber"),
)


@dataclass
class MappedRecord:
    """Flat ``path -> value`` mapping plus display-only metadata"""
    mapped_fields: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


def _first_value(row: Dict[str, Any], columns: Tuple[str, ...]) -> Any:
    for column in columns:
        value = _clean(row.get(column))
        if value not in (None, ""):
            return value
    return None


def map_mara_row(row: Dict[str, Any]) -> MappedRecord:
    """Apply every field rule to one MARA row"""
    record = MappedRecord()

    for rule in FIELD_RULES:
        raw = _first_value(row, rule.columns)
        if raw is None:
            continue
        value = rule.transform(raw)
        if value in (None, ""):
            continue

        if rule.allowed is not None and value not in rule.allowed:
            message = f"{rule.target} value '{value}' from {'/'.join(rule.columns)} is not a known option"
            logger.warning(f"[SAP Mapping] {message}")
            record.warnings.append(message)

        if rule.metadata:
            # Plant description only accompanies a mapped plant
            if "primaryPlant" in record.mapped_fields:
                record.metadata[rule.target] = value
        else:
            record.mapped_fields[rule.target] = value

    temperature = map_storage_temperature(
        _clean(row.get("TEMPB")) or None, _clean(row.get("TEMPB_TEXT")) or None
    )
    if temperature:
        record.mapped_fields["chemicalProperties.storageTemperature"] = temperature

    return record
