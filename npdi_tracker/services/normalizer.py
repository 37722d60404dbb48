"""Ticket Payload Normalizer - cleans raw form payloads before validation

Forms post empty strings for unset dropdowns and newline/comma separated
text for list fields. The schema rejects ``""`` for enum members, so such
keys are removed; list fields are split; SKU and SBU defaults are applied.
All functions return a new dict and never drop non-enum fields.
"""
import copy
from typing import Any, Dict, List, Optional

from ..utils.paths import get_path

# Enum-typed keys that are removed when blank or None
TOP_LEVEL_ENUM_FIELDS = (
    "sbu", "status", "priority", "productionType", "brand", "countryOfOrigin", "distributionType",
)
CHEMICAL_ENUM_FIELDS = (
    "physicalState", "shippingConditions", "materialSource", "animalComponent", "storageTemperature",
)
HAZARD_ENUM_FIELDS = ("ghsClass", "signalWord", "transportClass", "unNumber")
NESTED_ENUM_PATHS = (
    ("productScope", "scope"),
    ("retestOrExpiration", "type"),
    ("retestOrExpiration.shelfLife", "unit"),
)

# (section, key, separator) for textarea-style list fields
LIST_FIELDS = (
    ("corpbaseData", "keyFeatures", "\n"),
    ("corpbaseData", "applications", "\n"),
    ("chemicalProperties", "synonyms", ","),
    ("chemicalProperties", "hazardStatements", "\n"),
)

DEFAULT_PACKAGE_SIZE = {"value": 100, "unit": "g"}
DEFAULT_CURRENCY = "USD"


def default_sku_variant() -> Dict[str, Any]:
    return {
        "type": "PREPACK",
        "sku": "",
        "packageSize": dict(DEFAULT_PACKAGE_SIZE),
        "pricing": {"listPrice": 0, "currency": DEFAULT_CURRENCY},
    }


def _drop_blank(container: Optional[Dict[str, Any]], keys) -> None:
    if not isinstance(container, dict):
        return
    for key in keys:
        if key in container and (container[key] is None or container[key] == ""):
            del container[key]


def split_list_text(text: str, separator: str) -> List[str]:
    """Split, trim and drop empty segments"""
    return [part.strip() for part in text.split(separator) if part.strip()]


def _clean_sku_variants(variants: Any) -> None:
    if not isinstance(variants, list):
        return
    for sku in variants:
        if not isinstance(sku, dict):
            continue
        if not sku.get("type"):
            sku["type"] = "PREPACK"

        package = sku.get("packageSize")
        if not isinstance(package, dict):
            sku["packageSize"] = dict(DEFAULT_PACKAGE_SIZE)
        else:
            if not package.get("unit"):
                package["unit"] = DEFAULT_PACKAGE_SIZE["unit"]
            if not package.get("value"):
                package["value"] = DEFAULT_PACKAGE_SIZE["value"]

        pricing = sku.get("pricing")
        if not isinstance(pricing, dict):
            sku["pricing"] = {"listPrice": 0, "currency": DEFAULT_CURRENCY}
        elif not pricing.get("currency"):
            pricing["currency"] = DEFAULT_CURRENCY


def clean_ticket_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Clean enums and list fields without injecting SKU/SBU defaults"""
    data = copy.deepcopy(payload) if payload else {}

    _drop_blank(data, TOP_LEVEL_ENUM_FIELDS)
    for parent_path, key in NESTED_ENUM_PATHS:
        _drop_blank(get_path(data, parent_path), (key,))

    chemical = data.get("chemicalProperties")
    if isinstance(chemical, dict):
        _drop_blank(chemical, CHEMICAL_ENUM_FIELDS)
        cas = chemical.get("casNumber")
        # Dropdown artifacts look like "64-17-5_1"
        if isinstance(cas, str) and "_" in cas:
            chemical["casNumber"] = cas.split("_")[0]

    _drop_blank(data.get("hazardClassification"), HAZARD_ENUM_FIELDS)

    for section, key, separator in LIST_FIELDS:
        container = data.get(section)
        if isinstance(container, dict) and isinstance(container.get(key), str) and container[key]:
            container[key] = split_list_text(container[key], separator)

    _clean_sku_variants(data.get("skuVariants"))
    return data


def normalize_ticket_payload(payload: Dict[str, Any], default_sbu: str) -> Dict[str, Any]:
    """Full create-time normalization: clean, then inject default SKU and SBU"""
    data = clean_ticket_payload(payload)
    if not data.get("skuVariants"):
        data["skuVariants"] = [default_sku_variant()]
    if not data.get("sbu"):
        data["sbu"] = default_sbu
    return data


def normalize_update_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Update-time normalization; an update never gains a default SKU or SBU"""
    return clean_ticket_payload(payload)
