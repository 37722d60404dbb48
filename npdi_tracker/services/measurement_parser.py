"""Measurement Parser - pure extraction of physical properties from PubChem narrative

PUG-View returns free text with no guaranteed schema, often several readings
for the same property ("173 °F", "78.2 °C", "78 °C at 760 mm Hg"). Each
property kind has an ordered rule table; temperature kinds prefer Celsius.
Nothing here performs I/O.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Pattern, Tuple


class MeasurementKind(str, Enum):
    BOILING_POINT = "boilingPoint"
    MELTING_POINT = "meltingPoint"
    FLASH_POINT = "flashPoint"
    DENSITY = "density"
    VAPOR_PRESSURE = "vaporPressure"
    VAPOR_DENSITY = "vaporDensity"
    REFRACTIVE_INDEX = "refractiveIndex"


TEMPERATURE_KINDS = frozenset({
    MeasurementKind.BOILING_POINT,
    MeasurementKind.MELTING_POINT,
    MeasurementKind.FLASH_POINT,
})


@dataclass(frozen=True)
class PatternRule:
    label: str
    pattern: Pattern[str]


_NUMBER = r"-?\d+(?:\.\d+)?"
_RANGE = rf"{_NUMBER}(?:\s*(?:-|to|–)\s*{_NUMBER})?"
_DEGREE = r"(?:°|º|deg(?:rees?)?\.?)"

CELSIUS = PatternRule("celsius", re.compile(rf"{_RANGE}\s*{_DEGREE}?\s*C\b"))
FAHRENHEIT = PatternRule("fahrenheit", re.compile(rf"{_RANGE}\s*{_DEGREE}?\s*F\b"))
KELVIN = PatternRule("kelvin", re.compile(rf"{_RANGE}\s*K\b"))

_TEMPERATURE_RULES = (CELSIUS, FAHRENHEIT, KELVIN)

RULES: Dict[MeasurementKind, Tuple[PatternRule, ...]] = {
    MeasurementKind.BOILING_POINT: _TEMPERATURE_RULES,
    MeasurementKind.MELTING_POINT: _TEMPERATURE_RULES,
    MeasurementKind.FLASH_POINT: _TEMPERATURE_RULES,
    MeasurementKind.DENSITY: (
        PatternRule("mass_per_volume", re.compile(rf"{_NUMBER}\s*(?:g|kg)\s*/\s*(?:cm3|cm³|cu\s*cm|mL|ml|L|m3|m³)", re.I)),
        PatternRule("relative", re.compile(rf"(?:relative density|specific gravity)[^0-9-]*{_NUMBER}", re.I)),
        PatternRule("bare_number", re.compile(rf"^\s*{_NUMBER}\b")),
    ),
    MeasurementKind.VAPOR_PRESSURE: (
        PatternRule("mmhg", re.compile(rf"{_NUMBER}\s*mm\s*Hg", re.I)),
        PatternRule("pascal", re.compile(rf"{_NUMBER}\s*k?Pa\b")),
        PatternRule("other_pressure", re.compile(rf"{_NUMBER}\s*(?:atm|psi|bar|torr)\b", re.I)),
    ),
    MeasurementKind.VAPOR_DENSITY: (
        PatternRule("relative_to_air", re.compile(rf"{_NUMBER}\s*\(?\s*(?:\(?air\s*=\s*1|relative to air)", re.I)),
        PatternRule("bare_number", re.compile(rf"^\s*{_NUMBER}\b")),
    ),
    MeasurementKind.REFRACTIVE_INDEX: (
        PatternRule("index_of_refraction", re.compile(r"\b1\.\d{2,5}\b")),
    ),
}

# Kinds that fall back to the first raw text when no rule matches
RAW_FALLBACK_KINDS = frozenset({
    MeasurementKind.BOILING_POINT,
    MeasurementKind.MELTING_POINT,
    MeasurementKind.FLASH_POINT,
    MeasurementKind.DENSITY,
    MeasurementKind.VAPOR_PRESSURE,
})

# PUG-View TOC headings, checked in order ("vapor density" before "density")
HEADING_KINDS: Tuple[Tuple[str, str], ...] = (
    ("boiling point", MeasurementKind.BOILING_POINT.value),
    ("melting point", MeasurementKind.MELTING_POINT.value),
    ("flash point", MeasurementKind.FLASH_POINT.value),
    ("vapor pressure", MeasurementKind.VAPOR_PRESSURE.value),
    ("vapor density", MeasurementKind.VAPOR_DENSITY.value),
    ("density", MeasurementKind.DENSITY.value),
    ("refractive index", MeasurementKind.REFRACTIVE_INDEX.value),
    ("physical description", "physicalDescription"),
    ("solubility", "solubility"),
    ("dot id and guide", "unNumber"),
    ("un number", "unNumber"),
    ("transport", "unNumber"),
)

UN_NUMBER = re.compile(r"\bUN\s*-?\s*(\d{4})\b", re.I)


def _dedupe(texts: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for text in texts:
        cleaned = text.strip() if isinstance(text, str) else ""
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


def parse_measurement(kind: MeasurementKind, texts: Iterable[str]) -> Optional[str]:
    """
    Pick the reading for ``kind`` from candidate texts.

    Temperatures: exactly one Celsius candidate wins; several Celsius
    candidates are joined with "; " so the ambiguity stays visible;
    otherwise the first Fahrenheit/Kelvin reading, then the first raw text.
    Other kinds: the first text matching the earliest rule.
    """
    candidates = _dedupe(texts)
    if not candidates:
        return None

    rules = RULES[kind]
    if kind in TEMPERATURE_KINDS:
        celsius = [text for text in candidates if CELSIUS.pattern.search(text)]
        if len(celsius) == 1:
            return celsius[0]
        if len(celsius) > 1:
            return "; ".join(celsius)
        rules = rules[1:]

    for rule in rules:
        for text in candidates:
            if rule.pattern.search(text):
                return text

    if kind in RAW_FALLBACK_KINDS:
        return candidates[0]
    return None


def parse_un_number(texts: Iterable[str]) -> Optional[str]:
    """First ``UN####`` transport number found, normalized without spaces"""
    for text in _dedupe(texts):
        match = UN_NUMBER.search(text)
        if match:
            return f"UN{match.group(1)}"
    return None


def classify_physical_state(description: Optional[str]) -> Optional[str]:
    """Coarse state from a physical description; crystals count as Solid"""
    if not description:
        return None
    text = description.lower()
    if "liquid" in text:
        return "Liquid"
    if "solid" in text or "crystal" in text:
        return "Solid"
    if "gas" in text:
        return "Gas"
    if "powder" in text:
        return "Powder"
    return None


# ============================================================================
# PUG-View document walking
# ============================================================================

def _information_texts(info: Dict[str, Any]) -> List[str]:
    value = info.get("Value") or {}
    texts = [
        markup.get("String", "")
        for markup in value.get("StringWithMarkup") or []
        if markup.get("String")
    ]
    if not texts and value.get("Number"):
        unit = value.get("Unit", "")
        texts = [f"{number} {unit}".strip() for number in value["Number"]]
    return texts


def iter_sections(sections: Any, parent_heading: str = "") -> Iterator[Tuple[str, Dict[str, Any]]]:
    """Yield (heading, information) for every Information block in a section tree"""
    if not isinstance(sections, list):
        return
    for section in sections:
        heading = (section.get("TOCHeading") or parent_heading or "").lower()
        for info in section.get("Information") or []:
            yield heading, info
        yield from iter_sections(section.get("Section"), heading)


def collect_heading_texts(record: Optional[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Group narrative strings by the property key their heading maps to"""
    grouped: Dict[str, List[str]] = {}
    sections = ((record or {}).get("Record") or {}).get("Section")
    for heading, info in iter_sections(sections):
        name = (info.get("Name") or "").lower()
        for marker, key in HEADING_KINDS:
            if marker in heading or (name and marker in name):
                grouped.setdefault(key, []).extend(_information_texts(info))
                break
    return grouped


def parse_physical_properties(record: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Parse a PUG-View physical-properties response.

    Returns camelCase keys for ``additionalProperties`` plus ``physicalState``
    and ``unNumber``; keys without a value are omitted.
    """
    grouped = collect_heading_texts(record)
    parsed: Dict[str, Any] = {}

    for kind in MeasurementKind:
        value = parse_measurement(kind, grouped.get(kind.value, []))
        if value:
            parsed[kind.value] = value

    descriptions = _dedupe(grouped.get("physicalDescription", []))
    if descriptions:
        parsed["physicalDescription"] = descriptions[0]
        state = classify_physical_state(descriptions[0])
        if state:
            parsed["physicalState"] = state

    solubility = _dedupe(grouped.get("solubility", []))
    if solubility:
        parsed["solubility"] = solubility[0]

    un_number = parse_un_number(grouped.get("unNumber", []))
    if un_number:
        parsed["unNumber"] = un_number
    return parsed
