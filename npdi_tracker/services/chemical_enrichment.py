"""Chemical Enrichment Client - PubChem lookup and ticket bundle synthesis

PubChem enforces a request-rate ceiling, so sub-requests run one at a time
with a fixed delay before each call. Only the CAS -> CID resolution and the
computed properties are mandatory; synonyms, GHS data and physical-property
narrative are best-effort.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote

import httpx

from .measurement_parser import iter_sections, parse_physical_properties
from ..config.integration_settings import IntegrationSettingsProvider
from ..config.settings import settings
from ..domain.errors import (
    CompoundNotFoundError, DomainError, IntegrationDisabledError,
    UpstreamTimeoutError, UpstreamUnavailableError
)
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]

PROPERTY_LIST = (
    "MolecularFormula,MolecularWeight,CanonicalSMILES,IsomericSMILES,InChI,InChIKey,IUPACName,"
    "XLogP,HeavyAtomCount,HBondDonorCount,HBondAcceptorCount,TPSA,Complexity,Charge"
)
PHYSICAL_HEADINGS = (
    "Physical Description,Boiling Point,Melting Point,Flash Point,Density,Solubility,"
    "Vapor Pressure,Vapor Density,Refractive Index,DOT ID and Guide"
)
MAX_SYNONYMS = 10

# Raised by the parsers when PubChem answers with an unexpected JSON shape
SHAPE_ERRORS = (TypeError, AttributeError, KeyError, IndexError, ValueError)

KEY_FEATURES = [
    "High purity grade",
    "Comprehensive analytical documentation",
    "Consistent batch-to-batch quality",
    "Research and industrial grade",
]
TARGET_MARKETS = [
    "Academic research institutions",
    "Pharmaceutical companies",
    "Biotechnology companies",
    "Chemical manufacturers",
]
COMPETITIVE_ADVANTAGES = [
    "MilliporeSigma quality assurance",
    "Global supply chain reliability",
    "Technical support included",
    "Regulatory compliance documentation",
]
QUALITY_STANDARDS = [
    "ISO 9001:2015 certified manufacturing",
    "Comprehensive Certificate of Analysis",
    "Batch-to-batch consistency testing",
    "Regulatory compliance documentation",
]


# ============================================================================
# Response parsing (pure)
# ============================================================================

def parse_properties(body: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Computed descriptors from a PropertyTable response"""
    rows = ((body or {}).get("PropertyTable") or {}).get("Properties") or [{}]
    props = rows[0]
    return {
        "molecularFormula": props.get("MolecularFormula"),
        "molecularWeight": props.get("MolecularWeight"),
        # Newer PubChem responses rename the SMILES columns
        "canonicalSMILES": props.get("CanonicalSMILES") or props.get("ConnectivitySMILES"),
        "isomericSMILES": props.get("IsomericSMILES") or props.get("SMILES"),
        "inchi": props.get("InChI"),
        "inchiKey": props.get("InChIKey"),
        "iupacName": props.get("IUPACName"),
        "xLogP": props.get("XLogP"),
        "heavyAtomCount": props.get("HeavyAtomCount"),
        "hBondDonorCount": props.get("HBondDonorCount"),
        "hBondAcceptorCount": props.get("HBondAcceptorCount"),
        "tpsa": props.get("TPSA"),
        "complexity": props.get("Complexity"),
        "charge": props.get("Charge"),
    }


def parse_synonyms(body: Optional[Dict[str, Any]]) -> List[str]:
    info = ((body or {}).get("InformationList") or {}).get("Information") or [{}]
    return list(info[0].get("Synonym") or [])[:MAX_SYNONYMS]


def parse_ghs(body: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Signal word and statement lists from a GHS Classification record"""
    sections = ((body or {}).get("Record") or {}).get("Section")
    if not sections:
        return None

    ghs: Dict[str, Any] = {
        "hazardStatements": [],
        "precautionaryStatements": [],
        "signalWord": None,
    }
    for heading, info in iter_sections(sections):
        if "ghs" not in heading:
            continue
        name = (info.get("Name") or "").lower()
        markup = (info.get("Value") or {}).get("StringWithMarkup") or []
        values = [m.get("String", "") for m in markup if m.get("String")]
        if not name or not values:
            continue
        if "hazard" in name:
            ghs["hazardStatements"].extend(values)
        elif "precautionary" in name:
            ghs["precautionaryStatements"].extend(values)
        elif "signal" in name and ghs["signalWord"] is None:
            ghs["signalWord"] = values[0]
    return ghs


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def derive_applications(properties: Dict[str, Any]) -> List[str]:
    applications: List[str] = []
    x_log_p = _to_float(properties.get("xLogP"))
    if x_log_p is not None:
        if x_log_p > 2:
            applications += ["lipophilic applications", "membrane permeation studies"]
        else:
            applications += ["hydrophilic formulations", "aqueous solutions"]
    if (properties.get("hBondDonorCount") or 0) > 0 or (properties.get("hBondAcceptorCount") or 0) > 0:
        applications += ["pharmaceutical synthesis", "drug development"]
    applications += ["research applications", "analytical standards"]
    return applications


def build_corpbase_data(
    cas_number: str,
    properties: Dict[str, Any],
    physical: Dict[str, Any],
    synonyms: List[str],
) -> Dict[str, Any]:
    """Deterministic fallback marketing copy; not safety-relevant content"""
    name = properties.get("iupacName") or (synonyms[0] if synonyms else None) or f"Compound with CAS {cas_number}"
    formula = properties.get("molecularFormula") or "Unknown formula"
    weight = _to_float(properties.get("molecularWeight"))
    mw = round(weight) if weight is not None else "Unknown"
    applications = derive_applications(properties)

    description = (
        f"{name} ({formula}, MW: {mw} g/mol) is a high-purity chemical reagent ideal for "
        f"{', '.join(applications[:3])}. This compound offers excellent quality and consistency for "
        "laboratory research, synthetic chemistry, and analytical applications. Manufactured to the "
        "highest standards with comprehensive documentation and certificates of analysis."
    )

    spec_lines = [
        f"Molecular Formula: {properties.get('molecularFormula') or 'N/A'}",
        f"Molecular Weight: {f'{mw} g/mol' if weight is not None else 'N/A'}",
        f"CAS Number: {cas_number}",
        f"Canonical SMILES: {properties.get('canonicalSMILES') or 'N/A'}",
    ]
    optional_lines = (
        ("Isomeric SMILES", properties.get("isomericSMILES")),
        ("Physical State", physical.get("physicalState")),
        ("Boiling Point", physical.get("boilingPoint")),
        ("Melting Point", physical.get("meltingPoint")),
        ("Flash Point", physical.get("flashPoint")),
        ("Density", physical.get("density")),
        ("TPSA", f"{properties['tpsa']} Å²" if properties.get("tpsa") else None),
        ("LogP", properties.get("xLogP")),
    )
    spec_lines += [f"{label}: {value}" for label, value in optional_lines if value not in (None, "")]

    return {
        "productDescription": description,
        "aiGenerated": False,
        "generatedAt": utc_now(),
        "keyFeatures": list(KEY_FEATURES),
        "applications": applications[:5],
        "targetMarkets": list(TARGET_MARKETS),
        "competitiveAdvantages": list(COMPETITIVE_ADVANTAGES),
        "technicalSpecifications": "\n".join(spec_lines),
        "qualityStandards": list(QUALITY_STANDARDS),
    }


def build_enrichment_bundle(
    cas_number: str,
    cid: str,
    properties: Dict[str, Any],
    physical: Dict[str, Any],
    synonyms: List[str],
    ghs: Optional[Dict[str, Any]],
) -> Dict[str, Any]:
    """Merge PubChem pieces into the ticket-shaped enrichment bundle"""
    additional = {
        key: physical[key]
        for key in (
            "boilingPoint", "meltingPoint", "flashPoint", "density", "vaporPressure",
            "vaporDensity", "refractiveIndex", "physicalDescription", "solubility",
        )
        if physical.get(key)
    }

    chemical = {"casNumber": cas_number, "pubchemCID": cid}
    chemical.update({key: value for key, value in properties.items() if value is not None})
    if physical.get("physicalState"):
        chemical["physicalState"] = physical["physicalState"]
    if synonyms:
        chemical["synonyms"] = synonyms
    if additional:
        chemical["additionalProperties"] = additional
    chemical["autoPopulated"] = True

    hazard: Dict[str, Any] = {}
    if ghs:
        hazard = {
            "hazardStatements": ghs.get("hazardStatements") or [],
            "precautionaryStatements": ghs.get("precautionaryStatements") or [],
            "signalWord": ghs.get("signalWord") or "WARNING",
            "pubchemGHS": {"autoImported": True, "lastUpdated": utc_now(), "rawData": ghs},
        }
    if physical.get("unNumber"):
        hazard["unNumber"] = physical["unNumber"]

    product_name = (
        properties.get("iupacName")
        or (synonyms[0] if synonyms else None)
        or f"Chemical compound (CAS: {cas_number})"
    )

    return {
        "chemicalProperties": chemical,
        "hazardClassification": hazard,
        # SKU assignment belongs to PMOps, never to enrichment
        "skuVariants": [],
        "corpbaseData": build_corpbase_data(cas_number, properties, physical, synonyms),
        "productName": product_name,
    }


def _parse_required(parser: Callable[[Any], Any], body: Any, what: str) -> Any:
    try:
        return parser(body)
    except SHAPE_ERRORS as e:
        raise UpstreamUnavailableError(f"Unexpected PubChem {what} response: {e!r}") from e


def _parse_optional(parser: Callable[[Any], Any], body: Any, what: str) -> Any:
    """Best-effort sections parse as if absent when their shape is unexpected"""
    try:
        return parser(body)
    except SHAPE_ERRORS as e:
        logger.warning(f"Ignoring malformed PubChem {what}: {e!r}")
        return parser(None)


def degraded_bundle(cas_number: str, error: str) -> Dict[str, Any]:
    """Partial bundle returned when enrichment fails"""
    return {
        "chemicalProperties": {"casNumber": cas_number, "autoPopulated": False},
        "hazardClassification": {},
        "skuVariants": [],
        "corpbaseData": {},
        "error": error,
    }


# ============================================================================
# Client
# ============================================================================

class ChemicalEnrichmentClient:
    """PubChem PUG-REST / PUG-View client"""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
        settings_provider: Optional[IntegrationSettingsProvider] = None,
        base_url: Optional[str] = None,
        view_url: Optional[str] = None,
        request_delay_ms: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._client = client
        self._sleep = sleep
        self.settings_provider = settings_provider
        self.base_url = (base_url or settings.pubchem_base_url).rstrip("/")
        self.view_url = (view_url or settings.pubchem_view_url).rstrip("/")
        delay_ms = request_delay_ms if request_delay_ms is not None else settings.pubchem_request_delay_ms
        self.request_delay = max(delay_ms, 200) / 1000
        self.timeout = timeout_seconds or settings.pubchem_timeout_seconds

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient() as client:
                yield client

    def _check_enabled(self) -> None:
        if self.settings_provider is None:
            return
        config = self.settings_provider.get().pubchem
        if not config.enabled:
            raise IntegrationDisabledError("PubChem integration is disabled")
        self.timeout = config.timeout_seconds or self.timeout

    async def _get_json(self, client: httpx.AsyncClient, url: str) -> Dict[str, Any]:
        """Rate-limited GET; raises CompoundNotFoundError on 404"""
        await self._sleep(self.request_delay)
        try:
            response = await client.get(url, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(f"PubChem request timed out: {url}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(f"PubChem is unreachable: {e}") from e

        if response.status_code == 404:
            raise CompoundNotFoundError("Compound not found in PubChem", details={"url": url})
        if response.status_code >= 400:
            raise UpstreamUnavailableError(
                f"PubChem error (HTTP {response.status_code})",
                details={"httpStatus": response.status_code}
            )
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailableError("PubChem returned malformed JSON") from e

    async def _get_optional(self, client: httpx.AsyncClient, url: str, what: str) -> Optional[Dict[str, Any]]:
        """Best-effort sub-request; absence is reported as None"""
        try:
            return await self._get_json(client, url)
        except DomainError as e:
            logger.info(f"PubChem {what} unavailable: {e.message}")
            return None

    async def resolve_cid(self, client: httpx.AsyncClient, cas_number: str) -> str:
        body = await self._get_json(client, f"{self.base_url}/compound/name/{quote(cas_number, safe='')}/cids/JSON")
        cid = _parse_required(lambda b: ((b.get("IdentifierList") or {}).get("CID") or [None])[0], body, "CID list")
        if not cid:
            raise CompoundNotFoundError(
                f"No PubChem compound for CAS {cas_number}", details={"casNumber": cas_number}
            )
        return str(cid)

    async def enrich(self, cas_number: str) -> Dict[str, Any]:
        """
        Build the enrichment bundle for a CAS number

        Raises:
            CompoundNotFoundError: PubChem has no match
            UpstreamUnavailableError: PubChem unreachable or erroring
        """
        self._check_enabled()
        logger.info(f"Fetching PubChem data for CAS: {cas_number}", extra={"cas_number": cas_number})

        async with self._session() as client:
            cid = await self.resolve_cid(client, cas_number)
            properties = _parse_required(
                parse_properties,
                await self._get_json(client, f"{self.base_url}/compound/cid/{cid}/property/{PROPERTY_LIST}/JSON"),
                "property table",
            )
            physical = _parse_optional(parse_physical_properties, await self._get_optional(
                client,
                f"{self.view_url}/data/compound/{cid}/JSON?heading={quote(PHYSICAL_HEADINGS, safe=',')}",
                "physical properties",
            ), "physical properties")
            synonyms = _parse_optional(parse_synonyms, await self._get_optional(
                client, f"{self.base_url}/compound/cid/{cid}/synonyms/JSON", "synonyms"
            ), "synonyms")
            ghs = _parse_optional(parse_ghs, await self._get_optional(
                client, f"{self.view_url}/data/compound/{cid}/JSON?heading=GHS+Classification", "GHS classification"
            ), "GHS classification")

        return build_enrichment_bundle(cas_number, cid, properties, physical, synonyms, ghs)

    async def enrich_or_degrade(self, cas_number: str) -> Dict[str, Any]:
        """Enrichment that never raises; failures yield a partial bundle"""
        try:
            return await self.enrich(cas_number)
        except DomainError as e:
            logger.warning(
                f"PubChem enrichment failed for CAS {cas_number}: {e.message}",
                extra={"cas_number": cas_number, "error_code": e.error_code}
            )
            return degraded_bundle(cas_number, e.message)
        except SHAPE_ERRORS as e:
            logger.warning(
                f"PubChem enrichment for CAS {cas_number} failed on unexpected data: {e!r}",
                extra={"cas_number": cas_number}, exc_info=True
            )
            return degraded_bundle(cas_number, "Unexpected PubChem response")
