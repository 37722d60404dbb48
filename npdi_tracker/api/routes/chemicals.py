"""
Chemical Lookup Routes

PubChem lookup by CAS number. Unlike ticket creation, failures are reported
to the caller: 404 when PubChem has no compound, 503 when the integration is
off, 502/504 when PubChem is unreachable or slow.
"""

from fastapi import APIRouter, Depends, Path

from ..deps import get_current_user_dep, get_enrichment_client
from ...domain.models import CAS_PATTERN, ActorContext
from ...services.chemical_enrichment import ChemicalEnrichmentClient
from ...utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("/cas/{cas_number}")
async def lookup_cas(
    cas_number: str = Path(..., pattern=CAS_PATTERN, description="CAS registry number, e.g. 64-17-5"),
    actor: ActorContext = Depends(get_current_user_dep),
    client: ChemicalEnrichmentClient = Depends(get_enrichment_client),
):
    bundle = await client.enrich(cas_number)
    logger.info(
        f"PubChem lookup for {cas_number} by {actor.stable_id}",
        extra={"cas_number": cas_number, "actor_id": actor.stable_id}
    )
    return {"casNumber": cas_number, **bundle}
