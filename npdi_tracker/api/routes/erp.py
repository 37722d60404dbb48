"""
ERP Search Routes

SAP MARA lookups through Palantir Foundry, used to prefill ticket fields.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Path, Query

from ..deps import get_current_user_dep, get_reconciliation_service
from ...domain.enums import ErpSearchType
from ...domain.models import CAS_PATTERN, ActorContext
from ...services.reconciliation_service import ReconciliationService

router = APIRouter()


@router.get("/search")
async def search(
    type: ErpSearchType = Query(..., description="partNumber, productName or casNumber"),
    value: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=50),
    offset: int = Query(0, ge=0),
    max_wait: Optional[float] = Query(None, alias="maxWait", gt=0, le=120, description="Seconds"),
    actor: ActorContext = Depends(get_current_user_dep),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """
    Part-number searches return one mapped record (404 when absent);
    name and CAS searches return a page of candidates. A search that runs
    past ``maxWait`` answers with ``timedOut: true``.
    """
    return await service.search(type, value, limit=limit, offset=offset, max_wait=max_wait)


@router.get("/similar-products/{cas_number}")
async def similar_products(
    cas_number: str = Path(..., pattern=CAS_PATTERN),
    max_results: int = Query(3, alias="maxResults", ge=1, le=20),
    actor: ActorContext = Depends(get_current_user_dep),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """Existing BULK materials with the same CAS number"""
    return await service.find_similar_products(cas_number, max_results=max_results)
