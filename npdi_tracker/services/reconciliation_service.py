"""Reconciliation Service - SAP MARA lookups for populating ticket fields"""
import re
from typing import Any, Dict, List, Optional

from .erp_mapping import map_mara_row
from .foundry_client import FoundryClient, escape_sql_literal
from ..config.integration_settings import get_integration_settings_provider
from ..domain.enums import ErpSearchType
from ..domain.errors import ErpRecordNotFoundError, UpstreamTimeoutError, ValidationError
from ..domain.models import CAS_PATTERN
from ..utils.logger import get_logger

logger = get_logger(__name__)

PART_NUMBER_SUFFIX = "-BULK"
# Candidate lists only offer sellable bulk materials
SKU_NUMBER_FILTER = "MATNR LIKE '%-BULK'"
CANDIDATE_COLUMNS = "MATNR, MAX(TEXT_SHORT) AS TEXT_SHORT, MAX(YYD_CASNR) AS YYD_CASNR"


def ensure_part_number_suffix(part_number: str) -> str:
    part_number = part_number.strip()
    if part_number.upper().endswith(PART_NUMBER_SUFFIX):
        return part_number
    return f"{part_number}{PART_NUMBER_SUFFIX}"


def build_part_number_query(dataset: str, part_number: str) -> str:
    return f"SELECT * FROM {dataset} WHERE MATNR = {escape_sql_literal(part_number)} LIMIT 1"


def build_candidate_query(dataset: str, condition: str, limit: int, offset: int) -> str:
    """
    Paged candidate query

    The dialect has no OFFSET: page one is a plain LIMIT, later pages number
    the grouped rows with ROW_NUMBER() and take the ``(offset, offset+limit]``
    window. Both orderings are by MATNR, so pages never overlap.
    """
    grouped = (
        f"SELECT {CANDIDATE_COLUMNS} FROM {dataset} "
        f"WHERE {condition} AND {SKU_NUMBER_FILTER} GROUP BY MATNR"
    )
    if offset <= 0:
        return f"{grouped} ORDER BY MATNR LIMIT {int(limit)}"
    return (
        "SELECT MATNR, TEXT_SHORT, YYD_CASNR FROM ("
        f"SELECT g.*, ROW_NUMBER() OVER (ORDER BY MATNR) AS rn FROM ({grouped}) g"
        f") numbered WHERE rn > {int(offset)} AND rn <= {int(offset) + int(limit)} ORDER BY rn"
    )


def product_name_condition(value: str) -> str:
    """Case-insensitive prefix match on the short text"""
    return f"UPPER(TEXT_SHORT) LIKE {escape_sql_literal(value.strip().upper() + '%')}"


def cas_number_condition(value: str) -> str:
    cas = value.strip()
    if not re.match(CAS_PATTERN, cas):
        raise ValidationError("Invalid CAS number format", details={"casNumber": cas})
    return f"YYD_CASNR = {escape_sql_literal(cas)}"


class ReconciliationService:
    """Searches SAP MARA through Foundry and maps hits onto ticket fields"""

    def __init__(self, foundry: Optional[FoundryClient] = None):
        self.foundry = foundry or FoundryClient(get_integration_settings_provider())

    async def search(
        self,
        search_type: ErpSearchType,
        value: str,
        limit: int = 10,
        offset: int = 0,
        max_wait: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Search by part number (single mapped record) or by product name /
        CAS number (paged disambiguation list)
        """
        search_type = ErpSearchType(search_type)
        if not value or not value.strip():
            raise ValidationError(f"{search_type.value} is required")

        if search_type == ErpSearchType.PART_NUMBER:
            return await self.search_part_number(value, max_wait=max_wait)

        condition = (
            product_name_condition(value)
            if search_type == ErpSearchType.PRODUCT_NAME
            else cas_number_condition(value)
        )
        return await self._search_candidates(search_type, value, condition, limit, offset, max_wait)

    async def search_part_number(self, part_number: str, max_wait: Optional[float] = None) -> Dict[str, Any]:
        part_number = ensure_part_number_suffix(part_number)
        sql = build_part_number_query(self.foundry.dataset_ref(), part_number)
        logger.info(f"[SAP Search] Part number lookup: {part_number}", extra={"search_type": "partNumber"})

        result = await self.foundry.execute_query(sql, max_wait=max_wait)
        if not result.rows:
            raise ErpRecordNotFoundError(
                f"No SAP data found for part number: {part_number}",
                details={"partNumber": part_number}
            )

        row = result.rows[0]
        mapped = map_mara_row(row)
        logger.info(f"[SAP Search] Mapped {len(mapped.mapped_fields)} fields for {part_number}")
        return {
            "searchType": ErpSearchType.PART_NUMBER.value,
            "partNumber": part_number,
            "data": row,
            "mappedFields": mapped.mapped_fields,
            "metadata": mapped.metadata,
            "warnings": mapped.warnings,
            "fieldCount": len(mapped.mapped_fields),
        }

    async def _search_candidates(
        self,
        search_type: ErpSearchType,
        value: str,
        condition: str,
        limit: int,
        offset: int,
        max_wait: Optional[float],
    ) -> Dict[str, Any]:
        sql = build_candidate_query(self.foundry.dataset_ref(), condition, limit, offset)
        candidates: List[Dict[str, Any]] = []
        timed_out = False

        try:
            result = await self.foundry.execute_query(sql, max_wait=max_wait)
        except UpstreamTimeoutError as e:
            logger.warning(
                f"[SAP Search] {search_type.value} search timed out: {e.message}",
                extra={"search_type": search_type.value}
            )
            timed_out = True
            rows: List[Dict[str, Any]] = []
        else:
            rows = result.rows

        seen = set()
        for row in rows:
            matnr = row.get("MATNR")
            if not matnr or matnr in seen:
                continue
            seen.add(matnr)
            candidates.append({
                "partNumber": matnr,
                "productName": row.get("TEXT_SHORT") or "No name available",
                "casNumber": row.get("YYD_CASNR"),
            })

        return {
            "searchType": search_type.value,
            "value": value,
            "candidates": candidates,
            "pagination": {
                "limit": limit,
                "offset": offset,
                "hasMore": not timed_out and len(rows) >= limit,
            },
            "timedOut": timed_out,
        }

    async def find_similar_products(
        self, cas_number: str, max_results: int = 3, max_wait: Optional[float] = 20.0
    ) -> Dict[str, Any]:
        """Existing materials sharing a CAS number, for duplicate checks on new tickets"""
        result = await self.search(
            ErpSearchType.CAS_NUMBER, cas_number, limit=max_results, offset=0, max_wait=max_wait
        )
        products = result["candidates"]
        if result["timedOut"]:
            message = "Search timed out"
        elif products:
            message = f"Found {len(products)} similar product{'' if len(products) == 1 else 's'}"
        else:
            message = "No similar products found"
        return {
            "casNumber": cas_number,
            "products": products,
            "message": message,
            "timedOut": result["timedOut"],
        }
