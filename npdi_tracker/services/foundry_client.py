"""Foundry SQL Client - submit, poll and decode queries against the SAP MARA dataset

The SQL Queries API is asynchronous: ``execute`` answers running, succeeded,
failed or canceled; a running query is polled once per interval until it
settles, then results are fetched as an Arrow IPC payload.
"""
import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional
from urllib.parse import quote

import httpx
import pyarrow as pa

from ..config.integration_settings import IntegrationSettingsProvider, PalantirConfig
from ..config.settings import settings
from ..domain.errors import (
    IntegrationDisabledError, UpstreamAuthenticationError, UpstreamRateLimitError,
    UpstreamTimeoutError, UpstreamUnavailableError
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class QueryResult:
    rows: List[Dict[str, Any]]
    columns: List[Dict[str, str]] = field(default_factory=list)
    query_id: Optional[str] = None
    duration_ms: int = 0


def decode_arrow(payload: bytes) -> QueryResult:
    """Decode an Arrow IPC stream (or file) into row dicts"""
    buffer = pa.py_buffer(payload)
    try:
        table = pa.ipc.open_stream(buffer).read_all()
    except pa.ArrowInvalid:
        table = pa.ipc.open_file(buffer).read_all()
    columns = [{"name": f.name, "type": str(f.type)} for f in table.schema]
    return QueryResult(rows=table.to_pylist(), columns=columns)


def escape_sql_literal(value: str) -> str:
    """Quote a string literal for Foundry SQL"""
    return "'" + str(value).replace("'", "''") + "'"


class FoundryClient:
    """
    Palantir Foundry SQL client

    Args:
        settings_provider: Source of the Palantir configuration
        client: Shared AsyncClient; one is opened per query when omitted
        sleep: Awaitable delay used between polls
        clock: Monotonic seconds, used for the caller's max-wait budget
    """

    def __init__(
        self,
        settings_provider: IntegrationSettingsProvider,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
    ):
        self.settings_provider = settings_provider
        self._client = client
        self._sleep = sleep
        self._clock = clock
        self.poll_interval = poll_interval if poll_interval is not None else settings.palantir_poll_interval_seconds
        self.max_polls = max_polls if max_polls is not None else settings.palantir_max_polls

    # =========================================================================
    # Configuration
    # =========================================================================

    def get_config(self) -> PalantirConfig:
        """Current Palantir configuration, or IntegrationDisabledError"""
        config = self.settings_provider.get().palantir
        if not config.is_configured:
            raise IntegrationDisabledError(
                "SAP integration is not enabled or not configured properly",
                details={
                    "enabled": config.enabled,
                    "hasToken": bool(config.token),
                    "hasDatasetRID": bool(config.dataset_rid),
                }
            )
        return config

    def is_enabled(self) -> bool:
        return self.settings_provider.get().palantir.is_configured

    def dataset_ref(self) -> str:
        """Backtick-quoted dataset RID for FROM clauses"""
        return f"`{self.get_config().dataset_rid}`"

    # =========================================================================
    # Query execution
    # =========================================================================

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient() as client:
                yield client

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        config: PalantirConfig,
        accept: str = "application/json",
        **kwargs: Any,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {config.token}", "Accept": accept}
        try:
            response = await client.request(
                method, url, headers=headers, timeout=config.timeout_seconds, **kwargs
            )
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            raise self._translate_status(e.response, config) from e
        except httpx.TimeoutException as e:
            raise UpstreamTimeoutError(
                "SAP request timed out: the Palantir API did not respond within the configured timeout",
                details={"timeoutSeconds": config.timeout_seconds}
            ) from e
        except httpx.ConnectError as e:
            raise UpstreamUnavailableError(
                f"Cannot reach '{config.hostname}'. Verify the hostname or network connection.",
                details={"hostname": config.hostname}
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(f"Palantir request failed: {e}") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict):
            return body.get("errorMessage") or body.get("message") or body.get("errorName") or ""
        return ""

    def _translate_status(self, response: httpx.Response, config: PalantirConfig) -> UpstreamUnavailableError:
        status = response.status_code
        message = self._error_message(response)
        details = {"httpStatus": status, "upstreamMessage": message}
        if status in (401, 403):
            return UpstreamAuthenticationError(
                f"SAP authentication failed (HTTP {status}). Verify the Palantir token in System Settings.",
                details=details
            )
        if status == 404:
            return UpstreamUnavailableError(
                f"Dataset '{config.dataset_rid}' does not exist or is not accessible",
                details=details
            )
        if status == 429:
            return UpstreamRateLimitError("Palantir rate limit exceeded. Please try again later.", details=details)
        if status >= 500:
            return UpstreamUnavailableError(
                f"Palantir service error (HTTP {status}): {message or 'Service temporarily unavailable'}",
                details=details
            )
        return UpstreamUnavailableError(f"Palantir API error (HTTP {status}): {message}", details=details)

    def _check_budget(self, deadline: Optional[float], query_id: str) -> None:
        if deadline is not None and self._clock() >= deadline:
            raise UpstreamTimeoutError(
                "SAP query exceeded the requested wait time",
                details={"queryId": query_id}
            )

    async def execute_query(
        self,
        sql: str,
        max_wait: Optional[float] = None,
        fallback_branch_ids: Optional[List[str]] = None,
    ) -> QueryResult:
        """
        Run ``sql`` and return decoded rows

        Raises:
            IntegrationDisabledError: Palantir disabled or unconfigured
            UpstreamAuthenticationError: Token rejected
            UpstreamTimeoutError: Poll budget or ``max_wait`` exhausted
            UpstreamUnavailableError: Any other upstream failure
        """
        config = self.get_config()
        base_url = f"https://{config.hostname}/api/v2/sqlQueries"
        started = self._clock()
        deadline = started + max_wait if max_wait is not None else None

        payload: Dict[str, Any] = {"query": sql}
        if fallback_branch_ids:
            payload["fallbackBranchIds"] = fallback_branch_ids

        logger.info(f"[Palantir] Executing SQL query: {sql[:100]}")

        async with self._session() as client:
            response = await self._request(
                client, "POST", f"{base_url}/execute", config, params={"preview": "true"}, json=payload
            )
            submitted = response.json()
            status = submitted.get("type")
            self._raise_for_terminal(status, submitted)

            query_id = submitted.get("queryId")
            if not query_id:
                raise UpstreamUnavailableError("No queryId returned from execute endpoint")
            encoded_id = quote(query_id, safe="")

            if status == "running":
                status = await self._poll_until_settled(client, base_url, encoded_id, query_id, config, deadline)

            self._check_budget(deadline, query_id)
            results = await self._request(
                client, "GET", f"{base_url}/{encoded_id}/getResults", config,
                accept="application/octet-stream", params={"preview": "true"}
            )

        try:
            result = decode_arrow(results.content)
        except (pa.ArrowInvalid, pa.ArrowTypeError) as e:
            raise UpstreamUnavailableError(f"Could not decode query results: {e}", details={"queryId": query_id}) from e

        result.query_id = query_id
        result.duration_ms = int((self._clock() - started) * 1000)
        logger.info(
            f"[Palantir] Query returned {len(result.rows)} rows in {result.duration_ms}ms",
            extra={"query_id": query_id}
        )
        return result

    @staticmethod
    def _raise_for_terminal(status: Optional[str], body: Dict[str, Any]) -> None:
        if status == "failed":
            raise UpstreamUnavailableError(
                f"Query failed: {body.get('errorMessage') or 'Unknown error'}",
                details={"queryId": body.get("queryId")}
            )
        if status == "canceled":
            raise UpstreamUnavailableError("Query was canceled", details={"queryId": body.get("queryId")})

    async def _poll_until_settled(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        encoded_id: str,
        query_id: str,
        config: PalantirConfig,
        deadline: Optional[float],
    ) -> str:
        status_url = f"{base_url}/{encoded_id}/getStatus"
        for poll in range(1, self.max_polls + 1):
            self._check_budget(deadline, query_id)
            await self._sleep(self.poll_interval)
            try:
                response = await self._request(client, "GET", status_url, config, params={"preview": "true"})
            except UpstreamRateLimitError:
                logger.warning(f"[Palantir] Poll {poll}/{self.max_polls} rate limited, retrying")
                continue

            body = response.json()
            status = body.get("type")
            logger.debug(f"[Palantir] Poll {poll}/{self.max_polls}: {status}", extra={"query_id": query_id})
            if status == "succeeded":
                return status
            self._raise_for_terminal(status, body)

        raise UpstreamTimeoutError(
            f"Query did not complete within {self.max_polls} polls",
            details={"queryId": query_id}
        )
