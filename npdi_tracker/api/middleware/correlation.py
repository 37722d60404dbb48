"""
Correlation ID Middleware

Tags every request with a correlation id (taken from ``X-Correlation-Id`` or
generated), logs the request outcome and echoes the id on the response.
"""
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from ...utils.idgen import generate_correlation_id
from ...utils.logger import get_logger, set_correlation_id

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-Id"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id()
        set_correlation_id(correlation_id)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

        logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed_ms}ms")
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
