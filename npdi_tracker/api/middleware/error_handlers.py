"""
Error Handlers

Render DomainError subclasses, request validation failures and unexpected
exceptions as ``{"error": {"code", "message", "details"}}``.
"""
from typing import Dict

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ...domain.errors import DomainError
from ...utils.logger import get_correlation_id, get_logger

logger = get_logger(__name__)


def _headers(http_status: int) -> Dict[str, str]:
    headers = {"X-Correlation-Id": get_correlation_id() or ""}
    if http_status == status.HTTP_401_UNAUTHORIZED:
        headers["WWW-Authenticate"] = "Bearer"
    return headers


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Expected business errors: not found, locked, conflicts, upstream failures"""
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"Domain error: {exc.error_code} - {exc.message}",
        extra={"error_code": exc.error_code}
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=jsonable_encoder(exc.to_dict()),
        headers=_headers(exc.http_status)
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed path, query or body parameters"""
    errors = jsonable_encoder(exc.errors(), custom_encoder={Exception: str})
    logger.warning(
        f"Validation error on {request.method} {request.url.path}: {errors}",
        extra={"error_code": "VALIDATION_ERROR"}
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": {"errors": errors}
            }
        },
        headers=_headers(status.HTTP_400_BAD_REQUEST)
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything else: logged with a stack trace, returned without one"""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": {"hint": "Check server logs for details"}
            }
        },
        headers=_headers(status.HTTP_500_INTERNAL_SERVER_ERROR)
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
