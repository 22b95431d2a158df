"""Custom exceptions and the global exception handler."""

from __future__ import annotations

import traceback
import uuid
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .logging import get_logger

logger = get_logger(__name__)


class HypeScreenerException(Exception):
    """Base exception for the HypeScreener service."""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
        trace_id: Optional[str] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.trace_id = trace_id or str(uuid.uuid4())
        super().__init__(self.message)


class ProviderError(HypeScreenerException):
    """Raised when an upstream data provider fails or returns garbage."""

    def __init__(self, provider: str, message: str, **kwargs: Any):
        self.provider = provider
        kwargs.setdefault("error_code", "PROVIDER_ERROR")
        super().__init__(f"{provider}: {message}", **kwargs)


class CacheError(HypeScreenerException):
    """Raised when the token cache cannot be read or written."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "CACHE_ERROR")
        super().__init__(message, **kwargs)


class ValidationError(HypeScreenerException):
    """Raised when client supplied data is invalid."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "VALIDATION_ERROR")
        super().__init__(message, **kwargs)


def _status_for(exc: HypeScreenerException) -> int:
    if isinstance(exc, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ProviderError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler that creates structured error responses.

    Args:
        request: FastAPI request object
        exc: Exception that was raised

    Returns:
        JSON response with error details and trace ID
    """
    trace_id = getattr(request.state, "trace_id", None) or str(uuid.uuid4())

    method = request.method
    url = str(request.url)
    client_ip = request.client.host if request.client else "unknown"

    if isinstance(exc, HypeScreenerException):
        status_code = _status_for(exc)
        # Only client errors echo their message; server side failures stay generic
        message = exc.message if status_code < 500 else "Internal server error"
        error_response = {
            "error": message,
            "error_code": exc.error_code,
            "trace_id": trace_id,
        }

        log = logger.warning if status_code < 500 else logger.error
        log(
            f"Application error: {exc.message}",
            extra={
                'extra_data': {
                    'error_code': exc.error_code,
                    'trace_id': trace_id,
                    'method': method,
                    'url': url,
                    'client_ip': client_ip,
                }
            }
        )

    elif isinstance(exc, HTTPException):
        status_code = exc.status_code
        error_response = {
            "error": exc.detail,
            "error_code": "HTTP_ERROR",
            "trace_id": trace_id
        }

        logger.warning(
            f"HTTP error {exc.status_code}: {exc.detail}",
            extra={
                'extra_data': {
                    'status_code': exc.status_code,
                    'trace_id': trace_id,
                    'method': method,
                    'url': url,
                }
            }
        )

    elif isinstance(exc, RequestValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
        error_response = {
            "error": "Invalid request",
            "error_code": "VALIDATION_ERROR",
            "trace_id": trace_id
        }

        logger.warning(
            "Request validation failed",
            extra={'extra_data': {'trace_id': trace_id, 'method': method, 'url': url}}
        )

    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        error_response = {
            "error": "An unexpected error occurred. Please try again later.",
            "error_code": "INTERNAL_ERROR",
            "trace_id": trace_id
        }

        logger.error(
            f"Unexpected error: {str(exc)}",
            extra={
                'extra_data': {
                    'exception_type': type(exc).__name__,
                    'traceback': "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
                    'trace_id': trace_id,
                    'method': method,
                    'url': url,
                    'client_ip': client_ip
                }
            }
        )

    return JSONResponse(
        status_code=status_code,
        content=error_response
    )
