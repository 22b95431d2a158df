"""
Request tracing for the HTTP API.

Every request gets a trace id that the exception handler echoes in
error bodies and that comes back in the ``X-Trace-ID`` header.
"""
from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging import get_logger

logger = get_logger(__name__)

TRACE_HEADER = "X-Trace-ID"
TIMING_HEADER = "X-Process-Time"

# Polled by liveness checks; kept out of INFO logs
QUIET_PATHS = frozenset({"/", "/health"})

_TRACE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with a trace id and times it.

    A caller supplied ``X-Trace-ID`` is reused when it is a short token
    of safe characters; anything else is replaced so it cannot be used to
    forge log lines. Requests at or above ``slow_request_ms`` are logged
    as warnings.
    """

    def __init__(self, app: ASGIApp, slow_request_ms: float = 1000.0):
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    @staticmethod
    def resolve_trace_id(request: Request) -> str:
        """Reuse a well-formed caller trace id, otherwise mint one."""
        incoming = request.headers.get(TRACE_HEADER, "")
        if _TRACE_ID_PATTERN.match(incoming):
            return incoming
        return uuid.uuid4().hex

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        trace_id = self.resolve_trace_id(request)
        request.state.trace_id = trace_id
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[TRACE_HEADER] = trace_id
        response.headers[TIMING_HEADER] = str(elapsed_ms)

        path = request.url.path
        if elapsed_ms >= self.slow_request_ms:
            level = logging.WARNING
        elif path in QUIET_PATHS:
            level = logging.DEBUG
        else:
            level = logging.INFO

        logger.log(
            level,
            f"{request.method} {path} -> {response.status_code}",
            extra={
                'trace_id': trace_id,
                'token_address': request.query_params.get("q"),
                'extra_data': {
                    'status_code': response.status_code,
                    'process_time_ms': elapsed_ms,
                    'client_ip': request.client.host if request.client else "unknown",
                }
            }
        )
        return response


__all__ = ["RequestTracingMiddleware", "TRACE_HEADER", "TIMING_HEADER"]
