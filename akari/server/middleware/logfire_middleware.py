"""
Request tracing middleware.

Every response carries ``X-Request-ID`` (echoed from the caller or generated)
and ``X-Process-Time`` in milliseconds. Each request is reported to Logfire
and requests slower than ``slow_request_ms`` are logged as warnings.
"""

import time
import uuid
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from akari.core.logging_config import get_logger
from akari.core.monitoring import log_api_request

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
PROCESS_TIME_HEADER = "X-Process-Time"
SLOW_REQUEST_MS = 1000.0


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class LogfireMiddleware(BaseHTTPMiddleware):
    """Times each request and reports it to Logfire."""

    def __init__(self, app: ASGIApp, slow_request_ms: float = SLOW_REQUEST_MS) -> None:
        super().__init__(app)
        self.slow_request_ms = slow_request_ms

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        path = request.url.path
        request_id = request.headers.get(REQUEST_ID_HEADER.lower()) or uuid.uuid4().hex
        request.state.request_id = request_id
        context = {"method": method, "path": path, "request_id": request_id}

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = _elapsed_ms(started)
            logger.error(
                f"Request crashed: {method} {path}",
                exc_info=True,
                extra={**context, "duration_ms": duration_ms, "error": str(e)},
            )
            log_api_request(method=method, path=path, status_code=500, duration_ms=duration_ms)
            raise

        duration_ms = _elapsed_ms(started)
        log_api_request(method=method, path=path, status_code=response.status_code, duration_ms=duration_ms)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[PROCESS_TIME_HEADER] = f"{duration_ms:.2f}"

        if duration_ms > self.slow_request_ms:
            logger.warning(
                f"Slow request: {method} {path} took {duration_ms:.0f}ms",
                extra={**context, "duration_ms": duration_ms, "status_code": response.status_code},
            )
        return response
