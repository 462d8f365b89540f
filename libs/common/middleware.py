"""Request tracing middleware.

Every HTTP request gets a request id (taken from ``X-Request-ID`` or
generated), which is attached to every log record emitted while the request
is handled and echoed back on the response. WebSocket connections pass
through untouched.
"""

import logging
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
QUIET_PATHS = frozenset({"/health"})


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = set_request_context(
            request_id=request.headers.get(REQUEST_ID_HEADER),
            path=request.url.path,
            method=request.method,
        )
        quiet = request.url.path in QUIET_PATHS
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Unhandled error while serving request",
                extra={"extra_fields": {"elapsed_ms": _elapsed_ms(started)}},
            )
            raise
        else:
            if not quiet:
                logger.log(
                    _level_for(response.status_code),
                    f"{request.method} {request.url.path} -> {response.status_code}",
                    extra={
                        "extra_fields": {
                            "status_code": response.status_code,
                            "elapsed_ms": _elapsed_ms(started),
                        }
                    },
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_context()


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install the request tracing middleware."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
