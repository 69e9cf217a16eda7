"""
Request middleware: correlation id, per-request log context and timing.

Every log line emitted while a request is served (services, repositories,
the billing engine) carries request_id, method and path through structlog
contextvars. Requests slower than SLOW_REQUEST_MS are logged as warnings,
which is how long invoice computations show up.
"""

import time
from typing import Callable

import structlog
from asgi_correlation_id import CorrelationIdMiddleware, correlation_id
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

SLOW_REQUEST_MS = 2000


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request context for logging and report the elapsed time."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=correlation_id.get(),
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed", elapsed_ms=_elapsed_ms(started))
            raise

        elapsed = _elapsed_ms(started)
        response.headers["X-Process-Time-Ms"] = str(elapsed)
        log = logger.warning if elapsed >= SLOW_REQUEST_MS else logger.info
        log("Request completed", status_code=response.status_code, elapsed_ms=elapsed)
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def setup_middleware(app: FastAPI) -> None:
    # Starlette runs the last added middleware first: the correlation id is set before the context is bound
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        update_request_header=True,
    )
