"""HTTP middleware: domain context and request-scoped logging."""

import time

import structlog
from fastapi import FastAPI, Request

from ordering.domain import ordering
from ordering.utils.logging import REQUEST_ID_HEADER, request_context, request_id_from

logger = structlog.get_logger(__name__)


def install_request_middleware(app: FastAPI) -> None:
    """Run each request inside the Ordering domain context and a log context.

    The request id comes from the caller's ``X-Request-ID`` header when it is
    usable, and is returned in the same header on the response.
    """

    @app.middleware("http")
    async def request_middleware(request: Request, call_next):
        request_id = request_id_from(request.headers.get(REQUEST_ID_HEADER))
        started = time.perf_counter()
        with request_context(request_id, method=request.method, path=request.url.path):
            with ordering.domain_context():
                response = await call_next(request)
            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
