"""Translation of pipeline errors into HTTP responses.

Protean's own exceptions (``ValidationError``, ``ObjectNotFoundError``, ...)
are handled by ``protean.integrations.fastapi``. Typed pipeline errors carry
their status code and body; provider failures are logged with detail but
answered generically.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from ordering.errors import InvalidSignature, OrderingError, PaymentNotCompleted, ProviderUnavailable

logger = structlog.get_logger(__name__)


async def _ordering_error_handler(request: Request, exc: OrderingError) -> JSONResponse:
    if isinstance(exc, InvalidSignature):
        logger.error("webhook_rejected", path=request.url.path, reason=exc.reason)
    elif isinstance(exc, (PaymentNotCompleted, ProviderUnavailable)):
        logger.warning("payment_error", path=request.url.path, code=exc.code)
    else:
        logger.info("request_rejected", path=request.url.path, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def install_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(OrderingError, _ordering_error_handler)
