"""Bounded provider calls.

Every call to the payment provider runs on a worker thread and is abandoned
after ``PROVIDER_TIMEOUT_SECONDS``. A timed-out call surfaces as
``ProviderUnavailable``, which callers may retry; it is never reported as a
payment failure.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError

import structlog

from ordering import settings
from ordering.errors import ProviderUnavailable

logger = structlog.get_logger(__name__)

_executor = ThreadPoolExecutor(max_workers=16, thread_name_prefix="payment-provider")


def call_with_timeout(operation: str, fn, *args, timeout: float | None = None, **kwargs):
    """Run ``fn(*args, **kwargs)`` and wait at most ``timeout`` seconds for it."""
    timeout = settings.provider_timeout_seconds() if timeout is None else timeout
    future = _executor.submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeoutError:
        future.cancel()
        logger.error("payment_provider_timeout", operation=operation, timeout=timeout)
        raise ProviderUnavailable(operation) from None
