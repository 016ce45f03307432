import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from storefront.common.logging_setup import get_logger

logger = get_logger("storefront.retries")

T = TypeVar("T")

TRANSIENT_EXCEPTIONS = (httpx.ConnectError, httpx.ReadTimeout, httpx.RemoteProtocolError, httpx.NetworkError,
                        httpx.PoolTimeout, httpx.ConnectTimeout)


def is_recoverable_exception(exc: BaseException) -> bool:
    if isinstance(exc, asyncio.CancelledError):
        return False
    if isinstance(exc, TRANSIENT_EXCEPTIONS):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        # provider-side failures are worth another attempt, client errors are not
        return exc.response is not None and 500 <= exc.response.status_code < 600
    return False


async def _sleep_with_jitter(delay: float, jitter: float) -> None:
    jitter_val = random.uniform(-jitter * delay, jitter * delay)
    await asyncio.sleep(max(0.0, delay + jitter_val))


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    base_delay: float = 0.2,
    factor: float = 2.0,
    max_delay: float = 2.0,
    jitter: float = 0.15,
    if_retryable: Optional[Callable[[BaseException], bool]] = None,
    op_name: str = "outbound.call",
) -> T:
    """Await `fn()` up to `attempts` times, backing off exponentially between recoverable failures."""
    if if_retryable is None:
        if_retryable = is_recoverable_exception

    for attempt in range(1, attempts + 1):
        try:
            return await fn()
        except Exception as exc:
            if not if_retryable(exc) or attempt == attempts:
                raise
            delay = min(max_delay, base_delay * (factor ** (attempt - 1)))
            logger.warning("retry.attempt_failed", extra={
                "op": op_name,
                "attempt": attempt,
                "retry_in": round(delay, 3),
                "error": type(exc).__name__,
            })
            await _sleep_with_jitter(delay, jitter)

    raise RuntimeError("retry_async called with attempts < 1")
