import asyncio
from typing import Awaitable, Callable, Tuple, Type, TypeVar

from .errors import TransientStoreError
from .log import get_logger
from .models import RetryPolicy

log = get_logger("retry")

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: Tuple[Type[BaseException], ...] = (TransientStoreError,),
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Await operation(), retrying up to policy.attempts more times on retry_on errors.

    Delay before retry n (0-based) is initial_delay_ms * 2**n. The last
    failure is re-raised; errors outside retry_on propagate immediately.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= policy.attempts:
                raise
            delay_ms = policy.initial_delay_ms * (2 ** attempt)
            attempt += 1
            log.warning(
                f"Attempt {attempt}/{policy.attempts + 1} failed ({exc}); "
                f"retrying in {delay_ms}ms"
            )
            await sleep(delay_ms / 1000.0)
