from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


async def poll_until(
    fetch: Callable[[], Awaitable[Optional[T]]],
    *,
    timeout: float,
    interval: float,
    retry_on: Tuple[Type[BaseException], ...] = (),
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    description: str = "condition",
) -> T:
    """
    Await `fetch()` until it returns something other than None, or the deadline passes.

    - The first attempt runs immediately; later attempts are spaced `interval` apart.
    - The last sleep is clipped to the deadline, so one final attempt always runs at the deadline.
    - Exceptions listed in `retry_on` count as "not yet"; anything else propagates.
    - Raises the builtin `TimeoutError` when the budget is exhausted.

    Cancelling the awaiting task interrupts the sleep; nothing is held between attempts.
    """
    if timeout <= 0:
        raise ValueError(f"timeout must be positive (got {timeout!r})")
    if interval <= 0:
        raise ValueError(f"interval must be positive (got {interval!r})")

    deadline = clock() + timeout
    attempts = 0
    while True:
        attempts += 1
        try:
            result = await fetch()
        except retry_on as e:
            logger.debug("Poll attempt %d for %s failed; retrying. (%s)", attempts, description, e)
            result = None

        if result is not None:
            logger.debug("Poll for %s satisfied after %d attempt(s).", description, attempts)
            return result

        remaining = deadline - clock()
        if remaining <= 0:
            raise TimeoutError(f"Timed out waiting for {description} after {timeout:g}s ({attempts} attempts)")
        await sleep(min(interval, remaining))
