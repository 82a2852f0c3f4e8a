from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from ..errors import OtpTimeoutError, TransientStoreError
from ..models import OtpRecord, RetrievalRequest, ensure_utc
from ..util.polling import poll_until
from .store import OtpStore


logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OtpRetriever:
    """
    Turn the asynchronously populated OTP store into one code for one login attempt.

    `reference_timestamp` must be captured right before the action that makes the bank send
    the OTP (e.g. clicking "Secure login"); only codes created strictly after it qualify.
    Retrieval is read-only: two attempts sharing a reference window can see the same code.
    """

    def __init__(
        self,
        store: OtpStore,
        *,
        timeout: float = 60.0,
        poll_interval: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    async def retrieve(
        self,
        reference_timestamp: datetime,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> str:
        ref = ensure_utc(reference_timestamp)
        budget = self.timeout if timeout is None else timeout
        interval = self.poll_interval if poll_interval is None else poll_interval
        attempts = 0

        async def _fetch_newer() -> Optional[OtpRecord]:
            nonlocal attempts
            attempts += 1
            record = await self.store.latest_after(ref)
            if record is None:
                return None
            if record.created_at <= ref:
                logger.warning(
                    "OTP store returned a record not newer than the reference (created_at=%s ref=%s); ignoring.",
                    record.created_at.isoformat(),
                    ref.isoformat(),
                )
                return None
            return record

        logger.info("Waiting for OTP newer than %s (timeout=%gs interval=%gs)", ref.isoformat(), budget, interval)
        started = self._clock()
        try:
            record = await poll_until(
                _fetch_newer,
                timeout=budget,
                interval=interval,
                retry_on=(TransientStoreError,),
                clock=self._clock,
                sleep=self._sleep,
                description="OTP",
            )
        except TimeoutError as e:
            raise OtpTimeoutError(reference_timestamp=ref, timeout=budget, attempts=attempts) from e

        logger.info(
            "Fetched OTP (code=%s created_at=%s seconds=%.1f polls=%d)",
            record.masked(),
            record.created_at.isoformat(),
            self._clock() - started,
            attempts,
        )
        return record.code

    async def retrieve_for(self, request: RetrievalRequest) -> str:
        return await self.retrieve(
            request.reference_timestamp,
            timeout=request.timeout,
            poll_interval=request.poll_interval,
        )
