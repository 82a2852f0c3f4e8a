from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from ..alerts.messages import format_run_failure, format_step_failure
from ..alerts.sinks import AlertSink
from ..errors import StepFailedError
from ..state import RunLedger


logger = logging.getLogger(__name__)


class JobContext:
    """
    Tracks the current step of a job and turns the first failure into exactly one alert.

    Usage:
        async with JobContext("Kotak Payout Upload", alerts=alerts) as ctx:
            async with ctx.step("Login Account A"):
                ...
    Any exception inside a step is alerted (once per run), recorded in the ledger and re-raised
    as StepFailedError naming the step. An exception outside every step (browser launch, client
    setup) is alerted as a run failure when it leaves the context.
    """

    def __init__(self, job: str, *, alerts: AlertSink, ledger: Optional[RunLedger] = None) -> None:
        self.job = job
        self.alerts = alerts
        self.ledger = ledger
        self.current_step = "START"
        self.failed = False
        self._finished = False
        self._t0 = time.time()
        self._run_id = ledger.record_run_start(job) if ledger is not None else None
        logger.info("Job started: %s (run_id=%s)", job, self._run_id)

    async def __aenter__(self) -> "JobContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc is None or self.failed or not isinstance(exc, Exception):
            return
        status = "timedOut" if isinstance(exc, TimeoutError) else "failed"
        await self.fail(exc, message=format_run_failure(self.job, exc, status=status))

    @asynccontextmanager
    async def step(self, name: str) -> AsyncIterator[None]:
        self.current_step = name
        logger.info("Step: %s", name)
        try:
            yield
        except StepFailedError:
            raise
        except Exception as e:
            await self.fail(e)
            raise StepFailedError(name, f"{name}: {e}") from e

    async def fail(self, error: BaseException, *, message: Optional[str] = None) -> None:
        if self.failed:
            return
        self.failed = True
        logger.error("Job %s failed at step %r: %s", self.job, self.current_step, error)
        await self.alerts.notify(message or format_step_failure(self.job, self.current_step, error))
        self._record(ok=False, message=str(error))

    def finish(self, message: Optional[str] = None) -> None:
        if self.failed:
            return
        self._record(ok=True, message=message)
        logger.info("Job finished: %s (seconds=%.2f)", self.job, time.time() - self._t0)

    def _record(self, *, ok: bool, message: Optional[str]) -> None:
        if self._finished:
            return
        self._finished = True
        if self.ledger is not None and self._run_id is not None:
            self.ledger.record_run_finish(self._run_id, ok=ok, step=self.current_step, message=message)
