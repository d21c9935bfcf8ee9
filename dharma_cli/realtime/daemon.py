"""
Background loan daemon for the investor dashboard.
Polls the lending service for outstanding loans and feeds the state store.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional, Protocol, Tuple

from dharma_cli.domain.errors import AuthenticationError, DharmaError
from dharma_cli.domain.models import LoanRecord, LoansUpdated, LogAppended, LogEntry, LogLevel
from dharma_cli.infrastructure.lending.client import LendingService
from dharma_cli.realtime.event_queue import LoanEventQueue, StoreWorker
from dharma_cli.realtime.store import LoanStore

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[BaseException], Any]


class InvestorDaemon(Protocol):
    async def start(self, store: LoanStore, error_callback: ErrorCallback) -> None:
        ...

    async def stop(self) -> None:
        ...


class LoanFeedDaemon:
    def __init__(
        self,
        lending: LendingService,
        poll_interval: float = 5.0,
        reconnect_delay: float = 5.0,
        max_failures: int = 5,
    ):
        self._lending = lending
        self._poll_interval = poll_interval
        self._reconnect_delay = reconnect_delay
        self._max_failures = max_failures
        self._queue: Optional[LoanEventQueue] = None
        self._worker: Optional[StoreWorker] = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._error_callback: Optional[ErrorCallback] = None
        self._last_loans: Optional[Tuple[LoanRecord, ...]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, store: LoanStore, error_callback: ErrorCallback) -> None:
        if self.running:
            return
        self._error_callback = error_callback
        self._queue = LoanEventQueue()
        self._worker = StoreWorker(self._queue, store)
        self._worker.start()
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._worker:
            await self._worker.stop()
            self._worker = None
        logger.info("Investor daemon stopped")

    async def _run(self) -> None:
        failures = 0
        await self._log("Watching the loan network for outstanding loans")
        while not self._stop_event.is_set():
            sleep_s = self._poll_interval
            try:
                await self._poll_once()
                failures = 0
            except AuthenticationError as exc:
                await self._fail(exc)
                return
            except DharmaError as exc:
                failures += 1
                logger.warning("Loan feed error (%s/%s): %s", failures, self._max_failures, exc)
                await self._log(
                    f"Loan feed error ({failures}/{self._max_failures}): {exc}",
                    LogLevel.WARNING,
                )
                if failures >= self._max_failures:
                    await self._fail(exc)
                    return
                sleep_s = self._reconnect_delay
            except Exception as exc:
                logger.exception("Loan feed crashed")
                await self._fail(exc)
                return
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=sleep_s)
            except asyncio.TimeoutError:
                pass

    async def _poll_once(self) -> None:
        loans = tuple(await self._lending.list_loans())
        if loans == self._last_loans:
            return

        known = {loan.id for loan in self._last_loans or ()}
        self._last_loans = loans
        await self._queue.publish(LoansUpdated(loans=loans))
        for loan in loans:
            if loan.id not in known:
                await self._log(f"Loan {loan.id} is outstanding ({loan.status})")

    async def _log(self, message: str, level: LogLevel = LogLevel.INFO) -> None:
        if self._queue is not None:
            await self._queue.publish(LogAppended(entry=LogEntry(message=message, level=level)))

    async def _fail(self, exc: BaseException) -> None:
        logger.error("Investor daemon giving up: %s", exc)
        if self._error_callback is None:
            return
        result = self._error_callback(exc)
        if inspect.isawaitable(result):
            await result
