"""
Event queue between the background loan daemon and the state store.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from dharma_cli.realtime.store import Action, LoanStore

logger = logging.getLogger(__name__)


class LoanEventQueue:
    """Bounded action channel; the daemon waits when the store falls behind."""

    def __init__(self, maxsize: int = 1000):
        self._queue: asyncio.Queue[Action] = asyncio.Queue(maxsize=maxsize)

    async def publish(self, action: Action) -> None:
        await self._queue.put(action)

    async def next_action(self) -> Action:
        return await self._queue.get()

    def drain(self) -> List[Action]:
        actions = []
        while True:
            try:
                actions.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                return actions


class StoreWorker:
    """Applies published actions to the store, one at a time."""

    def __init__(self, queue: LoanEventQueue, store: LoanStore):
        self._queue = queue
        self._store = store
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop consuming and apply whatever was published before the stop."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        for action in self._queue.drain():
            self._apply(action)

    async def _run(self) -> None:
        while True:
            self._apply(await self._queue.next_action())

    def _apply(self, action: Action) -> None:
        try:
            self._store.dispatch(action)
        except Exception:
            logger.exception("Store rejected %s", type(action).__name__)
