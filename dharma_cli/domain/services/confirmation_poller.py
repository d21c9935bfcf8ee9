"""
Transaction confirmation poller.
Waits for a submitted transaction to be included in a mined block.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from dharma_cli.domain.errors import ChainQueryError, ConfirmationTimeout
from dharma_cli.domain.models import MinedReceipt
from dharma_cli.infrastructure.chain.client import ChainClient

logger = logging.getLogger(__name__)


class ConfirmationPoller:
    def __init__(
        self,
        chain: ChainClient,
        poll_interval: float = 1.0,
        timeout: Optional[float] = 300.0,
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._chain = chain
        self._poll_interval = poll_interval
        self._timeout = timeout

    async def await_confirmation(self, tx_hash: str) -> MinedReceipt:
        loop = asyncio.get_running_loop()
        deadline = None if self._timeout is None else loop.time() + self._timeout
        last_error: Optional[ChainQueryError] = None
        attempts = 0

        while True:
            attempts += 1
            try:
                receipt = await self._chain.query_receipt(tx_hash)
            except ChainQueryError as exc:
                # Node hiccups are retried until the deadline
                last_error = exc
                logger.warning("Receipt poll %s for %s failed: %s", attempts, tx_hash, exc)
                receipt = None

            if receipt is not None:
                logger.info(
                    "Transaction %s mined in block %s after %s polls",
                    tx_hash,
                    receipt.block_number,
                    attempts,
                )
                return receipt

            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise ConfirmationTimeout(tx_hash, self._timeout) from last_error
                await asyncio.sleep(min(self._poll_interval, remaining))
            else:
                await asyncio.sleep(self._poll_interval)
