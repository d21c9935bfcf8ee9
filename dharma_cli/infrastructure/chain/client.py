"""
Blockchain node client (JSON-RPC over HTTP).
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound

from dharma_cli.domain.errors import ChainQueryError
from dharma_cli.domain.models import MinedReceipt

logger = logging.getLogger(__name__)


class ChainClient(Protocol):
    async def query_receipt(self, tx_hash: str) -> Optional[MinedReceipt]:
        ...

    async def get_balance(self, address: str) -> int:
        ...


def _hex(value: Any) -> Optional[str]:
    if value is None:
        return None
    if hasattr(value, "to_0x_hex"):
        return value.to_0x_hex()
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


class Web3ChainClient:
    """Chain client using web3's async HTTP provider"""

    def __init__(
        self,
        rpc_url: str = "http://localhost:8546",
        timeout: float = 30.0,
        w3: Optional[AsyncWeb3] = None,
    ):
        self.rpc_url = rpc_url
        self.w3 = w3 or AsyncWeb3(
            AsyncWeb3.AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )

    async def query_receipt(self, tx_hash: str) -> Optional[MinedReceipt]:
        try:
            receipt = await self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except Exception as exc:
            raise ChainQueryError(f"Receipt query for {tx_hash} failed: {exc}") from exc

        if not receipt or receipt.get("blockNumber") is None:
            return None
        return MinedReceipt(
            tx_hash=tx_hash,
            block_number=int(receipt["blockNumber"]),
            block_hash=_hex(receipt.get("blockHash")),
            status=receipt.get("status"),
        )

    async def get_balance(self, address: str) -> int:
        try:
            checksum = AsyncWeb3.to_checksum_address(address)
            balance = await self.w3.eth.get_balance(checksum)
        except Exception as exc:
            raise ChainQueryError(f"Balance query for {address} failed: {exc}") from exc
        logger.debug("Balance of %s is %s wei", address, balance)
        return int(balance)
