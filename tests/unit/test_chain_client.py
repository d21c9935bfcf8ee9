import pytest
from web3.exceptions import TransactionNotFound

from dharma_cli.domain.errors import ChainQueryError
from dharma_cli.infrastructure.chain.client import Web3ChainClient

ADDRESS = "0x52908400098527886e0f7030069857d2e4169ee7"


class FakeEth:
    def __init__(self, receipt=None, error=None, balance=0):
        self.receipt = receipt
        self.error = error
        self.balance = balance
        self.balance_queries = []

    async def get_transaction_receipt(self, tx_hash):
        if self.error:
            raise self.error
        return self.receipt

    async def get_balance(self, address):
        if self.error:
            raise self.error
        self.balance_queries.append(address)
        return self.balance


class FakeWeb3:
    def __init__(self, eth):
        self.eth = eth


@pytest.mark.asyncio
async def test_pending_transaction_has_no_receipt():
    client = Web3ChainClient(w3=FakeWeb3(FakeEth(error=TransactionNotFound("pending"))))

    assert await client.query_receipt("0x01") is None


@pytest.mark.asyncio
async def test_mined_receipt():
    receipt = {"blockNumber": 12, "blockHash": b"\xab" * 32, "status": 1}
    client = Web3ChainClient(w3=FakeWeb3(FakeEth(receipt=receipt)))

    mined = await client.query_receipt("0x01")

    assert mined.block_number == 12
    assert mined.block_hash == "0x" + "ab" * 32
    assert mined.status == 1


@pytest.mark.asyncio
async def test_node_errors_become_chain_query_errors():
    client = Web3ChainClient(w3=FakeWeb3(FakeEth(error=ConnectionError("down"))))

    with pytest.raises(ChainQueryError):
        await client.query_receipt("0x01")
    with pytest.raises(ChainQueryError):
        await client.get_balance(ADDRESS)


@pytest.mark.asyncio
async def test_balance_uses_checksum_address():
    eth = FakeEth(balance=5)
    client = Web3ChainClient(w3=FakeWeb3(eth))

    assert await client.get_balance(ADDRESS) == 5
    assert eth.balance_queries == ["0x52908400098527886E0F7030069857D2E4169EE7"]
