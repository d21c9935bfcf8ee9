from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

import pytest

from dharma_cli.domain.errors import ChainQueryError, InvalidRecoveryPhrase, InvalidSecret
from dharma_cli.domain.models import AttestationResult, LoanRecord, MinedReceipt, SigningIdentity
from dharma_cli.domain.services.credential_session import UnlockMethod

ADDRESS = "0x52908400098527886E0F7030069857D2E4169EE7"


# Fakes for collaborators
class FakeLendingService:
    def __init__(self, attestation_error=None, stipend_error=None, tx_hash="0xstipend"):
        self.attestation_error = attestation_error
        self.stipend_error = stipend_error
        self.tx_hash = tx_hash
        self.calls: List[Tuple[str, object]] = []
        self.loans: List[LoanRecord] = []
        self.loans_errors: Deque[Exception] = deque()

    async def request_attestation(self, address: str, amount: int) -> AttestationResult:
        self.calls.append(("attestation", (address, amount)))
        if self.attestation_error:
            raise self.attestation_error
        return AttestationResult(approved=True, terms={"principal": str(amount)})

    async def request_deployment_stipend(self, address: str) -> str:
        self.calls.append(("stipend", address))
        if self.stipend_error:
            raise self.stipend_error
        return self.tx_hash

    async def list_loans(self) -> List[LoanRecord]:
        self.calls.append(("loans", None))
        if self.loans_errors:
            raise self.loans_errors.popleft()
        return list(self.loans)


class FakeChain:
    """Chain whose receipt answers are scripted per call"""

    def __init__(self, balance: int = 0, receipts=None, calls=None):
        self.balance = balance
        self.receipts: Deque[object] = deque(receipts or [])
        self.calls = calls if calls is not None else []

    async def get_balance(self, address: str) -> int:
        self.calls.append(("balance", address))
        return self.balance

    async def query_receipt(self, tx_hash: str) -> Optional[MinedReceipt]:
        self.calls.append(("receipt", tx_hash))
        answer = self.receipts.popleft() if self.receipts else None
        if isinstance(answer, Exception):
            raise answer
        return answer


class FakeCredentialStore:
    def __init__(self, exists: bool = False, secret: str = "hunter2", phrase: str = "good phrase"):
        self._exists = exists
        self.secret = secret
        self.phrase = phrase
        self.persisted: List[Tuple[SigningIdentity, str]] = []

    def exists(self) -> bool:
        return self._exists

    def generate(self) -> SigningIdentity:
        return SigningIdentity(address=ADDRESS, private_key=b"\x01" * 32, recovery_phrase="word " * 11 + "word")

    async def unlock(self, secret: str) -> SigningIdentity:
        if secret != self.secret:
            raise InvalidSecret("Incorrect passphrase")
        return SigningIdentity(address=ADDRESS, private_key=b"\x01" * 32)

    async def recover(self, phrase: str) -> SigningIdentity:
        if phrase != self.phrase:
            raise InvalidRecoveryPhrase("Invalid recovery phrase")
        return SigningIdentity(address=ADDRESS, private_key=b"\x01" * 32)

    async def persist(self, identity: SigningIdentity, secret: str) -> None:
        self._exists = True
        self.persisted.append((identity, secret))


class ScriptedPrompter:
    """Answers prompts from pre-loaded queues and records what was shown"""

    def __init__(
        self,
        method: UnlockMethod = UnlockMethod.PASSPHRASE,
        secrets=(),
        new_secrets=(),
        phrases=(),
    ):
        self.method = method
        self.secrets = deque(secrets)
        self.new_secrets = deque(new_secrets)
        self.phrases = deque(phrases)
        self.announced = 0
        self.shown: List[Tuple[str, str]] = []
        self.messages: Dict[str, List[str]] = {"info": [], "error": []}

    async def announce_generation(self) -> None:
        self.announced += 1

    async def choose_unlock_method(self) -> UnlockMethod:
        return self.method

    async def ask_secret(self) -> str:
        return self.secrets.popleft()

    async def ask_new_secret(self) -> Tuple[str, str]:
        return self.new_secrets.popleft()

    async def ask_recovery_phrase(self) -> str:
        return self.phrases.popleft()

    async def show_new_wallet(self, address: str, recovery_phrase: str) -> None:
        self.shown.append((address, recovery_phrase))

    def info(self, message: str) -> None:
        self.messages["info"].append(message)

    def error(self, message: str) -> None:
        self.messages["error"].append(message)


@pytest.fixture()
def identity() -> SigningIdentity:
    return SigningIdentity(address=ADDRESS, private_key=b"\x01" * 32)


@pytest.fixture()
def mined_receipt() -> MinedReceipt:
    return MinedReceipt(tx_hash="0xstipend", block_number=42)


@pytest.fixture()
def chain_error() -> ChainQueryError:
    return ChainQueryError("node unreachable")
