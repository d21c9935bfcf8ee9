"""
CREDENTIAL SESSION FLOW
Turns user secrets into an unlocked signing identity.

RESPONSIBILITIES:
- Generate a wallet when none is stored (confirm-twice passphrase)
- Unlock a stored wallet by passphrase
- Recover a stored wallet by phrase, then rotate its passphrase
- Re-prompt on bad input instead of aborting

RULES:
- Secrets never outlive the store call they are passed to
- Only the generate and recovery paths write to the store
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterator, Optional, Protocol, Tuple

from dharma_cli.domain.errors import (
    AttemptsExhausted,
    InvalidRecoveryPhrase,
    InvalidSecret,
    SecretMismatch,
)
from dharma_cli.domain.models import SigningIdentity

logger = logging.getLogger(__name__)


class UnlockMethod(str, Enum):
    PASSPHRASE = "Enter passphrase"
    RECOVERY_PHRASE = "Enter recovery phrase"


class CredentialStore(Protocol):
    def exists(self) -> bool:
        ...

    def generate(self) -> SigningIdentity:
        ...

    async def unlock(self, secret: str) -> SigningIdentity:
        ...

    async def recover(self, phrase: str) -> SigningIdentity:
        ...

    async def persist(self, identity: SigningIdentity, secret: str) -> None:
        ...


class WalletPrompter(Protocol):
    """User interaction needed by the credential flow"""

    async def announce_generation(self) -> None:
        ...

    async def choose_unlock_method(self) -> UnlockMethod:
        ...

    async def ask_secret(self) -> str:
        ...

    async def ask_new_secret(self) -> Tuple[str, str]:
        """Return (passphrase, confirmation)"""
        ...

    async def ask_recovery_phrase(self) -> str:
        ...

    async def show_new_wallet(self, address: str, recovery_phrase: str) -> None:
        ...

    def info(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...


def check_confirmation(secret: str, confirmation: str) -> str:
    if secret != confirmation:
        raise SecretMismatch("Confirmation does not match passphrase")
    return secret


class CredentialSessionFlow:
    def __init__(
        self,
        store: CredentialStore,
        prompter: WalletPrompter,
        max_attempts: Optional[int] = None,
    ):
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._prompter = prompter
        self._max_attempts = max_attempts

    async def acquire_identity(self) -> SigningIdentity:
        if self._store.exists():
            return await self._load_identity()
        return await self._generate_identity()

    def _attempts(self, what: str) -> Iterator[int]:
        attempt = 0
        while self._max_attempts is None or attempt < self._max_attempts:
            attempt += 1
            yield attempt
        raise AttemptsExhausted(what, attempt)

    async def choose_new_secret(self) -> str:
        for _ in self._attempts("choosing a passphrase"):
            secret, confirmation = await self._prompter.ask_new_secret()
            try:
                return check_confirmation(secret, confirmation)
            except SecretMismatch:
                self._prompter.error("Confirmation does not match passphrase, try again.")

    async def _generate_identity(self) -> SigningIdentity:
        await self._prompter.announce_generation()
        secret = await self.choose_new_secret()

        identity = self._store.generate()
        await self._store.persist(identity, secret)

        # The phrase is shown here and nowhere else
        await self._prompter.show_new_wallet(identity.address, identity.recovery_phrase or "")
        return identity.without_recovery_phrase()

    async def _load_identity(self) -> SigningIdentity:
        method = await self._prompter.choose_unlock_method()
        if method == UnlockMethod.RECOVERY_PHRASE:
            return await self._recover_identity()
        return await self._unlock_identity()

    async def _unlock_identity(self) -> SigningIdentity:
        for attempt in self._attempts("unlocking the wallet"):
            secret = await self._prompter.ask_secret()
            try:
                identity = await self._store.unlock(secret)
            except InvalidSecret:
                logger.info("Wallet unlock attempt %s rejected", attempt)
                self._prompter.error("Incorrect passphrase.  Please try again.")
                continue
            self._prompter.info("Wallet unlocked!")
            return identity

    async def _recover_identity(self) -> SigningIdentity:
        identity = None
        for attempt in self._attempts("recovering the wallet"):
            phrase = await self._prompter.ask_recovery_phrase()
            try:
                identity = await self._store.recover(phrase)
            except InvalidRecoveryPhrase as exc:
                logger.warning("Wallet recovery attempt %s failed: %s", attempt, exc)
                self._prompter.error("Incorrect seed phrase.  Please try again.")
                continue
            break
        self._prompter.info("Wallet has been recovered!")

        secret = await self.choose_new_secret()
        await self._store.persist(identity, secret)
        self._prompter.info("Wallet saved and re-encrypted with new passphrase.")
        return identity
