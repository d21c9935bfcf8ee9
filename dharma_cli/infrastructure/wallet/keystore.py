"""
Local wallet keystore.
BIP-39 HD accounts encrypted at rest as V3 keystore JSON.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from eth_account import Account
from eth_utils import ValidationError

from dharma_cli.domain.errors import InvalidRecoveryPhrase, InvalidSecret
from dharma_cli.domain.models import SigningIdentity

logger = logging.getLogger(__name__)

Account.enable_unaudited_hdwallet_features()


class WalletKeystore:
    """
    Credential store backed by a single keystore file.

    Key derivation (scrypt) is slow on purpose, so decrypt and encrypt run
    in a worker thread to keep the event loop responsive.
    """

    def __init__(self, path: Path, kdf: str = "scrypt", iterations: Optional[int] = None):
        self.path = Path(path)
        self.kdf = kdf
        self.iterations = iterations

    def exists(self) -> bool:
        return self.path.is_file()

    def generate(self) -> SigningIdentity:
        account, mnemonic = Account.create_with_mnemonic()
        logger.info("Generated new wallet %s", account.address)
        return SigningIdentity(
            address=account.address,
            private_key=bytes(account.key),
            recovery_phrase=mnemonic,
        )

    async def unlock(self, secret: str) -> SigningIdentity:
        keyfile = await asyncio.to_thread(self._read_keyfile)
        try:
            key = await asyncio.to_thread(Account.decrypt, keyfile, secret)
        except ValueError as exc:
            raise InvalidSecret("Incorrect passphrase") from exc
        account = Account.from_key(key)
        logger.info("Unlocked wallet %s", account.address)
        return SigningIdentity(address=account.address, private_key=bytes(account.key))

    async def recover(self, phrase: str) -> SigningIdentity:
        words = " ".join((phrase or "").split())
        try:
            account = await asyncio.to_thread(Account.from_mnemonic, words)
        except (ValidationError, ValueError) as exc:
            raise InvalidRecoveryPhrase("Invalid recovery phrase") from exc
        logger.info("Recovered wallet %s", account.address)
        return SigningIdentity(address=account.address, private_key=bytes(account.key))

    async def persist(self, identity: SigningIdentity, secret: str) -> None:
        keyfile = await asyncio.to_thread(
            Account.encrypt,
            identity.private_key,
            secret,
            kdf=self.kdf,
            iterations=self.iterations,
        )
        await asyncio.to_thread(self._write_keyfile, keyfile)
        logger.info("Persisted encrypted wallet %s to %s", identity.address, self.path)

    def _read_keyfile(self) -> Dict[str, Any]:
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _write_keyfile(self, keyfile: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(keyfile, f)
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self.path)
