"""
Auth Token Store
Encapsulates token storage/retrieval for the lending service.
"""

from __future__ import annotations

import asyncio
import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class TokenStatus:
    has_token: bool
    last_updated: Optional[str]
    masked_token: Optional[str]


def _mask_token(token: str) -> str:
    if not token:
        return ""
    if len(token) <= 8:
        return token[:2] + "..." + token[-2:]
    return token[:4] + "..." + token[-4:]


class AuthTokenStore:
    """Token store backed by a small JSON file"""

    def __init__(self, path: Path):
        self.path = Path(path)

    async def get_token(self) -> Optional[str]:
        record = await asyncio.to_thread(self._read)
        return record.get("token") if record else None

    async def set_token(self, token: str) -> TokenStatus:
        token = (token or "").strip()
        if not token:
            raise ValueError("Auth token must not be empty")
        record = {
            "token": token,
            "updated_at": datetime.now(tz=timezone.utc).isoformat(),
        }
        await asyncio.to_thread(self._write, record)
        return self._status_from_record(record)

    async def get_status(self) -> TokenStatus:
        record = await asyncio.to_thread(self._read)
        return self._status_from_record(record)

    def _status_from_record(self, record: Optional[dict]) -> TokenStatus:
        if not record or not record.get("token"):
            return TokenStatus(has_token=False, last_updated=None, masked_token=None)
        return TokenStatus(
            has_token=True,
            last_updated=record.get("updated_at"),
            masked_token=_mask_token(record["token"]),
        )

    def _read(self) -> Optional[dict]:
        if not self.path.is_file():
            return None
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, record: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(record, f)
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self.path)
