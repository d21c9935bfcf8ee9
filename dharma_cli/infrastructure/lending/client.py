"""
Lending Service Client
Talks to the risk assessment attestor that approves loans and funds
deployment stipends.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from dharma_cli.domain.errors import AuthenticationError, LendingServiceError
from dharma_cli.domain.models import AttestationResult, LoanRecord
from dharma_cli.infrastructure.auth.token_store import AuthTokenStore

logger = logging.getLogger(__name__)


class LendingService(Protocol):
    async def request_attestation(self, address: str, amount: int) -> AttestationResult:
        ...

    async def request_deployment_stipend(self, address: str) -> str:
        ...

    async def list_loans(self) -> List[LoanRecord]:
        ...


class LendingServiceClient:
    def __init__(
        self,
        api_base_url: str,
        token_store: Optional[AuthTokenStore] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_base_url = api_base_url.rstrip("/")
        self.token_store = token_store
        self.timeout = timeout
        self._transport = transport

    async def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token_store is not None:
            token = await self.token_store.get_token()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request_json(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
    ) -> Any:
        url = f"{self.api_base_url}{path}"
        headers = await self._headers()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(method, url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise LendingServiceError(f"{method} {path} failed: {exc}") from exc

        if response.status_code in (401, 403):
            logger.warning("Lending service refused %s %s: %s", method, path, response.status_code)
            raise AuthenticationError(
                "Lending service requires authentication",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            logger.warning(
                "Lending service error: %s %s status=%s body=%s",
                method,
                path,
                response.status_code,
                (response.text or "")[:300],
            )
            raise LendingServiceError(
                _error_message(response) or f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise LendingServiceError(f"{method} {path} returned invalid JSON") from exc

    async def request_attestation(self, address: str, amount: int) -> AttestationResult:
        logger.info("Requesting attestation for %s amount=%s wei", address, amount)
        payload = await self._request_json(
            "POST",
            "/attestation",
            {"address": address, "amount": str(amount)},
        )
        data = _unwrap(payload, "/attestation")
        if "approved" not in data:
            raise LendingServiceError("Attestation response is missing the approval verdict")
        try:
            return AttestationResult.from_payload(data)
        except (AttributeError, TypeError, ValueError) as exc:
            raise LendingServiceError("POST /attestation returned malformed terms") from exc

    async def request_deployment_stipend(self, address: str) -> str:
        logger.info("Requesting deployment stipend for %s", address)
        payload = await self._request_json("POST", "/stipend", {"address": address})
        data = _unwrap(payload, "/stipend")
        tx_hash = data.get("txHash") or data.get("tx_hash")
        if not tx_hash:
            raise LendingServiceError("Stipend response is missing a transaction hash")
        return str(tx_hash)

    async def list_loans(self) -> List[LoanRecord]:
        payload = await self._request_json("GET", "/loans")
        items = payload.get("data") if isinstance(payload, dict) else payload
        if items is None:
            return []
        if not isinstance(items, list):
            raise LendingServiceError("GET /loans returned a malformed loan list")

        loans = []
        for item in items:
            if not isinstance(item, dict) or item.get("id") is None:
                logger.warning("Malformed loan in feed: %s", repr(item)[:300])
                raise LendingServiceError("GET /loans returned a loan without an id")
            try:
                loans.append(LoanRecord.from_payload(item))
            except (AttributeError, TypeError, ValueError) as exc:
                raise LendingServiceError(f"GET /loans returned a malformed loan {item['id']}") from exc
        return loans


def _unwrap(payload: Any, path: str) -> Dict[str, Any]:
    """Response object, from either a bare body or a `{"data": ...}` envelope."""
    data = payload.get("data", payload) if isinstance(payload, dict) else payload
    if not isinstance(data, dict):
        raise LendingServiceError(f"POST {path} returned a malformed response")
    return data


def _error_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error") or body.get("message")
    return None
