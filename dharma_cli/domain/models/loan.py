"""
Domain Models - Loans
Immutable structures exchanged between the borrower workflow, the lending
service client and the investor dashboard.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from dharma_cli.domain.models.units import DEFAULT_UNIT, to_wei


class TxStatus(str, Enum):
    """Inclusion status of a submitted transaction"""
    PENDING = "PENDING"
    MINED = "MINED"
    FAILED = "FAILED"


class LogLevel(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class LoanRequest:
    """Borrow request built once per `borrow` invocation"""
    borrower_address: str
    amount: Decimal
    unit: str = DEFAULT_UNIT

    @property
    def amount_wei(self) -> int:
        return to_wei(self.amount, self.unit)


@dataclass(frozen=True)
class AttestationResult:
    """
    Lending service verdict for a loan request.
    """
    approved: bool
    terms: Dict[str, Any] = field(default_factory=dict)
    attestation_id: Optional[str] = None

    @staticmethod
    def from_payload(payload: Dict[str, Any]) -> "AttestationResult":
        return AttestationResult(
            approved=payload.get("approved") is True,
            terms=dict(payload.get("terms") or {}),
            attestation_id=payload.get("id") or payload.get("attestationId"),
        )


@dataclass(frozen=True)
class StipendTransaction:
    tx_hash: str
    status: TxStatus = TxStatus.PENDING

    def with_status(self, status: TxStatus) -> "StipendTransaction":
        return replace(self, status=status)


@dataclass(frozen=True)
class MinedReceipt:
    tx_hash: str
    block_number: int
    block_hash: Optional[str] = None
    status: Optional[int] = None


@dataclass(frozen=True)
class LogEntry:
    message: str
    level: LogLevel = LogLevel.INFO
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


@dataclass(frozen=True)
class LoanRecord:
    """
    Outstanding loan as seen by an investor.
    """
    id: str
    terms: Tuple[Tuple[str, str], ...] = ()
    status: str = "open"
    log_entries: Tuple[LogEntry, ...] = ()

    @staticmethod
    def from_payload(payload: Dict[str, Any]) -> "LoanRecord":
        terms = payload.get("terms") or {}
        logs = tuple(
            LogEntry(message=str(item)) for item in payload.get("logs") or ()
        )
        return LoanRecord(
            id=str(payload["id"]),
            terms=tuple((str(k), str(v)) for k, v in terms.items()),
            status=str(payload.get("status", "open")),
            log_entries=logs,
        )

    def terms_dict(self) -> Dict[str, str]:
        return dict(self.terms)
