"""
Domain Models - Investor state
The single snapshot the dashboard renders from.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from dharma_cli.domain.models.loan import LoanRecord, LogEntry


@dataclass(frozen=True)
class AppState:
    loans: Tuple[LoanRecord, ...] = ()
    visible_terms: Optional[LoanRecord] = None
    logs: Tuple[LogEntry, ...] = ()


@dataclass(frozen=True)
class SelectLoan:
    index: int


@dataclass(frozen=True)
class LoansUpdated:
    loans: Tuple[LoanRecord, ...]


@dataclass(frozen=True)
class LogAppended:
    entry: LogEntry
