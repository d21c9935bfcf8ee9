"""
Domain Models Package
Export all domain entities
"""

from .identity import SigningIdentity
from .loan import (
    # Enums
    LogLevel,
    TxStatus,

    # Entities
    AttestationResult,
    LoanRecord,
    LoanRequest,
    LogEntry,
    MinedReceipt,
    StipendTransaction,
)
from .state import AppState, LoansUpdated, LogAppended, SelectLoan
from .units import DEFAULT_UNIT, SUPPORTED_UNITS, to_wei

__all__ = [
    # Enums
    "LogLevel",
    "TxStatus",

    # Entities
    "AttestationResult",
    "LoanRecord",
    "LoanRequest",
    "LogEntry",
    "MinedReceipt",
    "SigningIdentity",
    "StipendTransaction",

    # Investor state + actions
    "AppState",
    "LoansUpdated",
    "LogAppended",
    "SelectLoan",

    # Units
    "DEFAULT_UNIT",
    "SUPPORTED_UNITS",
    "to_wei",
]
