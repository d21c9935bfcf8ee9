"""
Ether denominations accepted on the command line.
"""

from decimal import Decimal, InvalidOperation
from typing import Union

from web3 import Web3

SUPPORTED_UNITS = (
    "wei",
    "kwei",
    "mwei",
    "gwei",
    "szabo",
    "finney",
    "ether",
    "kether",
    "mether",
    "gether",
    "tether",
)

DEFAULT_UNIT = "ether"


def normalize_unit(unit: str) -> str:
    normalized = (unit or "").strip().lower()
    if normalized not in SUPPORTED_UNITS:
        raise ValueError(
            f"Unknown unit '{unit}'. Expected one of: {', '.join(SUPPORTED_UNITS)}"
        )
    return normalized


def parse_amount(amount: Union[str, Decimal]) -> Decimal:
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount '{amount}'") from None
    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be a positive number, got '{amount}'")
    return value


def to_wei(amount: Union[str, Decimal], unit: str = DEFAULT_UNIT) -> int:
    return int(Web3.to_wei(parse_amount(amount), normalize_unit(unit)))
