from decimal import Decimal

import pytest

from dharma_cli.domain.models import LoanRequest
from dharma_cli.domain.models.units import SUPPORTED_UNITS, normalize_unit, parse_amount, to_wei


@pytest.mark.parametrize(
    "amount,unit,expected",
    [
        ("1", "ether", 10**18),
        ("1.5", "ether", 15 * 10**17),
        ("3", "wei", 3),
        ("2", "gwei", 2 * 10**9),
        ("1", "tether", 10**30),
    ],
)
def test_to_wei(amount, unit, expected):
    assert to_wei(amount, unit) == expected


def test_every_supported_unit_converts():
    for unit in SUPPORTED_UNITS:
        assert to_wei("1", unit) >= 1


def test_unit_is_case_insensitive():
    assert normalize_unit("Finney") == "finney"


@pytest.mark.parametrize("amount", ["abc", "0", "-1", "NaN", ""])
def test_invalid_amounts(amount):
    with pytest.raises(ValueError):
        parse_amount(amount)


def test_loan_request_is_immutable():
    request = LoanRequest(borrower_address="0xabc", amount=Decimal("1"))
    with pytest.raises(Exception):
        request.amount = Decimal("2")
    assert request.amount_wei == 10**18
