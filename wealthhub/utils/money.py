"""
Decimal helpers for monetary columns (NUMERIC(15, 2) in the database).
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a DB/JSON value to a Decimal rounded to cents.

    PostgREST returns NUMERIC columns as numbers or strings; None is zero.
    """
    if value is None or value == "":
        return Decimal("0.00")
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid monetary amount: {value!r}")


def to_db(value: Decimal) -> str:
    """Serialize a Decimal for PostgREST without float rounding."""
    return str(value.quantize(CENT, rounding=ROUND_HALF_UP))


def compute_net_amount(amount: Any, fee: Any) -> Decimal:
    """
    net_amount = amount - fee, the same expression as the generated column.

    Raises:
        ValueError: If the fee is negative or larger than the amount
    """
    amount_dec = to_decimal(amount)
    fee_dec = to_decimal(fee)
    if fee_dec < 0:
        raise ValueError("Fee cannot be negative")
    if fee_dec > amount_dec:
        raise ValueError("Fee cannot exceed the withdrawal amount")
    return amount_dec - fee_dec


def calculate_withdrawal_fee(amount: Any, percent: Decimal) -> Decimal:
    """Percentage processing fee, rounded down to the cent."""
    fee = (to_decimal(amount) * percent) / Decimal("100")
    return fee.quantize(CENT, rounding=ROUND_DOWN)
