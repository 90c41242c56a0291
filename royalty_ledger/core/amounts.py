# royalty_ledger/core/amounts.py
from typing import Any

from royalty_ledger.errors import AmountOverflow, InvalidAmount

# Amounts are unsigned 256-bit token quantities
MAX_AMOUNT = 2**256 - 1

MAX_BASIS_POINTS = 10_000


def to_amount(value: Any) -> int:
    """
    Coerce an int or decimal string into a validated amount.
    Rejects bools, floats, negatives and anything above MAX_AMOUNT.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Amount must be an integer, got {value!r}")
    if isinstance(value, str):
        text = value.strip()
        if not (text.isascii() and text.isdigit()):
            raise InvalidAmount(f"Amount must be a non-negative integer, got {value!r}")
        value = int(text)
    if not isinstance(value, int):
        raise InvalidAmount(f"Amount must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidAmount(f"Amount cannot be negative: {value}")
    if value > MAX_AMOUNT:
        raise InvalidAmount(f"Amount exceeds maximum: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    total = a + b
    if total > MAX_AMOUNT:
        raise AmountOverflow(f"Total {a} + {b} exceeds maximum amount")
    return total


def amount_str(value: int) -> str:
    """Decimal string form used on disk (canonical JSON can't hold 256-bit ints)."""
    return str(value)
