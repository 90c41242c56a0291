# royalty_ledger/errors.py
"""Typed failures raised by ledger operations.

Every error aborts the operation's transaction; nothing it staged is written.
"""

from typing import Any


class LedgerError(Exception):
    """Base class for all ledger failures."""


class Unauthorized(LedgerError):
    """Caller is not (or could not prove to be) the required principal."""


class NotFound(LedgerError):
    def __init__(self, kind: str, ident: Any):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} does not exist: {ident}")


class InvalidConfiguration(LedgerError):
    """A royalty percentage is outside 0..10000 basis points."""


class WorkInactive(LedgerError):
    """Licensing attempted against a deactivated work."""


class PaymentTooLow(LedgerError):
    """Payment is below the work's minimum license fee."""


class InvalidAmount(LedgerError, ValueError):
    """Amount is not a non-negative integer within range."""


class AmountOverflow(InvalidAmount):
    """An accumulated total would exceed the maximum amount."""
