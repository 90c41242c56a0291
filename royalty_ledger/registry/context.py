# royalty_ledger/registry/context.py
from dataclasses import dataclass
from typing import Optional

from royalty_ledger.auth.guard import AuthorizationGuard
from royalty_ledger.core.clock import Clock
from royalty_ledger.storage import Transaction


@dataclass
class LedgerContext:
    """Everything a registry needs for one operation: the open transaction,
    the clock, and the guard that authenticates principals."""
    tx: Transaction
    clock: Clock
    guard: AuthorizationGuard
    operation: Optional[str] = None

    def require_caller(self, principal: str) -> None:
        self.guard.require_caller(principal, self.operation)
