# royalty_ledger/registry/counters.py
from dataclasses import replace

from royalty_ledger.core.keys import CountersKey
from royalty_ledger.core.types import Counters
from royalty_ledger.storage import Transaction


def load_counters(tx: Transaction) -> Counters:
    record = tx.get(CountersKey())
    return Counters.from_dict(record) if record else Counters()


def next_id(tx: Transaction, field_name: str) -> int:
    """Allocate the next id for `works`, `licenses` or `payments` (first id is 1)."""
    counters = load_counters(tx)
    allocated = getattr(counters, field_name) + 1
    tx.set(CountersKey(), replace(counters, **{field_name: allocated}).to_dict())
    return allocated
