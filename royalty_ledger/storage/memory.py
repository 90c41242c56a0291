# royalty_ledger/storage/memory.py
import copy
import time
from typing import Dict, Iterator, Optional, Tuple

from royalty_ledger.config import DEFAULT_LEASE_SECONDS
from royalty_ledger.core.keys import key_kind
from . import RecordStore, Transaction


class MemoryStore(RecordStore):
    """Process-local store; used by tests and for throwaway ledgers."""

    def __init__(self, lease_seconds: int = DEFAULT_LEASE_SECONDS):
        super().__init__(lease_seconds=lease_seconds)
        self._records: Optional[Dict[str, dict]] = {}
        self.leases: Dict[str, int] = {}

    @property
    def records(self) -> Dict[str, dict]:
        if self._records is None:
            raise RuntimeError("Storage is closed")
        return self._records

    def _read(self, encoded_key: str) -> Optional[dict]:
        record = self.records.get(encoded_key)
        return copy.deepcopy(record) if record is not None else None

    def _scan(self, kind: str) -> Iterator[Tuple[str, dict]]:
        for encoded, record in list(self.records.items()):
            if key_kind(encoded) == kind:
                yield encoded, copy.deepcopy(record)

    def _commit(self, tx: Transaction) -> None:
        records = self.records
        for encoded, record in tx.writes.items():
            records[encoded] = copy.deepcopy(record)
        if tx.lease_hint is not None:
            expires = int(time.time()) + tx.lease_hint
            for encoded in tx.lease_keys:
                self.leases[encoded] = expires

    def snapshot(self) -> Dict[str, dict]:
        """Deep copy of every committed record, keyed by encoded key."""
        return copy.deepcopy(self.records)

    def close(self) -> None:
        self._records = None
