"""
Record stores backing the royalty ledger.

A store maps encoded storage keys to JSON-ready record dicts. All access goes
through `transaction()`: reads see the transaction's own staged writes, and the
staged writes (plus any lease renewal) are applied only if the block exits
without an exception.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Set, Tuple

from royalty_ledger.config import DEFAULT_LEASE_SECONDS
from royalty_ledger.core.keys import StorageKey, key_kind


class Transaction:
    """Staged view over a store for one logically atomic operation."""

    def __init__(self, store: "RecordStore"):
        self._store = store
        self.writes: Dict[str, dict] = {}
        self.lease_keys: Set[str] = set()
        self.lease_hint: Optional[int] = None

    def get(self, key: StorageKey) -> Optional[dict]:
        encoded = key.encode()
        if encoded in self.writes:
            return dict(self.writes[encoded])
        return self._store._read(encoded)

    def set(self, key: StorageKey, record: dict) -> None:
        self.writes[key.encode()] = dict(record)

    def renew_lease(self, duration_hint: int) -> None:
        """Extend the retention of every key written so far; applied at commit."""
        self.lease_keys.update(self.writes)
        self.lease_hint = duration_hint

    def scan(self, kind: str) -> Iterator[Tuple[str, dict]]:
        """All records of one key kind, staged writes included, ordered by key."""
        merged = dict(self._store._scan(kind))
        merged.update({k: v for k, v in self.writes.items() if key_kind(k) == kind})
        for encoded in sorted(merged):
            yield encoded, dict(merged[encoded])


class RecordStore(ABC):
    """Abstract base for all persistent record stores."""

    def __init__(self, lease_seconds: int = DEFAULT_LEASE_SECONDS):
        self.lease_seconds = lease_seconds
        self._lock = threading.RLock()
        self._depth = 0

    @abstractmethod
    def _read(self, encoded_key: str) -> Optional[dict]:
        pass

    @abstractmethod
    def _scan(self, kind: str) -> Iterator[Tuple[str, dict]]:
        pass

    @abstractmethod
    def _commit(self, tx: Transaction) -> None:
        """Apply a transaction's writes and lease renewals."""

    def _begin(self) -> None:
        pass

    def _rollback(self) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        with self._lock:
            if self._depth:
                raise RuntimeError("Nested transactions are not supported")
            self._depth += 1
            try:
                self._begin()
                tx = Transaction(self)
                try:
                    yield tx
                    self._commit(tx)
                except BaseException:
                    self._rollback()
                    raise
            finally:
                self._depth -= 1

    def get(self, key: StorageKey) -> Optional[dict]:
        with self.transaction() as tx:
            return tx.get(key)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def create_storage(uri: str, lease_seconds: int = DEFAULT_LEASE_SECONDS) -> RecordStore:
    if uri in ("memory:", "memory://"):
        from .memory import MemoryStore
        return MemoryStore(lease_seconds=lease_seconds)

    if uri.startswith("sqlite://"):
        from .sqlite import SQLiteStore
        raw_path = uri[len("sqlite://"):]
        if not raw_path:
            raise ValueError(f"Missing database path in URI: {uri}")
        return SQLiteStore(Path(raw_path).expanduser().resolve(), lease_seconds=lease_seconds)

    raise ValueError(f"Unsupported storage URI: {uri}")


from .memory import MemoryStore
from .sqlite import SQLiteStore

__all__ = ["RecordStore", "Transaction", "create_storage", "MemoryStore", "SQLiteStore"]
