# royalty_ledger/storage/sqlite.py
import os
import sqlite3
import time
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

from royalty_ledger.config import DB_PATH_ENV, DEFAULT_LEASE_SECONDS
from royalty_ledger.core.canon import dump_record, load_record
from royalty_ledger.core.keys import key_kind
from . import RecordStore, Transaction


class SQLiteStore(RecordStore):
    """SQLite persistent storage for ledger records."""

    def __init__(self, db_path: str | Path | None = None, lease_seconds: int = DEFAULT_LEASE_SECONDS):
        super().__init__(lease_seconds=lease_seconds)
        if db_path is None:
            env_path = os.environ.get(DB_PATH_ENV)
            db_path = env_path if env_path else Path.cwd() / "royalty-ledger.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_path.resolve()

        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self):
        # Autocommit mode; transactions are opened explicitly with BEGIN IMMEDIATE
        self._conn = sqlite3.connect(str(self.db_path), isolation_level=None, check_same_thread=False)
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_schema()

    def _create_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS records (
                key             TEXT    PRIMARY KEY,
                kind            TEXT    NOT NULL,
                payload         TEXT    NOT NULL,
                lease_expires   INTEGER
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_kind ON records(kind)")

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Storage connection is closed")
        return self._conn

    def _begin(self) -> None:
        # Take the write lock up front so id allocation serializes across processes
        self.conn.execute("BEGIN IMMEDIATE")

    def _rollback(self) -> None:
        if self._conn is not None and self._conn.in_transaction:
            self._conn.execute("ROLLBACK")

    def _read(self, encoded_key: str) -> Optional[dict]:
        row = self.conn.execute(
            "SELECT payload FROM records WHERE key = ?", (encoded_key,)
        ).fetchone()
        return load_record(row[0]) if row else None

    def _scan(self, kind: str) -> Iterator[Tuple[str, dict]]:
        cursor = self.conn.execute(
            "SELECT key, payload FROM records WHERE kind = ? ORDER BY key", (kind,)
        )
        for key, payload in cursor.fetchall():
            yield key, load_record(payload)

    def _commit(self, tx: Transaction) -> None:
        rows = [
            (encoded, key_kind(encoded), dump_record(record))
            for encoded, record in tx.writes.items()
        ]
        self.conn.executemany("""
            INSERT INTO records (key, kind, payload) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET payload = excluded.payload
        """, rows)
        if tx.lease_hint is not None and tx.lease_keys:
            expires = int(time.time()) + tx.lease_hint
            self.conn.executemany(
                "UPDATE records SET lease_expires = ? WHERE key = ?",
                [(expires, encoded) for encoded in sorted(tx.lease_keys)],
            )
        self.conn.execute("COMMIT")

    def lease_expiry(self, encoded_key: str) -> Optional[int]:
        row = self.conn.execute(
            "SELECT lease_expires FROM records WHERE key = ?", (encoded_key,)
        ).fetchone()
        return row[0] if row else None

    def count_records(self) -> Dict[str, int]:
        cursor = self.conn.execute("SELECT kind, COUNT(*) FROM records GROUP BY kind")
        return {kind: count for kind, count in cursor.fetchall()}

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None
