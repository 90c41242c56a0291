# royalty_ledger/config.py
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DB_PATH_ENV = "ROYALTY_LEDGER_DB_PATH"
LEASE_ENV = "ROYALTY_LEDGER_LEASE_SECONDS"
LOG_LEVEL_ENV = "ROYALTY_LEDGER_LOG_LEVEL"

# Retention extension applied to touched records on every write
DEFAULT_LEASE_SECONDS = 5000


def default_db_path() -> Path:
    return Path.home() / ".royalty-ledger" / "royalty-ledger.db"


@dataclass(frozen=True)
class LedgerSettings:
    db_path: Path
    lease_seconds: int = DEFAULT_LEASE_SECONDS
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, db_path: Optional[Path] = None) -> "LedgerSettings":
        """Resolve settings in this order:
        1. explicit argument (e.g. the CLI --db flag)
        2. ROYALTY_LEDGER_* environment variables
        3. defaults
        """
        if db_path is None:
            env_path = os.environ.get(DB_PATH_ENV)
            db_path = Path(env_path) if env_path else default_db_path()

        lease_raw = os.environ.get(LEASE_ENV)
        try:
            lease = int(lease_raw) if lease_raw else DEFAULT_LEASE_SECONDS
        except ValueError:
            raise ValueError(f"{LEASE_ENV} must be an integer number of seconds, got {lease_raw!r}")
        if lease < 0:
            raise ValueError(f"{LEASE_ENV} cannot be negative")

        log_level = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"{LOG_LEVEL_ENV} must be a logging level name, got {log_level!r}")

        return cls(
            db_path=Path(db_path).expanduser().resolve(),
            lease_seconds=lease,
            log_level=log_level,
        )
