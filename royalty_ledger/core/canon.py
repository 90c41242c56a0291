# royalty_ledger/core/canon.py
import json
from typing import Any

import jcs


def canonical_json(obj: Any) -> bytes:
    """RFC 8785 bytes: the form invocations are signed over."""
    return jcs.canonicalize(obj)


def dump_record(record: dict) -> str:
    """Serialize a record for storage. Equal records always produce equal text."""
    return canonical_json(record).decode("utf-8")


def load_record(payload: str) -> dict:
    record = json.loads(payload)
    if not isinstance(record, dict):
        raise ValueError(f"Stored payload is not a record: {payload[:40]!r}")
    return record
