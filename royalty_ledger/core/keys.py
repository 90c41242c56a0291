# royalty_ledger/core/keys.py
"""
Tagged storage keys. Each kind is its own small frozen dataclass; `encode()`
yields the flat string the record store is keyed on ("<kind>:<ident>").
"""

from dataclasses import dataclass
from typing import ClassVar, Union


@dataclass(frozen=True)
class WorkKey:
    kind: ClassVar[str] = "work"
    work_id: int

    def encode(self) -> str:
        return f"{self.kind}:{self.work_id}"


@dataclass(frozen=True)
class ConfigKey:
    kind: ClassVar[str] = "config"
    work_id: int

    def encode(self) -> str:
        return f"{self.kind}:{self.work_id}"


@dataclass(frozen=True)
class LicenseKey:
    kind: ClassVar[str] = "license"
    license_id: int

    def encode(self) -> str:
        return f"{self.kind}:{self.license_id}"


@dataclass(frozen=True)
class PaymentKey:
    kind: ClassVar[str] = "payment"
    payment_id: int

    def encode(self) -> str:
        return f"{self.kind}:{self.payment_id}"


@dataclass(frozen=True)
class CreatorWorksKey:
    kind: ClassVar[str] = "creator_works"
    creator: str

    def encode(self) -> str:
        return f"{self.kind}:{self.creator}"


@dataclass(frozen=True)
class CountersKey:
    kind: ClassVar[str] = "counters"

    def encode(self) -> str:
        return self.kind


@dataclass(frozen=True)
class StatsKey:
    kind: ClassVar[str] = "stats"

    def encode(self) -> str:
        return self.kind


StorageKey = Union[WorkKey, ConfigKey, LicenseKey, PaymentKey, CreatorWorksKey, CountersKey, StatsKey]


def key_kind(encoded: str) -> str:
    """Kind prefix of an encoded key ("work:7" -> "work", "stats" -> "stats")."""
    return encoded.split(":", 1)[0]
