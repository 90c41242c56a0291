# royalty_ledger/core/types.py
from dataclasses import dataclass, asdict, replace
from typing import List

from royalty_ledger.core.amounts import MAX_BASIS_POINTS, amount_str, to_amount
from royalty_ledger.errors import InvalidConfiguration


@dataclass(frozen=True)
class RoyaltyTerms:
    """Complete set of configurable royalty terms for a work."""
    primary_sale_percentage: int        # basis points, 1000 = 10%
    secondary_sale_percentage: int
    streaming_rate: int                 # per-stream payment amount
    minimum_license_fee: int

    def validate(self) -> "RoyaltyTerms":
        for name in ("primary_sale_percentage", "secondary_sale_percentage"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfiguration(f"{name} must be an integer number of basis points")
            if value < 0 or value > MAX_BASIS_POINTS:
                raise InvalidConfiguration(
                    f"Invalid royalty percentage {name}={value}. Must be between 0-{MAX_BASIS_POINTS} basis points"
                )
        return replace(
            self,
            streaming_rate=to_amount(self.streaming_rate),
            minimum_license_fee=to_amount(self.minimum_license_fee),
        )


@dataclass(frozen=True)
class CreativeWork:
    work_id: int
    creator: str                    # principal, e.g. "ed25519:<pubkey>"
    title: str
    description: str
    content_type: str               # "image", "music", "text", ...
    creation_time: int
    is_active: bool = True
    license_count: int = 0          # licenses ever issued against this work

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "CreativeWork":
        return cls(**d)


@dataclass(frozen=True)
class RoyaltyConfig:
    work_id: int
    primary_sale_percentage: int
    secondary_sale_percentage: int
    streaming_rate: int
    minimum_license_fee: int

    @classmethod
    def from_terms(cls, work_id: int, terms: RoyaltyTerms) -> "RoyaltyConfig":
        return cls(
            work_id=work_id,
            primary_sale_percentage=terms.primary_sale_percentage,
            secondary_sale_percentage=terms.secondary_sale_percentage,
            streaming_rate=terms.streaming_rate,
            minimum_license_fee=terms.minimum_license_fee,
        )

    def to_dict(self) -> dict:
        d = asdict(self)
        d["streaming_rate"] = amount_str(self.streaming_rate)
        d["minimum_license_fee"] = amount_str(self.minimum_license_fee)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "RoyaltyConfig":
        return cls(
            work_id=d["work_id"],
            primary_sale_percentage=d["primary_sale_percentage"],
            secondary_sale_percentage=d["secondary_sale_percentage"],
            streaming_rate=to_amount(d["streaming_rate"]),
            minimum_license_fee=to_amount(d["minimum_license_fee"]),
        )


@dataclass(frozen=True)
class License:
    license_id: int
    work_id: int
    licensee: str
    license_type: str               # "commercial", "personal", "limited", ...
    issue_time: int
    expiration_time: int            # 0 for perpetual
    payment_amount: int

    @property
    def is_perpetual(self) -> bool:
        return self.expiration_time == 0

    def is_valid_at(self, now: int) -> bool:
        return self.is_perpetual or now < self.expiration_time

    def to_dict(self) -> dict:
        d = asdict(self)
        d["payment_amount"] = amount_str(self.payment_amount)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "License":
        return cls(**{**d, "payment_amount": to_amount(d["payment_amount"])})


@dataclass(frozen=True)
class RoyaltyPayment:
    payment_id: int
    work_id: int
    payer: str
    payment_time: int
    payment_amount: int
    payment_type: str               # "license", "sale", "streaming", ...

    def to_dict(self) -> dict:
        d = asdict(self)
        d["payment_amount"] = amount_str(self.payment_amount)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "RoyaltyPayment":
        return cls(**{**d, "payment_amount": to_amount(d["payment_amount"])})


@dataclass(frozen=True)
class RoyaltyStats:
    total_works: int = 0
    total_licenses: int = 0
    total_payments: int = 0
    total_revenue: int = 0

    def to_dict(self) -> dict:
        d = asdict(self)
        d["total_revenue"] = amount_str(self.total_revenue)
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "RoyaltyStats":
        return cls(**{**d, "total_revenue": to_amount(d["total_revenue"])})


@dataclass(frozen=True)
class Counters:
    """Last issued id per record kind; the next id is counter + 1."""
    works: int = 0
    licenses: int = 0
    payments: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Counters":
        return cls(**d)


@dataclass(frozen=True)
class CreatorIndex:
    creator: str
    work_ids: List[int]

    def to_dict(self) -> dict:
        return {"creator": self.creator, "work_ids": list(self.work_ids)}

    @classmethod
    def from_dict(cls, d: dict) -> "CreatorIndex":
        return cls(creator=d["creator"], work_ids=list(d["work_ids"]))
