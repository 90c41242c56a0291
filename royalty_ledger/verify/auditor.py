# royalty_ledger/verify/auditor.py
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Optional

from royalty_ledger.core.amounts import MAX_BASIS_POINTS
from royalty_ledger.core.keys import ConfigKey, CountersKey, CreatorWorksKey, LicenseKey, PaymentKey, StatsKey, WorkKey
from royalty_ledger.core.types import (
    Counters,
    CreativeWork,
    CreatorIndex,
    License,
    RoyaltyConfig,
    RoyaltyPayment,
    RoyaltyStats,
)
from royalty_ledger.storage import RecordStore, Transaction


@dataclass
class AuditFailure:
    subject: str                    # encoded key of the offending record, or "" for global checks
    message: str
    category: str = "general"       # "counter", "reference", "config", "license_count", "stats", "percentage", "creator_index"


@dataclass
class AuditResult:
    is_valid: bool
    message: str = ""
    failures: List[AuditFailure] = None

    def __post_init__(self):
        if self.failures is None:
            self.failures = []

    def fail(self, subject: str, message: str, category: str) -> None:
        self.failures.append(AuditFailure(subject, message, category))
        self.is_valid = False

    @property
    def first_failure(self) -> Optional[AuditFailure]:
        return self.failures[0] if self.failures else None

    def __bool__(self):
        return self.is_valid

    def __str__(self):
        if self.is_valid:
            return "Ledger is consistent ✓"
        lines = [f"Audit FAILED ({len(self.failures)} issues):"]
        for f in self.failures:
            lines.append(f"  • [{f.subject or '-'}] {f.category}: {f.message}")
        return "\n".join(lines)


class LedgerAuditor:
    """
    Offline consistency check of a ledger's stored records.
    Recomputes every derived value (counters, per-work license counts, totals,
    creator index) from the primary records and compares.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def audit(self) -> AuditResult:
        with self.store.transaction() as tx:
            result = self._audit(tx)
        result.message = "Ledger is consistent" if result.is_valid else f"Failed with {len(result.failures)} issues"
        return result

    def _audit(self, tx: Transaction) -> AuditResult:
        result = AuditResult(True)

        counters_raw = tx.get(CountersKey())
        counters = Counters.from_dict(counters_raw) if counters_raw else Counters()

        works: Dict[int, CreativeWork] = {}
        for encoded, record in tx.scan(WorkKey.kind):
            work = CreativeWork.from_dict(record)
            works[work.work_id] = work
            if encoded != WorkKey(work.work_id).encode():
                result.fail(encoded, f"Stored under wrong key for work {work.work_id}", "reference")

        configs: Dict[int, RoyaltyConfig] = {}
        for encoded, record in tx.scan(ConfigKey.kind):
            config = RoyaltyConfig.from_dict(record)
            configs[config.work_id] = config
            for name in ("primary_sale_percentage", "secondary_sale_percentage"):
                value = getattr(config, name)
                if not 0 <= value <= MAX_BASIS_POINTS:
                    result.fail(encoded, f"{name}={value} outside 0-{MAX_BASIS_POINTS}", "percentage")

        licenses = [License.from_dict(r) for _, r in tx.scan(LicenseKey.kind)]
        payments = [RoyaltyPayment.from_dict(r) for _, r in tx.scan(PaymentKey.kind)]

        # 1. Counters: ids are exactly 1..=count
        for label, ids, count in (
            ("work", sorted(works), counters.works),
            ("license", sorted(l.license_id for l in licenses), counters.licenses),
            ("payment", sorted(p.payment_id for p in payments), counters.payments),
        ):
            if ids != list(range(1, count + 1)):
                result.fail("counters", f"{label} ids {ids[:10]} do not match counter {count}", "counter")

        # 2. Config exists for every work and vice versa
        for work_id in sorted(set(works) - set(configs)):
            result.fail(WorkKey(work_id).encode(), "Work has no royalty configuration", "config")
        for work_id in sorted(set(configs) - set(works)):
            result.fail(ConfigKey(work_id).encode(), "Royalty configuration for unknown work", "config")

        # 3. Foreign keys
        for lic in licenses:
            if lic.work_id not in works:
                result.fail(LicenseKey(lic.license_id).encode(), f"References unknown work {lic.work_id}", "reference")
        for pay in payments:
            if pay.work_id not in works:
                result.fail(PaymentKey(pay.payment_id).encode(), f"References unknown work {pay.work_id}", "reference")

        # 4. Per-work license counts
        issued = Counter(lic.work_id for lic in licenses)
        for work_id, work in sorted(works.items()):
            if work.license_count != issued.get(work_id, 0):
                result.fail(
                    WorkKey(work_id).encode(),
                    f"license_count {work.license_count} but {issued.get(work_id, 0)} licenses issued",
                    "license_count",
                )

        # 5. Stats
        stats_raw = tx.get(StatsKey())
        stats = RoyaltyStats.from_dict(stats_raw) if stats_raw else RoyaltyStats()
        expected = RoyaltyStats(
            total_works=len(works),
            total_licenses=len(licenses),
            total_payments=len(payments),
            total_revenue=sum(p.payment_amount for p in payments),
        )
        if stats != expected:
            result.fail("stats", f"Stored {stats} but records give {expected}", "stats")

        # 6. Creator index
        indexed: Dict[int, str] = {}
        for encoded, record in tx.scan(CreatorWorksKey.kind):
            index = CreatorIndex.from_dict(record)
            if index.work_ids != sorted(set(index.work_ids)):
                result.fail(encoded, "Index is not strictly increasing", "creator_index")
            for work_id in index.work_ids:
                work = works.get(work_id)
                if work is None or work.creator != index.creator:
                    result.fail(encoded, f"Lists work {work_id} not owned by {index.creator}", "creator_index")
                indexed[work_id] = index.creator
        for work_id in sorted(set(works) - set(indexed)):
            result.fail(WorkKey(work_id).encode(), "Work missing from its creator's index", "creator_index")

        return result
