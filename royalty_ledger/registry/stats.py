# royalty_ledger/registry/stats.py
from dataclasses import replace

from royalty_ledger.core.amounts import checked_add
from royalty_ledger.core.keys import StatsKey
from royalty_ledger.core.types import RoyaltyStats
from royalty_ledger.registry.context import LedgerContext


class StatsAggregator:
    """Running totals. Only the creating operations move them."""

    def __init__(self, ctx: LedgerContext):
        self.ctx = ctx

    def current(self) -> RoyaltyStats:
        record = self.ctx.tx.get(StatsKey())
        return RoyaltyStats.from_dict(record) if record else RoyaltyStats()

    def _save(self, stats: RoyaltyStats) -> RoyaltyStats:
        self.ctx.tx.set(StatsKey(), stats.to_dict())
        return stats

    def count_work(self) -> RoyaltyStats:
        stats = self.current()
        return self._save(replace(stats, total_works=stats.total_works + 1))

    def count_license(self) -> RoyaltyStats:
        stats = self.current()
        return self._save(replace(stats, total_licenses=stats.total_licenses + 1))

    def count_payment(self, amount: int) -> RoyaltyStats:
        stats = self.current()
        return self._save(replace(
            stats,
            total_payments=stats.total_payments + 1,
            total_revenue=checked_add(stats.total_revenue, amount),
        ))
