# royalty_ledger/registry/payments.py
from typing import List

from royalty_ledger.core.amounts import to_amount
from royalty_ledger.core.keys import PaymentKey
from royalty_ledger.core.types import RoyaltyPayment
from royalty_ledger.errors import NotFound
from royalty_ledger.registry.context import LedgerContext
from royalty_ledger.registry.counters import load_counters, next_id
from royalty_ledger.registry.stats import StatsAggregator
from royalty_ledger.registry.works import WorkRegistry


class PaymentLedger:
    def __init__(self, ctx: LedgerContext):
        self.ctx = ctx

    def record(self, work_id: int, payer: str, payment_amount: int, payment_type: str) -> int:
        """Record a usage/royalty payment against an existing work; returns its id."""
        WorkRegistry(self.ctx).get(work_id)
        amount = to_amount(payment_amount)

        payment_id = next_id(self.ctx.tx, "payments")
        payment = RoyaltyPayment(
            payment_id=payment_id,
            work_id=work_id,
            payer=payer,
            payment_time=self.ctx.clock.now(),
            payment_amount=amount,
            payment_type=payment_type,
        )
        self.ctx.tx.set(PaymentKey(payment_id), payment.to_dict())
        StatsAggregator(self.ctx).count_payment(amount)
        return payment_id

    def get(self, payment_id: int) -> RoyaltyPayment:
        record = self.ctx.tx.get(PaymentKey(payment_id))
        if record is None:
            raise NotFound("Payment", payment_id)
        return RoyaltyPayment.from_dict(record)

    def list_for_work(self, work_id: int) -> List[int]:
        # Full scan over every payment ever issued
        found = []
        for payment_id in range(1, load_counters(self.ctx.tx).payments + 1):
            record = self.ctx.tx.get(PaymentKey(payment_id))
            if record is not None and record["work_id"] == work_id:
                found.append(payment_id)
        return found
