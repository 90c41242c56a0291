# royalty_ledger/registry/licenses.py
from typing import List

from royalty_ledger.core.amounts import to_amount
from royalty_ledger.core.keys import LicenseKey
from royalty_ledger.core.types import License
from royalty_ledger.errors import NotFound, PaymentTooLow, WorkInactive
from royalty_ledger.registry.context import LedgerContext
from royalty_ledger.registry.counters import load_counters, next_id
from royalty_ledger.registry.payments import PaymentLedger
from royalty_ledger.registry.royalty import RoyaltyConfigStore
from royalty_ledger.registry.stats import StatsAggregator
from royalty_ledger.registry.works import WorkRegistry

LICENSE_PAYMENT_TYPE = "license"


class LicenseRegistry:
    """Issued licenses and their validity."""

    def __init__(self, ctx: LedgerContext):
        self.ctx = ctx

    def purchase(
        self,
        work_id: int,
        licensee: str,
        license_type: str,
        duration_seconds: int,
        payment_amount: int,
    ) -> int:
        """
        Issue a license on an active work. A `duration_seconds` of 0 makes the
        license perpetual. The fee is recorded as a "license" payment.
        """
        self.ctx.require_caller(licensee)

        works = WorkRegistry(self.ctx)
        work = works.get(work_id)
        if not work.is_active:
            raise WorkInactive(f"Work {work_id} is not available for licensing")

        config = RoyaltyConfigStore(self.ctx).get(work_id)
        amount = to_amount(payment_amount)
        if amount < config.minimum_license_fee:
            raise PaymentTooLow(
                f"Payment {amount} is below the minimum license fee {config.minimum_license_fee}"
            )
        if isinstance(duration_seconds, bool) or not isinstance(duration_seconds, int) or duration_seconds < 0:
            raise ValueError(f"duration_seconds must be a non-negative integer, got {duration_seconds!r}")

        license_id = next_id(self.ctx.tx, "licenses")
        now = self.ctx.clock.now()
        license = License(
            license_id=license_id,
            work_id=work_id,
            licensee=licensee,
            license_type=license_type,
            issue_time=now,
            expiration_time=0 if duration_seconds == 0 else now + duration_seconds,
            payment_amount=amount,
        )

        PaymentLedger(self.ctx).record(work_id, licensee, amount, LICENSE_PAYMENT_TYPE)
        works.increment_license_count(work_id)
        self.ctx.tx.set(LicenseKey(license_id), license.to_dict())
        StatsAggregator(self.ctx).count_license()
        return license_id

    def get(self, license_id: int) -> License:
        record = self.ctx.tx.get(LicenseKey(license_id))
        if record is None:
            raise NotFound("License", license_id)
        return License.from_dict(record)

    def is_valid(self, license_id: int) -> bool:
        record = self.ctx.tx.get(LicenseKey(license_id))
        if record is None:
            return False
        return License.from_dict(record).is_valid_at(self.ctx.clock.now())

    def list_for_work(self, work_id: int) -> List[int]:
        # Full scan over every license ever issued
        found = []
        for license_id in range(1, load_counters(self.ctx.tx).licenses + 1):
            record = self.ctx.tx.get(LicenseKey(license_id))
            if record is not None and record["work_id"] == work_id:
                found.append(license_id)
        return found
