# royalty_ledger/ledger.py
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Union

from royalty_ledger.auth.guard import AuthorizationGuard, StaticGuard
from royalty_ledger.config import LedgerSettings
from royalty_ledger.core.clock import Clock, SystemClock
from royalty_ledger.core.types import CreativeWork, License, RoyaltyConfig, RoyaltyPayment, RoyaltyStats, RoyaltyTerms
from royalty_ledger.errors import LedgerError
from royalty_ledger.registry.context import LedgerContext
from royalty_ledger.registry.licenses import LicenseRegistry
from royalty_ledger.registry.payments import PaymentLedger
from royalty_ledger.registry.royalty import RoyaltyConfigStore
from royalty_ledger.registry.stats import StatsAggregator
from royalty_ledger.registry.works import WorkRegistry
from royalty_ledger.storage import RecordStore, create_storage

logger = logging.getLogger(__name__)


class RoyaltyLedger:
    """
    Creative-work licensing and royalty registry.

    Every public method runs in a single store transaction: it either commits
    all of its writes or, on any error, none of them. Mutations renew the
    lease on every record they touched as part of the same commit.
    """

    def __init__(
        self,
        store: Union[RecordStore, str],
        clock: Optional[Clock] = None,
        guard: Optional[AuthorizationGuard] = None,
        lease_seconds: Optional[int] = None,
    ):
        if isinstance(store, str):
            store = create_storage(store)
        self.store = store
        self.clock = clock or SystemClock()
        # Nobody is authenticated unless the caller wires in a guard
        self.guard = guard if guard is not None else StaticGuard()
        self.lease_seconds = store.lease_seconds if lease_seconds is None else lease_seconds

    @classmethod
    def from_settings(cls, settings: LedgerSettings, **kwargs) -> "RoyaltyLedger":
        store = create_storage(f"sqlite://{settings.db_path}", lease_seconds=settings.lease_seconds)
        return cls(store, **kwargs)

    @contextmanager
    def _mutation(self, operation: str) -> Iterator[LedgerContext]:
        try:
            with self.store.transaction() as tx:
                ctx = LedgerContext(tx=tx, clock=self.clock, guard=self.guard, operation=operation)
                yield ctx
                tx.renew_lease(self.lease_seconds)
        except LedgerError as e:
            logger.debug("%s rejected: %s: %s", operation, type(e).__name__, e)
            raise

    @contextmanager
    def _query(self) -> Iterator[LedgerContext]:
        with self.store.transaction() as tx:
            yield LedgerContext(tx=tx, clock=self.clock, guard=self.guard)

    # ── mutations

    def register_work(
        self,
        creator: str,
        title: str,
        description: str,
        content_type: str,
        primary_sale_percentage: int,
        secondary_sale_percentage: int,
        streaming_rate: int,
        minimum_license_fee: int,
    ) -> int:
        terms = RoyaltyTerms(primary_sale_percentage, secondary_sale_percentage, streaming_rate, minimum_license_fee)
        with self._mutation("register_work") as ctx:
            work_id = WorkRegistry(ctx).register(creator, title, description, content_type, terms)
        logger.info("Registered work ID: %d", work_id)
        return work_id

    def purchase_license(
        self,
        work_id: int,
        licensee: str,
        license_type: str,
        duration_seconds: int,
        payment_amount: int,
    ) -> int:
        with self._mutation("purchase_license") as ctx:
            license_id = LicenseRegistry(ctx).purchase(
                work_id, licensee, license_type, duration_seconds, payment_amount
            )
        logger.info("License purchased - ID: %d, Work: %d", license_id, work_id)
        return license_id

    def record_payment(self, work_id: int, payer: str, payment_amount: int, payment_type: str) -> int:
        with self._mutation("record_payment") as ctx:
            ctx.require_caller(payer)
            payment_id = PaymentLedger(ctx).record(work_id, payer, payment_amount, payment_type)
        logger.info("Payment recorded - ID: %d, Work: %d", payment_id, work_id)
        return payment_id

    def update_royalty_config(
        self,
        work_id: int,
        creator: str,
        primary_sale_percentage: int,
        secondary_sale_percentage: int,
        streaming_rate: int,
        minimum_license_fee: int,
    ) -> RoyaltyConfig:
        terms = RoyaltyTerms(primary_sale_percentage, secondary_sale_percentage, streaming_rate, minimum_license_fee)
        with self._mutation("update_royalty_config") as ctx:
            ctx.require_caller(creator)
            config = RoyaltyConfigStore(ctx).update(work_id, creator, terms)
        logger.info("Updated royalty config for work: %d", work_id)
        return config

    def deactivate_work(self, work_id: int, creator: str) -> CreativeWork:
        return self._set_active(work_id, creator, False)

    def reactivate_work(self, work_id: int, creator: str) -> CreativeWork:
        return self._set_active(work_id, creator, True)

    def _set_active(self, work_id: int, creator: str, active: bool) -> CreativeWork:
        operation = "reactivate_work" if active else "deactivate_work"
        with self._mutation(operation) as ctx:
            ctx.require_caller(creator)
            work = WorkRegistry(ctx).set_active(work_id, creator, active)
        logger.info("%s work: %d", "Reactivated" if active else "Deactivated", work_id)
        return work

    # ── queries

    def get_creator_works(self, creator: str) -> List[int]:
        with self._query() as ctx:
            return WorkRegistry(ctx).list_for_creator(creator)

    def get_work(self, work_id: int) -> CreativeWork:
        with self._query() as ctx:
            return WorkRegistry(ctx).get(work_id)

    def get_royalty_config(self, work_id: int) -> RoyaltyConfig:
        with self._query() as ctx:
            return RoyaltyConfigStore(ctx).get(work_id)

    def get_license(self, license_id: int) -> License:
        with self._query() as ctx:
            return LicenseRegistry(ctx).get(license_id)

    def get_payment(self, payment_id: int) -> RoyaltyPayment:
        with self._query() as ctx:
            return PaymentLedger(ctx).get(payment_id)

    def get_royalty_stats(self) -> RoyaltyStats:
        with self._query() as ctx:
            return StatsAggregator(ctx).current()

    def verify_license(self, license_id: int) -> bool:
        with self._query() as ctx:
            return LicenseRegistry(ctx).is_valid(license_id)

    def get_work_licenses(self, work_id: int) -> List[int]:
        with self._query() as ctx:
            return LicenseRegistry(ctx).list_for_work(work_id)

    def get_work_payments(self, work_id: int) -> List[int]:
        with self._query() as ctx:
            return PaymentLedger(ctx).list_for_work(work_id)

    def close(self) -> None:
        self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
