# tests/test_ledger.py
import threading
from pathlib import Path
from typing import List

import pytest

from royalty_ledger.auth.guard import SignatureGuard, StaticGuard
from royalty_ledger.core.amounts import MAX_AMOUNT
from royalty_ledger.core.clock import ManualClock
from royalty_ledger.crypto.keys import PrincipalKeyPair
from royalty_ledger.errors import (
    AmountOverflow,
    InvalidConfiguration,
    NotFound,
    PaymentTooLow,
    Unauthorized,
    WorkInactive,
)
from royalty_ledger.ledger import RoyaltyLedger
from royalty_ledger.storage import MemoryStore, RecordStore, SQLiteStore
from royalty_ledger.verify.auditor import LedgerAuditor

START = 1_700_000_000
ALICE = "ed25519:alice"
BOB = "ed25519:bob"
CAROL = "ed25519:carol"


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def ledger(store: MemoryStore, clock: ManualClock) -> RoyaltyLedger:
    return RoyaltyLedger(store, clock=clock, guard=StaticGuard([ALICE, BOB, CAROL]))


def register(ledger: RoyaltyLedger, creator: str = ALICE, min_fee: int = 100, **overrides) -> int:
    args = dict(
        creator=creator,
        title="Nocturne",
        description="Piano piece",
        content_type="music",
        primary_sale_percentage=1000,
        secondary_sale_percentage=500,
        streaming_rate=2,
        minimum_license_fee=min_fee,
    )
    args.update(overrides)
    return ledger.register_work(**args)


# ── works

def test_work_ids_are_sequential_across_creators(ledger):
    ids = [register(ledger, creator) for creator in (ALICE, BOB, ALICE, CAROL, BOB)]
    assert ids == [1, 2, 3, 4, 5]
    assert ledger.get_creator_works(ALICE) == [1, 3]
    assert ledger.get_creator_works(BOB) == [2, 5]
    assert ledger.get_creator_works("ed25519:nobody") == []
    assert ledger.get_royalty_stats().total_works == 5


def test_register_creates_work_and_config(ledger, clock):
    work_id = register(ledger)
    work = ledger.get_work(work_id)
    assert work.creator == ALICE
    assert work.is_active is True
    assert work.license_count == 0
    assert work.creation_time == START

    config = ledger.get_royalty_config(work_id)
    assert config.work_id == work_id
    assert config.primary_sale_percentage == 1000
    assert config.secondary_sale_percentage == 500
    assert config.minimum_license_fee == 100


def test_register_requires_authenticated_creator(ledger, store):
    with pytest.raises(Unauthorized):
        register(ledger, creator="ed25519:mallory")
    assert store.snapshot() == {}


def test_register_invalid_percentage_writes_nothing(ledger, store):
    register(ledger)
    before = store.snapshot()

    with pytest.raises(InvalidConfiguration):
        register(ledger, primary_sale_percentage=10001)
    with pytest.raises(InvalidConfiguration):
        register(ledger, secondary_sale_percentage=10001)

    assert store.snapshot() == before
    with pytest.raises(NotFound):
        ledger.get_work(2)
    # the failed attempts did not burn an id
    assert register(ledger) == 2


def test_register_accepts_full_percentage(ledger):
    work_id = register(ledger, primary_sale_percentage=10000, secondary_sale_percentage=10000)
    assert ledger.get_royalty_config(work_id).primary_sale_percentage == 10000


def test_get_missing_records(ledger):
    for getter in (ledger.get_work, ledger.get_royalty_config, ledger.get_license, ledger.get_payment):
        with pytest.raises(NotFound):
            getter(1)
    with pytest.raises(NotFound):
        ledger.get_work(0)


def test_deactivate_and_reactivate(ledger):
    work_id = register(ledger)
    assert ledger.deactivate_work(work_id, ALICE).is_active is False
    assert ledger.get_work(work_id).is_active is False
    assert ledger.reactivate_work(work_id, ALICE).is_active is True
    assert ledger.get_work(work_id).is_active is True


def test_only_creator_can_change_activation(ledger):
    work_id = register(ledger)
    with pytest.raises(Unauthorized):
        ledger.deactivate_work(work_id, BOB)
    with pytest.raises(Unauthorized):
        ledger.deactivate_work(work_id, "ed25519:mallory")
    with pytest.raises(NotFound):
        ledger.deactivate_work(99, ALICE)
    assert ledger.get_work(work_id).is_active is True


# ── royalty config

def test_update_config_replaces_terms(ledger):
    work_id = register(ledger)
    ledger.update_royalty_config(work_id, ALICE, 2500, 0, 7, 300)
    config = ledger.get_royalty_config(work_id)
    assert (config.primary_sale_percentage, config.secondary_sale_percentage) == (2500, 0)
    assert (config.streaming_rate, config.minimum_license_fee) == (7, 300)


def test_update_config_error_order(ledger, store):
    work_id = register(ledger)
    before = store.snapshot()

    with pytest.raises(NotFound):
        ledger.update_royalty_config(42, ALICE, 20000, 0, 0, 0)
    with pytest.raises(Unauthorized):
        ledger.update_royalty_config(work_id, BOB, 20000, 0, 0, 0)
    with pytest.raises(InvalidConfiguration):
        ledger.update_royalty_config(work_id, ALICE, 0, 10001, 0, 0)

    assert store.snapshot() == before


# ── licenses

def test_purchase_license_boundary(ledger):
    work_id = register(ledger, min_fee=100)
    with pytest.raises(PaymentTooLow):
        ledger.purchase_license(work_id, BOB, "personal", 0, 99)
    license_id = ledger.purchase_license(work_id, BOB, "personal", 0, 100)
    assert license_id == 1


def test_purchase_license_records_payment(ledger, clock):
    work_id = register(ledger)
    clock.advance(10)
    license_id = ledger.purchase_license(work_id, BOB, "commercial", 3600, 150)

    lic = ledger.get_license(license_id)
    assert lic.licensee == BOB
    assert lic.issue_time == START + 10
    assert lic.expiration_time == START + 10 + 3600
    assert lic.payment_amount == 150

    assert ledger.get_work_payments(work_id) == [1]
    payment = ledger.get_payment(1)
    assert payment.payment_type == "license"
    assert payment.payer == BOB
    assert payment.payment_amount == 150

    assert ledger.get_work(work_id).license_count == 1
    stats = ledger.get_royalty_stats()
    assert (stats.total_licenses, stats.total_payments, stats.total_revenue) == (1, 1, 150)


def test_purchase_requires_authenticated_licensee(ledger, store):
    work_id = register(ledger)
    before = store.snapshot()
    with pytest.raises(Unauthorized):
        ledger.purchase_license(work_id, "ed25519:mallory", "personal", 0, 1000)
    assert store.snapshot() == before


def test_purchase_missing_work(ledger):
    with pytest.raises(NotFound):
        ledger.purchase_license(1, BOB, "personal", 0, 1000)


def test_failed_purchase_leaves_no_trace(ledger, store):
    work_id = register(ledger, min_fee=100)
    before = store.snapshot()
    with pytest.raises(PaymentTooLow):
        ledger.purchase_license(work_id, BOB, "personal", 0, 5)
    assert store.snapshot() == before
    assert ledger.get_royalty_stats().total_payments == 0


def test_license_expiry(ledger, clock):
    work_id = register(ledger)
    license_id = ledger.purchase_license(work_id, BOB, "limited", 60, 100)
    assert ledger.verify_license(license_id) is True
    clock.advance(59)
    assert ledger.verify_license(license_id) is True
    clock.advance(1)
    assert ledger.verify_license(license_id) is False


def test_perpetual_license_never_expires(ledger, clock):
    work_id = register(ledger)
    license_id = ledger.purchase_license(work_id, BOB, "personal", 0, 100)
    assert ledger.get_license(license_id).expiration_time == 0
    clock.advance(10**9)
    assert ledger.verify_license(license_id) is True


def test_verify_unknown_license_is_false(ledger):
    assert ledger.verify_license(1) is False
    assert ledger.verify_license(0) is False


def test_work_licenses_filtered_by_work(ledger):
    w1 = register(ledger)
    w2 = register(ledger, creator=BOB)
    ledger.purchase_license(w1, BOB, "personal", 0, 100)
    ledger.purchase_license(w2, CAROL, "personal", 0, 100)
    ledger.purchase_license(w1, CAROL, "commercial", 0, 500)

    assert ledger.get_work_licenses(w1) == [1, 3]
    assert ledger.get_work_licenses(w2) == [2]
    assert ledger.get_work_licenses(99) == []
    assert ledger.get_work(w1).license_count == 2
    assert ledger.get_work(w2).license_count == 1


# ── payments

def test_record_payment(ledger, clock):
    work_id = register(ledger)
    clock.advance(5)
    payment_id = ledger.record_payment(work_id, CAROL, 42, "streaming")
    payment = ledger.get_payment(payment_id)
    assert payment.payment_time == START + 5
    assert payment.payment_type == "streaming"
    assert ledger.get_work_payments(work_id) == [payment_id]


def test_record_payment_missing_work(ledger, store):
    with pytest.raises(NotFound):
        ledger.record_payment(1, CAROL, 42, "sale")
    assert store.snapshot() == {}


def test_record_payment_requires_authenticated_payer(ledger):
    work_id = register(ledger)
    with pytest.raises(Unauthorized):
        ledger.record_payment(work_id, "ed25519:mallory", 42, "sale")


def test_revenue_equals_sum_of_payments(ledger):
    w1 = register(ledger, min_fee=10)
    w2 = register(ledger, creator=BOB, min_fee=0)
    amounts = []
    ledger.purchase_license(w1, BOB, "personal", 0, 10)
    amounts.append(10)
    for amount in (1, 0, 999, 12345):
        ledger.record_payment(w2, CAROL, amount, "sale")
        amounts.append(amount)
    ledger.purchase_license(w2, ALICE, "commercial", 100, 77)
    amounts.append(77)

    stats = ledger.get_royalty_stats()
    assert stats.total_revenue == sum(amounts)
    assert stats.total_payments == len(amounts)
    all_payments = ledger.get_work_payments(w1) + ledger.get_work_payments(w2)
    assert sorted(all_payments) == list(range(1, len(amounts) + 1))
    assert sum(ledger.get_payment(p).payment_amount for p in all_payments) == sum(amounts)


def test_revenue_overflow_is_rejected(ledger, store):
    work_id = register(ledger, min_fee=0)
    ledger.record_payment(work_id, CAROL, MAX_AMOUNT, "sale")
    before = store.snapshot()
    with pytest.raises(AmountOverflow):
        ledger.record_payment(work_id, CAROL, 1, "sale")
    assert store.snapshot() == before
    assert ledger.get_royalty_stats().total_revenue == MAX_AMOUNT


def test_stats_default_before_any_write(ledger):
    stats = ledger.get_royalty_stats()
    assert (stats.total_works, stats.total_licenses, stats.total_payments, stats.total_revenue) == (0, 0, 0, 0)


# ── end to end

def test_register_license_deactivate_scenario(ledger):
    work_id = register(ledger, min_fee=100)
    assert work_id == 1

    license_id = ledger.purchase_license(work_id, BOB, "personal", 0, 100)
    assert license_id == 1
    assert ledger.get_license(license_id).expiration_time == 0
    assert ledger.verify_license(1) is True

    ledger.deactivate_work(1, ALICE)
    with pytest.raises(WorkInactive):
        ledger.purchase_license(1, CAROL, "personal", 0, 100)

    # existing licenses stay valid
    assert ledger.verify_license(1) is True

    ledger.reactivate_work(1, ALICE)
    assert ledger.purchase_license(1, CAROL, "personal", 0, 100) == 2


def test_mutations_renew_leases(ledger, store):
    work_id = register(ledger)
    assert {"work:1", "config:1", "counters", "stats", f"creator_works:{ALICE}"} <= set(store.leases)

    store.leases.clear()
    ledger.purchase_license(work_id, BOB, "personal", 0, 100)
    assert set(store.leases) == {"work:1", "license:1", "payment:1", "counters", "stats"}


def test_sqlite_backed_ledger_persists(tmp_path: Path):
    db = tmp_path / "royalty.db"
    guard = StaticGuard([ALICE, BOB])
    clock = ManualClock(START)

    with RoyaltyLedger(f"sqlite://{db}", clock=clock, guard=guard) as first:
        work_id = register(first)
        first.purchase_license(work_id, BOB, "personal", 0, 250)

    with RoyaltyLedger(f"sqlite://{db}", clock=clock, guard=guard) as second:
        assert second.get_work(work_id).license_count == 1
        assert second.get_royalty_stats().total_revenue == 250
        assert register(second, creator=BOB) == 2


# ── signed callers

def test_signature_is_bound_to_its_operation(store, clock):
    alice = PrincipalKeyPair.generate()
    guard = SignatureGuard()
    ledger = RoyaltyLedger(store, clock=clock, guard=guard)

    guard.authorize(alice.sign_invocation("register_work", {"title": "Nocturne"}))
    work_id = register(ledger, creator=alice.principal)

    guard.authorize(alice.sign_invocation("get_work", {"work_id": work_id}))
    with pytest.raises(Unauthorized):
        ledger.update_royalty_config(work_id, alice.principal, 9000, 9000, 50, 1)
    config = ledger.get_royalty_config(work_id)
    assert config.primary_sale_percentage == 1000
    assert config.minimum_license_fee == 100


def test_signature_cannot_be_replayed(store, clock):
    alice = PrincipalKeyPair.generate()
    guard = SignatureGuard()
    ledger = RoyaltyLedger(store, clock=clock, guard=guard)

    guard.authorize(alice.sign_invocation("register_work", {"title": "Nocturne"}))
    assert register(ledger, creator=alice.principal) == 1
    with pytest.raises(Unauthorized):
        register(ledger, creator=alice.principal)

    guard.authorize(alice.sign_invocation("deactivate_work", {"work_id": 1}))
    ledger.deactivate_work(1, alice.principal)
    with pytest.raises(Unauthorized):
        ledger.reactivate_work(1, alice.principal)
    assert ledger.get_work(1).is_active is False
    assert ledger.get_creator_works(alice.principal) == [1]


# ── concurrency

def register_from_threads(stores: List[RecordStore], per_thread: int = 20) -> List[int]:
    ids: List[int] = []
    errors: List[Exception] = []
    lock = threading.Lock()

    def worker(index: int, store: RecordStore):
        creator = f"ed25519:artist{index}"
        ledger = RoyaltyLedger(store, clock=ManualClock(START), guard=StaticGuard([creator]))
        try:
            for _ in range(per_thread):
                work_id = register(ledger, creator=creator)
                with lock:
                    ids.append(work_id)
        except Exception as e:
            with lock:
                errors.append(e)

    threads = [threading.Thread(target=worker, args=(i, s)) for i, s in enumerate(stores)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    return ids


def test_concurrent_registration_allocates_unique_ids(tmp_path: Path):
    db = tmp_path / "shared.db"
    stores = [SQLiteStore(db) for _ in range(4)]
    try:
        ids = register_from_threads(stores)
        assert sorted(ids) == list(range(1, 81))

        result = LedgerAuditor(stores[0]).audit()
        assert result.is_valid, str(result)
        assert RoyaltyLedger(stores[0], clock=ManualClock(START)).get_royalty_stats().total_works == 80
    finally:
        for s in stores:
            s.close()


def test_concurrent_registration_on_shared_memory_store(store):
    ids = register_from_threads([store] * 4)
    assert sorted(ids) == list(range(1, 81))
    for index in range(4):
        owned = RoyaltyLedger(store, clock=ManualClock(START)).get_creator_works(f"ed25519:artist{index}")
        assert len(owned) == 20

    result = LedgerAuditor(store).audit()
    assert result.is_valid, str(result)
