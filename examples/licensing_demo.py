# examples/licensing_demo.py
# Run with: python examples/licensing_demo.py
#
# Walks one work through its life: register -> license -> stream payments ->
# deactivate -> audit, with every call signed by the acting principal.

from royalty_ledger.auth.guard import SignatureGuard
from royalty_ledger.core.clock import ManualClock
from royalty_ledger.crypto.keys import PrincipalKeyPair
from royalty_ledger.errors import WorkInactive
from royalty_ledger.ledger import RoyaltyLedger
from royalty_ledger.verify.auditor import LedgerAuditor


if __name__ == "__main__":
    creator = PrincipalKeyPair.generate()
    licensee = PrincipalKeyPair.generate()
    guard = SignatureGuard()
    clock = ManualClock(1_700_000_000)

    ledger = RoyaltyLedger("memory:", clock=clock, guard=guard)

    print("\n[Register]")
    guard.authorize(creator.sign_invocation("register_work", {"title": "Nocturne"}))
    work_id = ledger.register_work(
        creator.principal, "Nocturne", "Solo piano", "music",
        primary_sale_percentage=1000, secondary_sale_percentage=500,
        streaming_rate=2, minimum_license_fee=100,
    )
    print(f"  work {work_id} owned by {creator.principal[:20]}...")

    print("\n[License]")
    guard.authorize(licensee.sign_invocation("purchase_license", {"work_id": work_id}))
    perpetual = ledger.purchase_license(work_id, licensee.principal, "personal", 0, 100)
    guard.authorize(licensee.sign_invocation("purchase_license", {"work_id": work_id}))
    month = ledger.purchase_license(work_id, licensee.principal, "commercial", 30 * 24 * 3600, 500)
    print(f"  licenses {perpetual} (perpetual) and {month} (30 days)")

    print("\n[Streaming payments]")
    for plays in (120, 80, 45):
        guard.authorize(licensee.sign_invocation("record_payment", {"work_id": work_id, "amount": str(plays * 2)}))
        ledger.record_payment(work_id, licensee.principal, plays * 2, "streaming")
    print(f"  payments on work: {ledger.get_work_payments(work_id)}")

    clock.advance(31 * 24 * 3600)
    print("\n[Validity after 31 days]")
    print(f"  license {perpetual}: {ledger.verify_license(perpetual)}")
    print(f"  license {month}: {ledger.verify_license(month)}")

    print("\n[Deactivate]")
    guard.authorize(creator.sign_invocation("deactivate_work", {"work_id": work_id}))
    ledger.deactivate_work(work_id, creator.principal)
    guard.authorize(licensee.sign_invocation("purchase_license", {"work_id": work_id}))
    try:
        ledger.purchase_license(work_id, licensee.principal, "personal", 0, 100)
    except WorkInactive as e:
        print(f"  rejected: {e}")

    stats = ledger.get_royalty_stats()
    print(f"\n[Stats] works={stats.total_works} licenses={stats.total_licenses} "
          f"payments={stats.total_payments} revenue={stats.total_revenue}")

    print("\n[Audit]")
    print(f"  {LedgerAuditor(ledger.store).audit()}")

    print("\n" + "=" * 60)
