# royalty_ledger/__init__.py
"""
Royalty Ledger: persistent registry of creative works, their royalty terms,
issued licenses and recorded royalty payments, with running totals.

Every operation is one atomic transaction against a record store (SQLite or
in-memory); callers prove who they are with Ed25519-signed invocations.
"""

__version__ = "0.1.0-dev"
