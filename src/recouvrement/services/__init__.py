"""Service module exports."""

from . import actions, cases, ledger, locks, payments, reconciliation

__all__ = [
    "actions",
    "cases",
    "ledger",
    "locks",
    "payments",
    "reconciliation",
]
