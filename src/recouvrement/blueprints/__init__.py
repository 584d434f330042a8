"""Blueprint exports."""

from . import actions, cases, payments

__all__ = [
    "actions",
    "cases",
    "payments",
]
