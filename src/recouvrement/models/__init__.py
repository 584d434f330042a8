"""SQLModel table exports."""

from .action import ActionType, CollectionAction
from .case import CaseStatus, CollectionCase
from .payment import Payment, PaymentMode

__all__ = [
    "ActionType",
    "CaseStatus",
    "CollectionAction",
    "CollectionCase",
    "Payment",
    "PaymentMode",
]
