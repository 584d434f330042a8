"""Repository protocol definitions for domain layer."""

from .action import ActionRepository
from .case import CaseRepository
from .payment import ModeAggregate, PaymentAggregate, PaymentRepository

__all__ = [
    "ActionRepository",
    "CaseRepository",
    "ModeAggregate",
    "PaymentAggregate",
    "PaymentRepository",
]
