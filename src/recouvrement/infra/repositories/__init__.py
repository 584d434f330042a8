"""Concrete repository implementations using SQLModel."""

from .action import SQLModelActionRepository
from .case import SQLModelCaseRepository
from .payment import SQLModelPaymentRepository

__all__ = [
    "SQLModelActionRepository",
    "SQLModelCaseRepository",
    "SQLModelPaymentRepository",
]
