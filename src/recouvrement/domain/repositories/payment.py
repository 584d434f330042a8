"""Payment repository protocol."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional, Protocol, runtime_checkable

from sqlmodel import Session

from ...models.payment import Payment, PaymentMode


class PaymentAggregate(NamedTuple):
    total: Decimal
    count: int
    last_paid_on: Optional[date]


class ModeAggregate(NamedTuple):
    mode: PaymentMode
    total: Decimal
    count: int


@runtime_checkable
class PaymentRepository(Protocol):
    """Payment store. Every call runs inside the caller's transaction."""

    def get_by_id(self, session: Session, payment_id: str) -> Optional[Payment]:
        """Retrieve a payment by ID."""
        ...

    def list_for_case(self, session: Session, case_id: str) -> list[Payment]:
        """All payments recorded for a case, newest first."""
        ...

    def insert(self, session: Session, payment: Payment) -> Payment:
        """Stage a payment and flush it."""
        ...

    def delete(self, session: Session, payment: Payment) -> None:
        """Remove a payment."""
        ...

    def search(
        self,
        session: Session,
        *,
        case_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        text: Optional[str] = None,
    ) -> list[Payment]:
        """Filter payments, newest first."""
        ...

    def aggregate(
        self,
        session: Session,
        *,
        case_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        text: Optional[str] = None,
    ) -> PaymentAggregate:
        """Sum, count and latest date over the filtered payments."""
        ...

    def totals_by_mode(
        self,
        session: Session,
        *,
        case_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        text: Optional[str] = None,
    ) -> list[ModeAggregate]:
        """Per-mode sum and count over the filtered payments."""
        ...
