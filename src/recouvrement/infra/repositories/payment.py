"""SQLModel implementation of the payment repository."""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from ...domain.repositories.payment import ModeAggregate, PaymentAggregate
from ...models.case import CollectionCase
from ...models.payment import Payment, PaymentMode
from ...money import to_money


def _apply_filters(statement, *, case_id=None, start=None, end=None, text=None):
    if case_id:
        statement = statement.where(Payment.case_id == case_id)
    if start:
        statement = statement.where(Payment.paid_on >= start)
    if end:
        statement = statement.where(Payment.paid_on <= end)
    if text and text.strip():
        needle = f"%{text.strip()}%"
        statement = statement.join(CollectionCase, Payment.case_id == CollectionCase.id).where(
            or_(
                Payment.reference.ilike(needle),  # type: ignore[union-attr]
                Payment.comment.ilike(needle),  # type: ignore[union-attr]
                CollectionCase.reference.ilike(needle),  # type: ignore[attr-defined]
                CollectionCase.debtor_name.ilike(needle),  # type: ignore[attr-defined]
                CollectionCase.creditor_name.ilike(needle),  # type: ignore[attr-defined]
            )
        )
    return statement


class SQLModelPaymentRepository:
    """SQLModel-based payment repository bound to caller-supplied sessions."""

    def get_by_id(self, session: Session, payment_id: str) -> Optional[Payment]:
        """Retrieve a payment by ID."""
        return session.exec(select(Payment).where(Payment.id == payment_id)).first()

    def list_for_case(self, session: Session, case_id: str) -> list[Payment]:
        """All payments recorded for a case, newest first."""
        statement = (
            select(Payment)
            .where(Payment.case_id == case_id)
            .order_by(Payment.paid_on.desc(), Payment.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(session.exec(statement).all())

    def insert(self, session: Session, payment: Payment) -> Payment:
        """Stage a payment and flush it."""
        session.add(payment)
        session.flush()
        return payment

    def delete(self, session: Session, payment: Payment) -> None:
        """Remove a payment."""
        session.delete(payment)
        session.flush()

    def search(
        self,
        session: Session,
        *,
        case_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        text: Optional[str] = None,
    ) -> list[Payment]:
        """Filter payments by case, date range and free text, newest first."""
        statement = _apply_filters(
            select(Payment), case_id=case_id, start=start, end=end, text=text
        )
        statement = statement.order_by(
            Payment.paid_on.desc(), Payment.created_at.desc()  # type: ignore[attr-defined]
        )
        return list(session.exec(statement).all())

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
        statement = select(
            func.sum(Payment.amount), func.count(Payment.id), func.max(Payment.paid_on)
        ).select_from(Payment)
        statement = _apply_filters(statement, case_id=case_id, start=start, end=end, text=text)
        amount, count, last_paid_on = session.exec(statement).one()
        return PaymentAggregate(to_money(amount), int(count or 0), last_paid_on)

    def totals_by_mode(
        self,
        session: Session,
        *,
        case_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        text: Optional[str] = None,
    ) -> list[ModeAggregate]:
        """Per-mode sum and count, largest total first."""
        statement = select(
            Payment.mode, func.sum(Payment.amount), func.count(Payment.id)
        ).select_from(Payment)
        statement = _apply_filters(statement, case_id=case_id, start=start, end=end, text=text)
        statement = statement.group_by(Payment.mode)
        rows = [
            ModeAggregate(PaymentMode(mode), to_money(amount), int(count))
            for mode, amount, count in session.exec(statement).all()
        ]
        rows.sort(key=lambda row: row.total, reverse=True)
        return rows
