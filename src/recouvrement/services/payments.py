"""Payment listings, statistics and edits."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlmodel import Session

from ..errors import NotFoundError, OverpaymentError
from ..domain.repositories import CaseRepository, PaymentRepository
from ..infra.repositories import SQLModelCaseRepository, SQLModelPaymentRepository
from ..logging_config import get_logger
from ..models.case import CaseStatus
from ..models.payment import Payment, PaymentMode
from ..money import to_money, total
from .reconciliation import clean_text, require_positive, settle_status

logger = get_logger("payments")

_UNSET = object()


@dataclass
class PaymentChanges:
    """Partial update for a payment; fields left as ``_UNSET`` are untouched."""

    amount: object = _UNSET
    paid_on: object = _UNSET
    mode: object = _UNSET
    reference: object = _UNSET
    comment: object = _UNSET

    def provided(self) -> dict:
        return {name: value for name, value in vars(self).items() if value is not _UNSET}


@dataclass(frozen=True)
class ModeBreakdown:
    mode: PaymentMode
    amount: Decimal
    count: int

    def to_dict(self) -> dict:
        return {"mode": self.mode.value, "amount": str(self.amount), "count": self.count}


@dataclass(frozen=True)
class PaymentStatistics:
    """Totals over a filtered set of payments."""

    total_amount: Decimal
    payment_count: int
    last_payment_on: Optional[date]
    by_mode: list[ModeBreakdown] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_amount": str(self.total_amount),
            "payment_count": self.payment_count,
            "last_payment_on": self.last_payment_on.isoformat() if self.last_payment_on else None,
            "by_mode": [row.to_dict() for row in self.by_mode],
        }


def payment_to_dict(payment: Payment, *, case_reference: Optional[str] = None) -> dict:
    """Serialize a payment for the JSON surface."""

    return {
        "id": payment.id,
        "case_id": payment.case_id,
        "case_reference": case_reference,
        "amount": str(to_money(payment.amount)),
        "date": payment.paid_on.isoformat(),
        "mode": PaymentMode(payment.mode).value,
        "reference": payment.reference,
        "comment": payment.comment,
        "created_by": payment.created_by,
        "created_at": payment.created_at.isoformat(),
    }


def get_payment(
    session: Session, payment_id: str, *, payments: PaymentRepository | None = None
) -> Payment:
    payments = payments or SQLModelPaymentRepository()
    payment = payments.get_by_id(session, payment_id)
    if payment is None:
        raise NotFoundError("payment", payment_id)
    return payment


def list_payments(
    session: Session,
    *,
    case_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    search: Optional[str] = None,
    payments: PaymentRepository | None = None,
) -> list[Payment]:
    """Payments matching the filters, most recent payment date first."""

    payments = payments or SQLModelPaymentRepository()
    return payments.search(session, case_id=case_id, start=start, end=end, text=search)


def payment_statistics(
    session: Session,
    *,
    case_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    search: Optional[str] = None,
    payments: PaymentRepository | None = None,
) -> PaymentStatistics:
    """Aggregate amount, count, last date and per-mode split."""

    payments = payments or SQLModelPaymentRepository()
    overall = payments.aggregate(
        session, case_id=case_id, start=start, end=end, text=search
    )
    by_mode = [
        ModeBreakdown(row.mode, row.total, row.count)
        for row in payments.totals_by_mode(
            session, case_id=case_id, start=start, end=end, text=search
        )
    ]
    return PaymentStatistics(
        total_amount=overall.total,
        payment_count=overall.count,
        last_payment_on=overall.last_paid_on,
        by_mode=by_mode,
    )


def update_payment(
    session: Session,
    payment_id: str,
    changes: PaymentChanges,
    *,
    cases: CaseRepository | None = None,
    payments: PaymentRepository | None = None,
) -> Payment:
    """Edit a payment, re-checking the case balance and recomputing its status.

    Raising the amount beyond what the case still allows is rejected with
    ``OverpaymentError``; lowering it may re-open a closed case.
    """

    cases = cases or SQLModelCaseRepository()
    payments = payments or SQLModelPaymentRepository()
    payment = get_payment(session, payment_id, payments=payments)
    case = cases.get_by_id(session, payment.case_id, for_update=True)
    if case is None:  # pragma: no cover - guarded by the foreign key
        raise NotFoundError("case", payment.case_id)

    provided = changes.provided()
    if "amount" in provided:
        amount = require_positive(provided["amount"])
        others = total(
            p.amount for p in payments.list_for_case(session, case.id) if p.id != payment.id
        )
        allowed = to_money(case.total_owed) - others
        if amount > allowed:
            logger.warning(
                "Payment edit rejected: overpayment",
                extra={"payment_id": payment.id, "attempted_amount": str(amount)},
            )
            raise OverpaymentError(amount, allowed)
        payment.amount = amount
    if "paid_on" in provided:
        payment.paid_on = provided["paid_on"]
    if "mode" in provided:
        payment.mode = PaymentMode(provided["mode"])
    if "reference" in provided:
        payment.reference = clean_text(provided["reference"])
    if "comment" in provided:
        payment.comment = clean_text(provided["comment"])

    session.add(payment)
    session.flush()
    settle_status(session, case, cases=cases, payments=payments)
    logger.info(
        "Payment updated",
        extra={"payment_id": payment.id, "fields": sorted(provided)},
    )
    return payment


def delete_payment(
    session: Session,
    payment_id: str,
    *,
    cases: CaseRepository | None = None,
    payments: PaymentRepository | None = None,
) -> CaseStatus:
    """Delete a payment and return the recomputed status of its case."""

    cases = cases or SQLModelCaseRepository()
    payments = payments or SQLModelPaymentRepository()
    payment = get_payment(session, payment_id, payments=payments)
    case = cases.get_by_id(session, payment.case_id, for_update=True)
    if case is None:  # pragma: no cover - guarded by the foreign key
        raise NotFoundError("case", payment.case_id)

    payments.delete(session, payment)
    status = settle_status(session, case, cases=cases, payments=payments)
    logger.info(
        "Payment deleted",
        extra={"payment_id": payment_id, "case_id": case.id, "case_status": status.value},
    )
    return status
