"""Payment reconciliation for collection cases.

A payment is accepted only while it fits in the case's remaining balance
(``total_owed`` minus everything already paid). The payment that brings
cumulative payments up to ``total_owed`` closes the case.

Functions here work on a caller-supplied session and never commit; the
caller owns the transaction (see ``services.ledger.PaymentLedger``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlmodel import Session

from ..errors import NotFoundError, OverpaymentError, ValidationError
from ..domain.repositories import CaseRepository, PaymentRepository
from ..infra.repositories import SQLModelCaseRepository, SQLModelPaymentRepository
from ..logging_config import get_logger
from ..models.case import CaseStatus, CollectionCase
from ..models.payment import Payment, PaymentMode
from ..money import MAX_AMOUNT, ZERO, fits_column, to_money, total

logger = get_logger("reconciliation")


@dataclass(frozen=True)
class PaymentRequest:
    """Inputs for a new payment against a case."""

    case_id: str
    amount: Decimal
    paid_on: date
    mode: PaymentMode
    reference: Optional[str] = None
    comment: Optional[str] = None


@dataclass(frozen=True)
class PaymentReceipt:
    """Outcome of an accepted payment."""

    case_id: str
    case_reference: str
    payment_id: str
    amount: Decimal
    paid_on: date
    mode: PaymentMode
    already_paid: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    case_status: CaseStatus

    @property
    def closed(self) -> bool:
        return self.case_status is CaseStatus.CLOSED

    def to_dict(self) -> dict:
        return {
            "case_id": self.case_id,
            "case_reference": self.case_reference,
            "payment_id": self.payment_id,
            "amount": str(self.amount),
            "date": self.paid_on.isoformat(),
            "mode": self.mode.value,
            "already_paid": str(self.already_paid),
            "total_paid": str(self.total_paid),
            "remaining_balance": str(self.remaining_balance),
            "case_status": self.case_status.value,
            "closed": self.closed,
        }


def clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def require_positive(amount: object) -> Decimal:
    """Return *amount* as money or raise ``ValidationError`` when it is not > 0."""

    try:
        value = to_money(amount)
    except ValueError as exc:
        raise ValidationError(str(exc), {"amount": ["Enter a valid number."]}) from exc
    if value <= ZERO:
        raise ValidationError(
            f"payment amount must be greater than zero, got {value}",
            {"amount": ["Amount must be greater than zero."]},
        )
    if not fits_column(value):
        raise ValidationError(
            f"payment amount {value} exceeds the largest storable amount {MAX_AMOUNT}",
            {"amount": [f"Amount must not exceed {MAX_AMOUNT}."]},
        )
    return value


def status_for(paid: Decimal, owed: Decimal) -> CaseStatus:
    return CaseStatus.CLOSED if paid >= owed else CaseStatus.IN_PROGRESS


def record_payment(
    session: Session,
    request: PaymentRequest,
    *,
    actor_id: str,
    cases: CaseRepository | None = None,
    payments: PaymentRepository | None = None,
) -> PaymentReceipt:
    """Validate *request* against the case balance and stage the payment.

    Raises:
        ValidationError: non-positive amount.
        NotFoundError: the case does not exist.
        OverpaymentError: the amount exceeds the remaining balance.
    """

    cases = cases or SQLModelCaseRepository()
    payments = payments or SQLModelPaymentRepository()
    amount = require_positive(request.amount)

    case = cases.get_by_id(session, request.case_id, for_update=True)
    if case is None:
        raise NotFoundError("case", request.case_id)

    already_paid = total(p.amount for p in payments.list_for_case(session, case.id))
    owed = to_money(case.total_owed)
    remaining = owed - already_paid

    if amount > remaining:
        logger.warning(
            "Payment rejected: overpayment",
            extra={
                "case_id": case.id,
                "attempted_amount": str(amount),
                "remaining_balance": str(remaining),
            },
        )
        raise OverpaymentError(amount, remaining)

    payment = payments.insert(
        session,
        Payment(
            case_id=case.id,
            amount=amount,
            paid_on=request.paid_on,
            mode=PaymentMode(request.mode),
            reference=clean_text(request.reference),
            comment=clean_text(request.comment),
            created_by=actor_id,
        ),
    )

    if amount >= remaining:
        cases.update_status(session, case, CaseStatus.CLOSED)
    else:
        case.touch()
        session.add(case)

    total_paid = already_paid + amount
    logger.info(
        "Payment recorded",
        extra={
            "case_id": case.id,
            "payment_id": payment.id,
            "amount": str(amount),
            "remaining_balance": str(owed - total_paid),
            "case_status": case.status.value,
            "actor_id": actor_id,
        },
    )
    return PaymentReceipt(
        case_id=case.id,
        case_reference=case.reference,
        payment_id=payment.id,
        amount=amount,
        paid_on=payment.paid_on,
        mode=payment.mode,
        already_paid=already_paid,
        total_paid=total_paid,
        remaining_balance=owed - total_paid,
        case_status=case.status,
    )


def settle_status(
    session: Session,
    case: CollectionCase,
    *,
    cases: CaseRepository | None = None,
    payments: PaymentRepository | None = None,
) -> CaseStatus:
    """Recompute the case status from its current payments.

    Unlike ``record_payment`` this may re-open a closed case; it backs
    payment edits and deletions.
    """

    cases = cases or SQLModelCaseRepository()
    payments = payments or SQLModelPaymentRepository()
    paid = total(p.amount for p in payments.list_for_case(session, case.id))
    status = status_for(paid, to_money(case.total_owed))
    if status is not case.status:
        logger.info(
            "Case status recomputed",
            extra={
                "case_id": case.id,
                "previous_status": case.status.value,
                "case_status": status.value,
            },
        )
        cases.update_status(session, case, status)
    return status
