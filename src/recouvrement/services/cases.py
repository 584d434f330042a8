"""Collection case creation, balances and portfolio statistics."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlmodel import Session

from ..config import BaseConfig
from ..errors import NotFoundError, ValidationError
from ..domain.repositories import CaseRepository, PaymentRepository
from ..infra.repositories import SQLModelCaseRepository, SQLModelPaymentRepository
from ..logging_config import get_logger
from ..models.case import CaseStatus, CollectionCase
from ..money import MAX_AMOUNT, ZERO, fits_column, recovery_rate, to_money, total
from .reconciliation import clean_text, settle_status

logger = get_logger("cases")


@dataclass(frozen=True)
class CaseRequest:
    """Inputs for opening a new collection case."""

    creditor_name: str
    debtor_name: str
    principal_amount: Decimal
    penalties_interest: Decimal = ZERO
    creditor_phone: Optional[str] = None
    creditor_email: Optional[str] = None
    debtor_phone: Optional[str] = None
    debtor_email: Optional[str] = None
    debtor_address: Optional[str] = None
    notes: Optional[str] = None


_UNSET = object()

# Optional contact and note fields; blank values are stored as NULL.
_TEXT_FIELDS = (
    "creditor_phone",
    "creditor_email",
    "debtor_phone",
    "debtor_email",
    "debtor_address",
    "notes",
)


@dataclass
class CaseChanges:
    """Partial update for a case; fields left as ``_UNSET`` are untouched."""

    creditor_name: object = _UNSET
    creditor_phone: object = _UNSET
    creditor_email: object = _UNSET
    debtor_name: object = _UNSET
    debtor_phone: object = _UNSET
    debtor_email: object = _UNSET
    debtor_address: object = _UNSET
    principal_amount: object = _UNSET
    penalties_interest: object = _UNSET
    notes: object = _UNSET

    def provided(self) -> dict:
        return {name: value for name, value in vars(self).items() if value is not _UNSET}


@dataclass(frozen=True)
class CaseBalance:
    """Where a case stands against its total owed."""

    case_id: str
    reference: str
    status: CaseStatus
    total_owed: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    recovery_rate: Decimal
    payment_count: int

    def to_dict(self) -> dict:
        return {
            "case_id": self.case_id,
            "reference": self.reference,
            "status": self.status.value,
            "total_owed": str(self.total_owed),
            "total_paid": str(self.total_paid),
            "remaining_balance": str(self.remaining_balance),
            "recovery_rate": str(self.recovery_rate),
            "payment_count": self.payment_count,
        }


@dataclass(frozen=True)
class CaseStatistics:
    """Portfolio-wide counts and amounts."""

    total_cases: int
    in_progress: int
    closed: int
    total_to_recover: Decimal
    total_recovered: Decimal
    remaining_balance: Decimal
    recovery_rate: int

    def to_dict(self) -> dict:
        return {
            "total_cases": self.total_cases,
            "in_progress": self.in_progress,
            "closed": self.closed,
            "total_to_recover": str(self.total_to_recover),
            "total_recovered": str(self.total_recovered),
            "remaining_balance": str(self.remaining_balance),
            "recovery_rate": self.recovery_rate,
        }


def case_to_dict(case: CollectionCase) -> dict:
    """Serialize a case for the JSON surface."""

    return {
        "id": case.id,
        "reference": case.reference,
        "creditor_name": case.creditor_name,
        "creditor_phone": case.creditor_phone,
        "creditor_email": case.creditor_email,
        "debtor_name": case.debtor_name,
        "debtor_phone": case.debtor_phone,
        "debtor_email": case.debtor_email,
        "debtor_address": case.debtor_address,
        "principal_amount": str(to_money(case.principal_amount)),
        "penalties_interest": str(to_money(case.penalties_interest)),
        "total_owed": str(to_money(case.total_owed)),
        "status": CaseStatus(case.status).value,
        "notes": case.notes,
        "created_by": case.created_by,
        "created_at": case.created_at.isoformat(),
        "updated_at": case.updated_at.isoformat(),
    }


def _check_amount(
    errors: dict[str, list[str]], name: str, value: object, *, allow_zero: bool
) -> Decimal:
    try:
        amount = to_money(value)
    except ValueError:
        errors.setdefault(name, []).append("Enter a valid number.")
        return ZERO
    if amount < ZERO or (amount == ZERO and not allow_zero):
        errors.setdefault(name, []).append(
            "Amount must be at least zero." if allow_zero else "Amount must be greater than zero."
        )
    elif not fits_column(amount):
        errors.setdefault(name, []).append(f"Amount must not exceed {MAX_AMOUNT}.")
    return amount


def _check_total(errors: dict[str, list[str]], principal: Decimal, penalties: Decimal) -> None:
    if not errors and not fits_column(principal + penalties):
        errors.setdefault("penalties_interest", []).append(
            f"Principal plus penalties must not exceed {MAX_AMOUNT}."
        )


def _validate(request: CaseRequest) -> tuple[Decimal, Decimal]:
    errors: dict[str, list[str]] = {}
    if not (request.creditor_name or "").strip():
        errors.setdefault("creditor_name", []).append("Enter the creditor name.")
    if not (request.debtor_name or "").strip():
        errors.setdefault("debtor_name", []).append("Enter the debtor name.")

    principal = _check_amount(
        errors, "principal_amount", request.principal_amount, allow_zero=False
    )
    penalties = _check_amount(
        errors, "penalties_interest", request.penalties_interest, allow_zero=True
    )
    _check_total(errors, principal, penalties)

    if errors:
        raise ValidationError("invalid case", errors)
    return principal, penalties


def create_case(
    session: Session,
    request: CaseRequest,
    *,
    actor_id: str,
    prefix: str = BaseConfig.REFERENCE_PREFIX,
    cases: CaseRepository | None = None,
) -> CollectionCase:
    """Open a case with the next ``DOS-REC-NNN`` reference.

    ``total_owed`` is fixed here as principal plus penalties/interest.
    """

    cases = cases or SQLModelCaseRepository()
    principal, penalties = _validate(request)
    case = cases.add(
        session,
        CollectionCase(
            reference=cases.next_reference(session, prefix),
            creditor_name=request.creditor_name.strip(),
            creditor_phone=clean_text(request.creditor_phone),
            creditor_email=clean_text(request.creditor_email),
            debtor_name=request.debtor_name.strip(),
            debtor_phone=clean_text(request.debtor_phone),
            debtor_email=clean_text(request.debtor_email),
            debtor_address=clean_text(request.debtor_address),
            principal_amount=principal,
            penalties_interest=penalties,
            total_owed=principal + penalties,
            status=CaseStatus.IN_PROGRESS,
            notes=clean_text(request.notes),
            created_by=actor_id,
        ),
    )
    logger.info(
        "Case opened",
        extra={"case_id": case.id, "reference": case.reference, "total_owed": str(case.total_owed)},
    )
    return case


def get_case(
    session: Session, case_id: str, *, cases: CaseRepository | None = None
) -> CollectionCase:
    cases = cases or SQLModelCaseRepository()
    case = cases.get_by_id(session, case_id)
    if case is None:
        raise NotFoundError("case", case_id)
    return case


def update_case(
    session: Session,
    case_id: str,
    changes: CaseChanges,
    *,
    cases: CaseRepository | None = None,
    payments: PaymentRepository | None = None,
) -> CollectionCase:
    """Edit names, contacts, notes or amounts of a case.

    ``total_owed`` is recomputed from principal and penalties. A total below
    what has already been paid is rejected; otherwise the status is settled
    again, so raising the total re-opens a closed case and lowering it to the
    amount paid closes it.
    """

    cases = cases or SQLModelCaseRepository()
    payments = payments or SQLModelPaymentRepository()
    case = cases.get_by_id(session, case_id, for_update=True)
    if case is None:
        raise NotFoundError("case", case_id)

    provided = changes.provided()
    errors: dict[str, list[str]] = {}
    for name in ("creditor_name", "debtor_name"):
        if name in provided and not (provided[name] or "").strip():
            errors.setdefault(name, []).append(f"Enter the {name.split('_')[0]} name.")

    principal = to_money(case.principal_amount)
    penalties = to_money(case.penalties_interest)
    if "principal_amount" in provided:
        principal = _check_amount(
            errors, "principal_amount", provided["principal_amount"], allow_zero=False
        )
    if "penalties_interest" in provided:
        penalties = _check_amount(
            errors, "penalties_interest", provided["penalties_interest"], allow_zero=True
        )
    _check_total(errors, principal, penalties)

    new_total = principal + penalties
    previous_total = to_money(case.total_owed)
    if not errors and new_total != previous_total:
        paid = total(p.amount for p in payments.list_for_case(session, case.id))
        if new_total < paid:
            errors.setdefault("principal_amount", []).append(
                f"Total owed cannot fall below the {paid} already paid."
            )
    if errors:
        raise ValidationError("invalid case", errors)

    for name in ("creditor_name", "debtor_name"):
        if name in provided:
            setattr(case, name, provided[name].strip())
    for name in _TEXT_FIELDS:
        if name in provided:
            setattr(case, name, clean_text(provided[name]))
    case.principal_amount = principal
    case.penalties_interest = penalties
    case.total_owed = new_total
    cases.save(session, case)

    if new_total != previous_total:
        settle_status(session, case, cases=cases, payments=payments)
    logger.info(
        "Case updated",
        extra={
            "case_id": case.id,
            "fields": sorted(provided),
            "total_owed": str(new_total),
            "case_status": case.status.value,
        },
    )
    return case


def delete_case(
    session: Session, case_id: str, *, cases: CaseRepository | None = None
) -> None:
    """Delete a case with its payments and actions."""

    cases = cases or SQLModelCaseRepository()
    case = cases.get_by_id(session, case_id, for_update=True)
    if case is None:
        raise NotFoundError("case", case_id)
    reference = case.reference
    cases.delete(session, case)
    logger.info("Case deleted", extra={"case_id": case_id, "reference": reference})


def summarize_case(
    session: Session,
    case_id: str,
    *,
    cases: CaseRepository | None = None,
    payments: PaymentRepository | None = None,
) -> CaseBalance:
    """Compute paid, remaining and recovery rate for one case."""

    payments = payments or SQLModelPaymentRepository()
    case = get_case(session, case_id, cases=cases)
    aggregate = payments.aggregate(session, case_id=case.id)
    owed = to_money(case.total_owed)
    return CaseBalance(
        case_id=case.id,
        reference=case.reference,
        status=CaseStatus(case.status),
        total_owed=owed,
        total_paid=aggregate.total,
        remaining_balance=owed - aggregate.total,
        recovery_rate=recovery_rate(aggregate.total, owed),
        payment_count=aggregate.count,
    )


def list_cases(
    session: Session,
    *,
    status: Optional[CaseStatus] = None,
    search: Optional[str] = None,
    cases: CaseRepository | None = None,
) -> list[CollectionCase]:
    cases = cases or SQLModelCaseRepository()
    return cases.search(session, status=status, text=search)


def case_statistics(
    session: Session,
    *,
    cases: CaseRepository | None = None,
    payments: PaymentRepository | None = None,
) -> CaseStatistics:
    """Counts per status and recovered amounts across every case."""

    cases = cases or SQLModelCaseRepository()
    payments = payments or SQLModelPaymentRepository()
    counts = cases.count_by_status(session)
    to_recover = cases.total_owed(session)
    recovered = payments.aggregate(session).total
    rate = recovery_rate(recovered, to_recover)
    return CaseStatistics(
        total_cases=sum(counts.values()),
        in_progress=counts[CaseStatus.IN_PROGRESS],
        closed=counts[CaseStatus.CLOSED],
        total_to_recover=to_recover,
        total_recovered=recovered,
        remaining_balance=to_recover - recovered,
        recovery_rate=int(rate.quantize(Decimal("1"), rounding=ROUND_HALF_UP)),
    )
