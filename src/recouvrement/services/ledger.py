"""Transactional adapter around the writes that touch a case balance."""

from __future__ import annotations

from contextlib import nullcontext
from typing import Callable, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from ..config import BaseConfig
from ..errors import NotFoundError, StorageError
from ..infra.database import session_scope
from ..domain.repositories import CaseRepository, PaymentRepository
from ..infra.repositories import SQLModelCaseRepository, SQLModelPaymentRepository
from ..logging_config import get_logger
from ..models.case import CaseStatus, CollectionCase
from ..models.payment import Payment
from .cases import CaseChanges, CaseRequest, create_case, delete_case, update_case
from .locks import CaseLockRegistry
from .payments import PaymentChanges, delete_payment, update_payment
from .reconciliation import PaymentReceipt, PaymentRequest, record_payment

logger = get_logger("ledger")

T = TypeVar("T")


class PaymentLedger:
    """Entry point for every write that touches a case balance.

    Each operation runs in its own ``session_scope``: commit on success,
    rollback on any error. With ``use_case_locks`` set, writers on the same
    case are serialized in-process for the whole read, check, write and
    commit sequence; SQLite ignores ``SELECT ... FOR UPDATE`` so this is the
    only guard there.
    """

    REFERENCE_ATTEMPTS = 3

    def __init__(
        self,
        engine: Engine,
        *,
        use_case_locks: bool = True,
        locks: CaseLockRegistry | None = None,
        cases: CaseRepository | None = None,
        payments: PaymentRepository | None = None,
    ) -> None:
        self.engine = engine
        self.use_case_locks = use_case_locks
        self.locks = locks or CaseLockRegistry()
        self.cases = cases or SQLModelCaseRepository()
        self.payments = payments or SQLModelPaymentRepository()

    def _in_transaction(self, case_id: str, work: Callable[[Session], T]) -> T:
        guard = self.locks.hold(case_id) if self.use_case_locks else nullcontext()
        with guard:
            try:
                with session_scope(self.engine) as session:
                    return work(session)
            except SQLAlchemyError as exc:
                logger.exception("Case transaction failed", extra={"case_id": case_id})
                raise StorageError(f"storage failure while writing case {case_id}") from exc

    def _case_id_for_payment(self, payment_id: str) -> str:
        try:
            with session_scope(self.engine) as session:
                payment = self.payments.get_by_id(session, payment_id)
                if payment is None:
                    raise NotFoundError("payment", payment_id)
                return payment.case_id
        except SQLAlchemyError as exc:
            logger.exception("Payment lookup failed", extra={"payment_id": payment_id})
            raise StorageError(f"storage failure while reading payment {payment_id}") from exc

    def record_payment(self, request: PaymentRequest, *, actor_id: str) -> PaymentReceipt:
        """Reconcile and persist a new payment atomically."""

        return self._in_transaction(
            request.case_id,
            lambda session: record_payment(
                session,
                request,
                actor_id=actor_id,
                cases=self.cases,
                payments=self.payments,
            ),
        )

    def update_payment(self, payment_id: str, changes: PaymentChanges) -> Payment:
        """Edit a payment and re-reconcile its case."""

        case_id = self._case_id_for_payment(payment_id)
        return self._in_transaction(
            case_id,
            lambda session: update_payment(
                session, payment_id, changes, cases=self.cases, payments=self.payments
            ),
        )

    def delete_payment(self, payment_id: str) -> CaseStatus:
        """Delete a payment and return the recomputed case status."""

        case_id = self._case_id_for_payment(payment_id)
        return self._in_transaction(
            case_id,
            lambda session: delete_payment(
                session, payment_id, cases=self.cases, payments=self.payments
            ),
        )

    def create_case(
        self,
        request: CaseRequest,
        *,
        actor_id: str,
        prefix: str = BaseConfig.REFERENCE_PREFIX,
    ) -> CollectionCase:
        """Open a case, retrying when another writer took the same reference.

        Reference allocation is serialized in-process under the same lock
        policy as payments; a unique-constraint failure from another process
        is retried with a freshly computed reference.
        """

        key = f"reference:{prefix}"
        guard = self.locks.hold(key) if self.use_case_locks else nullcontext()
        with guard:
            for attempt in range(1, self.REFERENCE_ATTEMPTS + 1):
                try:
                    with session_scope(self.engine) as session:
                        return create_case(
                            session, request, actor_id=actor_id, prefix=prefix, cases=self.cases
                        )
                except IntegrityError as exc:
                    if attempt == self.REFERENCE_ATTEMPTS:
                        logger.exception(
                            "Case reference allocation failed", extra={"prefix": prefix}
                        )
                        raise StorageError(
                            f"could not allocate a {prefix} reference after {attempt} attempts"
                        ) from exc
                    logger.warning(
                        "Case reference already taken, retrying",
                        extra={"prefix": prefix, "attempt": attempt},
                    )
                except SQLAlchemyError as exc:
                    logger.exception("Case creation failed", extra={"prefix": prefix})
                    raise StorageError("storage failure while opening a case") from exc

    def update_case(self, case_id: str, changes: CaseChanges) -> CollectionCase:
        """Edit a case under its lock so a concurrent payment sees the new total."""

        return self._in_transaction(
            case_id,
            lambda session: update_case(
                session, case_id, changes, cases=self.cases, payments=self.payments
            ),
        )

    def delete_case(self, case_id: str) -> None:
        """Delete a case and everything recorded against it."""

        self._in_transaction(
            case_id, lambda session: delete_case(session, case_id, cases=self.cases)
        )
