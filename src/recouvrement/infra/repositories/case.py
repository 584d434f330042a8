"""SQLModel implementation of the case repository."""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from ...models.case import CaseStatus, CollectionCase
from ...money import to_money


class SQLModelCaseRepository:
    """SQLModel-based case repository bound to caller-supplied sessions."""

    def get_by_id(
        self, session: Session, case_id: str, *, for_update: bool = False
    ) -> Optional[CollectionCase]:
        """Retrieve a case by ID, optionally with ``SELECT ... FOR UPDATE``."""
        statement = select(CollectionCase).where(CollectionCase.id == case_id)
        if for_update:
            statement = statement.with_for_update()
        return session.exec(statement).first()

    def add(self, session: Session, case: CollectionCase) -> CollectionCase:
        """Stage a new case and flush so the row exists inside the transaction."""
        session.add(case)
        session.flush()
        return case

    def update_status(self, session: Session, case: CollectionCase, status: CaseStatus) -> None:
        """Set the case status; flushed with the surrounding transaction."""
        case.status = status
        case.touch()
        session.add(case)
        session.flush()

    def save(self, session: Session, case: CollectionCase) -> CollectionCase:
        """Flush edits to an existing case."""
        case.touch()
        session.add(case)
        session.flush()
        return case

    def delete(self, session: Session, case: CollectionCase) -> None:
        """Delete a case; its payments and actions go with it."""
        session.delete(case)
        session.flush()

    def next_reference(self, session: Session, prefix: str) -> str:
        """Return ``<prefix>-NNN`` one past the highest existing sequence number."""
        pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
        statement = select(CollectionCase.reference).where(
            CollectionCase.reference.like(f"{prefix}-%")  # type: ignore[attr-defined]
        )
        highest = 0
        for reference in session.exec(statement).all():
            match = pattern.match(reference)
            if match:
                highest = max(highest, int(match.group(1)))
        return f"{prefix}-{highest + 1:03d}"

    def search(
        self,
        session: Session,
        *,
        status: Optional[CaseStatus] = None,
        text: Optional[str] = None,
    ) -> list[CollectionCase]:
        """Filter cases by status and free text, newest first."""
        statement = select(CollectionCase)
        if status is not None:
            statement = statement.where(CollectionCase.status == status)
        if text:
            needle = f"%{text.strip()}%"
            statement = statement.where(
                or_(
                    CollectionCase.reference.ilike(needle),  # type: ignore[attr-defined]
                    CollectionCase.creditor_name.ilike(needle),  # type: ignore[attr-defined]
                    CollectionCase.debtor_name.ilike(needle),  # type: ignore[attr-defined]
                )
            )
        statement = statement.order_by(CollectionCase.created_at.desc())  # type: ignore[attr-defined]
        return list(session.exec(statement).all())

    def count_by_status(self, session: Session) -> dict[CaseStatus, int]:
        """Count cases per status, including zero counts."""
        counts = {status: 0 for status in CaseStatus}
        statement = select(CollectionCase.status, func.count(CollectionCase.id)).group_by(
            CollectionCase.status
        )
        for status, count in session.exec(statement).all():
            counts[CaseStatus(status)] = int(count)
        return counts

    def total_owed(self, session: Session) -> Decimal:
        """Sum of total owed across every case."""
        value = session.exec(select(func.sum(CollectionCase.total_owed))).one()
        return to_money(value)
