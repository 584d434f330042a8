"""Collection case repository protocol."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol, runtime_checkable

from sqlmodel import Session

from ...models.case import CaseStatus, CollectionCase


@runtime_checkable
class CaseRepository(Protocol):
    """Case store. Every call runs inside the caller's transaction."""

    def get_by_id(
        self, session: Session, case_id: str, *, for_update: bool = False
    ) -> Optional[CollectionCase]:
        """Retrieve a case by ID, optionally row-locking it."""
        ...

    def add(self, session: Session, case: CollectionCase) -> CollectionCase:
        """Stage a new case and flush it so its defaults are populated."""
        ...

    def update_status(self, session: Session, case: CollectionCase, status: CaseStatus) -> None:
        """Set the case status."""
        ...

    def save(self, session: Session, case: CollectionCase) -> CollectionCase:
        """Persist edits to an existing case."""
        ...

    def delete(self, session: Session, case: CollectionCase) -> None:
        """Delete a case together with its dependent rows."""
        ...

    def next_reference(self, session: Session, prefix: str) -> str:
        """Return the next free sequential reference for *prefix*."""
        ...

    def search(
        self,
        session: Session,
        *,
        status: Optional[CaseStatus] = None,
        text: Optional[str] = None,
    ) -> list[CollectionCase]:
        """Filter cases by status and free text, newest first."""
        ...

    def count_by_status(self, session: Session) -> dict[CaseStatus, int]:
        """Count cases per status."""
        ...

    def total_owed(self, session: Session) -> Decimal:
        """Sum of total owed across every case."""
        ...
