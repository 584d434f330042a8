"""Collection action repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from sqlmodel import Session

from ...models.action import CollectionAction


@runtime_checkable
class ActionRepository(Protocol):
    """Action log store. Every call runs inside the caller's transaction."""

    def get_by_id(self, session: Session, action_id: str) -> Optional[CollectionAction]:
        """Retrieve an action by ID."""
        ...

    def list_all(self, session: Session, *, case_id: Optional[str] = None) -> list[CollectionAction]:
        """Actions, most recent first, optionally for one case."""
        ...

    def insert(self, session: Session, action: CollectionAction) -> CollectionAction:
        """Stage an action and flush it."""
        ...

    def save(self, session: Session, action: CollectionAction) -> CollectionAction:
        """Persist edits to an existing action."""
        ...

    def delete(self, session: Session, action: CollectionAction) -> None:
        """Remove an action."""
        ...
