"""SQLModel implementation of the action log repository."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Session, select

from ...models.action import CollectionAction


class SQLModelActionRepository:
    """SQLModel-based action repository bound to caller-supplied sessions."""

    def get_by_id(self, session: Session, action_id: str) -> Optional[CollectionAction]:
        statement = select(CollectionAction).where(CollectionAction.id == action_id)
        return session.exec(statement).first()

    def list_all(self, session: Session, *, case_id: Optional[str] = None) -> list[CollectionAction]:
        """Actions ordered by action date, most recent first."""
        statement = select(CollectionAction)
        if case_id:
            statement = statement.where(CollectionAction.case_id == case_id)
        statement = statement.order_by(
            CollectionAction.action_date.desc(),  # type: ignore[attr-defined]
            CollectionAction.created_at.desc(),  # type: ignore[attr-defined]
        )
        return list(session.exec(statement).all())

    def insert(self, session: Session, action: CollectionAction) -> CollectionAction:
        session.add(action)
        session.flush()
        return action

    def save(self, session: Session, action: CollectionAction) -> CollectionAction:
        session.add(action)
        session.flush()
        return action

    def delete(self, session: Session, action: CollectionAction) -> None:
        session.delete(action)
        session.flush()
