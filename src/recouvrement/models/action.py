"""Collection actions (calls, letters, legal steps) logged against a case."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

from .case import _utcnow, new_id

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .case import CollectionCase


class ActionType(str, Enum):
    """Kind of step taken to recover the debt."""

    PHONE_CALL = "PHONE_CALL"
    LETTER = "LETTER"
    REMINDER_LETTER = "REMINDER_LETTER"
    FORMAL_NOTICE = "FORMAL_NOTICE"
    PAYMENT_ORDER = "PAYMENT_ORDER"
    SUMMONS = "SUMMONS"
    PETITION = "PETITION"
    HEARING = "HEARING"
    OTHER = "OTHER"


class CollectionAction(SQLModel, table=True):
    """One dated entry in a case's activity log."""

    __tablename__: ClassVar[str] = "collection_action"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    case_id: str = Field(foreign_key="collection_case.id", nullable=False, index=True)
    action_date: date = Field(nullable=False, index=True)
    action_type: ActionType = Field(nullable=False, index=True)
    summary: str = Field(nullable=False)
    next_step: Optional[str] = Field(default=None, max_length=255)
    next_step_due: Optional[date] = Field(default=None, index=True)
    attachment: Optional[str] = Field(default=None, max_length=255)

    created_by: str = Field(nullable=False, max_length=64)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)

    case: "CollectionCase" = Relationship(
        back_populates="actions",
        sa_relationship=relationship("CollectionCase", back_populates="actions"),
    )
