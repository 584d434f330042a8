"""SQLModel definitions for payments received on a collection case."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

from .case import _utcnow, new_id

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .case import CollectionCase


class PaymentMode(str, Enum):
    """Channel the payment came through. Opaque to reconciliation."""

    CASH = "CASH"
    TRANSFER = "TRANSFER"
    CHECK = "CHECK"
    WAVE = "WAVE"
    ORANGE_MONEY = "ORANGE_MONEY"


class Payment(SQLModel, table=True):
    """A single payment applied against a case balance."""

    __tablename__: ClassVar[str] = "payment"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    case_id: str = Field(foreign_key="collection_case.id", nullable=False, index=True)
    amount: Decimal = Field(nullable=False, max_digits=14, decimal_places=2)
    paid_on: date = Field(nullable=False, index=True)
    mode: PaymentMode = Field(nullable=False, index=True)
    reference: Optional[str] = Field(default=None, max_length=128)
    comment: Optional[str] = Field(default=None, max_length=500)

    created_by: str = Field(nullable=False, max_length=64)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)

    case: "CollectionCase" = Relationship(
        back_populates="payments",
        sa_relationship=relationship("CollectionCase", back_populates="payments"),
    )
