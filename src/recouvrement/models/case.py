"""Collection case (dossier de recouvrement) entity."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional
from uuid import uuid4

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .action import CollectionAction
    from .payment import Payment


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class CaseStatus(str, Enum):
    """Lifecycle of a collection case. CLOSED is terminal for payment intake."""

    IN_PROGRESS = "IN_PROGRESS"
    CLOSED = "CLOSED"


class CollectionCase(SQLModel, table=True):
    """One debtor's obligation to one creditor."""

    __tablename__: ClassVar[str] = "collection_case"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    reference: str = Field(nullable=False, unique=True, index=True, max_length=32)

    creditor_name: str = Field(nullable=False, max_length=160, index=True)
    creditor_phone: Optional[str] = Field(default=None, max_length=40)
    creditor_email: Optional[str] = Field(default=None, max_length=160)

    debtor_name: str = Field(nullable=False, max_length=160, index=True)
    debtor_phone: Optional[str] = Field(default=None, max_length=40)
    debtor_email: Optional[str] = Field(default=None, max_length=160)
    debtor_address: Optional[str] = Field(default=None, max_length=255)

    principal_amount: Decimal = Field(nullable=False, max_digits=14, decimal_places=2)
    penalties_interest: Decimal = Field(
        default=Decimal("0"), nullable=False, max_digits=14, decimal_places=2
    )
    total_owed: Decimal = Field(
        nullable=False,
        max_digits=14,
        decimal_places=2,
        description="Principal plus penalties; recomputed whenever either is edited",
    )
    status: CaseStatus = Field(default=CaseStatus.IN_PROGRESS, nullable=False, index=True)
    notes: Optional[str] = Field(default=None)

    created_by: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=_utcnow, nullable=False)

    payments: list["Payment"] = Relationship(
        back_populates="case",
        sa_relationship=relationship(
            "Payment", back_populates="case", cascade="all, delete-orphan"
        ),
    )
    actions: list["CollectionAction"] = Relationship(
        back_populates="case",
        sa_relationship=relationship(
            "CollectionAction", back_populates="case", cascade="all, delete-orphan"
        ),
    )

    def touch(self) -> None:
        self.updated_at = _utcnow()
