"""Payment payload parsing and validation helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ...models.payment import PaymentMode
from ...services.payments import PaymentChanges
from ...services.reconciliation import PaymentRequest
from ..fields import FormBase

# Codes used on French-language receipts and exports.
MODE_ALIASES: Dict[str, str] = {
    "VIREMENT": PaymentMode.TRANSFER.value,
    "CHEQUE": PaymentMode.CHECK.value,
    "OM": PaymentMode.ORANGE_MONEY.value,
}


@dataclass
class PaymentForm(FormBase):
    """Inputs for a new payment and associated validation errors."""

    amount: Any = None
    date: Any = None
    mode: Any = None
    reference: Optional[Any] = None
    comment: Optional[Any] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PaymentForm":
        return cls(
            amount=data.get("amount"),
            date=data.get("date"),
            mode=data.get("mode"),
            reference=data.get("reference"),
            comment=data.get("comment"),
        )

    def validate(self) -> bool:
        """Validate inputs, returning True when everything is acceptable."""

        self.errors.clear()
        self.amount = self._parse_amount("amount", self.amount)
        self.date = self._parse_date("date", self.date, required=True)
        self.mode = self._parse_choice("mode", self.mode, PaymentMode, MODE_ALIASES)
        self.reference = self._parse_text("reference", self.reference)
        self.comment = self._parse_text("comment", self.comment)
        return not self.errors

    def to_request(self, case_id: str) -> PaymentRequest:
        if not self.validate():
            self.raise_for_errors("invalid payment")
        return PaymentRequest(
            case_id=case_id,
            amount=self.amount,
            paid_on=self.date,
            mode=self.mode,
            reference=self.reference,
            comment=self.comment,
        )


@dataclass
class PaymentUpdateForm(FormBase):
    """Partial payment edit; only keys present in the payload are validated."""

    data: Mapping[str, Any] = field(default_factory=dict)

    def to_changes(self) -> PaymentChanges:
        self.errors.clear()
        changes = PaymentChanges()
        if "amount" in self.data:
            changes.amount = self._parse_amount("amount", self.data["amount"])
        if "date" in self.data:
            changes.paid_on = self._parse_date("date", self.data["date"], required=True)
        if "mode" in self.data:
            changes.mode = self._parse_choice("mode", self.data["mode"], PaymentMode, MODE_ALIASES)
        if "reference" in self.data:
            changes.reference = self._parse_text("reference", self.data["reference"])
        if "comment" in self.data:
            changes.comment = self._parse_text("comment", self.data["comment"])
        if not changes.provided() and not self.errors:
            self._error("payload", "Provide at least one field to update.")
        self.raise_for_errors("invalid payment")
        return changes
