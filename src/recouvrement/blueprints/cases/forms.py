"""Case payload parsing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ...errors import ValidationError
from ...models.case import CaseStatus
from ...money import ZERO
from ...services.cases import CaseChanges, CaseRequest
from ..fields import FormBase

_NAME_FIELDS = ("creditor_name", "debtor_name")
_TEXT_FIELDS = (
    "creditor_phone",
    "creditor_email",
    "debtor_phone",
    "debtor_email",
    "debtor_address",
    "notes",
)
_AMOUNT_FIELDS = ("principal_amount", "penalties_interest")


@dataclass
class CaseForm(FormBase):
    """Case payload; text is coerced here, amount checks happen in the service."""

    data: Mapping[str, Any] = field(default_factory=dict)

    def to_request(self) -> CaseRequest:
        self.errors.clear()
        names = {name: self._parse_text(name, self.data.get(name)) for name in _NAME_FIELDS}
        extras = {name: self._parse_text(name, self.data.get(name)) for name in _TEXT_FIELDS}
        self.raise_for_errors("invalid case")
        penalties = self.data.get("penalties_interest")
        return CaseRequest(
            creditor_name=names["creditor_name"] or "",
            debtor_name=names["debtor_name"] or "",
            principal_amount=self.data.get("principal_amount"),  # type: ignore[arg-type]
            penalties_interest=ZERO if penalties in (None, "") else penalties,
            **extras,
        )

    def to_changes(self) -> CaseChanges:
        self.errors.clear()
        changes = CaseChanges()
        if "status" in self.data:
            self._error("status", "The status follows the payments and cannot be set.")
        for name in _NAME_FIELDS:
            if name in self.data:
                setattr(changes, name, self._parse_text(name, self.data[name]) or "")
        for name in _TEXT_FIELDS:
            if name in self.data:
                setattr(changes, name, self._parse_text(name, self.data[name]))
        for name in _AMOUNT_FIELDS:
            if name in self.data:
                value = self.data[name]
                if name == "penalties_interest" and value in (None, ""):
                    value = ZERO
                setattr(changes, name, value)
        if not changes.provided() and not self.errors:
            self._error("payload", "Provide at least one field to update.")
        self.raise_for_errors("invalid case")
        return changes


def case_request_from(data: Mapping[str, Any]) -> CaseRequest:
    return CaseForm(data=data).to_request()


def case_changes_from(data: Mapping[str, Any]) -> CaseChanges:
    return CaseForm(data=data).to_changes()


def parse_status(value: str | None) -> CaseStatus | None:
    if not value:
        return None
    try:
        return CaseStatus(value.strip().upper())
    except ValueError as exc:
        choices = ", ".join(status.value for status in CaseStatus)
        raise ValidationError(
            f"unknown status {value!r}", {"status": [f"Choose one of: {choices}."]}
        ) from exc


__all__ = ["CaseForm", "case_changes_from", "case_request_from", "parse_status"]
