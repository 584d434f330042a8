"""Field parsing shared by the JSON payload forms."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from ..errors import ValidationError
from ..money import MAX_AMOUNT, fits_column, to_money

DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y")

E = TypeVar("E", bound=Enum)


def parse_date(value: Any) -> Optional[date]:
    """Parse ISO (``2026-02-24``) or day-first (``24/02/2026``) dates."""

    if isinstance(value, date):
        return value
    if not value or not str(value).strip():
        return None
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"invalid date: {value!r}")


def parse_text(value: Any) -> Optional[str]:
    """Accept strings and plain numbers (cheque or phone numbers) as text."""

    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return str(value)
    raise ValueError(f"expected text, got {type(value).__name__}")


@dataclass
class FormBase:
    """Collects per-field error messages while parsing a payload."""

    errors: Dict[str, List[str]] = field(default_factory=dict, init=False)

    def _error(self, name: str, message: str) -> None:
        self.errors.setdefault(name, []).append(message)

    def _parse_amount(
        self, name: str, value: Any, *, required: bool = True, allow_zero: bool = False
    ) -> Decimal | None:
        if value is None or value == "":
            if required:
                self._error(name, "This field is required.")
            return None
        if isinstance(value, bool):
            self._error(name, "Enter a valid number.")
            return None
        try:
            amount = to_money(value)
        except ValueError:
            self._error(name, "Enter a valid number.")
            return None
        if amount < 0 or (amount == 0 and not allow_zero):
            self._error(
                name,
                "Amount must be at least zero." if allow_zero else "Amount must be greater than zero.",
            )
        elif not fits_column(amount):
            self._error(name, f"Amount must not exceed {MAX_AMOUNT}.")
        return amount

    def _parse_date(self, name: str, value: Any, *, required: bool) -> date | None:
        try:
            parsed = parse_date(value)
        except ValueError:
            self._error(name, "Enter a date as YYYY-MM-DD.")
            return None
        if parsed is None and required:
            self._error(name, "This field is required.")
        return parsed

    def _parse_text(self, name: str, value: Any) -> Optional[str]:
        try:
            return parse_text(value)
        except ValueError:
            self._error(name, "Enter text.")
            return None

    def _parse_choice(
        self, name: str, value: Any, choices: Type[E], aliases: Mapping[str, str]
    ) -> E | None:
        normalized = str(value or "").strip().upper()
        normalized = aliases.get(normalized, normalized)
        try:
            return choices(normalized)
        except ValueError:
            allowed = ", ".join(choice.value for choice in choices)
            self._error(name, f"Choose one of: {allowed}.")
            return None

    def raise_for_errors(self, message: str) -> None:
        if self.errors:
            raise ValidationError(message, dict(self.errors))


__all__ = ["DATE_FORMATS", "FormBase", "parse_date", "parse_text"]
