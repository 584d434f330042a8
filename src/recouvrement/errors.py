"""Error taxonomy shared by services and the HTTP layer."""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional


class RecouvrementError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    code = "error"

    def to_dict(self) -> dict:
        return {"error": self.code, "message": str(self)}


class NotFoundError(RecouvrementError):
    """A referenced case or payment does not exist. Not transient."""

    status_code = 404
    code = "not_found"

    def __init__(self, kind: str, identifier: object):
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class ValidationError(RecouvrementError):
    """Input rejected before anything was written."""

    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.errors = errors or {}

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class OverpaymentError(ValidationError):
    """A payment would push the case above its total owed."""

    code = "overpayment"

    def __init__(self, attempted_amount: Decimal, remaining_balance: Decimal):
        super().__init__(
            f"payment amount {attempted_amount} exceeds remaining balance {remaining_balance}",
            {"amount": [f"Amount exceeds the remaining balance of {remaining_balance}."]},
        )
        self.attempted_amount = attempted_amount
        self.remaining_balance = remaining_balance

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["attempted_amount"] = str(self.attempted_amount)
        payload["remaining_balance"] = str(self.remaining_balance)
        return payload


class StorageError(RecouvrementError):
    """The transactional write failed; nothing was persisted and a retry is safe."""

    status_code = 503
    code = "storage_error"
