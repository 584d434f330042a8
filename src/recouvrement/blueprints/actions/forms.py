"""Action payload parsing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from ...models.action import ActionType
from ...services.actions import ActionChanges, ActionRequest
from ..fields import FormBase

# Codes used in French-language case files.
TYPE_ALIASES: Dict[str, str] = {
    "APPEL_TELEPHONIQUE": ActionType.PHONE_CALL.value,
    "COURRIER": ActionType.LETTER.value,
    "LETTRE_RELANCE": ActionType.REMINDER_LETTER.value,
    "MISE_DEMEURE": ActionType.FORMAL_NOTICE.value,
    "MISE_EN_DEMEURE": ActionType.FORMAL_NOTICE.value,
    "COMMANDEMENT_PAYER": ActionType.PAYMENT_ORDER.value,
    "ASSIGNATION": ActionType.SUMMONS.value,
    "REQUETE": ActionType.PETITION.value,
    "AUDIENCE_PROCEDURE": ActionType.HEARING.value,
    "AUTRE": ActionType.OTHER.value,
}


@dataclass
class ActionForm(FormBase):
    """Action payload; ``to_request`` needs every required key, ``to_changes`` only those sent."""

    data: Mapping[str, Any] = field(default_factory=dict)

    def _summary(self) -> str | None:
        summary = self._parse_text("summary", self.data.get("summary"))
        if "summary" not in self.errors and not (summary or "").strip():
            self._error("summary", "Describe the action taken.")
        return summary

    def to_request(self, case_id: Any) -> ActionRequest:
        self.errors.clear()
        case_ref = self._parse_text("case_id", case_id)
        if "case_id" not in self.errors and not case_ref:
            self._error("case_id", "This field is required.")
        action_date = self._parse_date("date", self.data.get("date"), required=True)
        action_type = self._parse_choice(
            "action_type", self.data.get("action_type"), ActionType, TYPE_ALIASES
        )
        summary = self._summary()
        next_step = self._parse_text("next_step", self.data.get("next_step"))
        next_step_due = self._parse_date(
            "next_step_due", self.data.get("next_step_due"), required=False
        )
        attachment = self._parse_text("attachment", self.data.get("attachment"))
        self.raise_for_errors("invalid action")
        return ActionRequest(
            case_id=case_ref,  # type: ignore[arg-type]
            action_date=action_date,  # type: ignore[arg-type]
            action_type=action_type,  # type: ignore[arg-type]
            summary=summary,  # type: ignore[arg-type]
            next_step=next_step,
            next_step_due=next_step_due,
            attachment=attachment,
        )

    def to_changes(self) -> ActionChanges:
        self.errors.clear()
        changes = ActionChanges()
        if "date" in self.data:
            changes.action_date = self._parse_date("date", self.data["date"], required=True)
        if "action_type" in self.data:
            changes.action_type = self._parse_choice(
                "action_type", self.data["action_type"], ActionType, TYPE_ALIASES
            )
        if "summary" in self.data:
            changes.summary = self._summary()
        if "next_step" in self.data:
            changes.next_step = self._parse_text("next_step", self.data["next_step"])
        if "next_step_due" in self.data:
            changes.next_step_due = self._parse_date(
                "next_step_due", self.data["next_step_due"], required=False
            )
        if "attachment" in self.data:
            changes.attachment = self._parse_text("attachment", self.data["attachment"])
        if not changes.provided() and not self.errors:
            self._error("payload", "Provide at least one field to update.")
        self.raise_for_errors("invalid action")
        return changes


__all__ = ["ActionForm", "TYPE_ALIASES"]
