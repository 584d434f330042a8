"""Collection action log: calls, letters and legal steps taken on a case.

Actions never touch the case balance, so they are written through a plain
``session_scope`` rather than the payment ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlmodel import Session

from ..domain.repositories import ActionRepository, CaseRepository
from ..errors import NotFoundError, ValidationError
from ..infra.repositories import SQLModelActionRepository, SQLModelCaseRepository
from ..logging_config import get_logger
from ..models.action import ActionType, CollectionAction
from .reconciliation import clean_text

logger = get_logger("actions")

_UNSET = object()


@dataclass(frozen=True)
class ActionRequest:
    """Inputs for logging a new action against a case."""

    case_id: str
    action_date: date
    action_type: ActionType
    summary: str
    next_step: Optional[str] = None
    next_step_due: Optional[date] = None
    attachment: Optional[str] = None


@dataclass
class ActionChanges:
    """Partial update for an action; fields left as ``_UNSET`` are untouched."""

    action_date: object = _UNSET
    action_type: object = _UNSET
    summary: object = _UNSET
    next_step: object = _UNSET
    next_step_due: object = _UNSET
    attachment: object = _UNSET

    def provided(self) -> dict:
        return {name: value for name, value in vars(self).items() if value is not _UNSET}


def action_to_dict(action: CollectionAction, *, case_reference: Optional[str] = None) -> dict:
    return {
        "id": action.id,
        "case_id": action.case_id,
        "case_reference": case_reference,
        "date": action.action_date.isoformat(),
        "action_type": ActionType(action.action_type).value,
        "summary": action.summary,
        "next_step": action.next_step,
        "next_step_due": action.next_step_due.isoformat() if action.next_step_due else None,
        "attachment": action.attachment,
        "created_by": action.created_by,
        "created_at": action.created_at.isoformat(),
    }


def _require_summary(value: object) -> str:
    summary = clean_text(value) if isinstance(value, str) else None
    if not summary:
        raise ValidationError("invalid action", {"summary": ["Describe the action taken."]})
    return summary


def create_action(
    session: Session,
    request: ActionRequest,
    *,
    actor_id: str,
    cases: CaseRepository | None = None,
    actions: ActionRepository | None = None,
) -> CollectionAction:
    """Log an action on an existing case."""

    cases = cases or SQLModelCaseRepository()
    actions = actions or SQLModelActionRepository()
    summary = _require_summary(request.summary)
    case = cases.get_by_id(session, request.case_id)
    if case is None:
        raise NotFoundError("case", request.case_id)

    action = actions.insert(
        session,
        CollectionAction(
            case_id=case.id,
            action_date=request.action_date,
            action_type=ActionType(request.action_type),
            summary=summary,
            next_step=clean_text(request.next_step),
            next_step_due=request.next_step_due,
            attachment=clean_text(request.attachment),
            created_by=actor_id,
        ),
    )
    logger.info(
        "Action logged",
        extra={
            "case_id": case.id,
            "action_id": action.id,
            "action_type": action.action_type.value,
            "actor_id": actor_id,
        },
    )
    return action


def get_action(
    session: Session, action_id: str, *, actions: ActionRepository | None = None
) -> CollectionAction:
    actions = actions or SQLModelActionRepository()
    action = actions.get_by_id(session, action_id)
    if action is None:
        raise NotFoundError("action", action_id)
    return action


def list_actions(
    session: Session,
    *,
    case_id: Optional[str] = None,
    cases: CaseRepository | None = None,
    actions: ActionRepository | None = None,
) -> list[CollectionAction]:
    """Actions, most recent first; a case filter must name an existing case."""

    actions = actions or SQLModelActionRepository()
    if case_id is not None:
        cases = cases or SQLModelCaseRepository()
        if cases.get_by_id(session, case_id) is None:
            raise NotFoundError("case", case_id)
    return actions.list_all(session, case_id=case_id)


def update_action(
    session: Session,
    action_id: str,
    changes: ActionChanges,
    *,
    actions: ActionRepository | None = None,
) -> CollectionAction:
    actions = actions or SQLModelActionRepository()
    action = get_action(session, action_id, actions=actions)
    provided = changes.provided()
    if "summary" in provided:
        action.summary = _require_summary(provided["summary"])
    if "action_date" in provided:
        action.action_date = provided["action_date"]
    if "action_type" in provided:
        action.action_type = ActionType(provided["action_type"])
    if "next_step" in provided:
        action.next_step = clean_text(provided["next_step"])
    if "next_step_due" in provided:
        action.next_step_due = provided["next_step_due"]
    if "attachment" in provided:
        action.attachment = clean_text(provided["attachment"])
    actions.save(session, action)
    logger.info("Action updated", extra={"action_id": action.id, "fields": sorted(provided)})
    return action


def delete_action(
    session: Session, action_id: str, *, actions: ActionRepository | None = None
) -> None:
    actions = actions or SQLModelActionRepository()
    action = get_action(session, action_id, actions=actions)
    case_id = action.case_id
    actions.delete(session, action)
    logger.info("Action deleted", extra={"action_id": action_id, "case_id": case_id})
