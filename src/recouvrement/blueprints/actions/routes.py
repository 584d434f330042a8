"""Collection action routes."""

from __future__ import annotations

from flask import jsonify, request

from ...extensions import current_actor, session_scope
from ...services import actions as action_service
from . import bp
from .forms import ActionForm


@bp.get("")
def list_actions():
    """Every logged action, most recent first."""

    with session_scope() as session:
        rows = action_service.list_actions(session, case_id=request.args.get("case_id") or None)
        data = [
            action_service.action_to_dict(row, case_reference=row.case.reference) for row in rows
        ]
    return jsonify({"data": data, "total": len(data)})


@bp.post("")
def create_action():
    payload = request.get_json(silent=True) or {}
    action_request = ActionForm(data=payload).to_request(payload.get("case_id"))
    with session_scope() as session:
        action = action_service.create_action(session, action_request, actor_id=current_actor())
        body = action_service.action_to_dict(action, case_reference=action.case.reference)
    return jsonify(body), 201


@bp.get("/<action_id>")
def get_action(action_id: str):
    with session_scope() as session:
        action = action_service.get_action(session, action_id)
        body = action_service.action_to_dict(action, case_reference=action.case.reference)
    return jsonify(body)


@bp.patch("/<action_id>")
def update_action(action_id: str):
    changes = ActionForm(data=request.get_json(silent=True) or {}).to_changes()
    with session_scope() as session:
        action = action_service.update_action(session, action_id, changes)
        body = action_service.action_to_dict(action, case_reference=action.case.reference)
    return jsonify(body)


@bp.delete("/<action_id>")
def delete_action(action_id: str):
    with session_scope() as session:
        action_service.delete_action(session, action_id)
    return jsonify({"deleted": action_id})
