"""Collection case routes."""

from __future__ import annotations

from flask import jsonify, request

from ...extensions import current_actor, get_ledger, session_scope
from ...services import actions as action_service
from ...services import cases as case_service
from ..payments.forms import PaymentForm
from . import bp
from .forms import case_changes_from, case_request_from, parse_status


@bp.get("")
def list_cases():
    """List cases, newest first, filtered by status and free text."""

    status = parse_status(request.args.get("status"))
    with session_scope() as session:
        rows = case_service.list_cases(
            session, status=status, search=request.args.get("search") or None
        )
        data = [case_service.case_to_dict(row) for row in rows]
    return jsonify({"data": data, "total": len(data)})


@bp.post("")
def create_case():
    """Open a case; the reference and total owed are computed server-side."""

    case_request = case_request_from(request.get_json(silent=True) or {})
    case = get_ledger().create_case(case_request, actor_id=current_actor())
    return jsonify(case_service.case_to_dict(case)), 201


@bp.get("/stats")
def case_stats():
    with session_scope() as session:
        stats = case_service.case_statistics(session)
    return jsonify(stats.to_dict())


@bp.get("/<case_id>")
def get_case(case_id: str):
    """Case details with its current balance."""

    with session_scope() as session:
        case = case_service.get_case(session, case_id)
        body = case_service.case_to_dict(case)
        body["balance"] = case_service.summarize_case(session, case_id).to_dict()
    return jsonify(body)


@bp.patch("/<case_id>")
def update_case(case_id: str):
    """Edit a case; a changed total re-settles its status against the payments."""

    changes = case_changes_from(request.get_json(silent=True) or {})
    case = get_ledger().update_case(case_id, changes)
    return jsonify(case_service.case_to_dict(case))


@bp.delete("/<case_id>")
def delete_case(case_id: str):
    get_ledger().delete_case(case_id)
    return jsonify({"deleted": case_id})


@bp.get("/<case_id>/actions")
def list_case_actions(case_id: str):
    with session_scope() as session:
        rows = action_service.list_actions(session, case_id=case_id)
        data = [action_service.action_to_dict(row) for row in rows]
    return jsonify({"data": data, "total": len(data)})


@bp.post("/<case_id>/payments")
def record_payment(case_id: str):
    """Record a payment against the case balance."""

    payment_request = PaymentForm.from_mapping(request.get_json(silent=True) or {}).to_request(
        case_id
    )
    receipt = get_ledger().record_payment(payment_request, actor_id=current_actor())
    message = "Payment recorded. Case closed." if receipt.closed else "Payment recorded."
    return jsonify({"data": receipt.to_dict(), "message": message}), 201
