"""Payment routes."""

from __future__ import annotations

from flask import jsonify, request

from ...errors import ValidationError
from ...extensions import get_ledger, session_scope
from ...services import payments as payment_service
from ..fields import parse_date
from . import bp
from .forms import PaymentUpdateForm


def _date_arg(name: str):
    try:
        return parse_date(request.args.get(name))
    except ValueError as exc:
        raise ValidationError(str(exc), {name: ["Enter a date as YYYY-MM-DD."]}) from exc


def _filters() -> dict:
    return {
        "case_id": request.args.get("case_id") or None,
        "start": _date_arg("start"),
        "end": _date_arg("end"),
    }


@bp.get("")
def list_payments():
    """List payments filtered by case, date range and free text."""

    with session_scope() as session:
        rows = payment_service.list_payments(
            session, search=request.args.get("search") or None, **_filters()
        )
        data = [
            payment_service.payment_to_dict(row, case_reference=row.case.reference)
            for row in rows
        ]
    return jsonify({"data": data, "total": len(data)})


@bp.get("/stats")
def payment_stats():
    """Totals, last payment date and per-mode split."""

    with session_scope() as session:
        stats = payment_service.payment_statistics(
            session, search=request.args.get("search") or None, **_filters()
        )
    return jsonify(stats.to_dict())


@bp.get("/<payment_id>")
def get_payment(payment_id: str):
    with session_scope() as session:
        payment = payment_service.get_payment(session, payment_id)
        body = payment_service.payment_to_dict(payment, case_reference=payment.case.reference)
    return jsonify(body)


@bp.patch("/<payment_id>")
def update_payment(payment_id: str):
    """Edit a payment; the case balance is re-checked and its status recomputed."""

    changes = PaymentUpdateForm(data=request.get_json(silent=True) or {}).to_changes()
    payment = get_ledger().update_payment(payment_id, changes)
    return jsonify(payment_service.payment_to_dict(payment))


@bp.delete("/<payment_id>")
def delete_payment(payment_id: str):
    status = get_ledger().delete_payment(payment_id)
    return jsonify({"deleted": payment_id, "case_status": status.value})
