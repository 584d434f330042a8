"""HTTP surface for cases and payments."""

from __future__ import annotations

import threading
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from recouvrement.extensions import EXTENSION_KEY, session_scope
from recouvrement.models import CollectionCase, Payment
from recouvrement.services import cases as case_service


def _open_case(client, **overrides) -> dict:
    payload = {
        "creditor_name": "Banque Atlantique",
        "debtor_name": "Moussa Diop",
        "principal_amount": "90000",
        "penalties_interest": "10000",
    }
    payload.update(overrides)
    response = client.post("/cases", json=payload, headers={"X-Actor-Id": "agent-9"})
    assert response.status_code == 201
    return response.get_json()


def _pay(client, case_id: str, amount: str, **overrides):
    payload = {"amount": amount, "date": "2026-02-24", "mode": "CASH"}
    payload.update(overrides)
    return client.post(f"/cases/{case_id}/payments", json=payload)


def test_create_and_fetch_case(client):
    created = _open_case(client)

    assert created["reference"] == "DOS-REC-001"
    assert created["total_owed"] == "100000.00"
    assert created["created_by"] == "agent-9"

    response = client.get(f"/cases/{created['id']}")
    body = response.get_json()
    assert response.status_code == 200
    assert body["balance"]["remaining_balance"] == "100000.00"
    assert body["balance"]["payment_count"] == 0


def test_create_case_validation_errors(client):
    response = client.post("/cases", json={"creditor_name": "", "principal_amount": "x"})

    body = response.get_json()
    assert response.status_code == 400
    assert body["error"] == "validation_error"
    assert {"creditor_name", "debtor_name", "principal_amount"} <= set(body["errors"])


def test_record_payment_flow(client):
    case = _open_case(client)

    first = _pay(client, case["id"], "40000", mode="virement")
    assert first.status_code == 201
    assert first.get_json()["data"]["remaining_balance"] == "60000.00"
    assert first.get_json()["data"]["case_status"] == "IN_PROGRESS"

    second = _pay(client, case["id"], "60000", date="25/02/2026")
    body = second.get_json()
    assert second.status_code == 201
    assert body["data"]["case_status"] == "CLOSED"
    assert body["data"]["date"] == "2026-02-25"
    assert body["message"] == "Payment recorded. Case closed."


def test_overpayment_returns_remaining_balance(client):
    case = _open_case(client, principal_amount="1000", penalties_interest="0")
    _pay(client, case["id"], "900")

    response = _pay(client, case["id"], "150")

    body = response.get_json()
    assert response.status_code == 400
    assert body["error"] == "overpayment"
    assert body["remaining_balance"] == "100.00"
    assert body["attempted_amount"] == "150.00"


def test_payment_form_errors(client):
    case = _open_case(client)

    response = client.post(
        f"/cases/{case['id']}/payments", json={"amount": "-5", "date": "tomorrow", "mode": "BTC"}
    )

    body = response.get_json()
    assert response.status_code == 400
    assert set(body["errors"]) == {"amount", "date", "mode"}


def test_payment_on_unknown_case(client):
    response = _pay(client, "does-not-exist", "1000")

    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"


def test_list_and_stats(client):
    first = _open_case(client)
    second = _open_case(client, debtor_name="Awa Ndiaye")
    _pay(client, first["id"], "100000")
    _pay(client, second["id"], "25000", mode="WAVE")

    closed = client.get("/cases?status=closed").get_json()
    assert [row["id"] for row in closed["data"]] == [first["id"]]

    found = client.get("/cases?search=awa").get_json()
    assert found["total"] == 1

    stats = client.get("/cases/stats").get_json()
    assert stats["total_cases"] == 2
    assert stats["closed"] == 1
    assert stats["total_recovered"] == "125000.00"
    assert stats["recovery_rate"] == 63

    payments = client.get(f"/payments?case_id={second['id']}").get_json()
    assert payments["total"] == 1
    assert payments["data"][0]["case_reference"] == second["reference"]

    payment_stats = client.get("/payments/stats").get_json()
    assert payment_stats["payment_count"] == 2
    assert {row["mode"] for row in payment_stats["by_mode"]} == {"CASH", "WAVE"}


def test_list_cases_rejects_unknown_status(client):
    response = client.get("/cases?status=ARCHIVED")

    assert response.status_code == 400
    assert "status" in response.get_json()["errors"]


def test_payments_rejects_bad_date_filter(client):
    response = client.get("/payments?start=yesterday")

    assert response.status_code == 400
    assert "start" in response.get_json()["errors"]


def test_edit_and_delete_payment_recompute_status(client, app):
    case = _open_case(client, principal_amount="500", penalties_interest="0")
    receipt = _pay(client, case["id"], "500").get_json()["data"]
    assert receipt["case_status"] == "CLOSED"

    edited = client.patch(f"/payments/{receipt['payment_id']}", json={"amount": "200"})
    assert edited.status_code == 200
    assert edited.get_json()["amount"] == "200.00"
    assert client.get(f"/cases/{case['id']}").get_json()["status"] == "IN_PROGRESS"

    too_much = client.patch(f"/payments/{receipt['payment_id']}", json={"amount": "501"})
    assert too_much.status_code == 400

    deleted = client.delete(f"/payments/{receipt['payment_id']}")
    assert deleted.get_json() == {"deleted": receipt["payment_id"], "case_status": "IN_PROGRESS"}
    with app.app_context():
        with session_scope() as session:
            assert session.get(Payment, receipt["payment_id"]) is None


def test_patch_requires_a_field(client):
    case = _open_case(client)
    receipt = _pay(client, case["id"], "10").get_json()["data"]

    response = client.patch(f"/payments/{receipt['payment_id']}", json={})

    assert response.status_code == 400
    assert "payload" in response.get_json()["errors"]


def test_get_payment(client):
    case = _open_case(client)
    receipt = _pay(client, case["id"], "10", reference="REC-1").get_json()["data"]

    response = client.get(f"/payments/{receipt['payment_id']}")

    assert response.status_code == 200
    assert response.get_json()["reference"] == "REC-1"
    assert client.get("/payments/missing").status_code == 404


def test_default_actor_applied(client):
    case = client.post(
        "/cases",
        json={"creditor_name": "A", "debtor_name": "B", "principal_amount": "10"},
    ).get_json()

    assert case["created_by"] == "anonymous"


@pytest.mark.parametrize(
    "path", ["/cases", "/payments", "/cases/stats", "/payments/stats", "/actions"]
)
def test_read_endpoints_respond(client, path):
    assert client.get(path).status_code == 200


@pytest.mark.parametrize("amount", ["1e30", "1e13"])
def test_unstorable_payment_amount_rejected(client, amount):
    case = _open_case(client)

    response = _pay(client, case["id"], amount)

    assert response.status_code == 400
    assert "amount" in response.get_json()["errors"]
    assert client.get(f"/cases/{case['id']}").get_json()["balance"]["payment_count"] == 0


@pytest.mark.parametrize("amount", ["1e30", "1e13"])
def test_unstorable_case_amount_rejected(client, amount):
    response = client.post(
        "/cases", json={"creditor_name": "A", "debtor_name": "B", "principal_amount": amount}
    )

    assert response.status_code == 400
    assert "principal_amount" in response.get_json()["errors"]


def test_numeric_text_fields_are_stored_as_text(client):
    case = _open_case(client, debtor_phone=771234567)
    assert case["debtor_phone"] == "771234567"

    response = _pay(client, case["id"], "10", reference=1234567)
    assert response.status_code == 201
    payment_id = response.get_json()["data"]["payment_id"]
    assert client.get(f"/payments/{payment_id}").get_json()["reference"] == "1234567"


def test_structured_text_field_rejected(client):
    case = _open_case(client)

    response = _pay(client, case["id"], "10", comment={"text": "x"})

    assert response.status_code == 400
    assert "comment" in response.get_json()["errors"]


def test_patch_case_resettles_status(client):
    case = _open_case(client, principal_amount="500", penalties_interest="0")
    _pay(client, case["id"], "500")

    response = client.patch(
        f"/cases/{case['id']}", json={"penalties_interest": "100", "debtor_phone": 770000000}
    )

    body = response.get_json()
    assert response.status_code == 200
    assert body["total_owed"] == "600.00"
    assert body["status"] == "IN_PROGRESS"
    assert body["debtor_phone"] == "770000000"

    lowered = client.patch(f"/cases/{case['id']}", json={"principal_amount": "300"})
    assert lowered.status_code == 400
    assert "principal_amount" in lowered.get_json()["errors"]

    rejected = client.patch(f"/cases/{case['id']}", json={"status": "CLOSED"})
    assert rejected.status_code == 400
    assert "status" in rejected.get_json()["errors"]


def test_delete_case_removes_everything(client, app):
    case = _open_case(client)
    receipt = _pay(client, case["id"], "10").get_json()["data"]
    action = client.post(
        "/actions",
        json={
            "case_id": case["id"],
            "date": "2026-03-01",
            "action_type": "COURRIER",
            "summary": "Lettre",
        },
    ).get_json()

    response = client.delete(f"/cases/{case['id']}")

    assert response.get_json() == {"deleted": case["id"]}
    assert client.get(f"/cases/{case['id']}").status_code == 404
    assert client.get(f"/payments/{receipt['payment_id']}").status_code == 404
    assert client.get(f"/actions/{action['id']}").status_code == 404
    assert client.delete(f"/cases/{case['id']}").status_code == 404
    assert client.patch("/cases/missing", json={"notes": "x"}).status_code == 404


def test_action_log_routes(client):
    case = _open_case(client)
    created = client.post(
        "/actions",
        json={
            "case_id": case["id"],
            "date": "01/03/2026",
            "action_type": "mise_en_demeure",
            "summary": "Mise en demeure envoyée",
            "next_step": "Assignation",
            "next_step_due": "2026-03-31",
        },
        headers={"X-Actor-Id": "agent-4"},
    )
    body = created.get_json()
    assert created.status_code == 201
    assert body["action_type"] == "FORMAL_NOTICE"
    assert body["case_reference"] == case["reference"]
    assert body["created_by"] == "agent-4"

    listed = client.get(f"/cases/{case['id']}/actions").get_json()
    assert [row["id"] for row in listed["data"]] == [body["id"]]
    assert client.get(f"/actions?case_id={case['id']}").get_json()["total"] == 1

    edited = client.patch(f"/actions/{body['id']}", json={"next_step_due": None})
    assert edited.status_code == 200
    assert edited.get_json()["next_step_due"] is None
    assert edited.get_json()["next_step"] == "Assignation"

    assert client.delete(f"/actions/{body['id']}").get_json() == {"deleted": body["id"]}
    assert client.get(f"/actions/{body['id']}").status_code == 404


def test_action_errors(client):
    missing_case = client.post(
        "/actions",
        json={"case_id": "missing", "date": "2026-03-01", "action_type": "AUTRE", "summary": "x"},
    )
    assert missing_case.status_code == 404

    invalid = client.post("/actions", json={"action_type": "FAX"})
    assert invalid.status_code == 400
    assert {"case_id", "date", "action_type", "summary"} <= set(invalid.get_json()["errors"])

    assert client.get("/cases/missing/actions").status_code == 404
    assert client.patch("/actions/missing", json={"summary": "x"}).status_code == 404


def test_payment_stats_search(client):
    first = _open_case(client)
    second = _open_case(client, debtor_name="Awa Ndiaye")
    _pay(client, first["id"], "100")
    _pay(client, second["id"], "250", mode="WAVE")

    stats = client.get("/payments/stats?search=ndiaye").get_json()

    assert stats["payment_count"] == 1
    assert stats["total_amount"] == "250.00"
    assert stats["by_mode"] == [{"mode": "WAVE", "amount": "250.00", "count": 1}]


def test_storage_failure_on_payment_returns_503(client, app, monkeypatch):
    case = _open_case(client, principal_amount="100", penalties_interest="0")
    ledger = app.extensions[EXTENSION_KEY]["ledger"]

    def _fail(*args, **kwargs):
        raise OperationalError("UPDATE collection_case", {}, Exception("disk I/O error"))

    monkeypatch.setattr(ledger.cases, "update_status", _fail)

    response = _pay(client, case["id"], "100")

    assert response.status_code == 503
    assert response.get_json()["error"] == "storage_error"
    monkeypatch.undo()
    assert client.get(f"/cases/{case['id']}").get_json()["balance"]["payment_count"] == 0


def test_storage_failure_on_read_returns_503(client, monkeypatch):
    def _fail(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(case_service, "case_statistics", _fail)

    response = client.get("/cases/stats")

    assert response.status_code == 503
    assert response.get_json()["error"] == "storage_error"


def _race(app, *calls):
    """Fire each ``(method, path, json)`` from its own client at the same moment."""

    barrier = threading.Barrier(len(calls))
    results: dict[int, int] = {}
    guard = threading.Lock()

    def _send(index, method, path, payload):
        with app.test_client() as local:
            barrier.wait()
            response = local.open(path, method=method, json=payload)
        with guard:
            results[index] = response.status_code

    threads = [
        threading.Thread(target=_send, args=(index, *call)) for index, call in enumerate(calls)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return [results[index] for index in range(len(calls))]


def _payment_body(amount: str) -> dict:
    return {"amount": amount, "date": "2026-02-24", "mode": "CASH"}


def _case_state(app, case_id):
    with app.app_context():
        with session_scope() as session:
            status = session.get(CollectionCase, case_id).status
            amounts = session.exec(select(Payment.amount).where(Payment.case_id == case_id)).all()
    return status, sum(amounts, Decimal("0"))


def test_patch_racing_post_keeps_balance(client, app):
    case = _open_case(client, principal_amount="1000", penalties_interest="0")
    payment_id = _pay(client, case["id"], "600").get_json()["data"]["payment_id"]

    statuses = _race(
        app,
        ("PATCH", f"/payments/{payment_id}", {"amount": "1000"}),
        ("POST", f"/cases/{case['id']}/payments", _payment_body("400")),
    )

    assert statuses in ([200, 400], [400, 201])
    status, paid = _case_state(app, case["id"])
    assert paid == Decimal("1000.00")
    assert status.value == "CLOSED"


def test_delete_racing_post_keeps_status_consistent(client, app):
    case = _open_case(client, principal_amount="1000", penalties_interest="0")
    payment_id = _pay(client, case["id"], "600").get_json()["data"]["payment_id"]

    deleted, posted = _race(
        app,
        ("DELETE", f"/payments/{payment_id}", None),
        ("POST", f"/cases/{case['id']}/payments", _payment_body("500")),
    )

    assert deleted == 200
    assert posted in (201, 400)
    status, paid = _case_state(app, case["id"])
    assert paid == (Decimal("500.00") if posted == 201 else Decimal("0"))
    assert paid <= Decimal("1000")
    assert status.value == "IN_PROGRESS"
