from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from recouvrement.blueprints.actions.forms import ActionForm
from recouvrement.blueprints.cases.forms import case_changes_from, case_request_from, parse_status
from recouvrement.blueprints.fields import parse_date, parse_text
from recouvrement.blueprints.payments.forms import PaymentForm, PaymentUpdateForm
from recouvrement.errors import ValidationError
from recouvrement.models import ActionType, CaseStatus, PaymentMode


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2026-02-24", date(2026, 2, 24)),
        ("24/02/2026", date(2026, 2, 24)),
        (date(2026, 1, 1), date(2026, 1, 1)),
        ("", None),
        (None, None),
    ],
)
def test_parse_date(raw, expected):
    assert parse_date(raw) == expected


def test_parse_date_rejects_garbage():
    with pytest.raises(ValueError):
        parse_date("02-24-2026")


@pytest.mark.parametrize(
    ("raw", "mode"),
    [
        ("cash", PaymentMode.CASH),
        ("VIREMENT", PaymentMode.TRANSFER),
        ("cheque", PaymentMode.CHECK),
        ("OM", PaymentMode.ORANGE_MONEY),
        ("orange_money", PaymentMode.ORANGE_MONEY),
    ],
)
def test_payment_form_mode_aliases(raw, mode):
    form = PaymentForm(amount="10", date="2026-02-24", mode=raw)

    request = form.to_request("case-1")

    assert request.mode is mode
    assert request.amount == Decimal("10.00")
    assert request.case_id == "case-1"


def test_payment_form_collects_errors():
    form = PaymentForm.from_mapping({"amount": "0", "mode": "BITCOIN"})

    assert form.validate() is False
    assert set(form.errors) == {"amount", "date", "mode"}
    with pytest.raises(ValidationError) as excinfo:
        form.raise_for_errors("invalid payment")

    assert excinfo.value.errors["mode"] == ["Choose one of: CASH, TRANSFER, CHECK, WAVE, ORANGE_MONEY."]


def test_update_form_only_checks_present_fields():
    changes = PaymentUpdateForm(data={"comment": "Relance", "date": "01/03/2026"}).to_changes()

    assert changes.provided() == {"paid_on": date(2026, 3, 1), "comment": "Relance"}


def test_update_form_requires_payload():
    with pytest.raises(ValidationError) as excinfo:
        PaymentUpdateForm(data={}).to_changes()

    assert "payload" in excinfo.value.errors


def test_update_form_rejects_bad_amount():
    with pytest.raises(ValidationError) as excinfo:
        PaymentUpdateForm(data={"amount": "abc"}).to_changes()

    assert "amount" in excinfo.value.errors


def test_case_request_defaults_penalties():
    request = case_request_from(
        {"creditor_name": "A", "debtor_name": "B", "principal_amount": "100", "notes": "x"}
    )

    assert request.penalties_interest == Decimal("0.00")
    assert request.principal_amount == "100"
    assert request.notes == "x"


def test_parse_status():
    assert parse_status("in_progress") is CaseStatus.IN_PROGRESS
    assert parse_status(None) is None
    with pytest.raises(ValidationError):
        parse_status("ARCHIVED")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("VIR-1", "VIR-1"), (1234567, "1234567"), (12.5, "12.5"), (None, None)],
)
def test_parse_text_accepts_numbers(raw, expected):
    assert parse_text(raw) == expected


@pytest.mark.parametrize("raw", [True, ["a"], {"a": 1}])
def test_parse_text_rejects_structures(raw):
    with pytest.raises(ValueError):
        parse_text(raw)


def test_payment_form_coerces_numeric_reference():
    request = PaymentForm(amount="10", date="2026-02-24", mode="CASH", reference=1234567).to_request(
        "case-1"
    )

    assert request.reference == "1234567"


@pytest.mark.parametrize("amount", ["1e30", "1e13", True])
def test_payment_form_rejects_unstorable_amounts(amount):
    form = PaymentForm(amount=amount, date="2026-02-24", mode="CASH")

    assert form.validate() is False
    assert list(form.errors) == ["amount"]


def test_case_request_coerces_numeric_phone():
    request = case_request_from(
        {"creditor_name": "A", "debtor_name": "B", "principal_amount": "10", "debtor_phone": 771234567}
    )

    assert request.debtor_phone == "771234567"


def test_case_request_rejects_structured_text():
    with pytest.raises(ValidationError) as excinfo:
        case_request_from(
            {"creditor_name": ["A"], "debtor_name": "B", "principal_amount": "10"}
        )

    assert "creditor_name" in excinfo.value.errors


def test_case_changes_only_present_fields():
    changes = case_changes_from({"notes": "Relance", "penalties_interest": ""})

    assert changes.provided() == {"notes": "Relance", "penalties_interest": Decimal("0.00")}


def test_case_changes_reject_status_and_empty_payload():
    with pytest.raises(ValidationError) as excinfo:
        case_changes_from({"status": "CLOSED"})
    assert "status" in excinfo.value.errors

    with pytest.raises(ValidationError) as excinfo:
        case_changes_from({})
    assert "payload" in excinfo.value.errors


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("APPEL_TELEPHONIQUE", ActionType.PHONE_CALL),
        ("mise_demeure", ActionType.FORMAL_NOTICE),
        ("MISE_EN_DEMEURE", ActionType.FORMAL_NOTICE),
        ("hearing", ActionType.HEARING),
    ],
)
def test_action_form_type_aliases(raw, expected):
    request = ActionForm(
        data={"date": "2026-03-02", "action_type": raw, "summary": "Relance"}
    ).to_request("case-1")

    assert request.action_type is expected
    assert request.action_date == date(2026, 3, 2)
    assert request.next_step_due is None


def test_action_form_collects_errors():
    with pytest.raises(ValidationError) as excinfo:
        ActionForm(data={"action_type": "FAX", "summary": "  ", "next_step_due": "soon"}).to_request(
            None
        )

    assert set(excinfo.value.errors) == {"case_id", "date", "action_type", "summary", "next_step_due"}


def test_action_changes_only_present_fields():
    changes = ActionForm(data={"next_step": "Assignation", "next_step_due": ""}).to_changes()

    assert changes.provided() == {"next_step": "Assignation", "next_step_due": None}
