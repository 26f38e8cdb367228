import json
from datetime import date
from decimal import Decimal
from unittest import mock

import pytest
from django.urls import reverse

from ledger_core.exceptions import ConcurrencyConflictError
from ledger_core.models import JournalEntry

from .factories import make_account, make_bank_account, make_chart, post

D = Decimal


def post_json(client, url, data=None):
    return client.post(url, data=json.dumps(data or {}), content_type="application/json")


@pytest.fixture
def cash_and_sales(db):
    return (
        make_account("1-100", "Kas", "asset", "debit"),
        make_account("4-100", "Penjualan", "revenue", "credit"),
    )


def entry_payload(debit_account, credit_account, debit="200000", credit="200000"):
    return {
        "journal_date": "2025-02-01",
        "description": "Penjualan tunai",
        "lines": [
            {"account_id": debit_account.pk, "debit_amount": debit},
            {"account_id": credit_account.pk, "credit_amount": credit},
        ],
    }


@pytest.mark.django_db
def test_post_and_void_journal(client, cash_and_sales):
    cash, sales = cash_and_sales
    response = post_json(client, reverse("ledger_core:journal-entries"),
                         entry_payload(cash, sales))
    assert response.status_code == 201
    entry = response.json()["journal_entry"]
    assert entry["status"] == "posted"
    assert entry["journal_number"] == "JE-00000001"

    response = client.get(reverse("ledger_core:trial-balance"), {"as_of": "2025-02-28"})
    body = response.json()
    assert body["is_balanced"] is True
    assert D(body["total_debit"]) == D("200000")

    response = post_json(client, reverse("ledger_core:journal-void", args=[entry["id"]]),
                         {"reason": "Salah input"})
    assert response.status_code == 200
    assert response.json()["journal_entry"]["status"] == "voided"

    body = client.get(reverse("ledger_core:trial-balance"), {"as_of": "2025-02-28"}).json()
    assert body["accounts"] == []


@pytest.mark.django_db
def test_unbalanced_entry_is_400(client, cash_and_sales):
    cash, sales = cash_and_sales
    response = post_json(client, reverse("ledger_core:journal-entries"),
                         entry_payload(cash, sales, debit="100", credit="90"))
    assert response.status_code == 400
    assert response.json()["kind"] == "unbalanced_entry"
    assert not JournalEntry.objects.exists()


@pytest.mark.django_db
def test_void_twice_is_409(client, cash_and_sales):
    cash, sales = cash_and_sales
    entry = post(cash, sales, "10")
    url = reverse("ledger_core:journal-void", args=[entry.pk])
    assert post_json(client, url, {"reason": "x"}).status_code == 200
    response = post_json(client, url, {"reason": "x"})
    assert response.status_code == 409
    assert response.json()["kind"] == "invariant_violation"


@pytest.mark.django_db
def test_concurrency_conflict_asks_for_retry(client, cash_and_sales):
    cash, sales = cash_and_sales
    with mock.patch("ledger_core.services.journal.post_journal_entry",
                    side_effect=ConcurrencyConflictError("journal number taken")):
        response = post_json(client, reverse("ledger_core:journal-entries"),
                             entry_payload(cash, sales))
    assert response.status_code == 409
    assert response.json()["retry"] is True


@pytest.mark.django_db
def test_validation_error_is_400(client):
    response = post_json(client, reverse("ledger_core:journal-entries"),
                         {"description": "no date", "lines": []})
    assert response.status_code == 400
    assert response.json()["kind"] == "validation_error"


@pytest.mark.django_db
@pytest.mark.parametrize("bad_lines", [[1, 2], {"account_id": 1}, ["a", "b"]])
def test_malformed_lines_are_400(client, bad_lines):
    response = post_json(client, reverse("ledger_core:journal-entries"),
                         {"journal_date": "2025-01-01", "lines": bad_lines})
    assert response.status_code == 400
    assert response.json()["kind"] == "validation_error"
    assert not JournalEntry.objects.exists()


@pytest.mark.django_db
def test_unknown_bank_transaction_type_is_422(client):
    chart = make_chart()
    bank = make_bank_account(chart["1-102"])
    response = post_json(client, reverse("ledger_core:bank-transactions"), {
        "bank_account_id": bank.pk,
        "transaction_date": "2025-02-01",
        "transaction_type": "REFUND",
        "amount": "10",
    })
    assert response.status_code == 422
    assert response.json()["kind"] == "unknown_transaction_type"


@pytest.mark.django_db
def test_record_and_void_bank_deposit(client):
    chart = make_chart()
    bank = make_bank_account(chart["1-102"], initial_balance="1000.00")
    response = post_json(client, reverse("ledger_core:bank-transactions"), {
        "bank_account_id": bank.pk,
        "transaction_date": "2025-02-01",
        "transaction_type": "DEPOSIT",
        "amount": "250.50",
    })
    assert response.status_code == 201
    body = response.json()
    assert D(body["current_balance"]) == D("1250.50")
    assert body["journal_entry_id"] is not None

    response = post_json(client, reverse("ledger_core:bank-void", args=[body["transaction_id"]]))
    assert response.status_code == 200
    assert response.json()["transaction"]["reconciliation_status"] == "VOID"
    bank.refresh_from_db()
    assert bank.current_balance == D("1000.00")


@pytest.mark.django_db
def test_bank_deposit_without_journal(client):
    chart = make_chart()
    bank = make_bank_account(chart["1-102"], initial_balance="1000.00")
    url = reverse("ledger_core:bank-transactions")
    payload = {
        "bank_account_id": bank.pk,
        "transaction_date": "2025-02-01",
        "transaction_type": "DEPOSIT",
        "amount": "50",
    }

    # a string is not a boolean
    response = post_json(client, url, {**payload, "auto_create_journal": "false"})
    assert response.status_code == 400
    assert response.json()["kind"] == "validation_error"
    assert not JournalEntry.objects.exists()

    response = post_json(client, url, {**payload, "auto_create_journal": False})
    assert response.status_code == 201
    assert response.json()["journal_entry_id"] is None
    assert not JournalEntry.objects.exists()
    bank.refresh_from_db()
    assert bank.current_balance == D("1050.00")


@pytest.mark.django_db
def test_trial_balance_requires_date(client):
    response = client.get(reverse("ledger_core:trial-balance"))
    assert response.status_code == 400


@pytest.mark.django_db
def test_unknown_account_is_404(client):
    assert client.get(reverse("ledger_core:account-detail", args=[424242])).status_code == 404


@pytest.mark.django_db
def test_account_ledger_view(client, cash_and_sales):
    cash, sales = cash_and_sales
    post(cash, sales, "40", date(2025, 1, 5))
    post(cash, sales, "60", date(2025, 1, 6))
    body = client.get(reverse("ledger_core:account-ledger", args=[cash.pk])).json()
    assert [D(row["balance"]) for row in body["transactions"]] == [D("40"), D("100")]
    assert body["account"]["code"] == "1-100"


@pytest.mark.django_db
def test_period_close_and_year_end(client):
    chart = make_chart()
    post(chart["1-101"], chart["4-111"], "900", date(2025, 5, 1))
    response = post_json(client, reverse("ledger_core:periods"), {"year": 2025, "month": 12})
    assert response.status_code == 201
    period = response.json()["period"]
    assert period["name"] == "Desember 2025"

    # December still open
    response = post_json(client, reverse("ledger_core:year-end-close"), {"year": 2025})
    assert response.status_code == 409

    response = post_json(client, reverse("ledger_core:period-close", args=[period["id"]]))
    assert response.status_code == 200
    assert response.json()["period"]["status"] == "closed"

    response = post_json(client, reverse("ledger_core:year-end-close"), {"year": 2025})
    assert response.status_code == 201
    body = response.json()
    assert D(body["net_income"]) == D("900")
    assert body["journal_entry"]["source_type"] == "YEAR_END_CLOSE"
    codes = {line["account_code"] for line in body["journal_entry"]["lines"]}
    assert codes == {"4-111", "3-200"}

    response = post_json(client, reverse("ledger_core:year-end-close"), {"year": 2025})
    assert response.status_code == 409
    assert response.json()["kind"] == "invariant_violation"

    listing = client.get(reverse("ledger_core:periods"), {"status": "closed"}).json()
    assert [p["transaction_count"] for p in listing["periods"]] == [1]


@pytest.mark.django_db
def test_period_lock_requires_close(client):
    period = post_json(client, reverse("ledger_core:periods"),
                       {"year": 2025, "month": 1}).json()["period"]
    response = post_json(client, reverse("ledger_core:period-lock", args=[period["id"]]))
    assert response.status_code == 409
    assert client.post(reverse("ledger_core:period-reopen", args=[424242])).status_code == 404


@pytest.mark.django_db
def test_cash_flow_view(client, cash_and_sales):
    cash, sales = cash_and_sales
    post(cash, sales, "250", date(2025, 2, 3))
    response = client.get(reverse("ledger_core:cash-flow"),
                          {"start_date": "2025-02-01", "end_date": "2025-02-28"})
    assert response.status_code == 200
    body = response.json()
    assert D(body["operating_activities"]["net_income"]) == D("250")
    assert body["is_reconciled"] is True
    assert client.get(reverse("ledger_core:cash-flow")).status_code == 400


@pytest.mark.django_db
def test_collection_views(client):
    response = client.get(reverse("ledger_core:collection-metrics"),
                          {"start_date": "2025-06-01", "end_date": "2025-06-30"})
    assert response.status_code == 200
    assert D(response.json()["metrics"]["days_sales_outstanding"]) == D("0")

    response = client.get(reverse("ledger_core:overdue-invoices"), {"as_of": "2025-06-30"})
    assert response.status_code == 200
    assert response.json()["invoices"] == []
    response = client.get(reverse("ledger_core:overdue-invoices"), {"min_days": "soon"})
    assert response.status_code == 400
