import functools
import json
import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .exceptions import (ConcurrencyConflictError, InvariantViolationError,
                         LedgerError, MissingDefaultAccountError,
                         UnbalancedEntryError, UnknownTransactionTypeError)
from .models import Account, BankTransaction, JournalEntry, Period
from .services import accounts as account_service
from .services import aging, banking, dashboard, journal, periods, reports

logger = logging.getLogger(__name__)

# Typed failures → HTTP status
ERROR_STATUS = {
    UnbalancedEntryError: 400,
    InvariantViolationError: 409,
    ConcurrencyConflictError: 409,
    UnknownTransactionTypeError: 422,
    MissingDefaultAccountError: 500,
}


def _error_response(exc):
    if isinstance(exc, ValidationError):
        return JsonResponse({"ok": False, "error": exc.messages, "kind": "validation_error"},
                            status=400)
    body = {"ok": False, "error": str(exc), "kind": exc.kind}
    if isinstance(exc, ConcurrencyConflictError):
        body["retry"] = True  # caller should repeat the whole operation
    return JsonResponse(body, status=ERROR_STATUS.get(type(exc), 400))


def json_view(view):
    """Translate service errors to JSON responses; Http404 passes through."""

    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except (ValidationError, LedgerError) as exc:
            if isinstance(exc, MissingDefaultAccountError):
                logger.error("Ledger configuration error: %s", exc)
            return _error_response(exc)

    return wrapper


# ----------------------------
# Request helpers
# ----------------------------
def _body(request):
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except ValueError:
        raise ValidationError("Request body must be valid JSON.")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object.")
    return data


def _date(value, field, required=False):
    """ISO YYYY-MM-DD → date"""
    if not value:
        if required:
            raise ValidationError(f"{field} is required.")
        return None
    try:
        parsed = parse_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD).")
    return parsed


def _flag(data, field, default):
    """JSON booleans only; "false" as a string is an error, not truthy."""
    value = data.get(field, default)
    if not isinstance(value, bool):
        raise ValidationError(f"{field} must be true or false.")
    return value


def _user(request):
    user = getattr(request, "user", None)
    return user if user is not None and user.is_authenticated else None


# ----------------------------
# Serializers
# ----------------------------
def _account_json(account):
    return {
        "id": account.pk,
        "code": account.code,
        "name": account.name,
        "ac_type": account.ac_type,
        "normal_balance": account.normal_balance,
        "category": account.category,
        "parent_id": account.parent_id,
        "is_header": account.is_header,
        "level": account.level,
        "is_active": account.is_active,
    }


def _tree_json(nodes):
    return [
        {
            **_account_json(node["account"]),
            **({"balance": node["balance"]} if "balance" in node else {}),
            "children": _tree_json(node["children"]),
        }
        for node in nodes
    ]


def _entry_json(entry, with_lines=False):
    data = {
        "id": entry.pk,
        "journal_number": entry.journal_number,
        "journal_date": entry.journal_date,
        "description": entry.description,
        "source_type": entry.source_type,
        "source_id": entry.source_id,
        "status": entry.status,
        "total_debit": entry.total_debit,
        "total_credit": entry.total_credit,
        "posted_at": entry.posted_at,
        "voided_at": entry.voided_at,
        "void_reason": entry.void_reason,
    }
    if with_lines:
        data["lines"] = [
            {
                "account_id": line.account_id,
                "account_code": line.account.code,
                "branch_id": line.branch_id,
                "description": line.description,
                "debit_amount": line.debit_amount,
                "credit_amount": line.credit_amount,
                "sort_order": line.sort_order,
            }
            for line in entry.lines.all()
        ]
    return data


def _bank_tx_json(bank_tx):
    return {
        "id": bank_tx.pk,
        "bank_account_id": bank_tx.bank_account_id,
        "transaction_date": bank_tx.transaction_date,
        "transaction_type": bank_tx.transaction_type,
        "amount": bank_tx.amount,
        "reference": bank_tx.reference,
        "description": bank_tx.description,
        "reconciliation_status": bank_tx.reconciliation_status,
        "journal_entry_id": bank_tx.journal_entry_id,
    }


# ----------------------------
# Chart of Accounts
# ----------------------------
@json_view
@require_http_methods(["GET", "POST"])
def accounts_view(request):
    if request.method == "POST":
        data = _body(request)
        account = account_service.create_account(
            code=data.get("code"),
            name=data.get("name"),
            ac_type=data.get("ac_type"),
            normal_balance=data.get("normal_balance"),
            category=data.get("category", ""),
            parent_id=data.get("parent_id"),
            is_header=bool(data.get("is_header", False)),
            level=data.get("level"),
            description=data.get("description", ""),
        )
        return JsonResponse({"ok": True, "account": _account_json(account)}, status=201)

    accounts = account_service.list_accounts(ac_type=request.GET.get("ac_type"))
    return JsonResponse({"accounts": [_account_json(a) for a in accounts]})


@json_view
@require_GET
def account_tree_view(request):
    as_of = _date(request.GET.get("as_of"), "as_of")
    ac_type = request.GET.get("ac_type")
    if as_of:
        nodes = reports.account_balances(
            as_of, ac_type=ac_type, branch_id=request.GET.get("branch_id")
        )
    else:
        nodes = account_service.account_tree(ac_type=ac_type)
    return JsonResponse({"tree": _tree_json(nodes)})


@json_view
@require_http_methods(["GET", "PATCH", "DELETE"])
def account_detail_view(request, account_id):
    # 404 for unknown or soft-deleted ids
    get_object_or_404(Account, pk=account_id, deleted_at__isnull=True)
    if request.method == "PATCH":
        account = account_service.update_account(account_id, **_body(request))
        return JsonResponse({"ok": True, "account": _account_json(account)})
    if request.method == "DELETE":
        account_service.remove_account(account_id)
        return JsonResponse({"ok": True})

    detail = account_service.account_detail(
        account_id, _date(request.GET.get("as_of"), "as_of")
    )
    return JsonResponse(
        {
            "account": _account_json(detail["account"]),
            "balance": detail["balance"],
            "child_count": detail["child_count"],
        }
    )


# ----------------------------
# Journal
# ----------------------------
@json_view
@require_http_methods(["GET", "POST"])
def journal_entries_view(request):
    if request.method == "POST":
        data = _body(request)
        journal_date = _date(data.get("journal_date"), "journal_date", required=True)
        if _flag(data, "draft", False):
            entry = journal.create_journal_entry(
                journal_date=journal_date,
                description=data.get("description", ""),
                lines=data.get("lines"),
                source_type=data.get("source_type", "MANUAL"),
                source_id=data.get("source_id"),
                user=_user(request),
            )
        else:
            entry = journal.post_journal_entry(
                journal_date=journal_date,
                description=data.get("description", ""),
                source_type=data.get("source_type", "MANUAL"),
                source_id=data.get("source_id"),
                lines=data.get("lines"),
                user=_user(request),
            )
        return JsonResponse({"ok": True, "journal_entry": _entry_json(entry)}, status=201)

    entries = journal.list_journal_entries(
        status=request.GET.get("status"),
        source_type=request.GET.get("source_type"),
        start_date=_date(request.GET.get("start_date"), "start_date"),
        end_date=_date(request.GET.get("end_date"), "end_date"),
        limit=100,
    )
    return JsonResponse({"journal_entries": [_entry_json(e) for e in entries]})


@json_view
@require_GET
def journal_entry_detail_view(request, entry_id):
    get_object_or_404(JournalEntry, pk=entry_id, deleted_at__isnull=True)
    entry = journal.get_journal_entry(entry_id)
    return JsonResponse({"journal_entry": _entry_json(entry, with_lines=True)})


@json_view
@require_POST
def journal_entry_post_view(request, entry_id):
    get_object_or_404(JournalEntry, pk=entry_id, deleted_at__isnull=True)
    entry = journal.post_draft_journal_entry(entry_id, user=_user(request))
    return JsonResponse({"ok": True, "journal_entry": _entry_json(entry)})


@json_view
@require_POST
def journal_entry_void_view(request, entry_id):
    get_object_or_404(JournalEntry, pk=entry_id, deleted_at__isnull=True)
    entry = journal.void_journal_entry(
        entry_id, _body(request).get("reason"), user=_user(request)
    )
    return JsonResponse({"ok": True, "journal_entry": _entry_json(entry)})


# ----------------------------
# Banking
# ----------------------------
@json_view
@require_POST
def bank_transactions_view(request):
    data = _body(request)
    bank_tx, entry = banking.record_transaction(
        bank_account_id=data.get("bank_account_id"),
        transaction_date=_date(data.get("transaction_date"), "transaction_date", required=True),
        transaction_type=data.get("transaction_type"),
        amount=data.get("amount"),
        description=data.get("description", ""),
        reference=data.get("reference", ""),
        bank_statement_date=_date(data.get("bank_statement_date"), "bank_statement_date"),
        notes=data.get("notes", ""),
        auto_create_journal=_flag(data, "auto_create_journal", True),
        user=_user(request),
    )
    return JsonResponse(
        {
            "ok": True,
            "transaction_id": bank_tx.pk,
            "journal_entry_id": entry.pk if entry else None,
            "current_balance": bank_tx.bank_account.current_balance,
        },
        status=201,
    )


@json_view
@require_POST
def bank_transaction_action_view(request, transaction_id, action):
    get_object_or_404(BankTransaction, pk=transaction_id, deleted_at__isnull=True)
    if action == "reconcile":
        data = _body(request)
        bank_tx = banking.reconcile_transaction(
            transaction_id, _date(data.get("bank_statement_date"), "bank_statement_date")
        )
    elif action == "unreconcile":
        bank_tx = banking.unreconcile_transaction(transaction_id)
    else:
        bank_tx = banking.void_transaction(transaction_id, user=_user(request))
    return JsonResponse({"ok": True, "transaction": _bank_tx_json(bank_tx)})


@json_view
@require_POST
def bank_bulk_reconcile_view(request):
    data = _body(request)
    result = banking.bulk_reconcile(
        data.get("transaction_ids") or [],
        _date(data.get("bank_statement_date"), "bank_statement_date"),
    )
    return JsonResponse({"ok": True, **result})


@json_view
@require_GET
def bank_statement_view(request, bank_account_id):
    statement = banking.bank_statement(
        bank_account_id,
        start_date=_date(request.GET.get("start_date"), "start_date"),
        end_date=_date(request.GET.get("end_date"), "end_date"),
        reconciliation_status=request.GET.get("status"),
    )
    statement["bank_account"] = {
        "id": statement["bank_account"].pk,
        "name": statement["bank_account"].name,
        "current_balance": statement["bank_account"].current_balance,
    }
    statement["transactions"] = [
        {**_bank_tx_json(row["transaction"]),
         "deposit": row["deposit"], "withdrawal": row["withdrawal"], "balance": row["balance"]}
        for row in statement["transactions"]
    ]
    return JsonResponse(statement)


# ----------------------------
# Reports
# ----------------------------
@json_view
@require_GET
def trial_balance_view(request):
    as_of = _date(request.GET.get("as_of"), "as_of", required=True)
    return JsonResponse(reports.trial_balance(as_of, branch_id=request.GET.get("branch_id")))


@json_view
@require_GET
def account_ledger_view(request, account_id):
    get_object_or_404(Account, pk=account_id, deleted_at__isnull=True)
    ledger = reports.account_ledger(
        account_id,
        start_date=_date(request.GET.get("start_date"), "start_date"),
        end_date=_date(request.GET.get("end_date"), "end_date"),
        branch_id=request.GET.get("branch_id"),
    )
    ledger["account"] = _account_json(ledger["account"])
    return JsonResponse(ledger)


@json_view
@require_GET
def balance_sheet_view(request):
    return JsonResponse(
        reports.balance_sheet(
            _date(request.GET.get("as_of"), "as_of", required=True),
            prior_date=_date(request.GET.get("prior_date"), "prior_date"),
        )
    )


@json_view
@require_GET
def income_statement_view(request):
    return JsonResponse(
        reports.income_statement(
            _date(request.GET.get("start_date"), "start_date", required=True),
            _date(request.GET.get("end_date"), "end_date", required=True),
            branch_id=request.GET.get("branch_id"),
        )
    )


@json_view
@require_GET
def cash_flow_view(request):
    return JsonResponse(
        reports.cash_flow_statement(
            _date(request.GET.get("start_date"), "start_date", required=True),
            _date(request.GET.get("end_date"), "end_date", required=True),
            branch_id=request.GET.get("branch_id"),
        )
    )


# ----------------------------
# Aging
# ----------------------------
@json_view
@require_GET
def ar_aging_view(request):
    return JsonResponse(
        aging.ar_aging_report(
            _date(request.GET.get("as_of"), "as_of"),
            branch_id=request.GET.get("branch_id"),
        )
    )


@json_view
@require_GET
def ap_aging_view(request):
    return JsonResponse(
        aging.ap_aging_report(
            _date(request.GET.get("as_of"), "as_of"),
            branch_id=request.GET.get("branch_id"),
        )
    )


def _party_json(party):
    return {"id": party.pk, "name": party.name, "phone": party.phone, "email": party.email}


@json_view
@require_GET
def customer_outstanding_view(request, customer_id):
    result = aging.customer_outstanding(
        customer_id,
        include_history=request.GET.get("history") in ("1", "true"),
        as_of_date=_date(request.GET.get("as_of"), "as_of"),
    )
    result["customer"] = _party_json(result["customer"])
    return JsonResponse(result)


@json_view
@require_GET
def supplier_outstanding_view(request, supplier_id):
    result = aging.supplier_outstanding(
        supplier_id,
        include_history=request.GET.get("history") in ("1", "true"),
        as_of_date=_date(request.GET.get("as_of"), "as_of"),
    )
    result["supplier"] = _party_json(result["supplier"])
    return JsonResponse(result)


@json_view
@require_GET
def overdue_invoices_view(request):
    min_days = request.GET.get("min_days", aging.OVERDUE_DAYS)
    try:
        min_days = int(min_days)
    except (TypeError, ValueError):
        raise ValidationError("min_days must be a whole number.")
    rows = aging.overdue_invoices(
        _date(request.GET.get("as_of"), "as_of"),
        branch_id=request.GET.get("branch_id"),
        min_days=min_days,
    )
    return JsonResponse({"invoices": rows})


@json_view
@require_GET
def collection_metrics_view(request):
    return JsonResponse(
        aging.collection_metrics(
            _date(request.GET.get("start_date"), "start_date", required=True),
            _date(request.GET.get("end_date"), "end_date", required=True),
            branch_id=request.GET.get("branch_id"),
        )
    )


# ----------------------------
# Periods
# ----------------------------
def _period_json(period):
    return {
        "id": period.pk,
        "name": period.name,
        "start_date": period.start_date,
        "end_date": period.end_date,
        "status": period.status,
        "closed_at": period.closed_at,
        "closed_by": period.closed_by_id,
    }


@json_view
@require_http_methods(["GET", "POST"])
def periods_view(request):
    if request.method == "POST":
        data = _body(request)
        period = periods.create_period(data.get("year"), data.get("month"))
        return JsonResponse({"ok": True, "period": _period_json(period)}, status=201)

    rows = periods.list_periods(status=request.GET.get("status"))
    return JsonResponse(
        {
            "periods": [
                {**_period_json(row["period"]), "transaction_count": row["transaction_count"]}
                for row in rows
            ]
        }
    )


@json_view
@require_POST
def period_action_view(request, period_id, action):
    get_object_or_404(Period, pk=period_id)
    if action == "close":
        period = periods.close_period(period_id, user=_user(request))
    elif action == "lock":
        period = periods.lock_period(period_id)
    else:
        period = periods.reopen_period(period_id)
    return JsonResponse({"ok": True, "period": _period_json(period)})


@json_view
@require_POST
def year_end_close_view(request):
    result = periods.year_end_close(_body(request).get("year"), user=_user(request))
    return JsonResponse(
        {
            "ok": True,
            "net_income": result["net_income"],
            "journal_entry": _entry_json(result["journal_entry"], with_lines=True),
        },
        status=201,
    )


# ----------------------------
# Dashboard
# ----------------------------
@json_view
@require_GET
def dashboard_view(request):
    return JsonResponse(
        {
            "stats": dashboard.dashboard_stats(),
            "recent_sales": dashboard.recent_sales(),
            "sales_chart": dashboard.sales_chart(),
        }
    )
