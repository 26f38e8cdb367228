"""
Financial statements computed from posted journal lines.

Every figure here comes from JournalLine.objects.posted() (or its
as_of / between variants), so drafts, voided entries and soft-deleted
entries never show up in a report.
"""
import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import models

from ..conf import ledger_setting
from ..models import Account, JournalLine
from .accounts import build_account_tree, list_accounts

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# Category keywords used to split statement sections
CURRENT_ASSET_KEYWORDS = ("Current", "Cash", "Bank", "Receivable", "Inventory", "Prepaid")
FIXED_ASSET_KEYWORDS = ("Fixed", "Equipment", "Furniture", "Vehicle", "Building", "Depreciation")
LONG_TERM_LIABILITY_KEYWORDS = ("Long-term", "Loan")
OTHER_INCOME_KEYWORDS = ("Other", "Interest", "Discount")
COGS_KEYWORDS = ("COGS",)
TAX_KEYWORDS = ("Tax",)


def _matches(category, keywords):
    # Case-sensitive: "Non-current" is not "Current"
    category = category or ""
    return any(keyword in category for keyword in keywords)


def _for_branch(lines, branch_id):
    if branch_id:
        # Lines without a branch belong to every branch
        lines = lines.filter(models.Q(branch__isnull=True) | models.Q(branch_id=branch_id))
    return lines


def _totals_by_account(lines):
    """{account_id: (debit, credit)} in one grouped query."""
    rows = lines.values("account_id").annotate(
        debit=models.Sum("debit_amount"),
        credit=models.Sum("credit_amount"),
    )
    return {
        row["account_id"]: (row["debit"] or ZERO, row["credit"] or ZERO)
        for row in rows
    }


def _balance(account, totals):
    debit, credit = totals.get(account.pk, (ZERO, ZERO))
    return account.signed_balance(debit, credit)


def _leaf_accounts(*ac_types):
    return Account.objects.alive().filter(is_header=False, ac_type__in=ac_types).order_by("code")


def _percent(part, whole):
    if whole <= 0:
        return ZERO
    return (part / whole * 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _line_item(account, amount, prior=None, key="balance"):
    item = {
        "account_id": account.pk,
        "code": account.code,
        "name": account.name,
        key: amount,
    }
    if prior is not None:
        item[f"prior_{key}"] = prior
    return item


def _section(items, key="balance"):
    """Drop zero rows, return (items, total)."""
    total = sum((item[key] for item in items), ZERO)
    return [item for item in items if item[key] != 0], total


# ----------------------------
# Trial balance
# ----------------------------
def trial_balance(as_of_date, branch_id=None):
    """
    One row per leaf account with a non-zero balance through as_of_date.

    Each balance sits in one column: the normal side when it is positive,
    the opposite side when negative, so both columns close whenever the
    underlying entries are balanced.
    """
    totals = _totals_by_account(_for_branch(JournalLine.objects.as_of(as_of_date), branch_id))
    accounts = Account.objects.filter(pk__in=list(totals)).order_by("code")

    rows = []
    total_debit = ZERO
    total_credit = ZERO
    for account in accounts:
        balance = _balance(account, totals)
        if balance == 0:
            continue
        on_debit_side = (account.normal_balance == "debit") == (balance > 0)
        debit = abs(balance) if on_debit_side else ZERO
        credit = ZERO if on_debit_side else abs(balance)
        total_debit += debit
        total_credit += credit
        rows.append(
            {
                "account_id": account.pk,
                "code": account.code,
                "name": account.name,
                "ac_type": account.ac_type,
                "normal_balance": account.normal_balance,
                "debit": debit,
                "credit": credit,
                "balance": balance,
            }
        )

    difference = total_debit - total_credit
    is_balanced = abs(difference) <= ledger_setting("IMBALANCE_TOLERANCE")
    if not is_balanced:
        # Integrity alarm, the report is still returned
        logger.warning(
            "Trial balance out of balance as of %s: debit %s, credit %s",
            as_of_date,
            total_debit,
            total_credit,
        )
    return {
        "as_of_date": as_of_date,
        "branch_id": branch_id,
        "accounts": rows,
        "total_debit": total_debit,
        "total_credit": total_credit,
        "is_balanced": is_balanced,
        "difference": difference,
    }


# ----------------------------
# Account ledger
# ----------------------------
def account_ledger(account_id, start_date=None, end_date=None, branch_id=None):
    """General ledger for one account with a running balance."""
    account = Account.objects.alive().filter(pk=account_id).first()
    if account is None:
        raise ValidationError(f"Account {account_id} not found.")

    lines = _for_branch(JournalLine.objects.posted().filter(account=account), branch_id)

    opening = ZERO
    if start_date:
        opening = account.signed_balance(
            *lines.filter(journal__journal_date__lt=start_date).totals()
        )

    in_range = lines.between(start_date, end_date).select_related("journal").order_by(
        "journal__journal_date", "journal__journal_number", "sort_order"
    )

    rows = []
    balance = opening
    total_debit = ZERO
    total_credit = ZERO
    for line in in_range:
        balance += account.signed_balance(line.debit_amount, line.credit_amount)
        total_debit += line.debit_amount
        total_credit += line.credit_amount
        rows.append(
            {
                "journal_id": line.journal_id,
                "journal_number": line.journal.journal_number,
                "journal_date": line.journal.journal_date,
                "description": line.description or line.journal.description,
                "debit": line.debit_amount,
                "credit": line.credit_amount,
                "balance": balance,
            }
        )

    return {
        "account": account,
        "opening_balance": opening,
        "transactions": rows,
        "closing_balance": balance,
        "total_debit": total_debit,
        "total_credit": total_credit,
    }


# ----------------------------
# Balances tree
# ----------------------------
def account_balances(as_of_date, ac_type=None, branch_id=None):
    """
    CoA tree with a balance on every node. Headers roll up the raw
    debit / credit of their subtree and sign it by their own normal
    balance, so contra accounts net out correctly.
    """
    totals = _totals_by_account(_for_branch(JournalLine.objects.as_of(as_of_date), branch_id))
    roots = build_account_tree(list_accounts(ac_type=ac_type))

    def rollup(node):
        debit, credit = totals.get(node["account"].pk, (ZERO, ZERO))
        for child in node["children"]:
            child_debit, child_credit = rollup(child)
            debit += child_debit
            credit += child_credit
        node["balance"] = node["account"].signed_balance(debit, credit)
        return debit, credit

    for root in roots:
        rollup(root)
    return roots


# ----------------------------
# Balance sheet
# ----------------------------
def balance_sheet(as_of_date, prior_date=None):
    current = _totals_by_account(JournalLine.objects.as_of(as_of_date))
    prior = _totals_by_account(JournalLine.objects.as_of(prior_date)) if prior_date else None

    def item(account):
        return _line_item(
            account,
            _balance(account, current),
            _balance(account, prior) if prior is not None else None,
        )

    current_assets, fixed_assets = [], []
    current_liabilities, long_term_liabilities = [], []
    equity_items = []
    for account in _leaf_accounts("asset", "liability", "equity"):
        if account.ac_type == "asset":
            # Unclassified assets are reported as current
            if not _matches(account.category, CURRENT_ASSET_KEYWORDS) and _matches(
                account.category, FIXED_ASSET_KEYWORDS
            ):
                fixed_assets.append(item(account))
            else:
                current_assets.append(item(account))
        elif account.ac_type == "liability":
            if _matches(account.category, LONG_TERM_LIABILITY_KEYWORDS):
                long_term_liabilities.append(item(account))
            else:
                current_liabilities.append(item(account))
        else:
            equity_items.append(item(account))

    # Revenue and expense are never closed into equity here; their net
    # through the date is shown as an equity line so the sheet balances
    earnings = _earnings(current)
    earnings_item = {"account_id": None, "code": "", "name": "Current earnings",
                     "balance": earnings}
    if prior is not None:
        earnings_item["prior_balance"] = _earnings(prior)
    equity_items.append(earnings_item)

    current_assets, total_current_assets = _section(current_assets)
    fixed_assets, total_fixed_assets = _section(fixed_assets)
    current_liabilities, total_current_liabilities = _section(current_liabilities)
    long_term_liabilities, total_long_term_liabilities = _section(long_term_liabilities)
    equity_items, total_equity = _section(equity_items)

    total_assets = total_current_assets + total_fixed_assets
    total_liabilities = total_current_liabilities + total_long_term_liabilities
    total_liabilities_and_equity = total_liabilities + total_equity
    return {
        "as_of_date": as_of_date,
        "prior_date": prior_date,
        "assets": {
            "current": current_assets,
            "fixed": fixed_assets,
            "total_current": total_current_assets,
            "total_fixed": total_fixed_assets,
            "total": total_assets,
        },
        "liabilities": {
            "current": current_liabilities,
            "long_term": long_term_liabilities,
            "total_current": total_current_liabilities,
            "total_long_term": total_long_term_liabilities,
            "total": total_liabilities,
        },
        "equity": {"items": equity_items, "total": total_equity},
        "total_liabilities_and_equity": total_liabilities_and_equity,
        "is_balanced": total_assets == total_liabilities_and_equity,
    }


def _earnings(totals):
    revenue = sum((_balance(a, totals) for a in _leaf_accounts("revenue")), ZERO)
    expense = sum((_balance(a, totals) for a in _leaf_accounts("expense")), ZERO)
    return revenue - expense


# ----------------------------
# Income statement
# ----------------------------
def income_statement(start_date, end_date, branch_id=None):
    # The year-end closing entry would zero out the very activity reported
    lines = _for_branch(JournalLine.objects.between(start_date, end_date), branch_id).exclude(
        journal__source_type="YEAR_END_CLOSE"
    )
    activity = _totals_by_account(lines)

    operating_revenue, other_income = [], []
    cogs_items = []
    operating_expenses, tax_expenses = [], []
    for account in _leaf_accounts("revenue", "expense"):
        row = _line_item(account, _balance(account, activity), key="amount")
        if account.ac_type == "revenue":
            if _matches(account.category, OTHER_INCOME_KEYWORDS):
                other_income.append(row)
            else:
                operating_revenue.append(row)
        elif _matches(account.category, COGS_KEYWORDS):
            cogs_items.append(row)
        elif _matches(account.category, TAX_KEYWORDS):
            tax_expenses.append(row)
        else:
            operating_expenses.append(row)

    operating_revenue, total_operating_revenue = _section(operating_revenue, "amount")
    other_income, total_other_income = _section(other_income, "amount")
    cogs_items, total_cogs = _section(cogs_items, "amount")
    operating_expenses, total_operating = _section(operating_expenses, "amount")
    tax_expenses, total_tax = _section(tax_expenses, "amount")

    total_revenue = total_operating_revenue + total_other_income
    gross_profit = total_revenue - total_cogs
    total_expenses = total_operating + total_tax
    net_income = gross_profit - total_expenses
    return {
        "period": {"start_date": start_date, "end_date": end_date},
        "revenue": {
            "operating": operating_revenue,
            "other": other_income,
            "total_operating": total_operating_revenue,
            "total_other": total_other_income,
            "total": total_revenue,
        },
        "cogs": {"items": cogs_items, "total": total_cogs},
        "gross_profit": gross_profit,
        "gross_profit_margin": _percent(gross_profit, total_revenue),
        "expenses": {
            "operating": operating_expenses,
            "tax": tax_expenses,
            "total_operating": total_operating,
            "total_tax": total_tax,
            "total": total_expenses,
        },
        "net_income": net_income,
        "net_profit_margin": _percent(net_income, total_revenue),
    }


# ----------------------------
# Cash flow statement
# ----------------------------
def _cash_item(account, totals):
    debit, credit = totals[account.pk]
    # A credit to a non-cash account is cash coming in
    return _line_item(account, credit - debit, key="amount")


def cash_flow_statement(start_date, end_date, branch_id=None):
    """
    Indirect method: net income, then the movement of every non-cash
    balance sheet account over the range, split into operating,
    investing and financing by category. Cash accounts are the
    CASH_ACCOUNT_CODES setting.
    """
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date.")

    cash_codes = set(ledger_setting("CASH_ACCOUNT_CODES"))
    lines = _for_branch(JournalLine.objects.between(start_date, end_date), branch_id).exclude(
        journal__source_type="YEAR_END_CLOSE"
    )
    activity = _totals_by_account(lines)

    net_income = ZERO
    operating, investing, financing = [], [], []
    for account in Account.objects.filter(pk__in=list(activity)).order_by("code"):
        if account.code in cash_codes:
            continue
        if account.ac_type in ("revenue", "expense"):
            debit, credit = activity[account.pk]
            net_income += credit - debit
            continue
        item = _cash_item(account, activity)
        if account.ac_type == "asset":
            if not _matches(account.category, CURRENT_ASSET_KEYWORDS) and _matches(
                account.category, FIXED_ASSET_KEYWORDS
            ):
                investing.append(item)
            else:
                operating.append(item)
        elif account.ac_type == "liability":
            if _matches(account.category, LONG_TERM_LIABILITY_KEYWORDS):
                financing.append(item)
            else:
                operating.append(item)
        else:
            financing.append(item)

    adjustments, total_adjustments = _section(operating, "amount")
    investing, net_investing = _section(investing, "amount")
    financing, net_financing = _section(financing, "amount")
    net_operating = net_income + total_adjustments
    net_change = net_operating + net_investing + net_financing

    def cash_as_of(day):
        cash_lines = _for_branch(JournalLine.objects.as_of(day), branch_id).filter(
            account__code__in=cash_codes
        )
        debit, credit = cash_lines.totals()
        return debit - credit

    cash_beginning = cash_as_of(start_date - timedelta(days=1))
    cash_ending = cash_as_of(end_date)
    if cash_beginning + net_change != cash_ending:
        logger.warning(
            "Cash flow does not reconcile for %s..%s: change %s, cash %s -> %s",
            start_date,
            end_date,
            net_change,
            cash_beginning,
            cash_ending,
        )
    return {
        "period": {"start_date": start_date, "end_date": end_date},
        "operating_activities": {
            "net_income": net_income,
            "adjustments": adjustments,
            "total_adjustments": total_adjustments,
            "net_cash_from_operating": net_operating,
        },
        "investing_activities": {
            "items": investing,
            "net_cash_from_investing": net_investing,
        },
        "financing_activities": {
            "items": financing,
            "net_cash_from_financing": net_financing,
        },
        "net_cash_change": net_change,
        "cash_beginning": cash_beginning,
        "cash_ending": cash_ending,
        "is_reconciled": cash_beginning + net_change == cash_ending,
    }
