"""
Business event → balanced journal lines.

Each translator resolves its contra accounts by code (configured in
LEDGER settings), builds the lines, posts them through the journal
engine and stores the entry on the originating document.
"""
import logging
from decimal import Decimal

from django.db import transaction

from ..conf import default_account_code, ledger_setting, route_code
from ..exceptions import InvariantViolationError, UnknownTransactionTypeError
from .accounts import resolve_postable_account
from .journal import post_journal_entry

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# transaction_type → (debit leg, credit leg)
# "bank" is the CoA account linked to the bank account,
# anything else is a DEFAULT_ACCOUNTS role
BANK_ROUTING = {
    "DEPOSIT": ("bank", "cash"),
    "WITHDRAWAL": ("cash", "bank"),
    "TRANSFER_IN": ("bank", "receivable"),
    "TRANSFER_OUT": ("payable", "bank"),
    "FEE": ("bank_fee", "bank"),
    "INTEREST": ("bank", "interest_income"),
}

BANK_DESCRIPTIONS = {
    "DEPOSIT": "Deposit",
    "WITHDRAWAL": "Withdrawal",
    "TRANSFER_IN": "Transfer in",
    "TRANSFER_OUT": "Transfer out",
    "FEE": "Bank fee",
    "INTEREST": "Interest income",
}

# Receipts by these methods land in the bank-transfer cash account
TRANSFER_METHODS = ("bank_transfer", "qris")


def _debit(account, amount, description, branch_id=None):
    return {
        "account": account,
        "debit_amount": amount,
        "credit_amount": ZERO,
        "description": description,
        "branch_id": branch_id,
    }


def _credit(account, amount, description, branch_id=None):
    return {
        "account": account,
        "debit_amount": ZERO,
        "credit_amount": amount,
        "description": description,
        "branch_id": branch_id,
    }


def _role_account(role):
    return resolve_postable_account(default_account_code(role))


def _cash_account_for(payment_method):
    role = "cash_transfer" if payment_method in TRANSFER_METHODS else "cash"
    return _role_account(role)


def _group_by_code(pairs):
    """Sum (code, amount) pairs per code, first-seen order kept."""
    grouped = {}
    for code, amount in pairs:
        grouped[code] = grouped.get(code, ZERO) + amount
    return [(code, amount) for code, amount in grouped.items() if amount]


def _ensure_not_posted(document, label):
    if document.journal_entry_id:
        raise InvariantViolationError(f"{label} already has a journal entry.")


# ----------------------------
# Bank transactions
# ----------------------------
def bank_transaction_lines(bank_tx):
    """Debit/credit legs for a bank transaction, amount as recorded."""
    route = BANK_ROUTING.get(bank_tx.transaction_type)
    if route is None:
        raise UnknownTransactionTypeError(
            f"No journal routing for bank transaction type "
            f"{bank_tx.transaction_type!r}"
        )
    bank_ledger = bank_tx.bank_account.linked_account
    if not bank_ledger.is_postable:
        raise InvariantViolationError(
            f"Linked account {bank_ledger.code} of {bank_tx.bank_account} "
            "cannot receive postings."
        )

    debit_role, credit_role = route
    debit_account = bank_ledger if debit_role == "bank" else _role_account(debit_role)
    credit_account = bank_ledger if credit_role == "bank" else _role_account(credit_role)

    label = BANK_DESCRIPTIONS[bank_tx.transaction_type]
    description = f"{label}: {bank_tx.description}" if bank_tx.description else label
    amount = abs(bank_tx.amount)
    return [
        _debit(debit_account, amount, description),
        _credit(credit_account, amount, description),
    ]


@transaction.atomic
def post_bank_transaction_journal(bank_tx, user=None):
    _ensure_not_posted(bank_tx, f"Bank transaction {bank_tx.pk}")
    lines = bank_transaction_lines(bank_tx)
    label = BANK_DESCRIPTIONS[bank_tx.transaction_type]
    entry = post_journal_entry(
        journal_date=bank_tx.transaction_date,
        description=f"{label} - {bank_tx.bank_account.name}"
        + (f" ({bank_tx.reference})" if bank_tx.reference else ""),
        source_type="BANK",
        source_id=bank_tx.pk,
        lines=lines,
        user=user,
    )
    bank_tx.journal_entry = entry
    bank_tx.save(update_fields=["journal_entry"])
    return entry


# ----------------------------
# Sales
# ----------------------------
def sale_lines(sale):
    """
    DR cash (paid) + DR receivable (outstanding) + DR discount
      CR revenue per category route
    DR COGS per category / CR inventory per category
      CR output VAT
    """
    branch_id = sale.branch_id
    number = sale.sale_number
    lines = []

    if sale.paid_amount > 0:
        lines.append(_debit(_role_account("cash"), sale.paid_amount,
                            f"Cash received {number}", branch_id))
    if sale.outstanding_amount > 0:
        lines.append(_debit(_role_account("receivable"), sale.outstanding_amount,
                            f"Receivable {number}", branch_id))
    if sale.discount_amount > 0:
        lines.append(_debit(_role_account("sales_discount"), sale.discount_amount,
                            f"Discount {number}", branch_id))

    revenue_routes = ledger_setting("REVENUE_ROUTES").get(sale.sale_type, [])
    revenue_default = ledger_setting("REVENUE_DEFAULTS")[sale.sale_type]
    cogs_routes = ledger_setting("COGS_ROUTES")
    inventory_routes = ledger_setting("INVENTORY_ROUTES")

    items = list(sale.lines.all())
    revenue = _group_by_code(
        (route_code(item.category, revenue_routes, revenue_default), item.subtotal)
        for item in items
    )
    cogs = _group_by_code(
        (
            (
                route_code(item.category, cogs_routes, ledger_setting("COGS_DEFAULT")),
                route_code(item.category, inventory_routes,
                           ledger_setting("INVENTORY_DEFAULT")),
            ),
            item.cogs_amount,
        )
        for item in items
    )

    for code, amount in revenue:
        lines.append(_credit(resolve_postable_account(code), amount,
                             f"Sales revenue {number}", branch_id))
    for (cogs_code, inventory_code), amount in cogs:
        lines.append(_debit(resolve_postable_account(cogs_code), amount,
                            f"COGS {number}", branch_id))
        lines.append(_credit(resolve_postable_account(inventory_code), amount,
                             f"Inventory out {number}", branch_id))

    if sale.tax_amount > 0:
        lines.append(_credit(_role_account("vat_out"), sale.tax_amount,
                             f"Output VAT {number}", branch_id))
    return lines


@transaction.atomic
def post_sale_journal(sale, user=None):
    if sale.status != "completed":
        raise InvariantViolationError(f"Sale {sale.sale_number} is not completed.")
    _ensure_not_posted(sale, f"Sale {sale.sale_number}")
    entry = post_journal_entry(
        journal_date=sale.sale_date,
        description=f"Sale {sale.sale_number}",
        source_type="SALES",
        source_id=sale.pk,
        lines=sale_lines(sale),
        user=user,
    )
    sale.journal_entry = entry
    sale.save(update_fields=["journal_entry"])
    logger.info("Sale %s journalled as %s", sale.sale_number, entry.journal_number)
    return entry


# ----------------------------
# Purchases
# ----------------------------
def purchase_lines(purchase_order):
    """
    DR inventory per category (quantity × unit price)
    DR input VAT
      CR cash (paid part) / CR payable (outstanding part)
    """
    branch_id = purchase_order.branch_id
    number = purchase_order.po_number
    routes = ledger_setting("INVENTORY_ROUTES")
    default = ledger_setting("INVENTORY_DEFAULT")

    inventory = _group_by_code(
        (route_code(item.category, routes, default), item.subtotal)
        for item in purchase_order.lines.all()
    )
    lines = [
        _debit(resolve_postable_account(code), amount,
               f"Inventory purchase {number}", branch_id)
        for code, amount in inventory
    ]
    if purchase_order.tax_amount > 0:
        lines.append(_debit(_role_account("vat_in"), purchase_order.tax_amount,
                            f"Input VAT {number}", branch_id))
    if purchase_order.paid_amount > 0:
        lines.append(_credit(_role_account("cash"), purchase_order.paid_amount,
                             f"Cash paid {number}", branch_id))
    if purchase_order.outstanding_amount > 0:
        lines.append(_credit(_role_account("payable"), purchase_order.outstanding_amount,
                             f"Payable {number}", branch_id))
    return lines


@transaction.atomic
def post_purchase_journal(purchase_order, user=None):
    if purchase_order.status not in ("submitted", "received"):
        raise InvariantViolationError(
            f"Purchase order {purchase_order.po_number} is {purchase_order.status}."
        )
    _ensure_not_posted(purchase_order, f"Purchase order {purchase_order.po_number}")
    entry = post_journal_entry(
        journal_date=purchase_order.order_date,
        description=f"Purchase {purchase_order.po_number}",
        source_type="PURCHASE",
        source_id=purchase_order.pk,
        lines=purchase_lines(purchase_order),
        user=user,
    )
    purchase_order.journal_entry = entry
    purchase_order.save(update_fields=["journal_entry"])
    logger.info(
        "Purchase order %s journalled as %s",
        purchase_order.po_number,
        entry.journal_number,
    )
    return entry


# ----------------------------
# Payments
# ----------------------------
@transaction.atomic
def post_customer_payment_journal(payment, user=None):
    """DR cash / CR receivable for money received against a sale."""
    _ensure_not_posted(payment, f"Payment {payment.pk}")
    sale = payment.sale
    description = f"Payment received {sale.sale_number}"
    entry = post_journal_entry(
        journal_date=payment.payment_date,
        description=description,
        source_type="PAYMENT",
        source_id=payment.pk,
        lines=[
            _debit(_cash_account_for(payment.payment_method), payment.amount,
                   description, sale.branch_id),
            _credit(_role_account("receivable"), payment.amount,
                    description, sale.branch_id),
        ],
        user=user,
    )
    payment.journal_entry = entry
    payment.save(update_fields=["journal_entry"])
    return entry


@transaction.atomic
def post_supplier_payment_journal(payment, user=None):
    """DR payable / CR cash for money paid against a purchase order."""
    _ensure_not_posted(payment, f"Supplier payment {payment.pk}")
    purchase_order = payment.purchase_order
    description = f"Payment to supplier {purchase_order.po_number}"
    entry = post_journal_entry(
        journal_date=payment.payment_date,
        description=description,
        source_type="SUPPLIER_PAYMENT",
        source_id=payment.pk,
        lines=[
            _debit(_role_account("payable"), payment.amount,
                   description, purchase_order.branch_id),
            _credit(_cash_account_for(payment.payment_method), payment.amount,
                    description, purchase_order.branch_id),
        ],
        user=user,
    )
    payment.journal_entry = entry
    payment.save(update_fields=["journal_entry"])
    return entry


# ----------------------------
# Expenses
# ----------------------------
def expense_lines(expense):
    """DR category expense account / CR cash or the paying bank's account."""
    expense_account = expense.category.linked_account
    if expense.payment_method == "bank":
        credit_account = expense.bank_account.linked_account
    else:
        credit_account = _role_account("cash")
    description = f"{expense.expense_number}: {expense.description}"
    return [
        _debit(expense_account, expense.amount, description, expense.branch_id),
        _credit(credit_account, expense.amount, description, expense.branch_id),
    ]


@transaction.atomic
def post_expense_journal(expense, user=None):
    _ensure_not_posted(expense, f"Expense {expense.expense_number}")
    entry = post_journal_entry(
        journal_date=expense.payment_date or expense.expense_date,
        description=f"Expense {expense.expense_number} - {expense.category.name}",
        source_type="EXPENSE",
        source_id=expense.pk,
        lines=expense_lines(expense),
        user=user,
    )
    expense.journal_entry = entry
    expense.save(update_fields=["journal_entry"])
    return entry
