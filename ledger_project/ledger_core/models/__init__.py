from .account import AC_TYPES, NORMAL_BALANCE, Account
from .banking import (INFLOW_TYPES, OUTFLOW_TYPES, RECONCILIATION_STATUS,
                      TRANSACTION_TYPES, BankAccount, BankTransaction)
from .documents import (PAYMENT_METHODS, PO_STATUS, SALE_STATUS, SALE_TYPES,
                        PurchaseOrder, PurchaseOrderLine, PurchaseOrderPayment,
                        Sale, SaleLine, SalePayment)
from .expense import EXPENSE_PAYMENT_METHODS, EXPENSE_STATUS, Expense, ExpenseCategory
from .journal import JOURNAL_STATUS, SOURCE_TYPES, JournalEntry, JournalLine
from .party import Branch, Customer, Supplier
from .period import PERIOD_STATUS, Period
from .sequence import Sequence

__all__ = [
    "AC_TYPES",
    "NORMAL_BALANCE",
    "Account",
    "INFLOW_TYPES",
    "OUTFLOW_TYPES",
    "RECONCILIATION_STATUS",
    "TRANSACTION_TYPES",
    "BankAccount",
    "BankTransaction",
    "PAYMENT_METHODS",
    "PO_STATUS",
    "SALE_STATUS",
    "SALE_TYPES",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "PurchaseOrderPayment",
    "Sale",
    "SaleLine",
    "SalePayment",
    "EXPENSE_PAYMENT_METHODS",
    "EXPENSE_STATUS",
    "Expense",
    "ExpenseCategory",
    "JOURNAL_STATUS",
    "SOURCE_TYPES",
    "JournalEntry",
    "JournalLine",
    "Branch",
    "Customer",
    "Supplier",
    "PERIOD_STATUS",
    "Period",
    "Sequence",
]
