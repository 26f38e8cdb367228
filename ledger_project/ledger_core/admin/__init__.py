from .account import AccountAdmin, PeriodAdmin
from .actions import (close_periods, post_journal_entries,
                      reconcile_bank_transactions, void_bank_transactions)
from .banking import BankAccountAdmin, BankTransactionAdmin
from .documents import (ExpenseAdmin, ExpenseCategoryAdmin,
                        PurchaseOrderAdmin, SaleAdmin)
from .inlines import (JournalLineInline, PurchaseOrderLineInline,
                      SaleLineInline)
from .journal import JournalEntryAdmin
