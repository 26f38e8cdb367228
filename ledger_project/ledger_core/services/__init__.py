from .accounts import (account_balance, account_detail, account_tree,
                       build_account_tree, create_account, get_account_by_code,
                       list_accounts, remove_account, resolve_postable_account,
                       search_accounts, update_account)
from .aging import (ap_aging_report, aging_bucket, ar_aging_report,
                    collection_metrics, customer_outstanding,
                    days_outstanding, overdue_invoices, supplier_outstanding)
from .banking import (balance_at_date, bank_statement, bulk_reconcile,
                      rebuild_current_balance, reconcile_transaction,
                      record_transaction, unreconcile_transaction,
                      void_transaction)
from .dashboard import dashboard_stats, recent_sales, sales_chart
from .expenses import (approve_expense, create_expense, pay_expense,
                       reject_expense, submit_expense)
from .journal import (create_journal_entry, get_journal_entry,
                      journal_entries_by_source, list_journal_entries,
                      post_draft_journal_entry, post_journal_entry,
                      remove_draft_journal_entry, void_journal_entry)
from .payments import record_purchase_payment, record_sale_payment
from .periods import (close_period, create_period, list_periods, lock_period,
                      reopen_period, year_end_close)
from .reports import (account_balances, account_ledger, balance_sheet,
                      cash_flow_statement, income_statement, trial_balance)
from .sequence import next_expense_number, next_journal_number
from .translators import (post_bank_transaction_journal,
                          post_customer_payment_journal, post_expense_journal,
                          post_purchase_journal, post_sale_journal,
                          post_supplier_payment_journal)
