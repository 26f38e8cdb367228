from django.urls import path

from . import views

app_name = "ledger_core"

urlpatterns = [
    # Chart of Accounts
    path("accounts/", views.accounts_view, name="accounts"),
    path("accounts/tree/", views.account_tree_view, name="account-tree"),
    path("accounts/<int:account_id>/", views.account_detail_view, name="account-detail"),
    # Journal
    path("journals/", views.journal_entries_view, name="journal-entries"),
    path("journals/<int:entry_id>/", views.journal_entry_detail_view, name="journal-entry"),
    path("journals/<int:entry_id>/post/", views.journal_entry_post_view, name="journal-post"),
    path("journals/<int:entry_id>/void/", views.journal_entry_void_view, name="journal-void"),
    # Banking
    path("bank/transactions/", views.bank_transactions_view, name="bank-transactions"),
    path("bank/transactions/reconcile/", views.bank_bulk_reconcile_view,
         name="bank-bulk-reconcile"),
    path("bank/transactions/<int:transaction_id>/reconcile/",
         views.bank_transaction_action_view, {"action": "reconcile"}, name="bank-reconcile"),
    path("bank/transactions/<int:transaction_id>/unreconcile/",
         views.bank_transaction_action_view, {"action": "unreconcile"}, name="bank-unreconcile"),
    path("bank/transactions/<int:transaction_id>/void/",
         views.bank_transaction_action_view, {"action": "void"}, name="bank-void"),
    path("bank/accounts/<int:bank_account_id>/statement/", views.bank_statement_view,
         name="bank-statement"),
    # Reports
    path("reports/trial-balance/", views.trial_balance_view, name="trial-balance"),
    path("reports/ledger/<int:account_id>/", views.account_ledger_view, name="account-ledger"),
    path("reports/balance-sheet/", views.balance_sheet_view, name="balance-sheet"),
    path("reports/income-statement/", views.income_statement_view, name="income-statement"),
    path("reports/cash-flow/", views.cash_flow_view, name="cash-flow"),
    # Aging
    path("aging/ar/", views.ar_aging_view, name="ar-aging"),
    path("aging/ap/", views.ap_aging_view, name="ap-aging"),
    path("aging/customers/<int:customer_id>/", views.customer_outstanding_view,
         name="customer-outstanding"),
    path("aging/suppliers/<int:supplier_id>/", views.supplier_outstanding_view,
         name="supplier-outstanding"),
    path("aging/overdue/", views.overdue_invoices_view, name="overdue-invoices"),
    path("aging/collections/", views.collection_metrics_view, name="collection-metrics"),
    # Periods
    path("periods/", views.periods_view, name="periods"),
    path("periods/year-end-close/", views.year_end_close_view, name="year-end-close"),
    path("periods/<int:period_id>/close/", views.period_action_view, {"action": "close"},
         name="period-close"),
    path("periods/<int:period_id>/lock/", views.period_action_view, {"action": "lock"},
         name="period-lock"),
    path("periods/<int:period_id>/reopen/", views.period_action_view, {"action": "reopen"},
         name="period-reopen"),
    path("dashboard/", views.dashboard_view, name="dashboard"),
]
