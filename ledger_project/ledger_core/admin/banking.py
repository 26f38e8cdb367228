from django.contrib import admin

from ledger_core.models import BankAccount, BankTransaction

from .actions import reconcile_bank_transactions, void_bank_transactions


# Register `BankAccount` model
@admin.register(BankAccount)
class BankAccountAdmin(admin.ModelAdmin):
    list_display = ("name", "bank_name", "account_number_masked", "linked_account",
                    "initial_balance", "current_balance", "is_active")
    list_filter = ("is_active",)
    # the cached balance only moves through bank transactions
    readonly_fields = ("current_balance",)

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("linked_account")


# Register `BankTransaction` model
@admin.register(BankTransaction)
class BankTransactionAdmin(admin.ModelAdmin):
    list_display = ("id", "bank_account", "transaction_date", "transaction_type",
                    "amount", "reference", "reconciliation_status", "journal_entry")
    list_filter = ("bank_account", "transaction_type", "reconciliation_status")
    search_fields = ("reference", "description")
    actions = [reconcile_bank_transactions, void_bank_transactions]

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        return super().get_queryset(request).select_related("bank_account", "journal_entry")

    # Recorded through record_transaction only
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
