from django.contrib import admin

from ledger_core.models import Expense, ExpenseCategory, PurchaseOrder, Sale

from .inlines import PurchaseOrderLineInline, SaleLineInline


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ("sale_number", "sale_type", "customer", "sale_date", "status",
                    "total_amount", "paid_amount", "outstanding_amount")
    list_filter = ("sale_type", "status")
    search_fields = ("sale_number", "customer__name")
    readonly_fields = ("outstanding_amount", "journal_entry")
    inlines = [SaleLineInline]


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ("po_number", "supplier", "order_date", "status",
                    "total_amount", "paid_amount", "outstanding_amount")
    list_filter = ("status",)
    search_fields = ("po_number", "supplier__name")
    readonly_fields = ("outstanding_amount", "journal_entry")
    inlines = [PurchaseOrderLineInline]


@admin.register(ExpenseCategory)
class ExpenseCategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "linked_account", "requires_approval", "approval_threshold", "is_active")


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ("expense_number", "category", "expense_date", "amount", "status",
                    "payment_method", "journal_entry")
    list_filter = ("status", "category")
    search_fields = ("expense_number", "description", "vendor_name")
    readonly_fields = ("expense_number", "status", "journal_entry")
