from django.contrib import admin

from ledger_core.models import JournalLine, PurchaseOrderLine, SaleLine

# ---------- Helpful inline admin classes ----------


class JournalLineInline(admin.TabularInline):
    """Show JournalLine rows on JournalEntry page (read-only)"""

    model = JournalLine
    extra = 0  # don’t show “empty” rows by default
    fields = ("sort_order", "account", "branch", "description", "debit_amount", "credit_amount")
    readonly_fields = fields  # lines are written by the posting service only
    ordering = ("sort_order",)
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("account", "branch")


class SaleLineInline(admin.TabularInline):
    model = SaleLine
    extra = 0
    fields = ("description", "category", "quantity", "unit_price",
              "discount_amount", "subtotal", "cogs_amount")
    readonly_fields = ("subtotal",)  # computed on save


class PurchaseOrderLineInline(admin.TabularInline):
    model = PurchaseOrderLine
    extra = 0
    fields = ("description", "category", "quantity", "unit_price", "subtotal")
    readonly_fields = ("subtotal",)
