from django.contrib import admin

from ledger_core.models import Account, Period

from .actions import close_periods


# Register `Account` model
@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    # show key accounting fields
    list_display = (
        "code",
        "name",
        "ac_type",
        "normal_balance",
        "category",
        "parent",
        "is_header",
        "is_active",
    )
    list_filter = ("ac_type", "is_header", "is_active")
    search_fields = ("code", "name")
    ordering = ("code",)

    def get_queryset(self, request):
        # soft-deleted accounts stay out of the admin
        return super().get_queryset(request).filter(deleted_at__isnull=True).select_related(
            "parent"
        )

    # code / type / normal balance / parent are fixed once created
    def get_readonly_fields(self, request, obj=None):
        if obj:
            return ("code", "ac_type", "normal_balance", "parent", "created_at")
        return ("created_at",)


# Register `Period` model
@admin.register(Period)
class PeriodAdmin(admin.ModelAdmin):
    list_display = ("name", "start_date", "end_date", "status", "closed_at")
    # status moves only through the period services
    readonly_fields = ("status", "closed_at", "closed_by")
    actions = [close_periods]
    list_filter = ("status",)
    search_fields = ("name",)
    ordering = ("-start_date",)
