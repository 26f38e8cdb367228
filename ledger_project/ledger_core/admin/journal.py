from django.contrib import admin
from django.utils.html import format_html

from ledger_core.models import JournalEntry

from .actions import post_journal_entries
from .inlines import JournalLineInline


# Register `JournalEntry` model
@admin.register(JournalEntry)
class JournalEntryAdmin(admin.ModelAdmin):
    """Journals are created by services; the admin reviews and posts drafts."""

    list_display = (
        "journal_number",
        "journal_date",
        "source_type",
        "source_id",
        "status",
        "balanced",
        "posted_at",
    )
    list_filter = ("status", "source_type", "journal_date")
    search_fields = ("journal_number", "description")
    readonly_fields = (
        "journal_number", "journal_date", "source_type", "source_id", "status",
        "total_debit", "total_credit", "created_by", "created_at",
        "posted_by", "posted_at", "voided_by", "voided_at", "void_reason",
    )
    inlines = [JournalLineInline]
    actions = [post_journal_entries]

    def get_queryset(self, request):
        return super().get_queryset(request).filter(deleted_at__isnull=True)

    """ Computed column for balance check """
    def balanced(self, obj):
        # format: bold debits / small credits
        return format_html("<b>{}</b> / <small>{}</small>", obj.total_debit, obj.total_credit)

    balanced.short_description = "Debits / Credits"

    def has_add_permission(self, request):
        return False

    """ Prevent deletion after posting """
    def has_delete_permission(self, request, obj=None):
        if obj and obj.status != "draft":
            return False
        return super().has_delete_permission(request, obj)
