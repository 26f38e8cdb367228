from django.contrib import admin, messages
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from ledger_core.exceptions import LedgerError
from ledger_core.services.banking import (bulk_reconcile,
                                          void_transaction)
from ledger_core.services.journal import post_draft_journal_entry
from ledger_core.services.periods import close_period

# ---------- Admin actions ----------
# Every action goes through the service layer, so admin users get the
# same validation, locking and logging as API callers.


@admin.action(description=_("Post selected draft journal entries"))
def post_journal_entries(modeladmin, request, queryset):
    """
    Post each selected draft in its own transaction and report
    per-entry failures via admin messages.
    """
    candidates = queryset.filter(status="draft", deleted_at__isnull=True)
    total = candidates.count()
    success = 0
    for entry in candidates:
        try:
            post_draft_journal_entry(entry.pk, user=request.user)
            success += 1
        except (ValidationError, LedgerError) as exc:
            modeladmin.message_user(
                request,
                _("Could not post %(number)s: %(err)s")
                % {"number": entry.journal_number, "err": exc},
                level=messages.ERROR,
            )

    modeladmin.message_user(
        request,
        _("Posted %(success)d of %(total)d journal entries.")
        % {"success": success, "total": total},
        level=messages.SUCCESS if success == total else messages.WARNING,
    )


@admin.action(description=_("Reconcile selected bank transactions"))
def reconcile_bank_transactions(modeladmin, request, queryset):
    result = bulk_reconcile(list(queryset.values_list("pk", flat=True)))
    modeladmin.message_user(
        request,
        _("Reconciled %(count)d transactions. Failed: %(failed)s")
        % {"count": result["success_count"], "failed": result["failed_ids"] or "none"},
        level=messages.SUCCESS if not result["failed_ids"] else messages.WARNING,
    )


@admin.action(description=_("Void selected bank transactions"))
def void_bank_transactions(modeladmin, request, queryset):
    for bank_tx in queryset:
        try:
            void_transaction(bank_tx.pk, user=request.user)
        except (ValidationError, LedgerError) as exc:
            modeladmin.message_user(
                request,
                _("Could not void transaction %(pk)s: %(err)s") % {"pk": bank_tx.pk, "err": exc},
                level=messages.ERROR,
            )


@admin.action(description=_("Close selected periods"))
def close_periods(modeladmin, request, queryset):
    for period in queryset.filter(status="open"):
        try:
            close_period(period.pk, user=request.user)
        except (ValidationError, LedgerError) as exc:
            modeladmin.message_user(
                request,
                _("Could not close %(name)s: %(err)s") % {"name": period.name, "err": exc},
                level=messages.ERROR,
            )
