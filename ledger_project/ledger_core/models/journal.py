from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from ..exceptions import InvariantViolationError
from ..managers import JournalLineManager, SoftDeleteManager
from .account import Account
from .party import Branch

JOURNAL_STATUS = [
    ("draft", "Draft"),  # still editable, not in any report
    ("posted", "Posted"),  # authoritative
    ("voided", "Voided"),  # reversed by status flip, lines kept for audit
]

# Originating subsystem of an entry
SOURCE_TYPES = [
    ("MANUAL", "Manual"),
    ("ADJUSTMENT", "Adjustment"),
    ("BANK", "Bank transaction"),
    ("SALES", "Sale"),
    ("PURCHASE", "Purchase"),
    ("PAYMENT", "Customer payment"),
    ("SUPPLIER_PAYMENT", "Supplier payment"),
    ("EXPENSE", "Expense"),
    ("YEAR_END_CLOSE", "Year-end closing"),  # revenue and expense into retained earnings
]

# Header fields that never change once an entry leaves draft
FROZEN_FIELDS = (
    "journal_number",
    "journal_date",
    "source_type",
    "source_id",
    "total_debit",
    "total_credit",
)


# ---------- Journal (Header) & JournalLine ----------
class JournalEntry(models.Model):  # Represents one accounting transaction
    # Sequential human-readable number: JE-00000001
    journal_number = models.CharField(max_length=32, unique=True)
    journal_date = models.DateField()
    description = models.TextField(blank=True, default="")

    # polymorphic source info (bank txn, sale, purchase order, expense)
    # Helps trace back where the JE originated
    source_type = models.CharField(max_length=20, choices=SOURCE_TYPES, default="MANUAL")
    source_id = models.BigIntegerField(null=True, blank=True)

    status = models.CharField(max_length=10, choices=JOURNAL_STATUS, default="draft")

    # Cached sums of the lines, written once at insert
    total_debit = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    total_credit = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL, related_name="+",
    )
    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL, related_name="+",
    )
    voided_at = models.DateTimeField(null=True, blank=True)
    voided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL, related_name="+",
    )
    void_reason = models.TextField(blank=True, default="")

    # Only drafts are ever soft-deleted
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteManager()

    class Meta:
        # Speed up listing & filtering
        # (e.g. show all posted entries this month)
        indexes = [
            models.Index(fields=["journal_date"], name="je_date_idx"),
            models.Index(fields=["status"], name="je_status_idx"),
            models.Index(fields=["source_type", "source_id"], name="je_source_idx"),
        ]
        ordering = ("-journal_date", "-journal_number")
        verbose_name_plural = "journal entries"

        constraints = [
            # Posted/voided entries carry equal totals, to the cent
            models.CheckConstraint(
                condition=models.Q(status="draft")
                | models.Q(total_debit=models.F("total_credit")),
                name="je_non_draft_is_balanced",
            ),
            models.CheckConstraint(
                condition=models.Q(total_debit__gte=0) & models.Q(total_credit__gte=0),
                name="je_non_negative_totals",
            ),
        ]

    def __str__(self):
        return f"{self.journal_number} {self.journal_date} [{self.status}]"

    # Aggregate all debit and credit amounts across entry’s lines
    def compute_totals(self):
        """Return debits, credits sums for lines"""
        aggs = self.lines.aggregate(
            total_debit=models.Sum("debit_amount"),
            total_credit=models.Sum("credit_amount"),
        )
        return (
            aggs["total_debit"] or Decimal("0.00"),
            aggs["total_credit"] or Decimal("0.00"),
        )

    # True if double-entry rule holds: total debits = total credits
    def is_balanced(self):
        debit, credit = self.compute_totals()
        return debit == credit

    # Control status changes
    def transition_to(self, new_status, user=None, reason=""):
        allowed = {
            "draft": ["posted"],
            "posted": ["voided"],
            "voided": [],  # terminal, no un-void
        }
        if new_status not in allowed.get(self.status, []):
            raise InvariantViolationError(
                f"Cannot go from {self.status} to {new_status} "
                f"(journal {self.journal_number})"
            )

        now = timezone.now()
        self.status = new_status
        if new_status == "posted":
            self.posted_at = now
            self.posted_by = user
            fields = ["status", "posted_at", "posted_by"]
        else:
            self.voided_at = now
            self.voided_by = user
            self.void_reason = reason or ""
            fields = ["status", "voided_at", "voided_by", "void_reason"]
        self.save(update_fields=fields)
        return self

    def save(self, *args, **kwargs):
        if self.pk:  # Does this row already exist in DB?
            orig = JournalEntry.objects.filter(pk=self.pk).first()
            if orig and orig.status != "draft":
                # Posted history is immutable: only posted → voided
                if orig.status == "voided" and self.status != "voided":
                    raise ValidationError("Cannot un-void a voided journal.")
                if orig.status == "posted" and self.status not in ("posted", "voided"):
                    raise ValidationError("Cannot unpost a posted journal.")
                for field in FROZEN_FIELDS:
                    if getattr(orig, field) != getattr(self, field):
                        raise ValidationError(
                            f"Cannot modify {field} of a {orig.status} journal."
                        )
                if self.deleted_at is not None:
                    raise ValidationError("Only draft journals can be deleted.")

        # clean()+field validation+constraints before every write
        self.full_clean()
        super().save(*args, **kwargs)


class JournalLine(models.Model):  # Stores Lines ( credits / debits )
    """
    Each line belongs to one journal entry and one leaf GL account.
    Lines are written while the entry is a draft and frozen afterwards:
    corrections go through a new entry, never an edit.
    """

    journal = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    # Must point to one Account (can’t delete account if lines exist → PROTECT)
    account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="journal_lines"
    )
    # Optional cost-center tag
    branch = models.ForeignKey(
        Branch, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )

    description = models.CharField(max_length=400, blank=True, default="")
    debit_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    credit_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    sort_order = models.PositiveIntegerField(default=0)

    objects = JournalLineManager()

    class Meta:
        # For fast queries like “all lines for this account” /
        # “all lines in this JE.”
        indexes = [
            models.Index(fields=["account"], name="jl_account_idx"),
            models.Index(fields=["journal", "sort_order"], name="jl_journal_sort_idx"),
        ]
        ordering = ("journal", "sort_order")

        constraints = [
            # Enforce debits and credits must be non-negative
            models.CheckConstraint(
                condition=models.Q(debit_amount__gte=0) & models.Q(credit_amount__gte=0),
                name="jl_non_negative_amounts",
            ),
            # Exactly one side carries the amount
            models.CheckConstraint(
                condition=~(models.Q(debit_amount=0) & models.Q(credit_amount=0)),
                name="jl_debit_or_credit_nonzero",
            ),
            models.CheckConstraint(
                condition=~(models.Q(debit_amount__gt=0) & models.Q(credit_amount__gt=0)),
                name="jl_not_both_sides",
            ),
        ]

    # Show journal, account, and amounts in admin dropdowns and debug logs
    def __str__(self):
        return (
            f"{self.journal_id} | {self.account.code} {self.account.name} "
            f"| D:{self.debit_amount} C:{self.credit_amount}"
        )

    @property
    def signed_amount(self):
        """Debit − credit (positive means a net debit)."""
        return self.debit_amount - self.credit_amount

    def clean(self):
        # Ensure no negative values sneak in
        # (redundant with CheckConstraint but gives a readable message)
        if self.debit_amount < 0 or self.credit_amount < 0:
            raise ValidationError("Debit and credit must be >= 0")
        if self.debit_amount > 0 and self.credit_amount > 0:
            raise ValidationError(
                "JournalLine should not have both debit and credit > 0"
            )
        if self.debit_amount == 0 and self.credit_amount == 0:
            raise ValidationError(
                "JournalLine requires a non-0 amount on either debit or credit"
            )

        # Lines only attach to drafts; posting freezes them
        if self.journal_id:
            status = (
                JournalEntry.objects.filter(pk=self.journal_id)
                .values_list("status", flat=True)
                .first()
            )
            if status and status != "draft":
                raise ValidationError(
                    f"Cannot add or modify JournalLine: parent journal is {status}."
                )

        # Postings go to live, active leaf accounts only
        if self.account_id and not self.account.is_postable:
            raise ValidationError(
                f"Account {self.account.code} cannot receive postings "
                "(header, inactive or deleted)."
            )

    def delete(self, *args, **kwargs):
        # Prevent deletion once the parent journal left draft
        if self.journal_id and JournalEntry.objects.filter(
            pk=self.journal_id
        ).exclude(status="draft").exists():
            raise ValidationError(
                "Cannot delete JournalLine: parent JournalEntry is not a draft."
            )
        return super().delete(*args, **kwargs)

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
