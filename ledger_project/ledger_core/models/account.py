from decimal import Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import SoftDeleteManager

# Choice Lists
AC_TYPES = [
    # Used in Account model to classify general ledger accounts
    ("asset", "Asset"),
    ("liability", "Liability"),
    ("equity", "Equity"),
    ("revenue", "Revenue"),
    ("expense", "Expense"),
]

# Define whether the account normally increases
# on the debit side or credit side
NORMAL_BALANCE = [
    ("debit", "Debit"),
    ("credit", "Credit"),
]

# Fields frozen once the account exists:
# changing them would silently reclassify history in old reports
IMMUTABLE_FIELDS = ("code", "ac_type", "normal_balance", "parent_id")


class Account(models.Model):
    """
    Node of the Chart of Accounts.
    - code is unique among non-deleted accounts ("1-101")
    - ac_type: decides Balance Sheet vs Income Statement
    - normal_balance: sign used when building reports
    - header accounts only group children; lines post to leaves
    """

    # Every account has a code
    # which lets you sort/group accounts consistently in reports.
    code = models.CharField(max_length=32)
    name = models.CharField(
        max_length=200
    )  # Human-readable name → "Kas Besar", "Piutang Usaha".

    # Classify account into one of the 5 basic accounting types
    ac_type = models.CharField(max_length=10, choices=AC_TYPES)

    # Assets/Expenses → Debit, Liabilities/Equity/Revenue → Credit.
    normal_balance = models.CharField(
        max_length=6,
        choices=NORMAL_BALANCE,
        default="debit",
    )

    # Free-text grouping ("Current Asset", "Fixed Asset", "COGS", ...)
    # Balance sheet / income statement sections are derived from it
    category = models.CharField(max_length=100, blank=True, default="")

    # Tree stored flat: children point at their parent,
    # the tree is rebuilt at read time
    parent = models.ForeignKey(
        "self",
        null=True,
        blank=True,
        on_delete=models.PROTECT,  # you can’t delete a parent if children exist
        related_name="children",
    )
    is_header = models.BooleanField(default=False)
    level = models.PositiveSmallIntegerField(default=1)  # depth, root = 1

    # “soft deactivate” accounts (hide in UI, stop new postings)
    # without deleting history
    is_active = models.BooleanField(default=True)
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteManager()

    class Meta:
        ordering = ("code",)
        indexes = [  # Optimize queries
            # For reports grouped by ac_type
            models.Index(fields=["ac_type"], name="acct_ac_type_idx"),
            models.Index(fields=["parent"], name="acct_parent_idx"),
        ]
        constraints = [
            # Codes may be reused only after the old account is deleted
            models.UniqueConstraint(
                fields=["code"],
                condition=models.Q(deleted_at__isnull=True),
                name="uq_live_account_code",
                violation_error_message="Account code already exists.",
            )
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"  # Example: "1-101 – Kas Besar"

    @property
    def is_postable(self):
        """Only active, live leaf accounts may receive journal lines."""
        return (
            not self.is_header
            and self.is_active
            and self.deleted_at is None
        )

    def signed_balance(self, debit, credit):
        """Net amount in the account's natural direction."""
        debit = debit or Decimal("0.00")
        credit = credit or Decimal("0.00")
        if self.normal_balance == "debit":
            return debit - credit
        return credit - debit

    def clean(self):
        if self.parent_id:
            if self.pk and self.parent_id == self.pk:
                raise ValidationError("Account cannot be its own parent.")
            parent = self.parent
            # Parent must exist, be live, and be a grouping node
            if parent.deleted_at is not None:
                raise ValidationError("Parent account is deleted.")
            if not parent.is_header:
                raise ValidationError("Parent account must be a header account.")

    def save(self, *args, **kwargs):
        """Enforce immutability of the classification fields"""
        if self.pk:
            # Fetch the previous version of account from DB
            old = Account.objects.filter(pk=self.pk).first()
            if old:
                for field in IMMUTABLE_FIELDS:
                    if getattr(old, field) != getattr(self, field):
                        raise ValidationError(
                            f"Account {field.removesuffix('_id')} cannot be "
                            "changed after creation."
                        )
        # clean()+field validation+constraints run on every save
        self.full_clean()
        return super().save(*args, **kwargs)
