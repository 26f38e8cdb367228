from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import InvariantViolationError
from ..managers import SoftDeleteManager
from .account import Account
from .banking import BankAccount
from .journal import JournalEntry
from .party import Branch

EXPENSE_STATUS = [
    ("draft", "Draft"),
    ("pending_approval", "Pending approval"),
    ("approved", "Approved"),
    ("rejected", "Rejected"),
    ("paid", "Paid"),
]

EXPENSE_PAYMENT_METHODS = [
    ("cash", "Cash"),  # paid from the default cash account
    ("bank", "Bank"),  # paid from a BankAccount, lowers its balance
]


class ExpenseCategory(models.Model):  # "Listrik", "Sewa", "Gaji", ...
    name = models.CharField(max_length=100, unique=True)
    # Expense account debited when an expense of this category is paid
    linked_account = models.ForeignKey(
        Account, on_delete=models.PROTECT, related_name="expense_categories"
    )
    requires_approval = models.BooleanField(default=True)
    # Amounts strictly below the threshold skip approval
    approval_threshold = models.DecimalField(
        max_digits=18, decimal_places=2, null=True, blank=True
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ("name",)
        verbose_name_plural = "expense categories"

    def __str__(self):
        return self.name

    def needs_approval(self, amount):
        if not self.requires_approval:
            return False
        if self.approval_threshold is not None and amount < self.approval_threshold:
            return False
        return True

    def clean(self):
        if self.linked_account_id and self.linked_account.ac_type != "expense":
            raise ValidationError("Expense category must link to an expense account.")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class Expense(models.Model):
    expense_number = models.CharField(max_length=32, unique=True)
    category = models.ForeignKey(
        ExpenseCategory, on_delete=models.PROTECT, related_name="expenses"
    )
    branch = models.ForeignKey(
        Branch, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    expense_date = models.DateField()
    description = models.TextField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    vendor_name = models.CharField(max_length=200, blank=True, default="")
    status = models.CharField(max_length=20, choices=EXPENSE_STATUS, default="draft")

    # Workflow stamps
    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL, related_name="+",
    )
    rejection_reason = models.TextField(blank=True, default="")

    # Payment
    payment_method = models.CharField(
        max_length=10, choices=EXPENSE_PAYMENT_METHODS, blank=True, default=""
    )
    bank_account = models.ForeignKey(
        BankAccount, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    payment_date = models.DateField(null=True, blank=True)
    check_number = models.CharField(max_length=50, blank=True, default="")
    journal_entry = models.OneToOneField(
        JournalEntry, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL, related_name="+",
    )
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteManager()

    class Meta:
        indexes = [models.Index(fields=["status", "expense_date"], name="expense_status_date_idx")]
        ordering = ("-expense_date", "-id")
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0), name="expense_amount_positive"
            ),
        ]

    def __str__(self):
        return f"{self.expense_number} {self.amount} ({self.status})"

    def transition_to(self, new_status):
        allowed = {
            "draft": ["pending_approval", "approved"],
            "pending_approval": ["approved", "rejected"],
            "approved": ["paid"],
            "rejected": [],
            "paid": [],
        }
        if new_status not in allowed.get(self.status, []):
            raise InvariantViolationError(
                f"Cannot go from {self.status} to {new_status} "
                f"(expense {self.expense_number})"
            )
        self.status = new_status
        return self

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
