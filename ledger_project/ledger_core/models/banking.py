from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from ..exceptions import InvariantViolationError, UnknownTransactionTypeError
from ..managers import SoftDeleteManager
from .account import Account
from .journal import JournalEntry

TRANSACTION_TYPES = [
    ("DEPOSIT", "Deposit"),
    ("WITHDRAWAL", "Withdrawal"),
    ("TRANSFER_IN", "Transfer in"),
    ("TRANSFER_OUT", "Transfer out"),
    ("FEE", "Bank fee"),
    ("INTEREST", "Interest"),
]

# Types that increase the bank balance; the rest decrease it
INFLOW_TYPES = frozenset({"DEPOSIT", "TRANSFER_IN", "INTEREST"})
OUTFLOW_TYPES = frozenset({"WITHDRAWAL", "TRANSFER_OUT", "FEE"})

RECONCILIATION_STATUS = [
    ("UNRECONCILED", "Unreconciled"),
    ("RECONCILED", "Reconciled"),
    ("VOID", "Void"),
]


# ---------- Banking ----------


class BankAccount(models.Model):  # Represents a bank account the business keeps
    name = models.CharField(max_length=200)  # e.g. "BCA Operasional"
    bank_name = models.CharField(max_length=100, blank=True, default="")
    # Partial account number for display/security
    account_number_masked = models.CharField(max_length=50, blank=True, default="")

    # The CoA leaf that represents this bank in the ledger (1:1)
    linked_account = models.OneToOneField(
        Account, on_delete=models.PROTECT, related_name="bank_account"
    )

    initial_balance = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    # Running cache; source of truth is initial_balance ± transactions
    current_balance = models.DecimalField(
        max_digits=18, decimal_places=2, null=True, blank=True
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteManager()

    class Meta:
        ordering = ("name",)

    def __str__(self):
        # Show name + masked number for clarity
        if self.account_number_masked:
            return f"{self.name} ({self.account_number_masked})"
        return self.name

    def clean(self):
        if self.linked_account_id:
            acct = self.linked_account
            if acct.is_header or acct.deleted_at is not None:
                raise ValidationError(
                    "Bank account must link to a live leaf account."
                )
            if acct.ac_type != "asset":
                raise ValidationError("Bank account must link to an asset account.")

    def save(self, *args, **kwargs):
        # A new account starts with its opening balance
        if self._state.adding and self.current_balance is None:
            self.current_balance = self.initial_balance
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


class BankTransaction(models.Model):  # Single inflow/outflow on a bank account
    # prevent BankAccount deletion if transactions exist
    bank_account = models.ForeignKey(
        BankAccount, on_delete=models.PROTECT, related_name="transactions"
    )
    transaction_date = models.DateField()
    transaction_type = models.CharField(max_length=20, choices=TRANSACTION_TYPES)
    # always positive: direction comes from transaction_type
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    reference = models.CharField(max_length=200, blank=True, default="")
    description = models.TextField(blank=True, default="")
    bank_statement_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    reconciliation_status = models.CharField(
        max_length=20, choices=RECONCILIATION_STATUS, default="UNRECONCILED"
    )
    reconciled_at = models.DateTimeField(null=True, blank=True)

    # Journal generated for this transaction (1:1, optional)
    journal_entry = models.OneToOneField(
        JournalEntry,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="bank_transaction",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL, related_name="+",
    )
    deleted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        # Optimizes queries for statements and reconciliation
        indexes = [
            models.Index(fields=["bank_account", "transaction_date"], name="bt_account_date_idx"),
            models.Index(fields=["reconciliation_status"], name="bt_recon_status_idx"),
        ]
        ordering = ("transaction_date", "id")
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="bt_amount_positive",
            ),
        ]

    # Show something human-readable in Django Admin
    def __str__(self):
        return (
            f"{self.bank_account.name} - {self.transaction_date} - "
            f"{self.transaction_type} {self.amount} ({self.reconciliation_status})"
        )

    @staticmethod
    def delta_for(transaction_type, amount):
        """Signed effect of a transaction on the bank balance."""
        if transaction_type in INFLOW_TYPES:
            return amount
        if transaction_type in OUTFLOW_TYPES:
            return -amount
        raise UnknownTransactionTypeError(
            f"Unknown bank transaction type: {transaction_type!r}"
        )

    @property
    def balance_delta(self):
        return self.delta_for(self.transaction_type, self.amount)

    def clean(self):
        if self.amount is not None and self.amount <= Decimal("0"):
            raise ValidationError("Amount must be greater than 0.")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)

    def transition_to(self, new_status):
        # Current state vs. allowed next states
        allowed = {
            "UNRECONCILED": ["RECONCILED", "VOID"],
            "RECONCILED": ["UNRECONCILED", "VOID"],
            "VOID": [],  # terminal
        }
        if new_status not in allowed.get(self.reconciliation_status, []):
            if new_status == self.reconciliation_status:
                raise InvariantViolationError(
                    f"Transaction {self.pk} is already {new_status.lower()}."
                )
            raise InvariantViolationError(
                f"Cannot go from {self.reconciliation_status} to {new_status}"
            )
        self.reconciliation_status = new_status
        return self
