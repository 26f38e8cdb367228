from decimal import ROUND_HALF_UP, Decimal
from django.core.exceptions import ValidationError
from django.db import models
from ..managers import SoftDeleteManager
from .journal import JournalEntry
from .party import Branch, Customer, Supplier

SALE_TYPES = [
    ("retail", "Retail"),
    ("clinic", "Clinic"),
    ("hotel", "Hotel"),
]

SALE_STATUS = [
    ("draft", "Draft"),
    ("completed", "Completed"),  # only completed sales are receivables
    ("cancelled", "Cancelled"),
]

PO_STATUS = [
    ("draft", "Draft"),
    ("submitted", "Submitted"),  # submitted/received orders are payables
    ("received", "Received"),
    ("cancelled", "Cancelled"),
]

PAYMENT_METHODS = [
    ("cash", "Cash"),
    ("bank_transfer", "Bank Transfer"),
    ("qris", "QRIS"),
    ("card", "Card"),
    ("other", "Other"),
]

CENT = Decimal("0.01")


# ---------- Outstanding documents ----------
# Owned by the sales / procurement side; the ledger posts them
# once and the aging engine reads total/paid/outstanding.


class OutstandingDocument(models.Model):
    total_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    paid_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    # Always total_amount - paid_amount, maintained in save()
    outstanding_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    due_date = models.DateField(null=True, blank=True)

    # Journal posted for this document (stored back for traceability)
    journal_entry = models.OneToOneField(
        JournalEntry,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="+",
    )
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = SoftDeleteManager()

    class Meta:
        abstract = True

    @property
    def document_date(self):  # overridden per document type
        raise NotImplementedError

    def recalc_outstanding(self):
        self.outstanding_amount = self.total_amount - self.paid_amount

    def clean(self):
        if self.total_amount < 0 or self.paid_amount < 0:
            raise ValidationError("Amounts must be non-negative.")
        # cannot pay more than the document is worth
        if self.paid_amount > self.total_amount:
            raise ValidationError("Paid amount cannot exceed total amount.")

    def save(self, *args, **kwargs):
        self.recalc_outstanding()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "paid_amount" in update_fields:
            kwargs["update_fields"] = set(update_fields) | {"outstanding_amount"}
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


class Sale(OutstandingDocument):  # Retail sale, clinic visit or hotel checkout
    sale_number = models.CharField(max_length=50, unique=True)
    sale_type = models.CharField(max_length=10, choices=SALE_TYPES, default="retail")
    customer = models.ForeignKey(
        Customer, null=True, blank=True, on_delete=models.PROTECT, related_name="sales"
    )  # empty for walk-in customers
    branch = models.ForeignKey(
        Branch, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    sale_date = models.DateField()
    status = models.CharField(max_length=10, choices=SALE_STATUS, default="draft")

    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    discount_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    class Meta:
        indexes = [
            models.Index(fields=["status", "sale_date"], name="sale_status_date_idx"),
            models.Index(fields=["customer"], name="sale_customer_idx"),
        ]
        ordering = ("-sale_date", "-id")

    def __str__(self):
        return f"{self.sale_number} ({self.status})"

    @property
    def document_date(self):
        return self.sale_date

    def recalc_totals(self):
        """subtotal = Σ line subtotals; total = subtotal − discount + tax"""
        if not self.pk:
            return
        self.subtotal = sum(
            (line.subtotal for line in self.lines.all()), Decimal("0.00")
        )
        self.total_amount = self.subtotal - self.discount_amount + self.tax_amount


class SaleLine(models.Model):
    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name="lines")
    description = models.CharField(max_length=200)
    # Product/service category name; routes revenue, COGS and inventory
    category = models.CharField(max_length=100, blank=True, default="")
    quantity = models.DecimalField(max_digits=12, decimal_places=2, default=1)
    unit_price = models.DecimalField(max_digits=18, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    # Cost of goods sold for this line (0 for pure services)
    cogs_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    def __str__(self):
        return f"{self.sale_id}: {self.description} x{self.quantity}"

    def save(self, *args, **kwargs):
        # round to 2 decimal places before assigning
        self.subtotal = (self.quantity * self.unit_price - self.discount_amount).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
        return super().save(*args, **kwargs)


class SalePayment(models.Model):  # Installment received against a sale
    sale = models.ForeignKey(Sale, on_delete=models.PROTECT, related_name="payments")
    payment_date = models.DateField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHODS, default="cash")
    reference = models.CharField(max_length=200, blank=True, default="")
    journal_entry = models.OneToOneField(
        JournalEntry, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-payment_date", "-id")
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0), name="sale_payment_amount_positive"
            ),
        ]

    def __str__(self):
        return f"{self.sale_id} paid {self.amount} on {self.payment_date}"


class PurchaseOrder(OutstandingDocument):
    po_number = models.CharField(max_length=50, unique=True)
    supplier = models.ForeignKey(
        Supplier, on_delete=models.PROTECT, related_name="purchase_orders"
    )
    branch = models.ForeignKey(
        Branch, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    order_date = models.DateField()
    status = models.CharField(max_length=10, choices=PO_STATUS, default="draft")
    tax_amount = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    class Meta:
        indexes = [
            models.Index(fields=["status", "order_date"], name="po_status_date_idx"),
            models.Index(fields=["supplier"], name="po_supplier_idx"),
        ]
        ordering = ("-order_date", "-id")

    def __str__(self):
        return f"{self.po_number} ({self.status})"

    @property
    def document_date(self):
        return self.order_date

    def recalc_totals(self):
        """total = Σ quantity × unit price + tax"""
        if not self.pk:
            return
        goods = sum((line.subtotal for line in self.lines.all()), Decimal("0.00"))
        self.total_amount = goods + self.tax_amount


class PurchaseOrderLine(models.Model):
    purchase_order = models.ForeignKey(
        PurchaseOrder, on_delete=models.CASCADE, related_name="lines"
    )
    description = models.CharField(max_length=200)
    category = models.CharField(max_length=100, blank=True, default="")
    quantity = models.DecimalField(max_digits=12, decimal_places=2, default=1)
    unit_price = models.DecimalField(max_digits=18, decimal_places=2)
    subtotal = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    def __str__(self):
        return f"{self.purchase_order_id}: {self.description} x{self.quantity}"

    def save(self, *args, **kwargs):
        self.subtotal = (self.quantity * self.unit_price).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
        return super().save(*args, **kwargs)


class PurchaseOrderPayment(models.Model):  # Payment made to a supplier
    purchase_order = models.ForeignKey(
        PurchaseOrder, on_delete=models.PROTECT, related_name="payments"
    )
    payment_date = models.DateField()
    amount = models.DecimalField(max_digits=18, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHODS, default="cash")
    reference = models.CharField(max_length=200, blank=True, default="")
    journal_entry = models.OneToOneField(
        JournalEntry, null=True, blank=True, on_delete=models.PROTECT, related_name="+"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-payment_date", "-id")
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0), name="po_payment_amount_positive"
            ),
        ]

    def __str__(self):
        return f"{self.purchase_order_id} paid {self.amount} on {self.payment_date}"
