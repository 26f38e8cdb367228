import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=18, **kwargs)


def _user_fk():
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.SET_NULL,
        related_name="+",
        to=settings.AUTH_USER_MODEL,
    )


def _journal_o2o(related_name="+"):
    return models.OneToOneField(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.PROTECT,
        related_name=related_name,
        to="ledger_core.journalentry",
    )


def _branch_fk():
    return models.ForeignKey(
        blank=True,
        null=True,
        on_delete=django.db.models.deletion.PROTECT,
        related_name="+",
        to="ledger_core.branch",
    )


PAYMENT_METHODS = [
    ("cash", "Cash"),
    ("bank_transfer", "Bank Transfer"),
    ("qris", "QRIS"),
    ("card", "Card"),
    ("other", "Other"),
]


def _outstanding_fields():
    return [
        ("total_amount", _money(default=0)),
        ("paid_amount", _money(default=0)),
        ("outstanding_amount", _money(default=0)),
        ("due_date", models.DateField(blank=True, null=True)),
        ("journal_entry", _journal_o2o()),
        ("notes", models.TextField(blank=True, default="")),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("deleted_at", models.DateTimeField(blank=True, null=True)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32)),
                ("name", models.CharField(max_length=200)),
                ("ac_type", models.CharField(choices=[("asset", "Asset"), ("liability", "Liability"), ("equity", "Equity"), ("revenue", "Revenue"), ("expense", "Expense")], max_length=10)),
                ("normal_balance", models.CharField(choices=[("debit", "Debit"), ("credit", "Credit")], default="debit", max_length=6)),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                ("is_header", models.BooleanField(default=False)),
                ("level", models.PositiveSmallIntegerField(default=1)),
                ("is_active", models.BooleanField(default=True)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("parent", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="children", to="ledger_core.account")),
            ],
            options={
                "ordering": ("code",),
                "indexes": [
                    models.Index(fields=["ac_type"], name="acct_ac_type_idx"),
                    models.Index(fields=["parent"], name="acct_parent_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("deleted_at__isnull", True)),
                        fields=("code",),
                        name="uq_live_account_code",
                        violation_error_message="Account code already exists.",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Branch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=20, unique=True)),
                ("name", models.CharField(max_length=200)),
                ("is_active", models.BooleanField(default=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ("code",),
                "verbose_name_plural": "branches",
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={"ordering": ("name",)},
        ),
        migrations.CreateModel(
            name="Supplier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={"ordering": ("name",)},
        ),
        migrations.CreateModel(
            name="Period",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50, unique=True)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("status", models.CharField(choices=[("open", "Open"), ("closed", "Closed"), ("locked", "Locked")], default="open", max_length=10)),
            ],
            options={
                "ordering": ("start_date",),
                "indexes": [
                    models.Index(fields=["start_date", "end_date"], name="period_range_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Sequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50, unique=True)),
                ("next_value", models.PositiveBigIntegerField(default=1)),
            ],
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("journal_number", models.CharField(max_length=32, unique=True)),
                ("journal_date", models.DateField()),
                ("description", models.TextField(blank=True, default="")),
                ("source_type", models.CharField(choices=[("MANUAL", "Manual"), ("ADJUSTMENT", "Adjustment"), ("BANK", "Bank transaction"), ("SALES", "Sale"), ("PURCHASE", "Purchase"), ("PAYMENT", "Customer payment"), ("SUPPLIER_PAYMENT", "Supplier payment"), ("EXPENSE", "Expense")], default="MANUAL", max_length=20)),
                ("source_id", models.BigIntegerField(blank=True, null=True)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("posted", "Posted"), ("voided", "Voided")], default="draft", max_length=10)),
                ("total_debit", _money(default=0)),
                ("total_credit", _money(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("posted_at", models.DateTimeField(blank=True, null=True)),
                ("voided_at", models.DateTimeField(blank=True, null=True)),
                ("void_reason", models.TextField(blank=True, default="")),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("created_by", _user_fk()),
                ("posted_by", _user_fk()),
                ("voided_by", _user_fk()),
            ],
            options={
                "ordering": ("-journal_date", "-journal_number"),
                "verbose_name_plural": "journal entries",
                "indexes": [
                    models.Index(fields=["journal_date"], name="je_date_idx"),
                    models.Index(fields=["status"], name="je_status_idx"),
                    models.Index(fields=["source_type", "source_id"], name="je_source_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("status", "draft"), ("total_debit", models.F("total_credit")), _connector="OR"),
                        name="je_non_draft_is_balanced",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_debit__gte", 0), ("total_credit__gte", 0)),
                        name="je_non_negative_totals",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.CharField(blank=True, default="", max_length=400)),
                ("debit_amount", _money(default=0)),
                ("credit_amount", _money(default=0)),
                ("sort_order", models.PositiveIntegerField(default=0)),
                ("account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="journal_lines", to="ledger_core.account")),
                ("branch", _branch_fk()),
                ("journal", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="ledger_core.journalentry")),
            ],
            options={
                "ordering": ("journal", "sort_order"),
                "indexes": [
                    models.Index(fields=["account"], name="jl_account_idx"),
                    models.Index(fields=["journal", "sort_order"], name="jl_journal_sort_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("debit_amount__gte", 0), ("credit_amount__gte", 0)),
                        name="jl_non_negative_amounts",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("debit_amount", 0), ("credit_amount", 0), _negated=True),
                        name="jl_debit_or_credit_nonzero",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("debit_amount__gt", 0), ("credit_amount__gt", 0), _negated=True),
                        name="jl_not_both_sides",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BankAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("bank_name", models.CharField(blank=True, default="", max_length=100)),
                ("account_number_masked", models.CharField(blank=True, default="", max_length=50)),
                ("initial_balance", _money(default=0)),
                ("current_balance", _money(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("linked_account", models.OneToOneField(on_delete=django.db.models.deletion.PROTECT, related_name="bank_account", to="ledger_core.account")),
            ],
            options={"ordering": ("name",)},
        ),
        migrations.CreateModel(
            name="BankTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("transaction_date", models.DateField()),
                ("transaction_type", models.CharField(choices=[("DEPOSIT", "Deposit"), ("WITHDRAWAL", "Withdrawal"), ("TRANSFER_IN", "Transfer in"), ("TRANSFER_OUT", "Transfer out"), ("FEE", "Bank fee"), ("INTEREST", "Interest")], max_length=20)),
                ("amount", _money()),
                ("reference", models.CharField(blank=True, default="", max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("bank_statement_date", models.DateField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("reconciliation_status", models.CharField(choices=[("UNRECONCILED", "Unreconciled"), ("RECONCILED", "Reconciled"), ("VOID", "Void")], default="UNRECONCILED", max_length=20)),
                ("reconciled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("bank_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to="ledger_core.bankaccount")),
                ("created_by", _user_fk()),
                ("journal_entry", _journal_o2o(related_name="bank_transaction")),
            ],
            options={
                "ordering": ("transaction_date", "id"),
                "indexes": [
                    models.Index(fields=["bank_account", "transaction_date"], name="bt_account_date_idx"),
                    models.Index(fields=["reconciliation_status"], name="bt_recon_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="bt_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *_outstanding_fields(),
                ("sale_number", models.CharField(max_length=50, unique=True)),
                ("sale_type", models.CharField(choices=[("retail", "Retail"), ("clinic", "Clinic"), ("hotel", "Hotel")], default="retail", max_length=10)),
                ("sale_date", models.DateField()),
                ("status", models.CharField(choices=[("draft", "Draft"), ("completed", "Completed"), ("cancelled", "Cancelled")], default="draft", max_length=10)),
                ("subtotal", _money(default=0)),
                ("discount_amount", _money(default=0)),
                ("tax_amount", _money(default=0)),
                ("branch", _branch_fk()),
                ("customer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="sales", to="ledger_core.customer")),
            ],
            options={
                "ordering": ("-sale_date", "-id"),
                "indexes": [
                    models.Index(fields=["status", "sale_date"], name="sale_status_date_idx"),
                    models.Index(fields=["customer"], name="sale_customer_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SaleLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.CharField(max_length=200)),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                ("quantity", models.DecimalField(decimal_places=2, default=1, max_digits=12)),
                ("unit_price", _money()),
                ("discount_amount", _money(default=0)),
                ("subtotal", _money(default=0)),
                ("cogs_amount", _money(default=0)),
                ("sale", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="ledger_core.sale")),
            ],
        ),
        migrations.CreateModel(
            name="SalePayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_date", models.DateField()),
                ("amount", _money()),
                ("payment_method", models.CharField(choices=PAYMENT_METHODS, default="cash", max_length=20)),
                ("reference", models.CharField(blank=True, default="", max_length=200)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("journal_entry", _journal_o2o()),
                ("sale", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.sale")),
            ],
            options={
                "ordering": ("-payment_date", "-id"),
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="sale_payment_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PurchaseOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *_outstanding_fields(),
                ("po_number", models.CharField(max_length=50, unique=True)),
                ("order_date", models.DateField()),
                ("status", models.CharField(choices=[("draft", "Draft"), ("submitted", "Submitted"), ("received", "Received"), ("cancelled", "Cancelled")], default="draft", max_length=10)),
                ("tax_amount", _money(default=0)),
                ("branch", _branch_fk()),
                ("supplier", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="purchase_orders", to="ledger_core.supplier")),
            ],
            options={
                "ordering": ("-order_date", "-id"),
                "indexes": [
                    models.Index(fields=["status", "order_date"], name="po_status_date_idx"),
                    models.Index(fields=["supplier"], name="po_supplier_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PurchaseOrderLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.CharField(max_length=200)),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                ("quantity", models.DecimalField(decimal_places=2, default=1, max_digits=12)),
                ("unit_price", _money()),
                ("subtotal", _money(default=0)),
                ("purchase_order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="lines", to="ledger_core.purchaseorder")),
            ],
        ),
        migrations.CreateModel(
            name="PurchaseOrderPayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_date", models.DateField()),
                ("amount", _money()),
                ("payment_method", models.CharField(choices=PAYMENT_METHODS, default="cash", max_length=20)),
                ("reference", models.CharField(blank=True, default="", max_length=200)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("journal_entry", _journal_o2o()),
                ("purchase_order", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.purchaseorder")),
            ],
            options={
                "ordering": ("-payment_date", "-id"),
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="po_payment_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ExpenseCategory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, unique=True)),
                ("requires_approval", models.BooleanField(default=True)),
                ("approval_threshold", _money(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("linked_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="expense_categories", to="ledger_core.account")),
            ],
            options={
                "ordering": ("name",),
                "verbose_name_plural": "expense categories",
            },
        ),
        migrations.CreateModel(
            name="Expense",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("expense_number", models.CharField(max_length=32, unique=True)),
                ("expense_date", models.DateField()),
                ("description", models.TextField()),
                ("amount", _money()),
                ("vendor_name", models.CharField(blank=True, default="", max_length=200)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("pending_approval", "Pending approval"), ("approved", "Approved"), ("rejected", "Rejected"), ("paid", "Paid")], default="draft", max_length=20)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("payment_method", models.CharField(blank=True, choices=[("cash", "Cash"), ("bank", "Bank")], default="", max_length=10)),
                ("payment_date", models.DateField(blank=True, null=True)),
                ("check_number", models.CharField(blank=True, default="", max_length=50)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("approved_by", _user_fk()),
                ("bank_account", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="+", to="ledger_core.bankaccount")),
                ("branch", _branch_fk()),
                ("category", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="expenses", to="ledger_core.expensecategory")),
                ("created_by", _user_fk()),
                ("journal_entry", _journal_o2o()),
            ],
            options={
                "ordering": ("-expense_date", "-id"),
                "indexes": [
                    models.Index(fields=["status", "expense_date"], name="expense_status_date_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="expense_amount_positive"),
                ],
            },
        ),
    ]
