import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("ledger_core", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="period",
            name="closed_at",
            field=models.DateTimeField(blank=True, null=True),
        ),
        migrations.AddField(
            model_name="period",
            name="closed_by",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
        migrations.AlterField(
            model_name="journalentry",
            name="source_type",
            field=models.CharField(choices=[("MANUAL", "Manual"), ("ADJUSTMENT", "Adjustment"), ("BANK", "Bank transaction"), ("SALES", "Sale"), ("PURCHASE", "Purchase"), ("PAYMENT", "Customer payment"), ("SUPPLIER_PAYMENT", "Supplier payment"), ("EXPENSE", "Expense"), ("YEAR_END_CLOSE", "Year-end closing")], default="MANUAL", max_length=20),
        ),
    ]
