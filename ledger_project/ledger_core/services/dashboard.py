from datetime import timedelta
from decimal import Decimal

from django.db import models
from django.utils import timezone

from ..models import Customer, Sale, Supplier

ZERO = Decimal("0.00")


def dashboard_stats(today=None):
    """Headline counts plus completed-sale revenue (all time and today)."""
    today = today or timezone.localdate()
    sales = Sale.objects.alive()
    completed = sales.filter(status="completed")
    return {
        "total_customers": Customer.objects.alive().count(),
        "total_suppliers": Supplier.objects.alive().count(),
        "total_sales": sales.count(),
        "total_revenue": completed.aggregate(t=models.Sum("total_amount"))["t"] or ZERO,
        "today_revenue": completed.filter(sale_date=today).aggregate(
            t=models.Sum("total_amount")
        )["t"] or ZERO,
    }


def recent_sales(limit=5):
    rows = []
    for sale in Sale.objects.alive().select_related("customer").order_by("-sale_date", "-id")[:limit]:
        rows.append(
            {
                "id": sale.pk,
                "sale_number": sale.sale_number,
                "sale_date": sale.sale_date,
                "status": sale.status,
                "total_amount": sale.total_amount,
                # walk-in sales have no customer
                "customer_name": sale.customer.name if sale.customer else "Walk-in customer",
            }
        )
    return rows


def sales_chart(days=7, today=None):
    """Completed-sale totals per day for the last `days` days, zero-filled, oldest first."""
    today = today or timezone.localdate()
    start = today - timedelta(days=days - 1)
    totals = {
        row["sale_date"]: row["amount"]
        for row in Sale.objects.alive()
        .filter(status="completed", sale_date__gte=start, sale_date__lte=today)
        .values("sale_date")
        .annotate(amount=models.Sum("total_amount"))
    }
    return [
        {"date": day, "amount": totals.get(day, ZERO)}
        for day in (start + timedelta(days=offset) for offset in range(days))
    ]
