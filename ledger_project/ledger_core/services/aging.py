"""
Receivable / payable aging.

Receivables are completed sales with an outstanding amount; payables
are submitted or received purchase orders with one. Age is counted in
whole days from the anchor date (LEDGER["AGING_ANCHOR"]) to the
as-of date.
"""
import logging
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from ..conf import ledger_setting
from ..models import (Customer, PurchaseOrder, PurchaseOrderPayment, Sale,
                      SalePayment, Supplier)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# (name, lower bound in days); upper bound is the next bucket's lower - 1
BUCKETS = (
    ("current", 0),
    ("days_31_to_60", 31),
    ("days_61_to_90", 61),
    ("over_90_days", 91),
)
BUCKET_NAMES = tuple(name for name, _lower in BUCKETS)

WALK_IN_NAME = "Walk-in customer"
PAYABLE_STATUSES = ("submitted", "received")

# Reminder threshold for overdue_invoices
OVERDUE_DAYS = 30
TOP_COLLECTORS = 10


def days_outstanding(document_date, as_of_date):
    """Whole days between the two dates, never negative."""
    return max((as_of_date - document_date).days, 0)


def aging_bucket(days):
    name = BUCKET_NAMES[0]
    for bucket, lower in BUCKETS:
        if days >= lower:
            name = bucket
    return name


def anchor_date(document):
    """Date the age is counted from, per the configured policy."""
    if ledger_setting("AGING_ANCHOR") == "due_date" and document.due_date:
        return document.due_date
    return document.document_date


def _as_of(as_of_date):
    return as_of_date or timezone.localdate()


def _empty_buckets():
    return {name: ZERO for name in BUCKET_NAMES}


# ----------------------------
# Open documents
# ----------------------------
def open_receivables(as_of_date, branch_id=None, customer_id=None):
    qs = Sale.objects.alive().filter(
        status="completed",
        outstanding_amount__gt=0,
        sale_date__lte=as_of_date,
    )
    if branch_id:
        qs = qs.filter(branch_id=branch_id)
    if customer_id:
        qs = qs.filter(customer_id=customer_id)
    return qs.select_related("customer").order_by("sale_date", "id")


def open_payables(as_of_date, branch_id=None, supplier_id=None):
    qs = PurchaseOrder.objects.alive().filter(
        status__in=PAYABLE_STATUSES,
        outstanding_amount__gt=0,
        order_date__lte=as_of_date,
    )
    if branch_id:
        qs = qs.filter(branch_id=branch_id)
    if supplier_id:
        qs = qs.filter(supplier_id=supplier_id)
    return qs.select_related("supplier").order_by("order_date", "id")


def _aging_rows(documents, as_of_date, party_of, party_key):
    """Group open documents per party and spread amounts over the buckets."""
    parties = {}
    for document in documents:
        party = party_of(document)
        key = party.pk if party else None
        row = parties.get(key)
        if row is None:
            row = parties[key] = {
                f"{party_key}_id": key,
                f"{party_key}_name": party.name if party else WALK_IN_NAME,
                "phone": party.phone if party else "",
                "total_outstanding": ZERO,
                **_empty_buckets(),
                "oldest_document_date": document.document_date,
                "document_count": 0,
            }
        days = days_outstanding(anchor_date(document), as_of_date)
        row[aging_bucket(days)] += document.outstanding_amount
        row["total_outstanding"] += document.outstanding_amount
        row["document_count"] += 1
        row["oldest_document_date"] = min(row["oldest_document_date"], document.document_date)

    # Largest balances first
    return sorted(parties.values(), key=lambda r: r["total_outstanding"], reverse=True)


def _summary(rows):
    summary = {"total_outstanding": sum((r["total_outstanding"] for r in rows), ZERO)}
    for name in BUCKET_NAMES:
        summary[name] = sum((r[name] for r in rows), ZERO)
    return summary


# ----------------------------
# Reports
# ----------------------------
def ar_aging_report(as_of_date=None, branch_id=None):
    as_of_date = _as_of(as_of_date)
    rows = _aging_rows(
        open_receivables(as_of_date, branch_id),
        as_of_date,
        party_of=lambda sale: sale.customer,
        party_key="customer",
    )
    summary = _summary(rows)
    summary["total_customers"] = Customer.objects.alive().count()
    summary["customers_with_balance"] = len(rows)
    return {"as_of_date": as_of_date, "summary": summary, "customer_aging": rows}


def ap_aging_report(as_of_date=None, branch_id=None):
    as_of_date = _as_of(as_of_date)
    rows = _aging_rows(
        open_payables(as_of_date, branch_id),
        as_of_date,
        party_of=lambda purchase_order: purchase_order.supplier,
        party_key="supplier",
    )
    summary = _summary(rows)
    summary["total_suppliers"] = Supplier.objects.alive().count()
    summary["suppliers_with_balance"] = len(rows)
    return {"as_of_date": as_of_date, "summary": summary, "supplier_aging": rows}


# ----------------------------
# Single party detail
# ----------------------------
def _document_row(document, number, as_of_date):
    return {
        "id": document.pk,
        "number": number,
        "document_date": document.document_date,
        "due_date": document.due_date,
        "total_amount": document.total_amount,
        "paid_amount": document.paid_amount,
        "outstanding_amount": document.outstanding_amount,
        "days_outstanding": days_outstanding(anchor_date(document), as_of_date),
        "status": document.status,
    }


def _outstanding_summary(rows):
    count = len(rows)
    total_days = sum(r["days_outstanding"] for r in rows)
    # Plain mean over documents, not weighted by amount
    average = (
        (Decimal(total_days) / count).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if count
        else ZERO
    )
    return {
        "total_outstanding": sum((r["outstanding_amount"] for r in rows), ZERO),
        "document_count": count,
        "oldest_document_date": rows[0]["document_date"] if rows else None,
        "average_days_outstanding": average,
    }


def _payment_history(payments, number_of):
    return [
        {
            "payment_date": payment.payment_date,
            "amount": payment.amount,
            "payment_method": payment.payment_method,
            "reference": payment.reference,
            "document_number": number_of(payment),
        }
        for payment in payments.order_by("-payment_date", "-id")
    ]


def customer_outstanding(customer_id, include_history=False, as_of_date=None):
    customer = Customer.objects.alive().filter(pk=customer_id).first()
    if customer is None:
        raise ValidationError(f"Customer {customer_id} not found.")
    as_of_date = _as_of(as_of_date)

    rows = [
        _document_row(sale, sale.sale_number, as_of_date)
        for sale in open_receivables(as_of_date, customer_id=customer.pk)
    ]
    history = None
    if include_history:
        history = _payment_history(
            SalePayment.objects.filter(
                sale__customer=customer, sale__deleted_at__isnull=True
            ).select_related("sale"),
            lambda payment: payment.sale.sale_number,
        )
    return {
        "customer": customer,
        "summary": _outstanding_summary(rows),
        "documents": rows,
        "payment_history": history,
    }


def supplier_outstanding(supplier_id, include_history=False, as_of_date=None):
    supplier = Supplier.objects.alive().filter(pk=supplier_id).first()
    if supplier is None:
        raise ValidationError(f"Supplier {supplier_id} not found.")
    as_of_date = _as_of(as_of_date)

    rows = [
        _document_row(po, po.po_number, as_of_date)
        for po in open_payables(as_of_date, supplier_id=supplier.pk)
    ]
    history = None
    if include_history:
        history = _payment_history(
            PurchaseOrderPayment.objects.filter(
                purchase_order__supplier=supplier,
                purchase_order__deleted_at__isnull=True,
            ).select_related("purchase_order"),
            lambda payment: payment.purchase_order.po_number,
        )
    return {
        "supplier": supplier,
        "summary": _outstanding_summary(rows),
        "documents": rows,
        "payment_history": history,
    }


# ----------------------------
# Collections
# ----------------------------
def overdue_invoices(as_of_date=None, branch_id=None, min_days=OVERDUE_DAYS):
    """Open receivables at least min_days old, oldest first, for reminders."""
    as_of_date = _as_of(as_of_date)
    rows = []
    for sale in open_receivables(as_of_date, branch_id):
        days = days_outstanding(anchor_date(sale), as_of_date)
        if days < min_days:
            continue
        customer = sale.customer
        rows.append(
            {
                "id": sale.pk,
                "number": sale.sale_number,
                "sale_type": sale.sale_type,
                "document_date": sale.document_date,
                "due_date": sale.due_date,
                "customer_id": customer.pk if customer else None,
                "customer_name": customer.name if customer else WALK_IN_NAME,
                "phone": customer.phone if customer else "",
                "total_amount": sale.total_amount,
                "outstanding_amount": sale.outstanding_amount,
                "days_overdue": days,
            }
        )
    rows.sort(key=lambda r: r["days_overdue"], reverse=True)
    return rows


def _sum(qs, field):
    return qs.aggregate(total=models.Sum(field))["total"] or ZERO


def collection_metrics(start_date, end_date, branch_id=None):
    """
    How well receivables turn into cash over a date range.

    days_sales_outstanding is receivables still open on sales dated up
    to end_date, over the range's sales, times the days in the range.
    Outstanding figures use each sale's current outstanding amount.
    """
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date.")

    sales = Sale.objects.alive().filter(status="completed")
    if branch_id:
        sales = sales.filter(branch_id=branch_id)
    period_sales = sales.filter(sale_date__gte=start_date, sale_date__lte=end_date)
    payments = SalePayment.objects.filter(
        sale__in=sales, payment_date__gte=start_date, payment_date__lte=end_date
    )

    total_sales = _sum(period_sales, "total_amount")
    new_receivables = _sum(period_sales, "outstanding_amount")
    total_collected = _sum(payments, "amount")
    # Payments in the range against sales made before it
    collected_receivables = _sum(payments.filter(sale__sale_date__lt=start_date), "amount")
    outstanding_at_end = _sum(sales.filter(sale_date__lte=end_date), "outstanding_amount")

    # Days from sale to its last payment, fully paid sales with payments only
    collect_days = [
        (row["last_payment"] - row["sale_date"]).days
        for row in period_sales.filter(outstanding_amount=0)
        .annotate(last_payment=models.Max("payments__payment_date"))
        .filter(last_payment__isnull=False)
        .values("sale_date", "last_payment")
    ]
    average_days = (
        (Decimal(sum(collect_days)) / len(collect_days)).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        if collect_days
        else ZERO
    )

    period_days = (end_date - start_date).days + 1
    dso = ZERO
    collection_rate = ZERO
    if total_sales > 0:
        dso = (outstanding_at_end / total_sales * period_days).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        collection_rate = (total_collected / total_sales * 100).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )

    collectors = {}
    for payment in payments.select_related("sale__customer"):
        customer = payment.sale.customer
        key = customer.pk if customer else None
        row = collectors.setdefault(
            key,
            {
                "customer_id": key,
                "customer_name": customer.name if customer else WALK_IN_NAME,
                "total_paid": ZERO,
                "payment_count": 0,
            },
        )
        row["total_paid"] += payment.amount
        row["payment_count"] += 1
    top = sorted(collectors.values(), key=lambda r: r["total_paid"], reverse=True)

    return {
        "period": {"start_date": start_date, "end_date": end_date},
        "metrics": {
            "total_sales": total_sales,
            "total_collected": total_collected,
            "collection_rate": collection_rate,
            "average_days_to_collect": average_days,
            "outstanding_at_period_end": outstanding_at_end,
            "new_receivables": new_receivables,
            "collected_receivables": collected_receivables,
            "days_sales_outstanding": dso,
        },
        "top_collectors": top[:TOP_COLLECTORS],
    }
