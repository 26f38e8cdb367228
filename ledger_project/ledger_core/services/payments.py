import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from ..models import (PAYMENT_METHODS, PurchaseOrder, PurchaseOrderPayment,
                      Sale, SalePayment)
from .journal import to_money
from .translators import (post_customer_payment_journal,
                          post_supplier_payment_journal)

logger = logging.getLogger(__name__)


def _check_payment(document, label, amount, payment_method):
    if payment_method not in dict(PAYMENT_METHODS):
        raise ValidationError(f"Invalid payment method: {payment_method}")
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than 0.")
    # Never collect more than what is still open
    if amount > document.outstanding_amount:
        raise ValidationError(
            f"Payment {amount} exceeds outstanding {document.outstanding_amount} on {label}."
        )


@transaction.atomic
def record_sale_payment(sale_id, amount, payment_date, payment_method="cash",
                        reference="", user=None):
    """Installment against a completed sale: DR cash / CR receivable."""
    try:
        sale = Sale.objects.alive().select_for_update().get(pk=sale_id)
    except Sale.DoesNotExist:
        raise ValidationError(f"Sale {sale_id} not found.")
    if sale.status != "completed":
        raise ValidationError(f"Sale {sale.sale_number} is {sale.status}; cannot take payments.")

    amount = to_money(amount)
    _check_payment(sale, sale.sale_number, amount, payment_method)

    payment = SalePayment.objects.create(
        sale=sale,
        payment_date=payment_date,
        amount=amount,
        payment_method=payment_method,
        reference=reference or "",
    )
    sale.paid_amount += amount
    sale.save(update_fields=["paid_amount"])  # outstanding follows in save()

    entry = post_customer_payment_journal(payment, user=user)
    logger.info(
        "Payment %s received on %s",
        amount,
        sale.sale_number,
        extra={"journal_number": entry.journal_number, "outstanding": str(sale.outstanding_amount)},
    )
    return payment


@transaction.atomic
def record_purchase_payment(purchase_order_id, amount, payment_date,
                            payment_method="cash", reference="", user=None):
    """Payment to a supplier: DR payable / CR cash."""
    try:
        purchase_order = (
            PurchaseOrder.objects.alive().select_for_update().get(pk=purchase_order_id)
        )
    except PurchaseOrder.DoesNotExist:
        raise ValidationError(f"Purchase order {purchase_order_id} not found.")
    if purchase_order.status not in ("submitted", "received"):
        raise ValidationError(
            f"Purchase order {purchase_order.po_number} is {purchase_order.status}; "
            "cannot record payments."
        )

    amount = to_money(amount)
    _check_payment(purchase_order, purchase_order.po_number, amount, payment_method)

    payment = PurchaseOrderPayment.objects.create(
        purchase_order=purchase_order,
        payment_date=payment_date,
        amount=amount,
        payment_method=payment_method,
        reference=reference or "",
    )
    purchase_order.paid_amount += amount
    purchase_order.save(update_fields=["paid_amount"])

    entry = post_supplier_payment_journal(payment, user=user)
    logger.info(
        "Payment %s made on %s",
        amount,
        purchase_order.po_number,
        extra={
            "journal_number": entry.journal_number,
            "outstanding": str(purchase_order.outstanding_amount),
        },
    )
    return payment
