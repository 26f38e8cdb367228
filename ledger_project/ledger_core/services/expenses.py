import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..exceptions import InvariantViolationError
from ..models import EXPENSE_PAYMENT_METHODS, BankAccount, Expense, ExpenseCategory
from .banking import record_transaction
from .journal import to_money
from .sequence import next_expense_number
from .translators import post_expense_journal

logger = logging.getLogger(__name__)


def _lock_expense(expense_id):
    try:
        return (
            Expense.objects.alive()
            .select_for_update()
            .select_related("category__linked_account")
            .get(pk=expense_id)
        )
    except Expense.DoesNotExist:
        raise ValidationError(f"Expense {expense_id} not found.")


# ----------------------------
# Expense workflow
# ----------------------------
@transaction.atomic
def create_expense(category_id, expense_date, description, amount, branch_id=None,
                   vendor_name="", user=None):
    category = ExpenseCategory.objects.filter(pk=category_id, is_active=True).first()
    if category is None:
        raise ValidationError(f"Expense category {category_id} not found or inactive.")
    if not description:
        raise ValidationError("Expense description is required.")
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Expense amount must be greater than 0.")

    expense = Expense(
        expense_number=next_expense_number(),
        category=category,
        branch_id=branch_id,
        expense_date=expense_date,
        description=description,
        amount=amount,
        vendor_name=vendor_name or "",
        created_by=user,
    )
    expense.save()
    logger.info("Expense %s created", expense.expense_number, extra={"amount": str(amount)})
    return expense


@transaction.atomic
def submit_expense(expense_id):
    """Send a draft for approval; small or unrestricted expenses approve themselves."""
    expense = _lock_expense(expense_id)
    if expense.status != "draft":
        raise InvariantViolationError(
            f"Only draft expenses can be submitted ({expense.expense_number} is {expense.status})."
        )
    now = timezone.now()
    expense.submitted_at = now
    if expense.category.needs_approval(expense.amount):
        expense.transition_to("pending_approval")
    else:
        expense.transition_to("approved")
        expense.approved_at = now
    expense.save()
    logger.info("Expense %s submitted: %s", expense.expense_number, expense.status)
    return expense


@transaction.atomic
def approve_expense(expense_id, user=None):
    expense = _lock_expense(expense_id)
    if expense.status != "pending_approval":
        raise InvariantViolationError(
            f"Expense {expense.expense_number} is not awaiting approval ({expense.status})."
        )
    expense.transition_to("approved")
    expense.approved_at = timezone.now()
    expense.approved_by = user
    expense.save()
    logger.info("Expense %s approved", expense.expense_number)
    return expense


@transaction.atomic
def reject_expense(expense_id, reason, user=None):
    if not reason or not str(reason).strip():
        raise ValidationError("A rejection reason is required.")
    expense = _lock_expense(expense_id)
    if expense.status != "pending_approval":
        raise InvariantViolationError(
            f"Expense {expense.expense_number} is not awaiting approval ({expense.status})."
        )
    expense.transition_to("rejected")
    expense.rejection_reason = str(reason).strip()
    expense.approved_by = user
    expense.save()
    logger.info("Expense %s rejected", expense.expense_number)
    return expense


@transaction.atomic
def pay_expense(expense_id, payment_method, payment_date=None, bank_account_id=None,
                check_number=None, user=None):
    """
    Pay an approved expense: DR its category account / CR cash or the
    bank's linked account.

    A bank payment is also recorded as a WITHDRAWAL on that bank, linked
    to the expense journal, so the cached balance stays reproducible
    from the bank's own transactions.
    """
    if payment_method not in dict(EXPENSE_PAYMENT_METHODS):
        raise ValidationError(f"Invalid payment method: {payment_method}")
    expense = _lock_expense(expense_id)
    if expense.status != "approved":
        raise InvariantViolationError(
            f"Only approved expenses can be paid ({expense.expense_number} is {expense.status})."
        )

    bank_account = None
    if payment_method == "bank":
        if not bank_account_id:
            raise ValidationError("A bank account is required for bank payments.")
        bank_account = (
            BankAccount.objects.alive()
            .select_for_update()
            .select_related("linked_account")
            .filter(pk=bank_account_id, is_active=True)
            .first()
        )
        if bank_account is None:
            raise ValidationError(f"Bank account {bank_account_id} not found or inactive.")

    expense.payment_method = payment_method
    expense.bank_account = bank_account
    expense.payment_date = payment_date or timezone.localdate()
    expense.check_number = check_number or ""
    expense.transition_to("paid")
    expense.save()

    entry = post_expense_journal(expense, user=user)
    if bank_account is not None:
        # Balance moves through the bank transaction; the journal is the
        # expense entry above, not a WITHDRAWAL routing
        bank_tx, _no_entry = record_transaction(
            bank_account.pk,
            expense.payment_date,
            "WITHDRAWAL",
            expense.amount,
            description=f"{expense.expense_number}: {expense.description}",
            reference=expense.check_number or expense.expense_number,
            auto_create_journal=False,
            user=user,
        )
        bank_tx.journal_entry = entry
        bank_tx.save(update_fields=["journal_entry"])

    logger.info(
        "Expense %s paid by %s",
        expense.expense_number,
        payment_method,
        extra={"journal_number": entry.journal_number, "amount": str(expense.amount)},
    )
    return expense
