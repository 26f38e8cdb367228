import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone

from ..exceptions import InvariantViolationError, UnknownTransactionTypeError
from ..models import (INFLOW_TYPES, OUTFLOW_TYPES, TRANSACTION_TYPES,
                      BankAccount, BankTransaction)
from .journal import to_money, void_journal_entry
from .translators import BANK_ROUTING, post_bank_transaction_journal

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
VOID_REASON = "Bank transaction voided"


def _lock_bank_account(bank_account_id):
    try:
        return BankAccount.objects.alive().select_for_update().get(pk=bank_account_id)
    except BankAccount.DoesNotExist:
        raise ValidationError(f"Bank account {bank_account_id} not found.")


def _lock_transaction(transaction_id):
    try:
        return (
            BankTransaction.objects.select_for_update(of=("self",))
            .select_related("bank_account__linked_account", "journal_entry")
            .get(pk=transaction_id, deleted_at__isnull=True)
        )
    except BankTransaction.DoesNotExist:
        raise ValidationError(f"Bank transaction {transaction_id} not found.")


def apply_balance_delta(bank_account, delta):
    # F() keeps the increment inside the database row update
    BankAccount.objects.filter(pk=bank_account.pk).update(
        current_balance=models.F("current_balance") + delta
    )
    bank_account.refresh_from_db(fields=["current_balance"])


# ----------------------------
# Bank transaction workflows
# ----------------------------
@transaction.atomic
def record_transaction(
    bank_account_id,
    transaction_date,
    transaction_type,
    amount,
    description="",
    reference="",
    bank_statement_date=None,
    notes="",
    auto_create_journal=True,
    user=None,
):
    """
    Record a bank movement, move the cached balance and (by default)
    post its journal entry. Balance update and journal post commit
    together or not at all.

    Returns (transaction, journal_entry or None).
    """
    # Type first: nothing is written for an unroutable type
    if transaction_type not in BANK_ROUTING or transaction_type not in dict(TRANSACTION_TYPES):
        raise UnknownTransactionTypeError(
            f"Unknown bank transaction type: {transaction_type!r}"
        )
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("Amount must be greater than 0.")

    bank_account = _lock_bank_account(bank_account_id)
    if not bank_account.is_active:
        raise ValidationError(f"Bank account {bank_account} is inactive.")

    bank_tx = BankTransaction.objects.create(
        bank_account=bank_account,
        transaction_date=transaction_date,
        transaction_type=transaction_type,
        amount=amount,
        description=description or "",
        reference=reference or "",
        bank_statement_date=bank_statement_date,
        notes=notes or "",
        created_by=user,
    )
    apply_balance_delta(bank_account, bank_tx.balance_delta)

    entry = None
    if auto_create_journal:
        entry = post_bank_transaction_journal(bank_tx, user=user)

    logger.info(
        "Bank %s %s recorded",
        transaction_type,
        amount,
        extra={
            "bank_account_id": bank_account.pk,
            "transaction_id": bank_tx.pk,
            "journal_number": entry.journal_number if entry else None,
            "balance": str(bank_account.current_balance),
        },
    )
    return bank_tx, entry


@transaction.atomic
def reconcile_transaction(transaction_id, bank_statement_date=None):
    bank_tx = _lock_transaction(transaction_id)
    bank_tx.transition_to("RECONCILED")  # raises if already reconciled / void
    bank_tx.reconciled_at = timezone.now()
    if bank_statement_date:
        bank_tx.bank_statement_date = bank_statement_date
    bank_tx.save(
        update_fields=["reconciliation_status", "reconciled_at", "bank_statement_date"]
    )
    logger.info("Bank transaction %s reconciled", bank_tx.pk)
    return bank_tx


@transaction.atomic
def unreconcile_transaction(transaction_id):
    bank_tx = _lock_transaction(transaction_id)
    if bank_tx.reconciliation_status != "RECONCILED":
        raise InvariantViolationError(
            f"Transaction {bank_tx.pk} is not reconciled "
            f"({bank_tx.reconciliation_status.lower()})."
        )
    bank_tx.transition_to("UNRECONCILED")
    bank_tx.reconciled_at = None
    bank_tx.save(update_fields=["reconciliation_status", "reconciled_at"])
    logger.info("Bank transaction %s unreconciled", bank_tx.pk)
    return bank_tx


def bulk_reconcile(transaction_ids, bank_statement_date=None):
    """Reconcile each id on its own; failures are reported, not raised."""
    success_count = 0
    failed_ids = []
    for transaction_id in transaction_ids:
        try:
            reconcile_transaction(transaction_id, bank_statement_date)
        except (ValidationError, InvariantViolationError) as exc:
            logger.warning("Could not reconcile %s: %s", transaction_id, exc)
            failed_ids.append(transaction_id)
        else:
            success_count += 1
    return {"success_count": success_count, "failed_ids": failed_ids}


@transaction.atomic
def void_transaction(transaction_id, user=None):
    """
    Reverse the balance delta and void the linked journal entry as one
    unit. VOID is terminal.
    """
    bank_tx = _lock_transaction(transaction_id)
    bank_tx.transition_to("VOID")  # raises if already void
    bank_account = _lock_bank_account(bank_tx.bank_account_id)

    apply_balance_delta(bank_account, -bank_tx.balance_delta)

    entry = bank_tx.journal_entry
    if entry is not None and entry.status == "posted":
        void_journal_entry(entry.pk, VOID_REASON, user=user)

    bank_tx.save(update_fields=["reconciliation_status"])
    logger.info(
        "Bank transaction %s voided",
        bank_tx.pk,
        extra={"bank_account_id": bank_account.pk, "balance": str(bank_account.current_balance)},
    )
    return bank_tx


# ----------------------------
# Balances and statements
# ----------------------------
def _movement(transactions):
    """(inflow, outflow) of a transaction queryset, voided rows excluded."""
    aggs = transactions.exclude(reconciliation_status="VOID").aggregate(
        inflow=models.Sum("amount", filter=models.Q(transaction_type__in=INFLOW_TYPES)),
        outflow=models.Sum("amount", filter=models.Q(transaction_type__in=OUTFLOW_TYPES)),
    )
    return aggs["inflow"] or ZERO, aggs["outflow"] or ZERO


def _live_transactions(bank_account):
    return BankTransaction.objects.filter(bank_account=bank_account, deleted_at__isnull=True)


@transaction.atomic
def rebuild_current_balance(bank_account_id):
    """
    Recompute the cached balance from its source of truth:
    initial_balance ± every non-voided transaction.
    """
    bank_account = _lock_bank_account(bank_account_id)
    inflow, outflow = _movement(_live_transactions(bank_account))
    computed = bank_account.initial_balance + inflow - outflow

    if bank_account.current_balance != computed:
        logger.warning(
            "Bank account %s balance drift: cached %s, computed %s",
            bank_account.pk,
            bank_account.current_balance,
            computed,
        )
        BankAccount.objects.filter(pk=bank_account.pk).update(current_balance=computed)
    return computed


def balance_at_date(bank_account_id, as_of_date):
    bank_account = BankAccount.objects.alive().filter(pk=bank_account_id).first()
    if bank_account is None:
        raise ValidationError(f"Bank account {bank_account_id} not found.")
    inflow, outflow = _movement(
        _live_transactions(bank_account).filter(transaction_date__lte=as_of_date)
    )
    return bank_account.initial_balance + inflow - outflow


def bank_statement(bank_account_id, start_date=None, end_date=None,
                   reconciliation_status=None):
    """
    Opening balance, chronological rows with a running balance,
    closing balance and deposit / withdrawal totals. Voided rows are
    left out; a status filter narrows the rows shown, not the balance.
    """
    bank_account = BankAccount.objects.alive().filter(pk=bank_account_id).first()
    if bank_account is None:
        raise ValidationError(f"Bank account {bank_account_id} not found.")

    live = _live_transactions(bank_account)
    opening = bank_account.initial_balance
    if start_date:
        inflow, outflow = _movement(live.filter(transaction_date__lt=start_date))
        opening += inflow - outflow

    in_range = live.exclude(reconciliation_status="VOID")
    if start_date:
        in_range = in_range.filter(transaction_date__gte=start_date)
    if end_date:
        in_range = in_range.filter(transaction_date__lte=end_date)

    rows = []
    balance = opening
    total_deposits = ZERO
    total_withdrawals = ZERO
    for bank_tx in in_range.order_by("transaction_date", "id"):
        delta = bank_tx.balance_delta
        balance += delta
        if delta > 0:
            total_deposits += delta
        else:
            total_withdrawals -= delta
        if reconciliation_status and bank_tx.reconciliation_status != reconciliation_status:
            continue
        rows.append(
            {
                "transaction": bank_tx,
                "deposit": delta if delta > 0 else ZERO,
                "withdrawal": -delta if delta < 0 else ZERO,
                "balance": balance,
            }
        )

    return {
        "bank_account": bank_account,
        "opening_balance": opening,
        "transactions": rows,
        "closing_balance": balance,
        "total_deposits": total_deposits,
        "total_withdrawals": total_withdrawals,
    }
