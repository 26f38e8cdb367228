import logging

from django.db import IntegrityError, transaction

from ..conf import ledger_setting
from ..exceptions import ConcurrencyConflictError
from ..models import Sequence

logger = logging.getLogger(__name__)


def next_sequence_value(name):
    """
    Allocate the next value of a named counter.

    Runs inside the caller's transaction: if the caller rolls back,
    the number is handed out again and no gap appears. The row is
    locked with select_for_update where the database supports it, and
    the increment is a compare-and-swap on next_value so a writer that
    read a stale value never hands out a duplicate.
    """
    retries = ledger_setting("SEQUENCE_MAX_RETRIES")
    with transaction.atomic():
        for _attempt in range(retries):
            try:
                seq = Sequence.objects.select_for_update().get(name=name)
            except Sequence.DoesNotExist:
                try:
                    # savepoint so a lost creation race leaves the
                    # outer transaction usable
                    with transaction.atomic():
                        seq = Sequence.objects.create(name=name, next_value=1)
                except IntegrityError:
                    seq = Sequence.objects.select_for_update().get(name=name)

            value = seq.next_value
            # Only succeeds if nobody moved the counter since we read it
            swapped = Sequence.objects.filter(pk=seq.pk, next_value=value).update(
                next_value=value + 1
            )
            if swapped:
                return value
            logger.warning(
                "Sequence %s moved under us at %s, retrying", name, value
            )

    raise ConcurrencyConflictError(
        f"Could not allocate a number from sequence '{name}' "
        f"after {retries} attempts; retry the operation."
    )


def format_number(prefix, value, width=None):
    if width is None:
        width = ledger_setting("JOURNAL_NUMBER_WIDTH")
    return f"{prefix}-{value:0{width}d}"


def next_journal_number():
    """JE-00000001, JE-00000002, ... (globally sequential)."""
    value = next_sequence_value("journal_entry")
    return format_number(ledger_setting("JOURNAL_NUMBER_PREFIX"), value)


def next_expense_number():
    value = next_sequence_value("expense")
    return format_number(ledger_setting("EXPENSE_NUMBER_PREFIX"), value)
