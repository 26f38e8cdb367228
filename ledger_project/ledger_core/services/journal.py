import logging
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import IntegrityError, models, transaction
from django.utils import timezone

from ..exceptions import (ConcurrencyConflictError, InvariantViolationError,
                          UnbalancedEntryError)
from ..models import SOURCE_TYPES, Account, JournalEntry, JournalLine, Period
from .sequence import next_journal_number

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


# ----------------------------
# Line validation
# ----------------------------
def to_money(value, field="amount"):
    """Parse an amount into a 2-place Decimal; reject sub-cent precision."""
    if value is None or value == "":
        return ZERO
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid {field}: {value!r}")
    if amount.as_tuple().exponent < -2 and amount != amount.quantize(Decimal("0.01")):
        raise ValidationError(f"{field} has more than 2 decimal places: {value}")
    return amount.quantize(Decimal("0.01"))


def _line_account_id(line):
    account = line.get("account")
    if isinstance(account, Account):
        return account.pk
    account_id = line.get("account_id", account)
    if account_id in (None, ""):
        raise ValidationError("Every journal line needs an account.")
    try:
        return int(account_id)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid account id: {account_id!r}")


def validate_lines(lines):
    """
    Check a line set before anything is written.

    Returns normalized line dicts (account instance, amounts as Decimal)
    plus the debit / credit totals. Raises ValidationError for malformed
    lines and UnbalancedEntryError when the sides differ by any amount.
    """
    if lines is None:
        lines = []
    if not isinstance(lines, (list, tuple)):
        raise ValidationError("Journal lines must be a list.")
    for index, line in enumerate(lines, start=1):
        if not isinstance(line, dict):
            raise ValidationError(f"Line {index}: must be an object with account and amounts.")
    lines = list(lines)
    if len(lines) < 2:
        raise ValidationError("A journal entry needs at least 2 lines.")

    # One query for all referenced accounts
    ids = {_line_account_id(line) for line in lines}
    accounts = Account.objects.in_bulk(list(ids))

    normalized = []
    total_debit = ZERO
    total_credit = ZERO
    for index, line in enumerate(lines, start=1):
        account = accounts.get(_line_account_id(line))
        if account is None:
            raise ValidationError(f"Line {index}: account not found.")
        if account.deleted_at is not None:
            raise ValidationError(f"Line {index}: account {account.code} is deleted.")
        if account.is_header:
            raise ValidationError(
                f"Line {index}: account {account.code} is a header account."
            )
        if not account.is_active:
            raise ValidationError(f"Line {index}: account {account.code} is inactive.")

        debit = to_money(line.get("debit_amount"), "debit_amount")
        credit = to_money(line.get("credit_amount"), "credit_amount")
        if debit < 0 or credit < 0:
            raise ValidationError(f"Line {index}: amounts must be non-negative.")
        if (debit > 0) == (credit > 0):
            # both zero or both set
            raise ValidationError(
                f"Line {index}: exactly one of debit or credit must be non-zero."
            )

        total_debit += debit
        total_credit += credit
        normalized.append(
            {
                "account": account,
                "branch_id": line.get("branch_id"),
                "description": line.get("description") or "",
                "debit_amount": debit,
                "credit_amount": credit,
            }
        )

    # Zero tolerance: the cent counts
    if total_debit != total_credit:
        raise UnbalancedEntryError(total_debit, total_credit)
    return normalized, total_debit, total_credit


def _check_period_open(journal_date, source_type=None):
    period = Period.covering(journal_date)
    if period is None or period.accepts_postings:
        return
    # The closing entry is the one posting a closed year still takes
    if source_type == "YEAR_END_CLOSE" and period.accepts_voids:
        return
    raise ValidationError(
        f"Period {period.name} is {period.status}; cannot post on {journal_date}."
    )


def _check_source_type(source_type):
    if source_type not in dict(SOURCE_TYPES):
        raise ValidationError(f"Unknown source type: {source_type}")


def _insert_entry(journal_date, description, source_type, source_id, lines,
                  total_debit, total_credit, user=None):
    """Insert header + lines as a draft. Caller holds the transaction."""
    number = next_journal_number()
    entry = JournalEntry(
        journal_number=number,
        journal_date=journal_date,
        description=description or "",
        source_type=source_type,
        source_id=source_id,
        status="draft",
        total_debit=total_debit,
        total_credit=total_credit,
        created_by=user,
    )
    try:
        # savepoint: a unique-number collision must not poison the
        # caller's transaction before we translate it
        with transaction.atomic():
            entry.save()
    except IntegrityError as exc:
        raise ConcurrencyConflictError(
            f"Journal number {number} already taken; retry the operation."
        ) from exc
    except ValidationError as exc:
        if "journal_number" in getattr(exc, "error_dict", {}):
            raise ConcurrencyConflictError(
                f"Journal number {number} already taken; retry the operation."
            ) from exc
        raise

    for sort_order, line in enumerate(lines, start=1):
        JournalLine.objects.create(
            journal=entry,
            account=line["account"],
            branch_id=line["branch_id"],
            description=line["description"],
            debit_amount=line["debit_amount"],
            credit_amount=line["credit_amount"],
            sort_order=sort_order,
        )
    return entry


# ----------------------------
# Journal workflows
# ----------------------------
@transaction.atomic
def post_journal_entry(journal_date, description, source_type, source_id, lines,
                       user=None):
    """
    Validate and post a balanced entry in one unit.

    Number allocation, header insert, line inserts and the flip to
    posted share one transaction: a failure anywhere leaves no entry,
    no lines and no consumed number.
    """
    _check_source_type(source_type)
    normalized, total_debit, total_credit = validate_lines(lines)
    _check_period_open(journal_date, source_type)

    entry = _insert_entry(
        journal_date, description, source_type, source_id,
        normalized, total_debit, total_credit, user=user,
    )
    entry.transition_to("posted", user=user)
    logger.info(
        "Journal %s posted",
        entry.journal_number,
        extra={
            "journal_id": entry.pk,
            "source_type": source_type,
            "source_id": source_id,
            "amount": str(total_debit),
        },
    )
    return entry


@transaction.atomic
def create_journal_entry(journal_date, description, lines, source_type="MANUAL",
                         source_id=None, user=None):
    """Save a balanced draft for review; it stays out of every report."""
    _check_source_type(source_type)
    normalized, total_debit, total_credit = validate_lines(lines)
    entry = _insert_entry(
        journal_date, description, source_type, source_id,
        normalized, total_debit, total_credit, user=user,
    )
    logger.info("Journal %s drafted", entry.journal_number, extra={"journal_id": entry.pk})
    return entry


@transaction.atomic
def post_draft_journal_entry(entry_id, user=None):
    entry = _lock_entry(entry_id)
    if entry.status != "draft":
        raise InvariantViolationError(
            f"Only draft entries can be posted ({entry.journal_number} is {entry.status})."
        )

    # Accounts may have been deactivated since the draft was saved
    current = [
        {
            "account_id": line.account_id,
            "branch_id": line.branch_id,
            "debit_amount": line.debit_amount,
            "credit_amount": line.credit_amount,
        }
        for line in entry.lines.all()
    ]
    validate_lines(current)
    _check_period_open(entry.journal_date, entry.source_type)

    entry.transition_to("posted", user=user)
    logger.info("Journal %s posted", entry.journal_number, extra={"journal_id": entry.pk})
    return entry


@transaction.atomic
def void_journal_entry(entry_id, reason, user=None):
    """
    Reverse an entry by status flip. Lines are left exactly as they are;
    every report skips non-posted entries.
    """
    if not reason or not str(reason).strip():
        raise ValidationError("A void reason is required.")
    entry = _lock_entry(entry_id)

    if entry.status == "draft":
        raise InvariantViolationError(
            f"Draft entry {entry.journal_number} has nothing to void; delete it instead."
        )
    if entry.status == "voided":
        raise InvariantViolationError(f"Entry {entry.journal_number} is already voided.")

    period = Period.covering(entry.journal_date)
    if period and not period.accepts_voids:
        raise ValidationError(
            f"Period {period.name} is locked; cannot void {entry.journal_number}."
        )

    entry.transition_to("voided", user=user, reason=str(reason).strip())
    logger.info(
        "Journal %s voided",
        entry.journal_number,
        extra={"journal_id": entry.pk, "reason": entry.void_reason},
    )
    return entry


@transaction.atomic
def remove_draft_journal_entry(entry_id):
    entry = _lock_entry(entry_id)
    if entry.status != "draft":
        raise InvariantViolationError(
            f"Only draft entries can be deleted; void {entry.journal_number} instead."
        )
    entry.deleted_at = timezone.now()
    entry.save(update_fields=["deleted_at"])
    return entry


def _lock_entry(entry_id):
    try:
        return JournalEntry.objects.alive().select_for_update().get(pk=entry_id)
    except JournalEntry.DoesNotExist:
        raise ValidationError(f"Journal entry {entry_id} not found.")


# ----------------------------
# Queries
# ----------------------------
def _with_lines(qs):
    # Lines come back with their entry in one extra query,
    # never interleaved with another entry's writes
    return qs.prefetch_related(
        models.Prefetch(
            "lines",
            queryset=JournalLine.objects.select_related("account", "branch").order_by(
                "sort_order"
            ),
        )
    )


def get_journal_entry(entry_id):
    try:
        return _with_lines(JournalEntry.objects.alive()).get(pk=entry_id)
    except JournalEntry.DoesNotExist:
        raise ValidationError(f"Journal entry {entry_id} not found.")


def list_journal_entries(status=None, source_type=None, start_date=None,
                         end_date=None, limit=None):
    qs = JournalEntry.objects.alive()
    if status:
        qs = qs.filter(status=status)
    if source_type:
        qs = qs.filter(source_type=source_type)
    if start_date:
        qs = qs.filter(journal_date__gte=start_date)
    if end_date:
        qs = qs.filter(journal_date__lte=end_date)
    qs = qs.order_by("-journal_date", "-journal_number")
    if limit:
        qs = qs[:limit]
    return list(qs)


def journal_entries_by_source(source_type, source_id):
    return list(
        _with_lines(
            JournalEntry.objects.alive().filter(
                source_type=source_type, source_id=source_id
            )
        ).order_by("journal_number")
    )
