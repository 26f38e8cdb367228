"""
Accounting period lifecycle: open -> closed -> locked, and the
year-end close that moves a year's profit or loss into retained
earnings.

Posting date determines the period. A closed period takes no new
postings but still accepts voids; a locked one takes neither.
"""
import calendar
import logging
from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone

from ..conf import default_account_code
from ..exceptions import InvariantViolationError
from ..models import Account, JournalEntry, JournalLine, Period
from .accounts import resolve_postable_account
from .journal import post_journal_entry

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

MONTH_NAMES = (
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
)


def _lock_period(period_id):
    try:
        return Period.objects.select_for_update().get(pk=period_id)
    except Period.DoesNotExist:
        raise ValidationError(f"Period {period_id} not found.")


def _entries_in(period):
    return JournalEntry.objects.alive().filter(
        journal_date__gte=period.start_date, journal_date__lte=period.end_date
    )


# ----------------------------
# Period workflows
# ----------------------------
@transaction.atomic
def create_period(year, month):
    """Open a calendar-month period named like "Januari 2025"."""
    try:
        year, month = int(year), int(month)
    except (TypeError, ValueError):
        raise ValidationError("Year and month must be numbers.")
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}")

    name = f"{MONTH_NAMES[month - 1]} {year}"
    if Period.objects.filter(name=name).exists():
        raise ValidationError(f"Period {name} already exists.")

    period = Period(
        name=name,
        start_date=date(year, month, 1),
        end_date=date(year, month, calendar.monthrange(year, month)[1]),
    )
    period.save()  # full_clean rejects overlaps
    logger.info("Period %s opened", name, extra={"period_id": period.pk})
    return period


@transaction.atomic
def close_period(period_id, user=None):
    """Month-end close. Refused while drafts dated in the period remain."""
    period = _lock_period(period_id)
    if period.status != "open":
        raise InvariantViolationError(f"Period {period.name} is already {period.status}.")

    drafts = _entries_in(period).filter(status="draft").count()
    if drafts:
        raise InvariantViolationError(
            f"Cannot close {period.name}: {drafts} draft journal entries must be "
            "posted or deleted first."
        )

    period.status = "closed"
    period.closed_at = timezone.now()
    period.closed_by = user
    period.save()
    logger.info("Period %s closed", period.name, extra={"period_id": period.pk})
    return period


@transaction.atomic
def lock_period(period_id):
    """Make a closed period final: no postings and no voids."""
    period = _lock_period(period_id)
    if period.status != "closed":
        raise InvariantViolationError(
            f"Only closed periods can be locked ({period.name} is {period.status})."
        )
    period.status = "locked"
    period.save(update_fields=["status"])
    logger.info("Period %s locked", period.name, extra={"period_id": period.pk})
    return period


@transaction.atomic
def reopen_period(period_id):
    period = _lock_period(period_id)
    if period.status == "open":
        raise InvariantViolationError(f"Period {period.name} is already open.")

    # Reopening under a closed later month would let its opening figures drift
    later = Period.objects.filter(start_date__gt=period.end_date).exclude(status="open")
    if later.exists():
        raise InvariantViolationError(
            f"Cannot reopen {period.name}: a later period is already "
            f"{later.first().status}."
        )

    period.status = "open"
    period.closed_at = None
    period.closed_by = None
    period.save()
    logger.info("Period %s reopened", period.name, extra={"period_id": period.pk})
    return period


def list_periods(status=None):
    """Periods in date order, each with the count of live entries it holds."""
    periods = Period.objects.all()
    if status:
        periods = periods.filter(status=status)

    rows = []
    for period in periods:
        rows.append(
            {
                "period": period,
                "transaction_count": _entries_in(period).exclude(status="voided").count(),
            }
        )
    return rows


# ----------------------------
# Year-end close
# ----------------------------
def _closing_lines(year):
    """Zero every revenue and expense account for the year; return (lines, net)."""
    totals = {
        row["account_id"]: (row["debit"] or ZERO, row["credit"] or ZERO)
        for row in JournalLine.objects.between(date(year, 1, 1), date(year, 12, 31))
        .values("account_id")
        .annotate(debit=models.Sum("debit_amount"), credit=models.Sum("credit_amount"))
    }
    accounts = Account.objects.alive().filter(
        pk__in=list(totals), is_header=False, ac_type__in=("revenue", "expense")
    ).order_by("code")

    description = f"Tutup buku {year}"
    lines = []
    net_income = ZERO
    for account in accounts:
        balance = account.signed_balance(*totals[account.pk])
        if balance == 0:
            continue
        if account.ac_type == "revenue":
            net_income += balance
            # revenue carries a credit balance, debit it away
            debit, credit = (balance, ZERO) if balance > 0 else (ZERO, -balance)
        else:
            net_income -= balance
            debit, credit = (ZERO, balance) if balance > 0 else (-balance, ZERO)
        lines.append(
            {
                "account": account,
                "debit_amount": debit,
                "credit_amount": credit,
                "description": description,
            }
        )
    return lines, net_income


@transaction.atomic
def year_end_close(year, user=None):
    """
    Transfer the year's net income to retained earnings.

    The December period must already be closed. Revenue and expense
    accounts are zeroed by one posted YEAR_END_CLOSE entry dated
    31 December; running it twice for a year is refused.
    """
    try:
        year = int(year)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid year: {year!r}")
    year_end = date(year, 12, 31)

    period = Period.covering(year_end)
    if period is None:
        raise ValidationError(f"No accounting period covers {year_end}.")
    if period.status != "closed":
        raise InvariantViolationError(
            f"Close {period.name} before the year-end close (it is {period.status})."
        )

    done = JournalEntry.objects.alive().filter(
        source_type="YEAR_END_CLOSE", source_id=year, status="posted"
    )
    if done.exists():
        raise InvariantViolationError(f"Year-end close for {year} already completed.")

    lines, net_income = _closing_lines(year)
    if not lines:
        raise ValidationError(f"No revenue or expense activity to close for {year}.")

    if net_income:
        retained = resolve_postable_account(default_account_code("retained_earnings"))
        lines.append(
            {
                "account": retained,
                # profit credits retained earnings, a loss debits it
                "debit_amount": -net_income if net_income < 0 else ZERO,
                "credit_amount": net_income if net_income > 0 else ZERO,
                "description": f"Laba (rugi) bersih {year}",
            }
        )

    entry = post_journal_entry(
        journal_date=year_end,
        description=f"Tutup buku {year} - laba bersih ke laba ditahan",
        source_type="YEAR_END_CLOSE",
        source_id=year,
        lines=lines,
        user=user,
    )
    logger.info(
        "Year %s closed into retained earnings",
        year,
        extra={"journal_id": entry.pk, "net_income": str(net_income)},
    )
    return {"journal_entry": entry, "net_income": net_income}
