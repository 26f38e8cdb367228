import logging
from datetime import date

from celery import shared_task
from django.utils import timezone

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def rebuild_bank_balances():
    """Recompute every live bank account's cached balance; returns drifted ids."""
    # import lazily to avoid circular imports at module import time
    from .models import BankAccount
    from .services.banking import rebuild_current_balance

    drifted = []
    for bank_account in BankAccount.objects.alive():
        before = bank_account.current_balance
        computed = rebuild_current_balance(bank_account.pk)
        if before != computed:
            drifted.append(bank_account.pk)
    logger.info("Bank balances rebuilt, %s drifted", len(drifted))
    return drifted


@shared_task
def verify_trial_balance(as_of_date=None):
    """Run the trial balance as an integrity check; True when it closes."""
    from .services.reports import trial_balance

    # Celery serializes arguments as JSON: dates arrive as ISO strings
    if isinstance(as_of_date, str):
        as_of_date = date.fromisoformat(as_of_date)
    report = trial_balance(as_of_date or timezone.localdate())
    if not report["is_balanced"]:
        logger.error(
            "Trial balance integrity check failed as of %s: difference %s",
            report["as_of_date"],
            report["difference"],
        )
    return report["is_balanced"]
