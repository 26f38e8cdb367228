from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import (Account, BankAccount, BankTransaction, JournalEntry,
                     JournalLine, Period)

# Services soft delete (deleted_at); these receivers stop a hard
# delete from the admin, the shell or a cascade from erasing history.

"""Block deletion if account has ever been used in a journal line."""


@receiver(pre_delete, sender=Account)
def prevent_delete_account_with_journal_lines(sender, instance, **kwargs):
    if JournalLine.objects.filter(account=instance).exists():
        raise ValidationError("Cannot delete account used in journal lines.")


"""Only drafts may disappear; posted and voided entries are permanent."""


@receiver(pre_delete, sender=JournalEntry)
def prevent_delete_non_draft_journal(sender, instance, **kwargs):
    if instance.status != "draft":
        raise ValidationError(
            f"Cannot delete {instance.status} journal entry {instance.journal_number}."
        )


"""Bank movements are voided, never deleted."""


@receiver(pre_delete, sender=BankTransaction)
def prevent_delete_bank_transaction(sender, instance, **kwargs):
    raise ValidationError("Cannot delete a bank transaction; void it instead.")


@receiver(pre_delete, sender=BankAccount)
def prevent_delete_bank_account_with_transactions(sender, instance, **kwargs):
    if BankTransaction.objects.filter(bank_account=instance).exists():
        raise ValidationError("Cannot delete bank account with transactions.")


"""Block deletion if period has posted journals."""


@receiver(pre_delete, sender=Period)
def prevent_delete_period_with_posted_journals(sender, instance, **kwargs):
    if JournalEntry.objects.filter(
        status="posted",
        journal_date__gte=instance.start_date,
        journal_date__lte=instance.end_date,
    ).exists():
        raise ValidationError("Cannot delete a period with posted journal entries.")
