from django.core.management.base import BaseCommand, CommandError

from ledger_core.models import BankAccount
from ledger_core.services.banking import rebuild_current_balance


class Command(BaseCommand):
    help = "Recompute cached bank balances from initial balance and transactions."

    # Define command-line argument
    def add_arguments(self, parser):
        parser.add_argument(
            "--bank-account",  # Define flag
            type=int,
            default=None,
            help="Only rebuild this bank account id (default: all live accounts)",
        )

    def handle(self, *args, **options):
        bank_accounts = BankAccount.objects.alive()
        if options["bank_account"]:
            bank_accounts = bank_accounts.filter(pk=options["bank_account"])
            if not bank_accounts.exists():
                raise CommandError(f"Bank account {options['bank_account']} not found.")

        drifted = 0
        for bank_account in bank_accounts:
            before = bank_account.current_balance
            computed = rebuild_current_balance(bank_account.pk)
            if before != computed:
                drifted += 1
                self.stdout.write(self.style.WARNING(
                    f"{bank_account}: {before} -> {computed}"))
        self.stdout.write(self.style.SUCCESS(
            f"Rebuilt {bank_accounts.count()} bank balances, {drifted} corrected."))
