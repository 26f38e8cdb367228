from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from ledger_core.exceptions import (InvariantViolationError,
                                    MissingDefaultAccountError,
                                    UnknownTransactionTypeError)
from ledger_core.models import BankAccount, BankTransaction, JournalEntry
from ledger_core.services.banking import (balance_at_date, bank_statement,
                                          bulk_reconcile,
                                          rebuild_current_balance,
                                          reconcile_transaction,
                                          record_transaction,
                                          unreconcile_transaction,
                                          void_transaction)
from ledger_core.services.reports import trial_balance

from .factories import make_bank_account, make_chart

D = Decimal


class BankTransactionTests(TestCase):

    def setUp(self):
        self.chart = make_chart()
        # BCA starts at 100000
        self.bank = make_bank_account(self.chart["1-102"], "100000.00")

    def _balance(self):
        return BankAccount.objects.get(pk=self.bank.pk).current_balance

    def _record(self, transaction_type, amount, day=10, **kwargs):
        return record_transaction(
            self.bank.pk, date(2025, 1, day), transaction_type, amount,
            description="test", **kwargs,
        )

    """ Test deposit then void restores the balance and voids the journal """
    def test_deposit_then_void(self):
        bank_tx, entry = self._record("DEPOSIT", "50000")

        self.assertEqual(self._balance(), D("150000.00"))
        self.assertEqual(entry.status, "posted")
        self.assertEqual(entry.total_debit, D("50000.00"))
        self.assertEqual(entry.total_credit, D("50000.00"))
        self.assertEqual(entry.source_type, "BANK")
        self.assertEqual(entry.source_id, bank_tx.pk)

        void_transaction(bank_tx.pk)

        self.assertEqual(self._balance(), D("100000.00"))
        entry.refresh_from_db()
        self.assertEqual(entry.status, "voided")
        self.assertEqual(entry.void_reason, "Bank transaction voided")
        bank_tx.refresh_from_db()
        self.assertEqual(bank_tx.reconciliation_status, "VOID")

    """ Test routing of every transaction type """
    def test_routing_per_type(self):
        expected = {
            "DEPOSIT": ("1-102", "1-101", D("10")),
            "WITHDRAWAL": ("1-101", "1-102", D("-10")),
            "TRANSFER_IN": ("1-102", "1-120", D("10")),
            "TRANSFER_OUT": ("2-101", "1-102", D("-10")),
            "FEE": ("5-211", "1-102", D("-10")),
            "INTEREST": ("1-102", "4-201", D("10")),
        }
        for transaction_type, (debit_code, credit_code, delta) in expected.items():
            before = self._balance()
            _tx, entry = self._record(transaction_type, "10")
            debit_line, credit_line = list(entry.lines.order_by("sort_order"))
            self.assertEqual(debit_line.account.code, debit_code, transaction_type)
            self.assertEqual(credit_line.account.code, credit_code, transaction_type)
            self.assertEqual(debit_line.debit_amount, D("10.00"))
            self.assertEqual(credit_line.credit_amount, D("10.00"))
            self.assertEqual(self._balance() - before, delta, transaction_type)

    """ Test unknown type fails before anything is written """
    def test_unknown_type(self):
        with self.assertRaises(UnknownTransactionTypeError):
            self._record("CHEQUE", "10")
        self.assertEqual(BankTransaction.objects.count(), 0)
        self.assertEqual(JournalEntry.objects.count(), 0)
        self.assertEqual(self._balance(), D("100000.00"))

    """ Test zero and negative amounts rejected """
    def test_amount_must_be_positive(self):
        with self.assertRaises(ValidationError):
            self._record("DEPOSIT", "0")
        with self.assertRaises(ValidationError):
            self._record("DEPOSIT", "-5")

    """ Test recording without a journal still moves the balance """
    def test_without_journal(self):
        bank_tx, entry = self._record("DEPOSIT", "250", auto_create_journal=False)
        self.assertIsNone(entry)
        self.assertIsNone(bank_tx.journal_entry_id)
        self.assertEqual(self._balance(), D("100250.00"))

    """ Test failed journal rolls back the balance and the transaction """
    def test_journal_failure_rolls_back(self):
        # remove the contra account the DEPOSIT routing needs
        cash = self.chart["1-101"]
        cash.is_active = False
        cash.save()
        with self.assertRaises(MissingDefaultAccountError):
            self._record("DEPOSIT", "50000")
        self.assertEqual(BankTransaction.objects.count(), 0)
        self.assertEqual(self._balance(), D("100000.00"))

    """ Test reconcile twice fails, unreconcile then reconcile works """
    def test_reconcile_cycle(self):
        bank_tx, _entry = self._record("DEPOSIT", "10")
        reconcile_transaction(bank_tx.pk, date(2025, 1, 31))
        bank_tx.refresh_from_db()
        self.assertEqual(bank_tx.reconciliation_status, "RECONCILED")
        self.assertIsNotNone(bank_tx.reconciled_at)
        self.assertEqual(bank_tx.bank_statement_date, date(2025, 1, 31))

        with self.assertRaises(InvariantViolationError):
            reconcile_transaction(bank_tx.pk)

        unreconcile_transaction(bank_tx.pk)
        bank_tx.refresh_from_db()
        self.assertEqual(bank_tx.reconciliation_status, "UNRECONCILED")
        self.assertIsNone(bank_tx.reconciled_at)
        reconcile_transaction(bank_tx.pk)

    """ Test void twice fails and void is terminal """
    def test_void_twice(self):
        bank_tx, _entry = self._record("FEE", "5")
        void_transaction(bank_tx.pk)
        with self.assertRaises(InvariantViolationError):
            void_transaction(bank_tx.pk)
        with self.assertRaises(InvariantViolationError):
            reconcile_transaction(bank_tx.pk)
        self.assertEqual(self._balance(), D("100000.00"))

    """ Test reconciled transaction can still be voided """
    def test_void_reconciled(self):
        bank_tx, _entry = self._record("DEPOSIT", "10")
        reconcile_transaction(bank_tx.pk)
        void_transaction(bank_tx.pk)
        self.assertEqual(self._balance(), D("100000.00"))

    """ Test bulk reconcile reports failures without stopping """
    def test_bulk_reconcile(self):
        first, _ = self._record("DEPOSIT", "10")
        second, _ = self._record("DEPOSIT", "20")
        reconcile_transaction(second.pk)
        result = bulk_reconcile([first.pk, second.pk, 999999])
        self.assertEqual(result["success_count"], 1)
        self.assertEqual(result["failed_ids"], [second.pk, 999999])

    """ Test rebuild corrects a drifted cache """
    def test_rebuild_after_drift(self):
        self._record("DEPOSIT", "500")
        voided, _ = self._record("WITHDRAWAL", "200")
        void_transaction(voided.pk)
        self._record("FEE", "25")
        # corrupt the cache behind the service's back
        BankAccount.objects.filter(pk=self.bank.pk).update(current_balance=D("1.00"))

        with self.assertLogs("ledger_core.services.banking", level="WARNING"):
            computed = rebuild_current_balance(self.bank.pk)
        self.assertEqual(computed, D("100475.00"))
        self.assertEqual(self._balance(), D("100475.00"))

    """ Test bank balance stays equal to the ledger balance of its linked account """
    def test_cache_matches_ledger(self):
        self._record("DEPOSIT", "1000")
        self._record("WITHDRAWAL", "300")
        self._record("INTEREST", "12.50")
        report = trial_balance(date(2025, 12, 31))
        row = next(r for r in report["accounts"] if r["code"] == "1-102")
        # ledger holds only the movements; the opening balance is not journalled
        self.assertEqual(row["balance"], self._balance() - self.bank.initial_balance)

    """ Test hard delete of a bank transaction is refused """
    def test_delete_blocked(self):
        bank_tx, _ = self._record("DEPOSIT", "10")
        with self.assertRaises(ValidationError):
            bank_tx.delete()


class BankStatementTests(TestCase):

    def setUp(self):
        chart = make_chart()
        self.bank = make_bank_account(chart["1-102"], "1000.00")
        record_transaction(self.bank.pk, date(2025, 1, 5), "DEPOSIT", "500", "a")
        voided, _ = record_transaction(self.bank.pk, date(2025, 1, 6), "DEPOSIT", "999", "b")
        void_transaction(voided.pk)
        record_transaction(self.bank.pk, date(2025, 2, 3), "WITHDRAWAL", "200", "c")
        record_transaction(self.bank.pk, date(2025, 2, 10), "FEE", "15", "d")
        record_transaction(self.bank.pk, date(2025, 3, 1), "DEPOSIT", "100", "e")

    """ Test opening, running and closing balances for a window """
    def test_statement_window(self):
        statement = bank_statement(self.bank.pk, date(2025, 2, 1), date(2025, 2, 28))
        self.assertEqual(statement["opening_balance"], D("1500.00"))
        self.assertEqual([r["balance"] for r in statement["transactions"]],
                         [D("1300.00"), D("1285.00")])
        self.assertEqual(statement["closing_balance"], D("1285.00"))
        self.assertEqual(statement["total_deposits"], D("0.00"))
        self.assertEqual(statement["total_withdrawals"], D("215.00"))

    """ Test voided rows never appear """
    def test_voided_excluded(self):
        statement = bank_statement(self.bank.pk)
        self.assertEqual(len(statement["transactions"]), 4)
        self.assertEqual(statement["closing_balance"], D("1385.00"))

    """ Test balance at a date """
    def test_balance_at_date(self):
        self.assertEqual(balance_at_date(self.bank.pk, date(2025, 1, 31)), D("1500.00"))
        self.assertEqual(balance_at_date(self.bank.pk, date(2025, 12, 31)), D("1385.00"))
