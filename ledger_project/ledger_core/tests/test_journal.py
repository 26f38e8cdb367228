from datetime import date
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from ledger_core.exceptions import InvariantViolationError, UnbalancedEntryError
from ledger_core.models import JournalEntry, JournalLine, Period
from ledger_core.services.journal import (create_journal_entry,
                                          get_journal_entry,
                                          journal_entries_by_source,
                                          list_journal_entries,
                                          post_draft_journal_entry,
                                          post_journal_entry,
                                          remove_draft_journal_entry,
                                          void_journal_entry)

from .factories import make_account, post

D = Decimal


def lines(debit_account, credit_account, debit, credit):
    return [
        {"account": debit_account, "debit_amount": debit, "credit_amount": 0},
        {"account": credit_account, "debit_amount": 0, "credit_amount": credit},
    ]


""" Success tests """
class JournalPostingTests(TestCase):

    def setUp(self):
        self.cash = make_account("1-100", "Kas", "asset")
        self.revenue = make_account("4-100", "Penjualan", "revenue")
        self.expense = make_account("5-100", "Beban", "expense")

    """ Test balanced entry posts with totals, number and stamps """
    def test_balanced_entry_posts(self):
        entry = post_journal_entry(
            journal_date=date(2025, 3, 1),
            description="Penjualan tunai",
            source_type="MANUAL",
            source_id=None,
            lines=lines(self.cash, self.revenue, "200000", "200000"),
        )
        entry.refresh_from_db()
        self.assertEqual(entry.status, "posted")
        self.assertEqual(entry.total_debit, D("200000.00"))
        self.assertEqual(entry.total_debit, entry.total_credit)
        self.assertIsNotNone(entry.posted_at)
        self.assertEqual(entry.journal_number, "JE-00000001")
        self.assertEqual(
            list(entry.lines.values_list("sort_order", flat=True)), [1, 2]
        )

    """ Test every posted entry balances across many postings """
    def test_many_entries_all_balanced(self):
        amounts = ["0.01", "1.99", "150000", "42.50", "999999.99"]
        for amount in amounts:
            post(self.cash, self.revenue, amount)
        for entry in JournalEntry.objects.filter(status="posted"):
            debit, credit = entry.compute_totals()
            self.assertEqual(debit, credit)
            self.assertEqual(debit, entry.total_debit)

    """ Test multi-line entry balances across several accounts """
    def test_multi_line_entry(self):
        entry = post_journal_entry(
            journal_date=date(2025, 3, 1),
            description="Split",
            source_type="ADJUSTMENT",
            source_id=None,
            lines=[
                {"account_id": self.cash.pk, "debit_amount": "70.00"},
                {"account_id": str(self.expense.pk), "debit_amount": "30.00"},
                {"account": self.revenue, "credit_amount": "100.00"},
            ],
        )
        self.assertEqual(entry.lines.count(), 3)
        self.assertTrue(entry.is_balanced())

    """ Test numbers are sequential and unique """
    def test_sequential_numbers(self):
        first = post(self.cash, self.revenue, "10")
        second = post(self.cash, self.revenue, "20")
        self.assertEqual(first.journal_number, "JE-00000001")
        self.assertEqual(second.journal_number, "JE-00000002")


""" Failure tests """
class JournalValidationTests(TestCase):

    def setUp(self):
        self.cash = make_account("1-100", "Kas", "asset")
        self.revenue = make_account("4-100", "Penjualan", "revenue")
        self.header = make_account("1-000", "Aset", "asset", is_header=True)

    def _post(self, entry_lines, journal_date=date(2025, 3, 1)):
        return post_journal_entry(
            journal_date=journal_date,
            description="x",
            source_type="MANUAL",
            source_id=None,
            lines=entry_lines,
        )

    """ Test debit 100 / credit 90 fails and leaves nothing behind """
    def test_unbalanced_entry_rejected(self):
        with self.assertRaises(UnbalancedEntryError) as ctx:
            self._post(lines(self.cash, self.revenue, "100", "90"))
        self.assertEqual(ctx.exception.total_debit, D("100.00"))
        self.assertEqual(ctx.exception.total_credit, D("90.00"))
        self.assertEqual(JournalEntry.objects.count(), 0)
        self.assertEqual(JournalLine.objects.count(), 0)

    """ Test a one-cent difference is not tolerated """
    def test_one_cent_difference_rejected(self):
        with self.assertRaises(UnbalancedEntryError):
            self._post(lines(self.cash, self.revenue, "100.00", "99.99"))

    """ Test a failed post does not consume a journal number """
    def test_failed_post_consumes_no_number(self):
        with self.assertRaises(UnbalancedEntryError):
            self._post(lines(self.cash, self.revenue, "100", "90"))
        entry = post(self.cash, self.revenue, "100")
        self.assertEqual(entry.journal_number, "JE-00000001")

    """ Test fewer than two lines rejected """
    def test_single_line_rejected(self):
        with self.assertRaises(ValidationError):
            self._post([{"account": self.cash, "debit_amount": "10"}])

    """ Test a line with both sides or neither side is rejected """
    def test_line_sides(self):
        with self.assertRaises(ValidationError):
            self._post([
                {"account": self.cash, "debit_amount": "10", "credit_amount": "10"},
                {"account": self.revenue, "debit_amount": "0", "credit_amount": "0"},
            ])

    """ Test negative amount rejected """
    def test_negative_amount_rejected(self):
        with self.assertRaises(ValidationError):
            self._post(lines(self.cash, self.revenue, "-10", "-10"))

    """ Test sub-cent precision rejected """
    def test_sub_cent_rejected(self):
        with self.assertRaises(ValidationError):
            self._post(lines(self.cash, self.revenue, "10.005", "10.005"))

    """ Test header and unknown accounts rejected """
    def test_header_and_unknown_accounts(self):
        with self.assertRaises(ValidationError):
            self._post(lines(self.header, self.revenue, "10", "10"))
        with self.assertRaises(ValidationError):
            self._post([
                {"account_id": 999999, "debit_amount": "10"},
                {"account": self.revenue, "credit_amount": "10"},
            ])

    """ Test lines that are not a list of objects are rejected """
    def test_malformed_lines_shape(self):
        for bad in ([1, 2], {"account": self.cash.pk}, "lines",
                    [{"account": self.cash, "debit_amount": "10"}, None]):
            with self.assertRaises(ValidationError):
                self._post(bad)
        self.assertEqual(JournalEntry.objects.count(), 0)

    """ Test unknown source type rejected """
    def test_unknown_source_type(self):
        with self.assertRaises(ValidationError):
            post_journal_entry(date(2025, 3, 1), "x", "PAYROLL", None,
                               lines(self.cash, self.revenue, "10", "10"))


class JournalLifecycleTests(TestCase):

    def setUp(self):
        self.cash = make_account("1-100", "Kas", "asset")
        self.revenue = make_account("4-100", "Penjualan", "revenue")
        self.entry = post(self.cash, self.revenue, "500")

    """ Test void flips status and keeps lines """
    def test_void_keeps_lines(self):
        void_journal_entry(self.entry.pk, "Salah input")
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.status, "voided")
        self.assertEqual(self.entry.void_reason, "Salah input")
        self.assertIsNotNone(self.entry.voided_at)
        self.assertEqual(self.entry.lines.count(), 2)

    """ Test void twice fails """
    def test_void_twice(self):
        void_journal_entry(self.entry.pk, "Salah input")
        with self.assertRaises(InvariantViolationError):
            void_journal_entry(self.entry.pk, "Lagi")

    """ Test void requires a reason """
    def test_void_requires_reason(self):
        with self.assertRaises(ValidationError):
            void_journal_entry(self.entry.pk, "   ")

    """ Test posted amounts cannot be edited in place """
    def test_posted_entry_frozen(self):
        self.entry.total_debit = D("1.00")
        self.entry.total_credit = D("1.00")
        with self.assertRaises(ValidationError):
            self.entry.save()

    """ Test lines of a posted entry cannot be changed or deleted """
    def test_posted_lines_frozen(self):
        line = self.entry.lines.first()
        line.debit_amount = D("1.00")
        with self.assertRaises(ValidationError):
            line.save()
        with self.assertRaises(ValidationError):
            line.delete()

    """ Test voided entry cannot go back to posted """
    def test_no_unvoid(self):
        void_journal_entry(self.entry.pk, "Salah input")
        self.entry.refresh_from_db()
        with self.assertRaises(InvariantViolationError):
            self.entry.transition_to("posted")

    """ Test hard delete of a posted entry is refused """
    def test_posted_entry_cannot_be_deleted(self):
        with self.assertRaises(ValidationError):
            self.entry.delete()


class DraftJournalTests(TestCase):

    def setUp(self):
        self.cash = make_account("1-100", "Kas", "asset")
        self.revenue = make_account("4-100", "Penjualan", "revenue")
        self.draft = create_journal_entry(
            date(2025, 3, 2), "Draft", lines(self.cash, self.revenue, "75", "75")
        )

    """ Test drafts are saved balanced but not posted """
    def test_draft_saved(self):
        self.assertEqual(self.draft.status, "draft")
        self.assertIsNone(self.draft.posted_at)

    """ Test draft can be posted later """
    def test_post_draft(self):
        entry = post_draft_journal_entry(self.draft.pk)
        self.assertEqual(entry.status, "posted")

    """ Test draft cannot be voided """
    def test_void_draft_fails(self):
        with self.assertRaises(InvariantViolationError):
            void_journal_entry(self.draft.pk, "x")

    """ Test draft removal is a soft delete """
    def test_remove_draft(self):
        remove_draft_journal_entry(self.draft.pk)
        self.assertFalse(JournalEntry.objects.alive().filter(pk=self.draft.pk).exists())
        with self.assertRaises(ValidationError):
            get_journal_entry(self.draft.pk)

    """ Test posted entry cannot be removed as a draft """
    def test_remove_posted_fails(self):
        entry = post_draft_journal_entry(self.draft.pk)
        with self.assertRaises(InvariantViolationError):
            remove_draft_journal_entry(entry.pk)

    """ Test draft posting re-checks account state """
    def test_post_draft_with_deactivated_account(self):
        self.cash.is_active = False
        self.cash.save()
        with self.assertRaises(ValidationError):
            post_draft_journal_entry(self.draft.pk)


class PeriodLockTests(TestCase):

    def setUp(self):
        self.cash = make_account("1-100", "Kas", "asset")
        self.revenue = make_account("4-100", "Penjualan", "revenue")
        self.period = Period.objects.create(
            name="2025-01", start_date=date(2025, 1, 1), end_date=date(2025, 1, 31)
        )

    """ Test closed period refuses postings but allows voids """
    def test_closed_period(self):
        entry = post(self.cash, self.revenue, "100", date(2025, 1, 10))
        self.period.status = "closed"
        self.period.save()
        with self.assertRaises(ValidationError):
            post(self.cash, self.revenue, "100", date(2025, 1, 11))
        void_journal_entry(entry.pk, "Koreksi")

    """ Test locked period refuses voids """
    def test_locked_period(self):
        entry = post(self.cash, self.revenue, "100", date(2025, 1, 10))
        self.period.status = "locked"
        self.period.save()
        with self.assertRaises(ValidationError):
            void_journal_entry(entry.pk, "Koreksi")

    """ Test dates outside any period post freely """
    def test_uncovered_date(self):
        entry = post(self.cash, self.revenue, "100", date(2025, 2, 10))
        self.assertEqual(entry.status, "posted")

    """ Test overlapping periods rejected """
    def test_overlap_rejected(self):
        with self.assertRaises(ValidationError):
            Period.objects.create(
                name="2025-01b", start_date=date(2025, 1, 15), end_date=date(2025, 2, 15)
            )

    """ Test a period with posted entries cannot be deleted """
    def test_period_delete_blocked(self):
        post(self.cash, self.revenue, "100", date(2025, 1, 10))
        with self.assertRaises(ValidationError):
            self.period.delete()


class JournalQueryTests(TestCase):

    def setUp(self):
        self.cash = make_account("1-100", "Kas", "asset")
        self.revenue = make_account("4-100", "Penjualan", "revenue")
        post(self.cash, self.revenue, "10", date(2025, 1, 1))
        post(self.cash, self.revenue, "20", date(2025, 2, 1))
        post_journal_entry(date(2025, 2, 5), "bank", "BANK", 7,
                           lines(self.cash, self.revenue, "30", "30"))

    """ Test filtering by date range and source """
    def test_list_filters(self):
        feb = list_journal_entries(start_date=date(2025, 2, 1), end_date=date(2025, 2, 28))
        self.assertEqual(len(feb), 2)
        # newest first
        self.assertEqual(feb[0].journal_date, date(2025, 2, 5))
        self.assertEqual(len(list_journal_entries(source_type="BANK")), 1)

    """ Test lookup by source """
    def test_entries_by_source(self):
        entries = journal_entries_by_source("BANK", 7)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].total_debit, D("30.00"))
