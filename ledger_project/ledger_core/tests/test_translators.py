from datetime import date
from decimal import Decimal

from django.test import TestCase, override_settings

from ledger_core.exceptions import (InvariantViolationError,
                                    MissingDefaultAccountError)
from ledger_core.models import JournalEntry
from ledger_core.services.translators import (post_purchase_journal,
                                              post_sale_journal)

from .factories import make_chart, make_purchase_order, make_sale, make_supplier

D = Decimal


def legs(entry):
    """{code: (debit, credit)} for an entry's lines."""
    result = {}
    for line in entry.lines.select_related("account"):
        debit, credit = result.get(line.account.code, (D("0"), D("0")))
        result[line.account.code] = (debit + line.debit_amount, credit + line.credit_amount)
    return result


class SaleJournalTests(TestCase):

    def setUp(self):
        self.chart = make_chart()
        self.sale = make_sale(
            "INV-001",
            date(2025, 3, 1),
            [
                ("Food", "2", "50000", "60000"),
                ("Medicine", "1", "30000", "10000"),
                ("Accessories", "1", "20000", "0"),
            ],
            paid="100000",
            discount="5000",
            tax="11000",
        )

    """ Test retail sale: cash, receivable, discount, routed revenue, COGS and VAT """
    def test_retail_sale_lines(self):
        entry = post_sale_journal(self.sale)
        self.assertEqual(entry.status, "posted")
        self.assertEqual(entry.source_type, "SALES")
        self.assertEqual(entry.source_id, self.sale.pk)
        self.assertEqual(
            legs(entry),
            {
                "1-101": (D("100000.00"), D("0")),
                "1-120": (D("56000.00"), D("0")),
                "5-212": (D("5000.00"), D("0")),
                "4-111": (D("0"), D("100000.00")),
                "4-113": (D("0"), D("30000.00")),
                "4-112": (D("0"), D("20000.00")),
                "5-101": (D("60000.00"), D("0")),
                "1-131": (D("0"), D("60000.00")),
                "5-103": (D("10000.00"), D("0")),
                "1-133": (D("0"), D("10000.00")),
                "2-111": (D("0"), D("11000.00")),
            },
        )
        self.assertEqual(entry.total_debit, entry.total_credit)
        self.sale.refresh_from_db()
        self.assertEqual(self.sale.journal_entry_id, entry.pk)

    """ Test second posting of the same sale is refused """
    def test_posting_twice(self):
        post_sale_journal(self.sale)
        with self.assertRaises(InvariantViolationError):
            post_sale_journal(self.sale)
        self.assertEqual(JournalEntry.objects.filter(source_type="SALES").count(), 1)

    """ Test draft sale is refused """
    def test_draft_sale(self):
        draft = make_sale("INV-002", date(2025, 3, 1), [("Food", "1", "100", "0")],
                          status="draft")
        with self.assertRaises(InvariantViolationError):
            post_sale_journal(draft)

    """ Test clinic and hotel revenue routes with their defaults """
    def test_service_routes(self):
        clinic = make_sale("CL-001", date(2025, 3, 2),
                           [("Vaccination", "1", "150000", "0"), ("Unknown", "1", "50000", "0")],
                           paid="200000", sale_type="clinic")
        hotel = make_sale("HT-001", date(2025, 3, 2), [("Room", "3", "100000", "0")],
                          paid="300000", sale_type="hotel")
        clinic_legs = legs(post_sale_journal(clinic))
        self.assertEqual(clinic_legs["4-122"], (D("0"), D("150000.00")))
        self.assertEqual(clinic_legs["4-121"], (D("0"), D("50000.00")))
        self.assertEqual(legs(post_sale_journal(hotel))["4-140"], (D("0"), D("300000.00")))

    """ Test missing contra account aborts without a journal """
    @override_settings(LEDGER={"DEFAULT_ACCOUNTS": {"cash": "9-999"}})
    def test_missing_default_account(self):
        with self.assertRaises(MissingDefaultAccountError):
            post_sale_journal(self.sale)
        self.assertFalse(JournalEntry.objects.exists())
        self.sale.refresh_from_db()
        self.assertIsNone(self.sale.journal_entry_id)


class PurchaseJournalTests(TestCase):

    def setUp(self):
        self.chart = make_chart()
        self.supplier = make_supplier()

    """ Test purchase: inventory per category, input VAT, cash and payable """
    def test_purchase_lines(self):
        purchase_order = make_purchase_order(
            "PO-001", date(2025, 3, 5), self.supplier,
            [("Food", "10", "20000"), ("Vaccine", "5", "40000")],
            paid="150000", tax="44000",
        )
        entry = post_purchase_journal(purchase_order)
        self.assertEqual(
            legs(entry),
            {
                "1-131": (D("200000.00"), D("0")),
                "1-134": (D("200000.00"), D("0")),
                "5-301": (D("44000.00"), D("0")),
                "1-101": (D("0"), D("150000.00")),
                "2-101": (D("0"), D("294000.00")),
            },
        )
        self.assertEqual(entry.source_type, "PURCHASE")

    """ Test draft purchase order is refused """
    def test_draft_order(self):
        purchase_order = make_purchase_order("PO-002", date(2025, 3, 5), self.supplier,
                                             [("Food", "1", "100")], status="draft")
        with self.assertRaises(InvariantViolationError):
            post_purchase_journal(purchase_order)
