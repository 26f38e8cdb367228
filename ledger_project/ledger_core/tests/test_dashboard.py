from datetime import date
from decimal import Decimal

from django.test import TestCase

from ledger_core.services.dashboard import (dashboard_stats, recent_sales,
                                            sales_chart)

from .factories import make_customer, make_sale, make_supplier

D = Decimal
TODAY = date(2025, 7, 10)


class DashboardTests(TestCase):

    def setUp(self):
        customer = make_customer()
        make_supplier()
        make_sale("S-1", date(2025, 7, 4), [("Food", "1", "100", "0")], customer=customer)
        make_sale("S-2", date(2025, 7, 10), [("Food", "2", "150", "0")])
        make_sale("S-3", date(2025, 7, 10), [("Food", "1", "50", "0")])
        make_sale("S-4", date(2025, 7, 9), [("Food", "1", "999", "0")], status="draft")
        make_sale("S-5", date(2025, 6, 1), [("Food", "1", "10", "0")])

    """ Test headline numbers count completed revenue only """
    def test_stats(self):
        stats = dashboard_stats(TODAY)
        self.assertEqual(stats["total_customers"], 1)
        self.assertEqual(stats["total_suppliers"], 1)
        self.assertEqual(stats["total_sales"], 5)
        self.assertEqual(stats["total_revenue"], D("460.00"))
        self.assertEqual(stats["today_revenue"], D("350.00"))

    """ Test recent sales newest first with walk-in label """
    def test_recent_sales(self):
        rows = recent_sales(limit=3)
        self.assertEqual([r["sale_number"] for r in rows], ["S-3", "S-2", "S-4"])
        self.assertEqual(rows[0]["customer_name"], "Walk-in customer")

    """ Test chart is zero-filled and oldest first """
    def test_sales_chart(self):
        chart = sales_chart(days=7, today=TODAY)
        self.assertEqual(len(chart), 7)
        self.assertEqual(chart[0]["date"], date(2025, 7, 4))
        self.assertEqual(chart[-1]["date"], TODAY)
        amounts = [row["amount"] for row in chart]
        self.assertEqual(amounts, [D("100.00"), 0, 0, 0, 0, 0, D("350.00")])
