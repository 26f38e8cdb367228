"""Small builders shared by the test modules."""
from datetime import date
from decimal import Decimal

from ledger_core.models import (Account, BankAccount, Customer, PurchaseOrder,
                                PurchaseOrderLine, Sale, SaleLine, Supplier)
from ledger_core.services.journal import post_journal_entry

D = Decimal

# code, name, type, category
CHART = [
    ("1-101", "Kas Besar", "asset", "Current Asset - Cash"),
    ("1-102", "Bank BCA", "asset", "Current Asset - Bank"),
    ("1-111", "Kas Transfer", "asset", "Current Asset - Cash"),
    ("1-120", "Piutang Usaha", "asset", "Current Asset - Receivable"),
    ("1-131", "Persediaan Makanan", "asset", "Inventory"),
    ("1-132", "Persediaan Aksesoris", "asset", "Inventory"),
    ("1-133", "Persediaan Obat", "asset", "Inventory"),
    ("1-134", "Persediaan Vaksin", "asset", "Inventory"),
    ("1-135", "Persediaan Grooming", "asset", "Inventory"),
    ("1-201", "Peralatan", "asset", "Fixed Asset - Equipment"),
    ("2-101", "Hutang Usaha", "liability", "Current Liability - Payable"),
    ("2-111", "PPN Keluaran", "liability", "Current Liability"),
    ("2-201", "Pinjaman Bank", "liability", "Long-term Loan"),
    ("3-101", "Modal Pemilik", "equity", "Equity"),
    ("3-200", "Laba Ditahan", "equity", "Retained Earnings"),
    ("4-111", "Penjualan Makanan", "revenue", "Operating Revenue"),
    ("4-112", "Penjualan Aksesoris", "revenue", "Operating Revenue"),
    ("4-113", "Penjualan Obat", "revenue", "Operating Revenue"),
    ("4-121", "Pendapatan Pemeriksaan", "revenue", "Operating Revenue"),
    ("4-122", "Pendapatan Vaksinasi", "revenue", "Operating Revenue"),
    ("4-123", "Pendapatan Sterilisasi", "revenue", "Operating Revenue"),
    ("4-131", "Pendapatan Grooming", "revenue", "Operating Revenue"),
    ("4-140", "Pendapatan Hotel", "revenue", "Operating Revenue"),
    ("4-201", "Pendapatan Bunga", "revenue", "Other Income - Interest"),
    ("5-101", "HPP Makanan", "expense", "COGS"),
    ("5-102", "HPP Aksesoris", "expense", "COGS"),
    ("5-103", "HPP Obat", "expense", "COGS"),
    ("5-104", "HPP Vaksin", "expense", "COGS"),
    ("5-201", "Beban Listrik", "expense", "Operating Expense"),
    ("5-211", "Biaya Bank", "expense", "Operating Expense"),
    ("5-212", "Diskon Penjualan", "expense", "Operating Expense"),
    ("5-301", "PPN Masukan", "expense", "Tax"),
]


def make_account(code, name, ac_type, normal_balance=None, category="", parent=None,
                 is_header=False):
    if normal_balance is None:
        normal_balance = "debit" if ac_type in ("asset", "expense") else "credit"
    return Account.objects.create(
        code=code,
        name=name,
        ac_type=ac_type,
        normal_balance=normal_balance,
        category=category,
        parent=parent,
        is_header=is_header,
        level=parent.level + 1 if parent else 1,
    )


def make_chart():
    """Leaf accounts for every code the translators route to, keyed by code."""
    return {
        code: make_account(code, name, ac_type, category=category)
        for code, name, ac_type, category in CHART
    }


def make_bank_account(linked_account, initial_balance="100000.00", name="BCA Operasional"):
    return BankAccount.objects.create(
        name=name,
        bank_name="BCA",
        account_number_masked="****1234",
        linked_account=linked_account,
        initial_balance=D(initial_balance),
    )


def post(debit_account, credit_account, amount, journal_date=None, description="Test entry"):
    """Two-line balanced entry."""
    amount = D(amount)
    return post_journal_entry(
        journal_date=journal_date or date(2025, 1, 15),
        description=description,
        source_type="MANUAL",
        source_id=None,
        lines=[
            {"account": debit_account, "debit_amount": amount, "credit_amount": 0},
            {"account": credit_account, "debit_amount": 0, "credit_amount": amount},
        ],
    )


def make_sale(number, sale_date, items, paid="0", customer=None, sale_type="retail",
              tax="0", discount="0", status="completed", due_date=None):
    """items: (category, quantity, unit_price, cogs_amount) tuples"""
    sale = Sale.objects.create(
        sale_number=number,
        sale_type=sale_type,
        customer=customer,
        sale_date=sale_date,
        due_date=due_date,
        status=status,
    )
    for category, quantity, unit_price, cogs in items:
        SaleLine.objects.create(
            sale=sale,
            description=f"{category} item",
            category=category,
            quantity=D(quantity),
            unit_price=D(unit_price),
            cogs_amount=D(cogs),
        )
    sale.discount_amount = D(discount)
    sale.tax_amount = D(tax)
    sale.recalc_totals()
    sale.paid_amount = D(paid)
    sale.save()
    return sale


def make_purchase_order(number, order_date, supplier, items, paid="0", tax="0",
                        status="submitted", due_date=None):
    """items: (category, quantity, unit_price) tuples"""
    purchase_order = PurchaseOrder.objects.create(
        po_number=number,
        supplier=supplier,
        order_date=order_date,
        due_date=due_date,
        status=status,
    )
    for category, quantity, unit_price in items:
        PurchaseOrderLine.objects.create(
            purchase_order=purchase_order,
            description=f"{category} stock",
            category=category,
            quantity=D(quantity),
            unit_price=D(unit_price),
        )
    purchase_order.tax_amount = D(tax)
    purchase_order.recalc_totals()
    purchase_order.paid_amount = D(paid)
    purchase_order.save()
    return purchase_order


def make_customer(name="Budi", phone="0812"):
    return Customer.objects.create(name=name, phone=phone)


def make_supplier(name="PT Pakan Sehat", phone="021"):
    return Supplier.objects.create(name=name, phone=phone)
