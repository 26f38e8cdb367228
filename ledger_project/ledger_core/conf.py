"""
Bookkeeping settings.

Projects override any key through the LEDGER dict in Django settings:

    LEDGER = {"DEFAULT_ACCOUNTS": {"cash": "1-100"}, "AGING_ANCHOR": "due_date"}

Dict-valued keys are merged over the defaults, so a partial override
keeps the remaining codes.
"""
from decimal import Decimal

from django.conf import settings

DEFAULTS = {
    # Contra accounts used by the translators, looked up by code
    "DEFAULT_ACCOUNTS": {
        "cash": "1-101",  # Kas Besar
        "cash_transfer": "1-111",  # receipts by bank transfer / QRIS
        "receivable": "1-120",
        "payable": "2-101",
        "bank_fee": "5-211",
        "interest_income": "4-201",
        "vat_out": "2-111",
        "vat_in": "5-301",
        "sales_discount": "5-212",
        "retained_earnings": "3-200",  # Laba Ditahan, year-end close target
    },
    # (keyword, account code) pairs, first match on the category name wins
    "REVENUE_ROUTES": {
        "retail": [
            ("Food", "4-111"),
            ("Medicine", "4-113"),
            ("Vitamin", "4-113"),
            ("Accessories", "4-112"),
        ],
        "clinic": [
            ("Medical", "4-121"),
            ("Examination", "4-121"),
            ("Vaccination", "4-122"),
            ("Sterilization", "4-123"),
            ("Grooming", "4-131"),
        ],
        "hotel": [],
    },
    "REVENUE_DEFAULTS": {"retail": "4-111", "clinic": "4-121", "hotel": "4-140"},
    "COGS_ROUTES": [
        ("Food", "5-101"),
        ("Medicine", "5-103"),
        ("Vitamin", "5-103"),
        ("Vaccine", "5-104"),
        ("Accessories", "5-102"),
    ],
    "COGS_DEFAULT": "5-101",
    "INVENTORY_ROUTES": [
        ("Food", "1-131"),
        ("Medicine", "1-133"),
        ("Vitamin", "1-133"),
        ("Vaccine", "1-134"),
        ("Accessories", "1-132"),
        ("Grooming", "1-135"),
    ],
    "INVENTORY_DEFAULT": "1-131",
    # Journal numbers look like JE-00000042
    "JOURNAL_NUMBER_PREFIX": "JE",
    "JOURNAL_NUMBER_WIDTH": 8,
    "EXPENSE_NUMBER_PREFIX": "EXP",
    # Compare-and-swap attempts before ConcurrencyConflictError
    "SEQUENCE_MAX_RETRIES": 5,
    # "document_date" or "due_date"
    "AGING_ANCHOR": "document_date",
    # Accounts whose movement the cash flow statement explains
    "CASH_ACCOUNT_CODES": ["1-101", "1-102", "1-111", "1-112", "1-113"],
    # Trial balance integrity warning threshold
    "IMBALANCE_TOLERANCE": Decimal("0.01"),
}


def ledger_setting(name):
    """Resolve one bookkeeping setting, project overrides first."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown LEDGER setting: {name}")
    default = DEFAULTS[name]
    overrides = getattr(settings, "LEDGER", None) or {}
    if name not in overrides:
        return default
    value = overrides[name]
    if isinstance(default, dict) and isinstance(value, dict):
        return {**default, **value}
    return value


def default_account_code(role):
    """Account code configured for a translator role ("cash", "payable", ...)."""
    codes = ledger_setting("DEFAULT_ACCOUNTS")
    if role not in codes:
        raise KeyError(f"No default account configured for role '{role}'")
    return codes[role]


def route_code(category, routes, default):
    """First (keyword, code) whose keyword occurs in category, else default."""
    category = category or ""
    for keyword, code in routes:
        if keyword.lower() in category.lower():
            return code
    return default
