import logging

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone

from ..exceptions import InvariantViolationError, MissingDefaultAccountError
from ..models import AC_TYPES, NORMAL_BALANCE, Account, JournalLine

logger = logging.getLogger(__name__)

# Only these may change after creation
UPDATABLE_FIELDS = ("name", "category", "description", "is_active")


# ----------------------------
# Chart of Accounts workflows
# ----------------------------
@transaction.atomic
def create_account(
    code,
    name,
    ac_type,
    normal_balance,
    category="",
    parent_id=None,
    is_header=False,
    level=None,
    description="",
):
    """Create a CoA node. Fails on duplicate live code or bad parent."""
    if not code or not name:
        raise ValidationError("Account code and name are required.")
    if ac_type not in dict(AC_TYPES):
        raise ValidationError(f"Invalid account type: {ac_type}")
    if normal_balance not in dict(NORMAL_BALANCE):
        raise ValidationError(f"Invalid normal balance: {normal_balance}")

    if Account.objects.alive().filter(code=code).exists():
        raise ValidationError(f"Account code {code} already exists.")

    parent = None
    if parent_id is not None:
        # Parent must exist and not be soft-deleted
        parent = Account.objects.alive().filter(pk=parent_id).first()
        if parent is None:
            raise ValidationError("Parent account not found.")
        if not parent.is_header:
            raise ValidationError("Parent account must be a header account.")

    if level is None:
        level = parent.level + 1 if parent else 1

    account = Account(
        code=code,
        name=name,
        ac_type=ac_type,
        normal_balance=normal_balance,
        category=category or "",
        parent=parent,
        is_header=is_header,
        level=level,
        description=description or "",
    )
    account.save()  # runs full_clean
    logger.info("Account %s created", account.code, extra={"account_id": account.pk})
    return account


@transaction.atomic
def update_account(account_id, **changes):
    """
    Update the descriptive fields of an account.
    code / type / normal balance / parent are not accepted here:
    reclassifying an account would rewrite every historical report.
    """
    rejected = set(changes) - set(UPDATABLE_FIELDS)
    if rejected:
        raise ValidationError(
            f"Fields cannot be updated: {', '.join(sorted(rejected))}"
        )
    account = _get_live_account(account_id, lock=True)
    for field, value in changes.items():
        if value is not None:
            setattr(account, field, value)
    account.save()
    return account


@transaction.atomic
def remove_account(account_id):
    """
    Soft delete. An account with children or with any journal line is
    never removed; deactivate it instead.
    """
    account = _get_live_account(account_id, lock=True)

    if Account.objects.alive().filter(parent=account).exists():
        raise InvariantViolationError(
            f"Account {account.code} has child accounts; remove them first."
        )
    if JournalLine.objects.filter(account=account).exists():
        raise InvariantViolationError(
            f"Account {account.code} has journal history. Deactivate instead."
        )

    account.deleted_at = timezone.now()
    account.save(update_fields=["deleted_at"])
    logger.info("Account %s removed", account.code, extra={"account_id": account.pk})
    return account


def _get_live_account(account_id, lock=False):
    qs = Account.objects.alive()
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=account_id)
    except Account.DoesNotExist:
        raise ValidationError(f"Account {account_id} not found.")


# ----------------------------
# Queries
# ----------------------------
def list_accounts(ac_type=None, include_inactive=True):
    """Full live set ordered by code, annotated with child_count."""
    qs = Account.objects.alive()
    if ac_type:
        qs = qs.filter(ac_type=ac_type)
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return qs.annotate(
        child_count=models.Count(
            "children", filter=models.Q(children__deleted_at__isnull=True)
        )
    ).order_by("code")


def get_account_by_code(code):
    return Account.objects.alive().filter(code=code).first()


def search_accounts(query, ac_type=None, limit=None):
    """Case-insensitive match on code or name, active accounts only."""
    qs = Account.objects.active().filter(
        models.Q(code__icontains=query) | models.Q(name__icontains=query)
    )
    if ac_type:
        qs = qs.filter(ac_type=ac_type)
    qs = qs.order_by("code")
    if limit:
        qs = qs[:limit]
    return list(qs)


def build_account_tree(accounts):
    """
    Rebuild parent → children nesting from a flat account list.

    Arena + index: every account becomes one node dict held in `nodes`;
    children are attached by parent_id. Accounts whose parent is not in
    the list are returned as roots. Siblings stay ordered by code.
    """
    accounts = sorted(accounts, key=lambda a: a.code)
    nodes = {a.pk: {"account": a, "children": []} for a in accounts}
    roots = []
    for account in accounts:
        node = nodes[account.pk]
        parent_node = nodes.get(account.parent_id)
        if parent_node is None:
            roots.append(node)
        else:
            parent_node["children"].append(node)
    return roots


def account_tree(ac_type=None):
    return build_account_tree(list_accounts(ac_type=ac_type))


def resolve_postable_account(code):
    """
    Look up a translator contra account by code. A missing or
    unusable default account is a configuration error, never
    silently skipped.
    """
    account = get_account_by_code(code)
    if account is None:
        raise MissingDefaultAccountError(
            f"Default account {code} is not configured in the chart of accounts."
        )
    if not account.is_postable:
        raise MissingDefaultAccountError(
            f"Default account {code} cannot receive postings "
            "(header, inactive or deleted)."
        )
    return account


def account_balance(account, as_of_date=None):
    """Normal-balance signed balance from posted lines."""
    lines = JournalLine.objects.filter(account=account)
    lines = lines.as_of(as_of_date) if as_of_date else lines.posted()
    debit, credit = lines.totals()
    return account.signed_balance(debit, credit)


def account_detail(account_id, as_of_date=None):
    account = _get_live_account(account_id)
    return {
        "account": account,
        "balance": account_balance(account, as_of_date),
        "child_count": Account.objects.alive().filter(parent=account).count(),
    }
