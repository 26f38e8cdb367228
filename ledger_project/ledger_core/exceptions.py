"""
Typed failures of the bookkeeping core.

Malformed input (missing field, unknown id, duplicate code) is reported
with django.core.exceptions.ValidationError like everywhere else in
Django; the classes below cover the accounting-specific cases.
"""


class LedgerError(Exception):
    """Base class for ledger failures surfaced to callers."""

    kind = "ledger_error"


class UnbalancedEntryError(LedgerError):
    """Raised when journal lines' debit and credit sums differ."""

    kind = "unbalanced_entry"

    def __init__(self, total_debit, total_credit):
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Journal not balanced: debits={total_debit}, credits={total_credit}"
        )


class InvariantViolationError(LedgerError):
    """Raised on an illegal state transition
    (void twice, reconcile twice, delete an account with history)."""

    kind = "invariant_violation"


class UnknownTransactionTypeError(LedgerError):
    """Raised when a translator receives a type outside its routing table."""

    kind = "unknown_transaction_type"


class ConcurrencyConflictError(LedgerError):
    """Raised when number allocation collided; retry the whole operation."""

    kind = "concurrency_conflict"


class MissingDefaultAccountError(LedgerError):
    """Raised when a routing code has no postable account configured."""

    kind = "missing_default_account"
