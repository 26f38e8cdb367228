from decimal import Decimal

from django.db import models


# -----------------------------------------
# Soft delete: rows are never removed, only
# stamped with deleted_at
# -----------------------------------------
class SoftDeleteQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)  # not soft-deleted

    def active(self):
        return self.alive().filter(is_active=True)  # usable for new postings
    # Enables query:
    # Account.objects.active().filter(code="1-101")


class SoftDeleteManager(models.Manager):
    def get_queryset(self):  # every query gets alive()/active()
        return SoftDeleteQuerySet(self.model, using=self._db)

    def alive(self):
        return self.get_queryset().alive()

    def active(self):
        return self.get_queryset().active()


# -----------------------------------------
# Report filter: only Posted, non-deleted
# journal lines count in any aggregation
# -----------------------------------------
class JournalLineQuerySet(models.QuerySet):
    def posted(self):
        return self.filter(
            journal__status="posted",
            journal__deleted_at__isnull=True,
        )

    def as_of(self, as_of_date):
        return self.posted().filter(journal__journal_date__lte=as_of_date)

    def between(self, start_date=None, end_date=None):
        qs = self.posted()
        if start_date:
            qs = qs.filter(journal__journal_date__gte=start_date)
        if end_date:
            qs = qs.filter(journal__journal_date__lte=end_date)
        return qs

    def totals(self):
        """Return (debit, credit) sums, zero when nothing matched."""
        aggs = self.aggregate(
            debit=models.Sum("debit_amount"),
            credit=models.Sum("credit_amount"),
        )
        return aggs["debit"] or Decimal("0.00"), aggs["credit"] or Decimal("0.00")


class JournalLineManager(models.Manager):
    def get_queryset(self):
        return JournalLineQuerySet(self.model, using=self._db)

    def posted(self):
        return self.get_queryset().posted()

    def as_of(self, as_of_date):
        return self.get_queryset().as_of(as_of_date)

    def between(self, start_date=None, end_date=None):
        return self.get_queryset().between(start_date, end_date)
