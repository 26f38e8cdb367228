from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

PERIOD_STATUS = [
    ("open", "Open"),  # postings allowed
    ("closed", "Closed"),  # no new postings, voids still allowed
    ("locked", "Locked"),  # books final: no postings, no voids
]


# ---------- Period (accounting period) ----------
class Period(models.Model):  # Time bucket during which postings are grouped
    # Human-readable label for the period
    name = models.CharField(max_length=50, unique=True)  # "2025-07", "FY2025-Q3"

    # Define the exact date range of the accounting period
    start_date = models.DateField()
    end_date = models.DateField()

    status = models.CharField(max_length=10, choices=PERIOD_STATUS, default="open")
    """
        When status is closed or locked:
            No new postings allowed.
            Prevents backdating transactions that would change finalized reports.
    """

    # Stamped by close, cleared by reopen
    closed_at = models.DateTimeField(null=True, blank=True)
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL, related_name="+",
    )

    class Meta:
        indexes = [models.Index(fields=["start_date", "end_date"], name="period_range_idx")]
        # periods come back chronologically
        ordering = ("start_date",)

    def __str__(self):
        return f"{self.name} [{self.status}]"

    @classmethod
    def covering(cls, date):
        """Period containing date, or None when the calendar has a gap."""
        return cls.objects.filter(start_date__lte=date, end_date__gte=date).first()

    @property
    def accepts_postings(self):
        return self.status == "open"

    @property
    def accepts_voids(self):
        return self.status != "locked"

    def clean(self):
        if self.start_date > self.end_date:
            raise ValidationError("start_date must not be after end_date")
        # Periods must not overlap, otherwise a date has two statuses
        overlapping = Period.objects.filter(
            start_date__lte=self.end_date, end_date__gte=self.start_date
        ).exclude(pk=self.pk)
        if overlapping.exists():
            raise ValidationError("Period overlaps an existing period.")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
