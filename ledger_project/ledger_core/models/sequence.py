from django.db import models


class Sequence(models.Model):
    """
    Named counter used to hand out gap-free document numbers
    (journal_entry, expense, ...). One row per counter; rows are
    created lazily on first use.
    """

    name = models.CharField(max_length=50, unique=True)
    next_value = models.PositiveBigIntegerField(default=1)

    def __str__(self):
        return f"{self.name} → {self.next_value}"
