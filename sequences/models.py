"""
Sequence counters for human-readable document numbers
"""
from django.db import models


class SequenceCounter(models.Model):
    """
    One row per (prefix, day). The row is locked and incremented atomically,
    so two concurrent requests can never be handed the same number.
    """
    prefix = models.CharField(max_length=20)
    scope_date = models.DateField()
    last_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Sequence Counter'
        verbose_name_plural = 'Sequence Counters'
        ordering = ['-scope_date', 'prefix']
        constraints = [
            models.UniqueConstraint(fields=['prefix', 'scope_date'], name='unique_sequence_prefix_per_day'),
        ]

    def __str__(self):
        return f"{self.prefix}-{self.scope_date:%Y%m%d} @ {self.last_value}"


class SequencedNumberModel(models.Model):
    """
    Abstract base for workflow documents that carry a PREFIX-YYYYMMDD-NNNNN number.
    The number is allocated on first save when the field is blank.
    """
    sequence_prefix = None
    sequence_field = None

    class Meta:
        abstract = True

    def get_sequence_prefix(self):
        return self.sequence_prefix

    def save(self, *args, **kwargs):
        if self.sequence_field and not getattr(self, self.sequence_field):
            from .generator import SequenceNumberGenerator

            number = SequenceNumberGenerator.generate(
                self.get_sequence_prefix(),
                legacy_model=type(self),
                legacy_field=self.sequence_field,
            )
            setattr(self, self.sequence_field, number)
        super().save(*args, **kwargs)
