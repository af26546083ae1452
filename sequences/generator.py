"""
Sequence Number Generator
Allocates collision-free, date-scoped numbers such as DSP-20250617-00001
"""
import logging

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from utils.config import get_workflow_setting
from utils.exceptions import ConcurrencyConflictError, PayloadValidationError
from .models import SequenceCounter

logger = logging.getLogger(__name__)


class SequenceNumberGenerator:
    """
    Atomic counter-backed replacement for read-max-then-increment numbering
    """

    @staticmethod
    def padding_for(prefix):
        overrides = get_workflow_setting('SEQUENCE_PADDING') or {}
        return overrides.get(prefix, get_workflow_setting('DEFAULT_SEQUENCE_PADDING'))

    @staticmethod
    def format_number(prefix, scope_date, value, padding):
        return f"{prefix}-{scope_date:%Y%m%d}-{value:0{padding}d}"

    @staticmethod
    def generate(prefix, scope_date=None, padding=None, legacy_model=None, legacy_field=None):
        """
        Return the next number for prefix on scope_date (today by default).

        legacy_model/legacy_field name a model field already holding numbers in
        this format; the counter for a new day is seeded from its highest value.
        """
        if not prefix:
            raise PayloadValidationError("Sequence prefix is required")

        scope_date = scope_date or timezone.localdate()
        padding = padding or SequenceNumberGenerator.padding_for(prefix)
        max_retries = get_workflow_setting('SEQUENCE_MAX_RETRIES')

        attempt = 0
        while True:
            try:
                value = SequenceNumberGenerator._next_value(prefix, scope_date, legacy_model, legacy_field)
                break
            except IntegrityError as exc:
                attempt += 1
                if attempt > max_retries:
                    logger.error(f"Sequence allocation for {prefix} on {scope_date} failed after {attempt} attempts: {exc}")
                    raise ConcurrencyConflictError(
                        f"Could not allocate a {prefix} number for {scope_date:%Y%m%d}, please retry"
                    ) from exc
                logger.warning(f"Sequence collision for {prefix} on {scope_date}, retrying")

        return SequenceNumberGenerator.format_number(prefix, scope_date, value, padding)

    @staticmethod
    def _next_value(prefix, scope_date, legacy_model, legacy_field):
        with transaction.atomic():
            counter = SequenceCounter.objects.select_for_update().filter(
                prefix=prefix, scope_date=scope_date
            ).first()

            if counter is None:
                seed = SequenceNumberGenerator._highest_existing(prefix, scope_date, legacy_model, legacy_field)
                counter = SequenceCounter.objects.create(
                    prefix=prefix, scope_date=scope_date, last_value=seed
                )

            SequenceCounter.objects.filter(pk=counter.pk).update(last_value=F('last_value') + 1)
            counter.refresh_from_db(fields=['last_value'])
            return counter.last_value

    @staticmethod
    def _highest_existing(prefix, scope_date, legacy_model, legacy_field):
        if legacy_model is None or not legacy_field:
            return 0

        stem = f"{prefix}-{scope_date:%Y%m%d}-"
        existing = legacy_model._default_manager.filter(
            **{f'{legacy_field}__startswith': stem}
        ).values_list(legacy_field, flat=True)

        highest = 0
        for number in existing:
            suffix = number[len(stem):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return highest
