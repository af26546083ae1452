from datetime import date
from unittest import mock

from django.db import IntegrityError
from django.test import TestCase, override_settings

from utils.exceptions import ConcurrencyConflictError, PayloadValidationError
from .generator import SequenceNumberGenerator
from .models import SequenceCounter


class SequenceNumberGeneratorTest(TestCase):
    """Test cases for the date-scoped sequence generator"""

    def test_first_number_of_the_day(self):
        number = SequenceNumberGenerator.generate('DSP', scope_date=date(2025, 6, 17))
        self.assertEqual(number, 'DSP-20250617-00001')

    def test_numbers_strictly_increase(self):
        day = date(2025, 6, 17)
        numbers = [SequenceNumberGenerator.generate('MRN', scope_date=day) for _ in range(3)]

        self.assertEqual(numbers, ['MRN-20250617-00001', 'MRN-20250617-00002', 'MRN-20250617-00003'])
        self.assertEqual(SequenceCounter.objects.get(prefix='MRN', scope_date=day).last_value, 3)

    def test_counter_resets_on_a_new_day(self):
        SequenceNumberGenerator.generate('DSP', scope_date=date(2025, 6, 17))
        SequenceNumberGenerator.generate('DSP', scope_date=date(2025, 6, 17))

        number = SequenceNumberGenerator.generate('DSP', scope_date=date(2025, 6, 18))
        self.assertEqual(number, 'DSP-20250618-00001')

    def test_prefixes_are_independent(self):
        day = date(2025, 6, 17)
        SequenceNumberGenerator.generate('DSP', scope_date=day)
        self.assertEqual(SequenceNumberGenerator.generate('GRN', scope_date=day), 'GRN-20250617-00001')

    def test_production_orders_use_four_digit_padding(self):
        number = SequenceNumberGenerator.generate('PRD', scope_date=date(2025, 6, 17))
        self.assertEqual(number, 'PRD-20250617-0001')

    def test_multi_segment_prefix(self):
        number = SequenceNumberGenerator.generate('MRN-RCV', scope_date=date(2025, 6, 17))
        self.assertEqual(number, 'MRN-RCV-20250617-00001')

    @override_settings(GARMENT_ERP_SETTINGS={'SEQUENCE_PADDING': {'CN': 3}})
    def test_padding_is_configurable(self):
        number = SequenceNumberGenerator.generate('CN', scope_date=date(2025, 6, 17))
        self.assertEqual(number, 'CN-20250617-001')

    def test_blank_prefix_rejected(self):
        with self.assertRaises(PayloadValidationError):
            SequenceNumberGenerator.generate('')

    def test_collision_surfaces_as_conflict_after_retries(self):
        with mock.patch.object(
            SequenceNumberGenerator, '_next_value', side_effect=IntegrityError('duplicate key')
        ) as next_value:
            with self.assertRaises(ConcurrencyConflictError):
                SequenceNumberGenerator.generate('DSP', scope_date=date(2025, 6, 17))

        # one initial attempt plus SEQUENCE_MAX_RETRIES
        self.assertEqual(next_value.call_count, 2)

    def test_single_collision_is_retried_transparently(self):
        real_next_value = SequenceNumberGenerator._next_value
        calls = []

        def flaky(*args):
            calls.append(args)
            if len(calls) == 1:
                raise IntegrityError('duplicate key')
            return real_next_value(*args)

        with mock.patch.object(SequenceNumberGenerator, '_next_value', side_effect=flaky):
            number = SequenceNumberGenerator.generate('DSP', scope_date=date(2025, 6, 17))

        self.assertEqual(number, 'DSP-20250617-00001')
        self.assertEqual(len(calls), 2)


class LegacySeedTest(TestCase):
    """Counters for a new day start above numbers already issued by read-max numbering"""

    def test_counter_seeded_from_existing_rows(self):
        from sales.models import SalesOrder

        SalesOrder.objects.create(
            order_number='SO-20250617-00007',
            customer_name='Legacy Customer',
            project_name='Legacy',
        )

        number = SequenceNumberGenerator.generate(
            'SO', scope_date=date(2025, 6, 17), legacy_model=SalesOrder, legacy_field='order_number'
        )
        self.assertEqual(number, 'SO-20250617-00008')
