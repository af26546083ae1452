from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from inventory.models import InventoryMovement, MaterialAllocation
from notifications.models import WorkflowNotification
from utils.enums import (
    CheckpointResultChoices, InventoryMovementTypeChoices, MaterialSourceChoices,
    NotificationTypeChoices, ProductionOrderStatusChoices, ProductionRequestStatusChoices,
    SalesOrderStatusChoices, StageStatusChoices
)
from utils.exceptions import InvalidStateError, NotFoundError, PayloadValidationError
from ..models import MaterialConsumption, ProductionStage, Rejection, StageReworkHistory
from ..production_request_service import ProductionRequestService
from ..stage_service import StageExecutionService
from .helpers import WorkflowFixturesMixin, planning_window


class StageEngineTestBase(WorkflowFixturesMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def create_order(self, stages=('cutting', 'stitching'), **kwargs):
        start, end = planning_window()
        return StageExecutionService.create_production_order(
            self.planner, 'Crew Neck Tee', 100, start, end, stages=list(stages), **kwargs
        )

    def stage(self, order, name):
        return order.stages.get(stage_name=name)

    def run_stage(self, stage, processed=10, approved=10, rejected=0):
        StageExecutionService.start_stage(self.planner, stage.pk)
        return StageExecutionService.complete_stage(
            self.planner, stage.pk,
            quantity_processed=processed, quantity_approved=approved, quantity_rejected=rejected
        )


class ProductionOrderCreationTest(StageEngineTestBase):

    def test_default_stages_seeded_pending_in_order(self):
        start, end = planning_window()
        order = StageExecutionService.create_production_order(self.planner, 'Crew Neck Tee', 100, start, end)

        self.assertTrue(order.production_number.startswith('PRD-'))
        stages = list(order.stages.order_by('stage_order'))
        self.assertEqual(
            [s.stage_name for s in stages],
            ['cutting', 'embroidery_printing', 'stitching', 'finishing', 'quality_check', 'packaging']
        )
        self.assertEqual([s.stage_order for s in stages], [1, 2, 3, 4, 5, 6])
        self.assertTrue(all(s.status == StageStatusChoices.PENDING for s in stages))
        self.assertTrue(all(s.rework_iteration == 1 for s in stages))
        self.assertEqual(stages[0].planned_start_time, start)
        self.assertEqual(stages[-1].planned_end_time, end)

    def test_one_inspection_checkpoint_per_stage(self):
        order = self.create_order()
        cutting = self.stage(order, 'cutting')
        self.assertEqual(order.quality_checkpoints.count(), 2)
        self.assertEqual(cutting.quality_checkpoints.get().name, 'Cutting inspection')

    def test_explicit_checkpoints_bound_by_stage_name(self):
        order = self.create_order(checkpoints=[
            {'name': 'Marker efficiency', 'stage_name': 'cutting'},
            {'name': 'Final audit'},
        ])
        self.assertEqual(self.stage(order, 'cutting').quality_checkpoints.get().name, 'Marker efficiency')
        self.assertIsNone(order.quality_checkpoints.get(name='Final audit').production_stage)

    def test_stage_order_must_strictly_increase(self):
        with self.assertRaises(PayloadValidationError):
            self.create_order(stages=[
                {'stage_name': 'cutting', 'stage_order': 2},
                {'stage_name': 'stitching', 'stage_order': 2},
            ])

    def test_planned_window_must_be_forward(self):
        start, end = planning_window()
        with self.assertRaises(PayloadValidationError):
            StageExecutionService.create_production_order(self.planner, 'Crew Neck Tee', 100, end, start)

    def test_sales_order_moves_to_in_production(self):
        order = self.create_order(sales_order_id=self.sales_order.pk)
        self.sales_order.refresh_from_db()
        self.assertEqual(order.sales_order, self.sales_order)
        self.assertEqual(self.sales_order.status, SalesOrderStatusChoices.IN_PRODUCTION)

    def test_draft_sales_order_rejected(self):
        self.sales_order.status = SalesOrderStatusChoices.DRAFT
        self.sales_order.save()
        with self.assertRaises(InvalidStateError):
            self.create_order(sales_order_id=self.sales_order.pk)


class StageTransitionTest(StageEngineTestBase):

    def test_cannot_start_before_previous_stage_finishes(self):
        order = self.create_order()
        stitching = self.stage(order, 'stitching')

        with self.assertRaises(InvalidStateError) as ctx:
            StageExecutionService.start_stage(self.planner, stitching.pk)
        self.assertIn('cutting (pending)', str(ctx.exception))

        stitching.refresh_from_db()
        self.assertEqual(stitching.status, StageStatusChoices.PENDING)

    def test_start_marks_order_in_progress(self):
        order = self.create_order()
        stage = StageExecutionService.start_stage(self.planner, self.stage(order, 'cutting').pk)

        order.refresh_from_db()
        self.assertEqual(stage.status, StageStatusChoices.IN_PROGRESS)
        self.assertIsNotNone(stage.actual_start_time)
        self.assertEqual(order.status, ProductionOrderStatusChoices.IN_PROGRESS)
        self.assertIsNotNone(order.actual_start_date)

    def test_skipped_stage_unblocks_successor(self):
        order = self.create_order()
        StageExecutionService.skip_stage(self.planner, self.stage(order, 'cutting').pk, reason='Pre-cut panels')

        stitching = StageExecutionService.start_stage(self.planner, self.stage(order, 'stitching').pk)
        self.assertEqual(stitching.status, StageStatusChoices.IN_PROGRESS)

    def test_cannot_skip_a_running_stage(self):
        order = self.create_order()
        cutting = StageExecutionService.start_stage(self.planner, self.stage(order, 'cutting').pk)
        with self.assertRaises(InvalidStateError):
            StageExecutionService.skip_stage(self.planner, cutting.pk)

    def test_pause_and_resume(self):
        order = self.create_order()
        cutting = StageExecutionService.start_stage(self.planner, self.stage(order, 'cutting').pk)

        paused = StageExecutionService.pause_stage(self.planner, cutting.pk, reason='Blade change')
        self.assertEqual(paused.status, StageStatusChoices.ON_HOLD)
        self.assertEqual(paused.delay_reason, 'Blade change')

        resumed = StageExecutionService.resume_stage(self.planner, cutting.pk)
        self.assertEqual(resumed.status, StageStatusChoices.IN_PROGRESS)

    def test_pending_stage_can_be_held_then_started(self):
        order = self.create_order()
        cutting = StageExecutionService.hold_stage(self.planner, self.stage(order, 'cutting').pk, reason='Awaiting fabric')
        self.assertEqual(cutting.status, StageStatusChoices.ON_HOLD)

        started = StageExecutionService.start_stage(self.planner, cutting.pk)
        self.assertEqual(started.status, StageStatusChoices.IN_PROGRESS)

    def test_unknown_stage_is_not_found(self):
        with self.assertRaises(NotFoundError):
            StageExecutionService.start_stage(self.planner, 9999)


class StageCompletionTest(StageEngineTestBase):

    def test_quantities_cannot_exceed_processed(self):
        order = self.create_order()
        cutting = StageExecutionService.start_stage(self.planner, self.stage(order, 'cutting').pk)

        with self.assertRaises(PayloadValidationError) as ctx:
            StageExecutionService.complete_stage(
                self.planner, cutting.pk, quantity_processed=10, quantity_approved=8, quantity_rejected=3
            )
        self.assertIn('Approved + Rejected cannot exceed Processed quantity', str(ctx.exception))

        cutting.refresh_from_db()
        self.assertEqual(cutting.status, StageStatusChoices.IN_PROGRESS)
        self.assertEqual(cutting.quantity_processed, 0)

    def test_completing_twice_is_rejected_without_changes(self):
        order = self.create_order()
        cutting = self.run_stage(self.stage(order, 'cutting'), 10, 8, 2)

        with self.assertRaises(InvalidStateError):
            StageExecutionService.complete_stage(
                self.planner, cutting.pk, quantity_processed=20, quantity_approved=20, quantity_rejected=0
            )

        cutting.refresh_from_db()
        order.refresh_from_db()
        self.assertEqual(cutting.quantity_approved, 8)
        self.assertEqual(order.approved_quantity, 8)
        self.assertEqual(order.progress_percentage, 50)

    def test_rollup_completes_order_and_upstream_records(self):
        production_request = ProductionRequestService.create_from_sales_order(self.planner, self.sales_order.pk)
        order = self.create_order(sales_order_id=self.sales_order.pk)
        ProductionRequestService.link_production_order(self.planner, production_request.pk, order.pk)

        self.run_stage(self.stage(order, 'cutting'), 10, 8, 2)
        order.refresh_from_db()
        self.assertEqual(order.progress_percentage, 50)
        self.assertEqual(order.status, ProductionOrderStatusChoices.IN_PROGRESS)

        with self.captureOnCommitCallbacks(execute=True):
            self.run_stage(self.stage(order, 'stitching'), 10, 9, 1)

        order.refresh_from_db()
        production_request.refresh_from_db()
        self.sales_order.refresh_from_db()
        self.assertEqual(order.progress_percentage, 100)
        self.assertEqual(order.status, ProductionOrderStatusChoices.COMPLETED)
        self.assertEqual(order.approved_quantity, 17)
        self.assertEqual(order.rejected_quantity, 3)
        self.assertEqual(order.produced_quantity, 20)
        self.assertIsNotNone(order.actual_end_date)
        self.assertEqual(production_request.status, ProductionRequestStatusChoices.COMPLETED)
        self.assertEqual(self.sales_order.status, SalesOrderStatusChoices.COMPLETED)
        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.sales_user, notification_type=NotificationTypeChoices.PRODUCTION_COMPLETED
        ).exists())

    def test_progress_rounds_half_up(self):
        order = self.create_order(stages=[f'step_{n}' for n in range(1, 9)])
        self.run_stage(self.stage(order, 'step_1'))

        order.refresh_from_db()
        # 1 of 8 completed is 12.5%
        self.assertEqual(order.progress_percentage, 13)

    def test_skipped_stage_does_not_count_as_completed(self):
        order = self.create_order()
        StageExecutionService.skip_stage(self.planner, self.stage(order, 'stitching').pk)
        self.run_stage(self.stage(order, 'cutting'))

        order.refresh_from_db()
        self.assertEqual(order.progress_percentage, 50)
        self.assertEqual(order.status, ProductionOrderStatusChoices.IN_PROGRESS)
        self.assertIsNone(order.actual_end_date)

    def test_passed_tracking_result_completes_stage(self):
        order = self.create_order()
        cutting = StageExecutionService.start_stage(self.planner, self.stage(order, 'cutting').pk)

        stage = StageExecutionService.update_tracking(
            self.qa, cutting.pk, quantity_processed=10, quantity_approved=10,
            quality_checkpoint_result=CheckpointResultChoices.PASSED
        )
        self.assertEqual(stage.status, StageStatusChoices.COMPLETED)
        self.assertTrue(stage.quality_approved)
        self.assertEqual(stage.approved_by, self.qa)
        self.assertEqual(
            stage.quality_checkpoints.get().result, CheckpointResultChoices.PASSED
        )


class LateDetectionTest(StageEngineTestBase):

    def create_overdue_order(self):
        past_start = timezone.now() - timedelta(days=3)
        past_end = timezone.now() - timedelta(days=2)
        start, end = planning_window()
        return StageExecutionService.create_production_order(
            self.planner, 'Crew Neck Tee', 100, start, end,
            stages=[
                {'stage_name': 'cutting', 'planned_start_time': past_start, 'planned_end_time': past_end},
                {'stage_name': 'stitching', 'planned_start_time': past_start, 'planned_end_time': past_end},
                {'stage_name': 'packaging'},
            ],
        )

    def test_late_completion_freezes_stage(self):
        order = self.create_overdue_order()

        with self.captureOnCommitCallbacks(execute=True):
            cutting = self.run_stage(self.stage(order, 'cutting'))

        self.assertTrue(cutting.is_late)
        self.assertTrue(cutting.is_frozen)
        self.assertEqual(cutting.status, StageStatusChoices.COMPLETED)
        self.assertIn('after planned end', cutting.late_reason)
        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.planner, notification_type=NotificationTypeChoices.STAGE_LATE
        ).exists())

    def test_frozen_stage_rejects_further_updates(self):
        order = self.create_overdue_order()
        cutting = self.run_stage(self.stage(order, 'cutting'), 10, 9, 1)

        frozen_message = "Stage is frozen due to exceeding deadline. Contact supervisor."
        attempts = [
            lambda: StageExecutionService.rework_stage(self.qa, cutting.pk, 'Notch misaligned'),
            lambda: StageExecutionService.update_tracking(self.planner, cutting.pk, notes='late entry'),
            lambda: StageExecutionService.log_rejections(
                self.qa, cutting.pk, [{'rejection_reason': 'Fraying', 'rejected_quantity': 1}]
            ),
        ]
        for attempt in attempts:
            with self.assertRaises(InvalidStateError) as ctx:
                attempt()
            self.assertEqual(str(ctx.exception), frozen_message)

    def test_tracking_end_time_freezes_running_stage_on_hold(self):
        order = self.create_overdue_order()
        self.run_stage(self.stage(order, 'cutting'))
        stitching = StageExecutionService.start_stage(self.planner, self.stage(order, 'stitching').pk)

        stage = StageExecutionService.update_tracking(self.planner, stitching.pk, actual_end_time=timezone.now())
        self.assertTrue(stage.is_frozen)
        self.assertEqual(stage.status, StageStatusChoices.ON_HOLD)

    def test_unfreeze_clears_every_frozen_stage_of_the_order(self):
        order = self.create_overdue_order()
        self.run_stage(self.stage(order, 'cutting'))
        stitching = StageExecutionService.start_stage(self.planner, self.stage(order, 'stitching').pk)
        StageExecutionService.update_tracking(self.planner, stitching.pk, actual_end_time=timezone.now())
        self.assertEqual(order.stages.filter(is_frozen=True).count(), 2)

        count = StageExecutionService.unfreeze_order(self.planner, order.pk, 'Supplier delay accepted by buyer')

        self.assertEqual(count, 2)
        self.assertFalse(order.stages.filter(is_frozen=True).exists())
        self.assertEqual(order.stages.filter(is_late=True).count(), 2)
        self.assertIn('Supplier delay accepted by buyer', self.stage(order, 'cutting').late_reason)

        resumed = StageExecutionService.resume_stage(self.planner, stitching.pk)
        self.assertEqual(resumed.status, StageStatusChoices.IN_PROGRESS)

    def test_unfreeze_needs_a_reason(self):
        order = self.create_overdue_order()
        with self.assertRaises(PayloadValidationError):
            StageExecutionService.unfreeze_order(self.planner, order.pk, '  ')


class ReworkTest(StageEngineTestBase):

    def test_rework_logs_iteration_and_reopens_stage(self):
        order = self.create_order(stages=['cutting'])
        cutting = self.run_stage(self.stage(order, 'cutting'))
        order.refresh_from_db()
        self.assertEqual(order.status, ProductionOrderStatusChoices.COMPLETED)

        cutting = StageExecutionService.rework_stage(
            self.qa, cutting.pk, 'Notch misaligned', failed_quantity=3, additional_cost='45.50'
        )

        order.refresh_from_db()
        self.assertEqual(cutting.status, StageStatusChoices.IN_PROGRESS)
        self.assertEqual(cutting.rework_iteration, 2)
        self.assertFalse(cutting.quality_approved)
        self.assertIsNone(cutting.actual_end_time)
        self.assertEqual(cutting.cost, Decimal('45.50'))
        self.assertEqual(order.status, ProductionOrderStatusChoices.IN_PROGRESS)
        self.assertEqual(order.progress_percentage, 0)

        history = StageReworkHistory.objects.get(production_stage=cutting)
        self.assertEqual(history.iteration_number, 1)
        self.assertEqual(history.failed_quantity, 3)
        self.assertEqual(history.failed_by, self.qa)

    def test_each_rework_appends_one_history_row(self):
        order = self.create_order(stages=['cutting'])
        cutting = self.run_stage(self.stage(order, 'cutting'))

        StageExecutionService.rework_stage(self.qa, cutting.pk, 'Notch misaligned')
        StageExecutionService.rework_stage(self.qa, cutting.pk, 'Shade band visible')

        cutting.refresh_from_db()
        self.assertEqual(cutting.rework_iteration, 3)
        self.assertEqual(
            list(cutting.rework_history.values_list('iteration_number', flat=True)), [1, 2]
        )

    def test_rework_resets_checkpoints(self):
        order = self.create_order(stages=['cutting'])
        cutting = StageExecutionService.start_stage(self.planner, self.stage(order, 'cutting').pk)
        checkpoint = cutting.quality_checkpoints.get()
        StageExecutionService.record_checkpoint_result(self.qa, checkpoint.pk, CheckpointResultChoices.PASSED)

        StageExecutionService.rework_stage(self.qa, cutting.pk, 'Re-inspect lay')

        checkpoint.refresh_from_db()
        self.assertEqual(checkpoint.result, CheckpointResultChoices.PENDING)

    def test_rework_requires_reason_and_started_stage(self):
        order = self.create_order()
        cutting = self.stage(order, 'cutting')
        with self.assertRaises(PayloadValidationError):
            StageExecutionService.rework_stage(self.qa, cutting.pk, '')
        with self.assertRaises(InvalidStateError):
            StageExecutionService.rework_stage(self.qa, cutting.pk, 'Notch misaligned')
        self.assertFalse(StageReworkHistory.objects.exists())


class QualityGateTest(StageEngineTestBase):

    def test_approval_blocked_until_checkpoints_pass(self):
        order = self.create_order()
        cutting = StageExecutionService.start_stage(self.planner, self.stage(order, 'cutting').pk)
        checkpoint = cutting.quality_checkpoints.get()

        with self.assertRaises(InvalidStateError) as ctx:
            StageExecutionService.approve_stage(self.qa, cutting.pk)
        self.assertEqual(ctx.exception.current_state, CheckpointResultChoices.PENDING)

        StageExecutionService.record_checkpoint_result(self.qa, checkpoint.pk, CheckpointResultChoices.FAILED)
        cutting.refresh_from_db()
        self.assertFalse(cutting.quality_approved)
        with self.assertRaises(InvalidStateError) as ctx:
            StageExecutionService.approve_stage(self.qa, cutting.pk)
        self.assertEqual(ctx.exception.current_state, CheckpointResultChoices.FAILED)

        StageExecutionService.record_checkpoint_result(self.qa, checkpoint.pk, CheckpointResultChoices.PASSED)
        cutting.refresh_from_db()
        self.assertTrue(cutting.quality_approved)

        next_stage = StageExecutionService.approve_stage(self.qa, cutting.pk, notes='Lay checked')
        cutting.refresh_from_db()
        self.assertEqual(cutting.status, StageStatusChoices.COMPLETED)
        self.assertEqual(cutting.approved_by, self.qa)
        self.assertEqual(next_stage.stage_name, 'stitching')

    def test_approving_last_stage_returns_no_next_stage(self):
        order = self.create_order(stages=['packaging'])
        packaging = StageExecutionService.start_stage(self.planner, self.stage(order, 'packaging').pk)
        StageExecutionService.record_checkpoint_result(
            self.qa, packaging.quality_checkpoints.get().pk, CheckpointResultChoices.PASSED
        )
        self.assertIsNone(StageExecutionService.approve_stage(self.qa, packaging.pk))

    def test_invalid_checkpoint_result_rejected(self):
        order = self.create_order()
        checkpoint = self.stage(order, 'cutting').quality_checkpoints.get()
        with self.assertRaises(PayloadValidationError):
            StageExecutionService.record_checkpoint_result(self.qa, checkpoint.pk, 'pending')


class RejectionLogTest(StageEngineTestBase):

    def test_log_rejections_against_completed_stage(self):
        order = self.create_order()
        cutting = self.run_stage(self.stage(order, 'cutting'), 10, 7, 3)

        rejections = StageExecutionService.log_rejections(self.qa, cutting.pk, [
            {'rejection_reason': 'Fabric hole', 'rejected_quantity': 2, 'severity': 'major'},
            {'rejection_reason': 'Mis-cut', 'rejected_quantity': 1},
        ])

        self.assertEqual(len(rejections), 2)
        self.assertEqual(Rejection.objects.filter(production_order=order).count(), 2)
        cutting.refresh_from_db()
        self.assertEqual(
            [(r['reason'], r['quantity'], r['severity']) for r in cutting.rejection_reasons],
            [('Fabric hole', 2, 'major'), ('Mis-cut', 1, 'minor')]
        )

    def test_batch_cannot_exceed_stage_rejected_quantity(self):
        order = self.create_order()
        cutting = self.run_stage(self.stage(order, 'cutting'), 10, 8, 2)

        with self.assertRaises(PayloadValidationError):
            StageExecutionService.log_rejections(self.qa, cutting.pk, [
                {'rejection_reason': 'Fabric hole', 'rejected_quantity': 2},
                {'rejection_reason': 'Mis-cut', 'rejected_quantity': 1},
            ])
        self.assertFalse(Rejection.objects.exists())

    def test_stage_must_be_completed(self):
        order = self.create_order()
        cutting = StageExecutionService.start_stage(self.planner, self.stage(order, 'cutting').pk)
        with self.assertRaises(InvalidStateError):
            StageExecutionService.log_rejections(
                self.qa, cutting.pk, [{'rejection_reason': 'Fabric hole', 'rejected_quantity': 1}]
            )

    def test_bad_severity_rejected(self):
        order = self.create_order()
        cutting = self.run_stage(self.stage(order, 'cutting'), 10, 8, 2)
        with self.assertRaises(PayloadValidationError):
            StageExecutionService.log_rejections(
                self.qa, cutting.pk, [{'rejection_reason': 'Fabric hole', 'rejected_quantity': 1, 'severity': 'fatal'}]
            )


class MaterialConsumptionTest(StageEngineTestBase):

    def setUp(self):
        super().setUp()
        self.approval = self.approved_production(quantity=200)
        self.order = self.create_order(production_approval_id=self.approval.pk)
        self.allocation = MaterialAllocation.objects.get(production_approval=self.approval)
        self.cutting = StageExecutionService.start_stage(self.planner, self.stage(self.order, 'cutting').pk)

    def test_allocations_follow_the_order(self):
        self.assertEqual(self.allocation.production_order, self.order)

    def test_consume_from_allocation(self):
        stage = StageExecutionService.update_tracking(self.planner, self.cutting.pk, material_used=[
            {'allocation_id': self.allocation.pk, 'inventory_id': self.fabric.pk, 'quantity': 50, 'unit': 'meters'},
        ])

        self.allocation.refresh_from_db()
        self.assertEqual(self.allocation.quantity_consumed, Decimal('50'))
        self.assertEqual(self.allocation.quantity_remaining, Decimal('150'))
        self.assertEqual(stage.total_material_used, Decimal('50'))
        consumption = MaterialConsumption.objects.get(production_stage=stage)
        self.assertEqual(consumption.source, MaterialSourceChoices.ALLOCATED)

    def test_cannot_consume_more_than_allocated(self):
        with self.assertRaises(InvalidStateError):
            StageExecutionService.update_tracking(self.planner, self.cutting.pk, material_used=[
                {'allocation_id': self.allocation.pk, 'inventory_id': self.fabric.pk, 'quantity': 201},
            ])
        self.allocation.refresh_from_db()
        self.assertEqual(self.allocation.quantity_remaining, Decimal('200'))
        self.assertFalse(MaterialConsumption.objects.exists())

    def test_direct_inventory_consumption_issues_stock(self):
        self.fabric.refresh_from_db()
        before = self.fabric.quantity_in_stock

        StageExecutionService.update_tracking(self.planner, self.cutting.pk, material_used=[
            {'inventory_id': self.fabric.pk, 'quantity': 20, 'unit': 'meters'},
        ])

        self.fabric.refresh_from_db()
        self.assertEqual(self.fabric.quantity_in_stock, before - Decimal('20'))
        movement = InventoryMovement.objects.filter(
            movement_type=InventoryMovementTypeChoices.PRODUCTION_CONSUMPTION
        ).get()
        self.assertEqual(movement.reference_number, self.order.production_number)
        self.assertEqual(
            MaterialConsumption.objects.get(production_order=self.order).source, MaterialSourceChoices.INVENTORY
        )

    def test_foreign_allocation_rejected(self):
        other_order = self.create_order()
        other_cutting = StageExecutionService.start_stage(self.planner, self.stage(other_order, 'cutting').pk)
        with self.assertRaises(PayloadValidationError):
            StageExecutionService.update_tracking(self.planner, other_cutting.pk, material_used=[
                {'allocation_id': self.allocation.pk, 'inventory_id': self.fabric.pk, 'quantity': 5},
            ])


class StageOrderingInvariantTest(StageEngineTestBase):

    def test_no_stage_runs_ahead_of_an_unfinished_predecessor(self):
        order = self.create_order(stages=['cutting', 'embroidery_printing', 'stitching'])
        self.run_stage(self.stage(order, 'cutting'))
        StageExecutionService.skip_stage(self.planner, self.stage(order, 'embroidery_printing').pk)
        StageExecutionService.start_stage(self.planner, self.stage(order, 'stitching').pk)

        stages = list(ProductionStage.objects.filter(production_order=order).order_by('stage_order'))
        for index, stage in enumerate(stages):
            if stage.status in [StageStatusChoices.IN_PROGRESS, StageStatusChoices.COMPLETED]:
                self.assertTrue(all(
                    s.status in [StageStatusChoices.COMPLETED, StageStatusChoices.SKIPPED]
                    for s in stages[:index]
                ))
