from decimal import Decimal

from django.test import TestCase

from inventory.models import InventoryMovement, MaterialAllocation
from notifications.models import WorkflowNotification
from utils.enums import (
    InventoryMovementTypeChoices, MaterialReturnStatusChoices, NotificationTypeChoices,
    StageStatusChoices
)
from utils.exceptions import (
    DuplicateEntityError, InvalidStateError, NotFoundError, PayloadValidationError
)
from ..material_return_service import MaterialReturnService
from ..models import MaterialReturn
from ..stage_service import StageExecutionService
from .helpers import WorkflowFixturesMixin, planning_window


class MaterialReturnTest(WorkflowFixturesMixin, TestCase):
    """Test cases for returning leftover materials after production"""

    def setUp(self):
        self.create_fixtures()
        start, end = planning_window()
        self.order = StageExecutionService.create_production_order(
            self.planner, 'Crew Neck Tee', 100, start, end, stages=['cutting', 'stitching']
        )
        self.leftovers = [
            {'inventory_id': self.fabric.pk, 'quantity': '12.5', 'unit': 'meters', 'reason': 'Unused lay ends'},
        ]

    def finish_all_stages(self):
        for stage in self.order.stages.order_by('stage_order'):
            StageExecutionService.start_stage(self.planner, stage.pk)
            StageExecutionService.complete_stage(
                self.planner, stage.pk, quantity_processed=100, quantity_approved=100, quantity_rejected=0
            )

    def test_return_rejected_while_stages_open(self):
        first = self.order.stages.get(stage_name='cutting')
        StageExecutionService.start_stage(self.planner, first.pk)
        StageExecutionService.complete_stage(self.planner, first.pk, quantity_processed=100, quantity_approved=100)

        with self.assertRaises(InvalidStateError) as ctx:
            MaterialReturnService.request_return(self.planner, self.order.pk, self.leftovers)
        self.assertIn('stitching (pending)', str(ctx.exception))
        self.assertFalse(MaterialReturn.objects.exists())

    def test_request_creates_exactly_one_pending_return(self):
        self.finish_all_stages()

        with self.captureOnCommitCallbacks(execute=True):
            material_return = MaterialReturnService.request_return(
                self.planner, self.order.pk, self.leftovers, notes='End of run'
            )

        self.assertTrue(material_return.return_number.startswith('MRT-'))
        self.assertEqual(material_return.status, MaterialReturnStatusChoices.PENDING_APPROVAL)
        self.assertEqual(material_return.total_materials[0]['quantity'], 12.5)
        self.assertEqual(MaterialReturn.objects.filter(production_order=self.order).count(), 1)
        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.store, notification_type=NotificationTypeChoices.MATERIAL_RETURN_REQUESTED
        ).exists())

    def test_open_return_blocks_another(self):
        self.finish_all_stages()
        MaterialReturnService.request_return(self.planner, self.order.pk, self.leftovers)

        with self.assertRaises(DuplicateEntityError):
            MaterialReturnService.request_return(self.planner, self.order.pk, self.leftovers)

    def test_rejected_return_can_be_raised_again(self):
        self.finish_all_stages()
        first = MaterialReturnService.request_return(self.planner, self.order.pk, self.leftovers)
        MaterialReturnService.reject_return(self.store, first.pk, 'Quantities do not match the lay plan')

        second = MaterialReturnService.request_return(self.planner, self.order.pk, self.leftovers)
        self.assertEqual(second.status, MaterialReturnStatusChoices.PENDING_APPROVAL)

    def test_approve_then_process_restocks_inventory(self):
        self.finish_all_stages()
        self.fabric.refresh_from_db()
        before = self.fabric.quantity_in_stock
        material_return = MaterialReturnService.request_return(self.planner, self.order.pk, self.leftovers)

        approved = MaterialReturnService.approve_return(self.store, material_return.pk, notes='Counted')
        self.assertEqual(approved.status, MaterialReturnStatusChoices.APPROVED)
        self.assertEqual(approved.approved_by, self.store)

        processed = MaterialReturnService.process_return(self.store, material_return.pk)
        self.assertEqual(processed.status, MaterialReturnStatusChoices.RETURNED)
        self.assertIsNotNone(processed.returned_at)

        self.fabric.refresh_from_db()
        self.assertEqual(self.fabric.quantity_in_stock, before + Decimal('12.5'))
        movement = InventoryMovement.objects.get(movement_type=InventoryMovementTypeChoices.PRODUCTION_RETURN)
        self.assertEqual(movement.reference_number, material_return.return_number)

    def test_process_requires_approval(self):
        self.finish_all_stages()
        material_return = MaterialReturnService.request_return(self.planner, self.order.pk, self.leftovers)
        with self.assertRaises(InvalidStateError):
            MaterialReturnService.process_return(self.store, material_return.pk)

    def test_unknown_inventory_rolls_back_processing(self):
        self.finish_all_stages()
        material_return = MaterialReturnService.request_return(self.planner, self.order.pk, [
            {'inventory_id': self.fabric.pk, 'quantity': 5},
            {'inventory_id': 9999, 'quantity': 1},
        ])
        MaterialReturnService.approve_return(self.store, material_return.pk)
        self.fabric.refresh_from_db()
        before = self.fabric.quantity_in_stock

        with self.assertRaises(NotFoundError):
            MaterialReturnService.process_return(self.store, material_return.pk)

        material_return.refresh_from_db()
        self.fabric.refresh_from_db()
        self.assertEqual(material_return.status, MaterialReturnStatusChoices.APPROVED)
        self.assertEqual(self.fabric.quantity_in_stock, before)
        self.assertFalse(InventoryMovement.objects.filter(
            movement_type=InventoryMovementTypeChoices.PRODUCTION_RETURN
        ).exists())

    def test_reject_needs_reason(self):
        self.finish_all_stages()
        material_return = MaterialReturnService.request_return(self.planner, self.order.pk, self.leftovers)
        with self.assertRaises(PayloadValidationError):
            MaterialReturnService.reject_return(self.store, material_return.pk, '')

    def test_order_without_stages_cannot_return(self):
        start, end = planning_window()
        order = StageExecutionService.create_production_order(
            self.planner, 'Crew Neck Tee', 100, start, end, stages=['cutting']
        )
        order.stages.all().delete()
        with self.assertRaises(InvalidStateError):
            MaterialReturnService.request_return(self.planner, order.pk, self.leftovers)


class MaterialReturnAllocationTest(WorkflowFixturesMixin, TestCase):
    """Test cases for reconciling returns against the order's allocations"""

    def setUp(self):
        self.create_fixtures()
        self.approval = self.approved_production(quantity=200)
        start, end = planning_window()
        self.order = StageExecutionService.create_production_order(
            self.planner, 'Crew Neck Tee', 100, start, end,
            stages=['cutting', 'stitching'], production_approval_id=self.approval.pk
        )
        self.allocation = MaterialAllocation.objects.get(production_approval=self.approval)

        cutting = self.order.stages.get(stage_name='cutting')
        StageExecutionService.start_stage(self.planner, cutting.pk)
        StageExecutionService.update_tracking(self.planner, cutting.pk, material_used=[
            {'allocation_id': self.allocation.pk, 'quantity': 150, 'unit': 'meters'},
        ])
        for stage in self.order.stages.order_by('stage_order'):
            if stage.status != StageStatusChoices.IN_PROGRESS:
                StageExecutionService.start_stage(self.planner, stage.pk)
            StageExecutionService.complete_stage(
                self.planner, stage.pk, quantity_processed=100, quantity_approved=100, quantity_rejected=0
            )

    def test_return_cannot_exceed_remaining_allocation(self):
        with self.assertRaises(PayloadValidationError) as ctx:
            MaterialReturnService.request_return(self.planner, self.order.pk, [
                {'allocation_id': self.allocation.pk, 'quantity': 51, 'unit': 'meters'},
            ])
        self.assertIn('cannot exceed', str(ctx.exception))
        self.assertFalse(MaterialReturn.objects.exists())

    def test_lines_without_allocation_are_matched_on_inventory(self):
        with self.assertRaises(PayloadValidationError):
            MaterialReturnService.request_return(self.planner, self.order.pk, [
                {'inventory_id': self.fabric.pk, 'quantity': 30, 'unit': 'meters'},
                {'inventory_id': self.fabric.pk, 'quantity': 30, 'unit': 'meters'},
            ])

        material_return = MaterialReturnService.request_return(self.planner, self.order.pk, [
            {'inventory_id': self.fabric.pk, 'quantity': 30, 'unit': 'meters'},
        ])
        self.assertEqual(material_return.total_materials[0]['allocation_id'], self.allocation.pk)

    def test_foreign_allocation_rejected(self):
        start, end = planning_window()
        other_order = StageExecutionService.create_production_order(
            self.planner, 'Polo Shirt', 50, start, end, stages=['cutting']
        )
        other_cutting = other_order.stages.get()
        StageExecutionService.start_stage(self.planner, other_cutting.pk)
        StageExecutionService.complete_stage(self.planner, other_cutting.pk, quantity_processed=50, quantity_approved=50)

        with self.assertRaises(PayloadValidationError):
            MaterialReturnService.request_return(self.planner, other_order.pk, [
                {'allocation_id': self.allocation.pk, 'quantity': 5},
            ])

    def test_processing_reconciles_the_allocation(self):
        self.fabric.refresh_from_db()
        before = self.fabric.quantity_in_stock
        material_return = MaterialReturnService.request_return(self.planner, self.order.pk, [
            {'allocation_id': self.allocation.pk, 'quantity': 40, 'unit': 'meters', 'reason': 'Lay ends'},
        ])
        MaterialReturnService.approve_return(self.store, material_return.pk)
        MaterialReturnService.process_return(self.store, material_return.pk)

        self.allocation.refresh_from_db()
        self.assertEqual(self.allocation.quantity_consumed, Decimal('150'))
        self.assertEqual(self.allocation.quantity_returned, Decimal('40'))
        self.assertEqual(self.allocation.quantity_remaining, Decimal('10'))
        self.assertTrue(self.allocation.is_reconciled)
        self.assertIsNotNone(self.allocation.reconciled_at)

        self.fabric.refresh_from_db()
        self.assertEqual(self.fabric.quantity_in_stock, before + Decimal('40'))

    def test_reconciled_allocation_cannot_be_returned_again(self):
        first = MaterialReturnService.request_return(self.planner, self.order.pk, [
            {'allocation_id': self.allocation.pk, 'quantity': 10},
        ])
        MaterialReturnService.approve_return(self.store, first.pk)
        MaterialReturnService.process_return(self.store, first.pk)

        with self.assertRaises(InvalidStateError):
            MaterialReturnService.request_return(self.planner, self.order.pk, [
                {'allocation_id': self.allocation.pk, 'quantity': 5},
            ])
