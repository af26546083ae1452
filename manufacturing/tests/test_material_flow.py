from decimal import Decimal

from django.test import TestCase

from inventory.models import MaterialAllocation
from notifications.models import WorkflowNotification
from utils.enums import (
    DispatchReceivedStatusChoices, MaterialRequestStatusChoices, NotificationTypeChoices,
    ReceiptVerificationStatusChoices, SalesOrderStatusChoices, VerificationApprovalStatusChoices
)
from utils.exceptions import InvalidStateError, NotFoundError, PayloadValidationError
from ..models import MaterialReceipt, ProductionApproval
from ..stage_service import StageExecutionService
from ..workflow_service import MaterialWorkflowService
from .helpers import WorkflowFixturesMixin, planning_window


class MaterialReceiptTest(WorkflowFixturesMixin, TestCase):
    """Test cases for confirming dispatches"""

    def setUp(self):
        self.create_fixtures()

    def test_clean_receipt_moves_sales_order_to_materials_received(self):
        mrn, dispatch = self.dispatch_materials()

        with self.captureOnCommitCallbacks(execute=True):
            receipt = MaterialWorkflowService.create_receipt(
                self.planner, dispatch.pk, [{'inventory_id': self.fabric.pk, 'quantity_received': 200}]
            )

        self.assertTrue(receipt.receipt_number.startswith('MRN-RCV-'))
        self.assertEqual(receipt.verification_status, ReceiptVerificationStatusChoices.PENDING)

        dispatch.refresh_from_db()
        mrn.refresh_from_db()
        self.sales_order.refresh_from_db()
        self.assertEqual(dispatch.received_status, DispatchReceivedStatusChoices.RECEIVED)
        self.assertEqual(mrn.status, MaterialRequestStatusChoices.ISSUED)
        self.assertEqual(self.sales_order.status, SalesOrderStatusChoices.MATERIALS_RECEIVED)
        self.assertEqual(self.sales_order.lifecycle_history[-1]['status'], SalesOrderStatusChoices.MATERIALS_RECEIVED)

        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.store, notification_type=NotificationTypeChoices.MATERIAL_RECEIVED
        ).exists())
        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.planner, notification_type=NotificationTypeChoices.PRODUCTION_READY
        ).exists())

    def test_discrepancy_keeps_sales_order_and_alerts_dispatcher(self):
        mrn, dispatch = self.dispatch_materials()

        with self.captureOnCommitCallbacks(execute=True):
            MaterialWorkflowService.create_receipt(
                self.planner, dispatch.pk, [{'inventory_id': self.fabric.pk, 'quantity_received': 180}],
                has_discrepancy=True, discrepancy_details='Two rolls short'
            )

        dispatch.refresh_from_db()
        mrn.refresh_from_db()
        self.sales_order.refresh_from_db()
        self.assertEqual(dispatch.received_status, DispatchReceivedStatusChoices.DISCREPANCY)
        self.assertEqual(mrn.status, MaterialRequestStatusChoices.PARTIALLY_ISSUED)
        self.assertEqual(self.sales_order.status, SalesOrderStatusChoices.CONFIRMED)
        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.store, notification_type=NotificationTypeChoices.MATERIAL_DISCREPANCY
        ).exists())

    def test_discrepancy_requires_details(self):
        _, dispatch = self.dispatch_materials()
        with self.assertRaises(PayloadValidationError):
            MaterialWorkflowService.create_receipt(
                self.planner, dispatch.pk, [{'inventory_id': self.fabric.pk, 'quantity': 180}], has_discrepancy=True
            )

    def test_dispatch_can_only_be_received_once(self):
        _, dispatch = self.dispatch_materials()
        lines = [{'inventory_id': self.fabric.pk, 'quantity_received': 200}]
        MaterialWorkflowService.create_receipt(self.planner, dispatch.pk, lines)

        with self.assertRaises(InvalidStateError):
            MaterialWorkflowService.create_receipt(self.planner, dispatch.pk, lines)
        self.assertEqual(MaterialReceipt.objects.filter(dispatch=dispatch).count(), 1)

    def test_unknown_dispatch_is_not_found(self):
        with self.assertRaises(NotFoundError):
            MaterialWorkflowService.create_receipt(self.planner, 9999, [{'material_name': 'Thread', 'quantity': 1}])


class MaterialVerificationTest(WorkflowFixturesMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        _, dispatch = self.dispatch_materials()
        self.receipt = MaterialWorkflowService.create_receipt(
            self.planner, dispatch.pk, [{'inventory_id': self.fabric.pk, 'quantity_received': 200}]
        )

    def test_passed_verification_marks_receipt_verified(self):
        verification = MaterialWorkflowService.create_verification(
            self.qa, self.receipt.pk, verification_checklist={'gsm': True}, overall_result='passed'
        )
        self.receipt.refresh_from_db()
        self.assertTrue(verification.passed)
        self.assertTrue(verification.verification_number.startswith('MRN-VRF-'))
        self.assertEqual(verification.approval_status, VerificationApprovalStatusChoices.PENDING)
        self.assertEqual(self.receipt.verification_status, ReceiptVerificationStatusChoices.VERIFIED)

    def test_failed_verification_notifies_requesting_department(self):
        with self.captureOnCommitCallbacks(execute=True):
            MaterialWorkflowService.create_verification(
                self.qa, self.receipt.pk, overall_result='failed', issues_found=['Shade variation on roll 3']
            )
        self.receipt.refresh_from_db()
        self.assertEqual(self.receipt.verification_status, ReceiptVerificationStatusChoices.FAILED)
        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.planner, notification_type=NotificationTypeChoices.VERIFICATION_FAILED
        ).exists())

    def test_result_must_be_passed_or_failed(self):
        with self.assertRaises(PayloadValidationError):
            MaterialWorkflowService.create_verification(self.qa, self.receipt.pk, overall_result='maybe')

    def test_receipt_verified_only_once(self):
        MaterialWorkflowService.create_verification(self.qa, self.receipt.pk, overall_result='passed')
        with self.assertRaises(InvalidStateError):
            MaterialWorkflowService.create_verification(self.qa, self.receipt.pk, overall_result='passed')


class ProductionApprovalTest(WorkflowFixturesMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_approval_creates_allocations(self):
        approval = self.approved_production()

        self.assertTrue(approval.approval_number.startswith('PRD-APV-'))
        approval.verification.refresh_from_db()
        self.assertEqual(approval.verification.approval_status, VerificationApprovalStatusChoices.APPROVED)
        self.assertEqual(approval.mrn_request.status, MaterialRequestStatusChoices.MATERIALS_READY)

        allocation = MaterialAllocation.objects.get(production_approval=approval)
        self.assertEqual(allocation.inventory, self.fabric)
        self.assertEqual(allocation.quantity_allocated, Decimal('200'))
        self.assertEqual(allocation.quantity_remaining, Decimal('200'))
        self.assertEqual(allocation.quantity_consumed, Decimal('0'))

    def test_cannot_approve_failed_verification(self):
        _, dispatch = self.dispatch_materials()
        receipt = MaterialWorkflowService.create_receipt(
            self.planner, dispatch.pk, [{'inventory_id': self.fabric.pk, 'quantity_received': 200}]
        )
        verification = MaterialWorkflowService.create_verification(self.qa, receipt.pk, overall_result='failed')

        with self.assertRaises(InvalidStateError) as ctx:
            MaterialWorkflowService.create_approval(self.planner, verification.pk, 'approved')
        self.assertEqual(str(ctx.exception), "Cannot approve materials that failed verification")
        self.assertFalse(ProductionApproval.objects.exists())
        self.assertFalse(MaterialAllocation.objects.exists())

    def test_rejection_needs_a_reason_and_cancels_mrn(self):
        mrn, verification = self.verified_materials()
        with self.assertRaises(PayloadValidationError):
            MaterialWorkflowService.create_approval(self.planner, verification.pk, 'rejected')

        approval = MaterialWorkflowService.create_approval(
            self.planner, verification.pk, 'rejected', rejection_reason='Line capacity booked until July'
        )
        mrn.refresh_from_db()
        self.assertEqual(approval.approval_status, 'rejected')
        self.assertEqual(mrn.status, MaterialRequestStatusChoices.CANCELLED)
        self.assertFalse(MaterialAllocation.objects.exists())

    def test_verification_decided_only_once(self):
        _, verification = self.verified_materials()
        MaterialWorkflowService.create_approval(self.planner, verification.pk, 'approved')
        with self.assertRaises(InvalidStateError):
            MaterialWorkflowService.create_approval(self.planner, verification.pk, 'approved')


class StartProductionTest(WorkflowFixturesMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_start_production_links_order_and_closes_mrn(self):
        approval = self.approved_production()
        start, end = planning_window()
        order = StageExecutionService.create_production_order(
            self.planner, 'Crew Neck Tee', 100, start, end, sales_order_id=self.sales_order.pk
        )

        approval = MaterialWorkflowService.start_production(self.planner, approval.pk, production_order_id=order.pk)

        order.refresh_from_db()
        self.assertTrue(approval.production_started)
        self.assertIsNotNone(approval.production_started_at)
        self.assertEqual(approval.production_order, order)
        self.assertEqual(order.production_approval, approval)
        self.assertEqual(approval.mrn_request.status, MaterialRequestStatusChoices.COMPLETED)
        self.assertEqual(
            MaterialAllocation.objects.get(production_approval=approval).production_order, order
        )

    def test_cannot_start_twice(self):
        approval = self.approved_production()
        MaterialWorkflowService.start_production(self.planner, approval.pk)
        with self.assertRaises(InvalidStateError):
            MaterialWorkflowService.start_production(self.planner, approval.pk)

    def test_cannot_start_rejected_approval(self):
        _, verification = self.verified_materials()
        approval = MaterialWorkflowService.create_approval(
            self.planner, verification.pk, 'rejected', rejection_reason='No capacity'
        )
        with self.assertRaises(InvalidStateError):
            MaterialWorkflowService.start_production(self.planner, approval.pk)
