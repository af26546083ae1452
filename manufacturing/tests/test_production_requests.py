from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase

from notifications.models import WorkflowNotification
from procurement.services import ProcurementService
from utils.enums import (
    Department, NotificationTypeChoices, ProductionRequestStatusChoices, SalesOrderStatusChoices
)
from utils.exceptions import DuplicateEntityError, InvalidStateError, PayloadValidationError
from ..production_request_service import ProductionRequestService
from ..stage_service import StageExecutionService
from .helpers import WorkflowFixturesMixin, planning_window

User = get_user_model()


class ProductionRequestFromSalesOrderTest(WorkflowFixturesMixin, TestCase):
    """Test cases for handing sales orders to manufacturing"""

    def setUp(self):
        self.create_fixtures()

    def test_request_summarizes_order_items(self):
        with self.captureOnCommitCallbacks(execute=True):
            request = ProductionRequestService.create_from_sales_order(
                self.sales_user, self.sales_order.pk, notes='Rush for summer drop'
            )

        self.assertTrue(request.request_number.startswith('PRQ-'))
        self.assertEqual(request.product_name, 'Crew Neck Tee')
        self.assertEqual(request.quantity, Decimal('100'))
        self.assertEqual(request.status, ProductionRequestStatusChoices.PENDING)
        self.assertEqual(len(request.product_specifications['items']), 2)

        self.sales_order.refresh_from_db()
        self.assertEqual(self.sales_order.status, SalesOrderStatusChoices.PRODUCTION_REQUESTED)
        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.planner, notification_type=NotificationTypeChoices.PRODUCTION_REQUEST_CREATED
        ).exists())

    def test_draft_order_cannot_request_production(self):
        self.sales_order.status = SalesOrderStatusChoices.DRAFT
        self.sales_order.save()
        with self.assertRaises(InvalidStateError):
            ProductionRequestService.create_from_sales_order(self.sales_user, self.sales_order.pk)

    def test_one_open_request_per_sales_order(self):
        ProductionRequestService.create_from_sales_order(self.sales_user, self.sales_order.pk)
        with self.assertRaises(DuplicateEntityError) as ctx:
            ProductionRequestService.create_from_sales_order(self.sales_user, self.sales_order.pk)
        self.assertEqual(str(ctx.exception), "Production request already exists for this sales order")

    def test_cancelled_request_frees_the_sales_order(self):
        first = ProductionRequestService.create_from_sales_order(self.sales_user, self.sales_order.pk)
        ProductionRequestService.update_status(self.planner, first.pk, ProductionRequestStatusChoices.CANCELLED)

        second = ProductionRequestService.create_from_sales_order(self.sales_user, self.sales_order.pk)
        self.assertNotEqual(first.pk, second.pk)

    def test_order_without_items_rejected(self):
        self.sales_order.items = []
        self.sales_order.save()
        with self.assertRaises(PayloadValidationError):
            ProductionRequestService.create_from_sales_order(self.sales_user, self.sales_order.pk)


class ProductionRequestLifecycleTest(WorkflowFixturesMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        self.request = ProductionRequestService.create_from_sales_order(self.sales_user, self.sales_order.pk)

    def test_review_records_reviewer(self):
        request = ProductionRequestService.update_status(
            self.planner, self.request.pk, ProductionRequestStatusChoices.REVIEWED, notes='Capacity ok'
        )
        self.assertEqual(request.reviewed_by, self.planner)
        self.assertEqual(request.manufacturing_notes, 'Capacity ok')

    def test_illegal_transition_rejected(self):
        with self.assertRaises(InvalidStateError) as ctx:
            ProductionRequestService.update_status(
                self.planner, self.request.pk, ProductionRequestStatusChoices.COMPLETED
            )
        self.assertEqual(ctx.exception.current_state, ProductionRequestStatusChoices.PENDING)

    def test_unknown_status_rejected(self):
        with self.assertRaises(PayloadValidationError):
            ProductionRequestService.update_status(self.planner, self.request.pk, 'shipped')

    def test_link_production_order(self):
        start, end = planning_window()
        order = StageExecutionService.create_production_order(
            self.planner, 'Crew Neck Tee', 100, start, end, sales_order_id=self.sales_order.pk
        )

        request = ProductionRequestService.link_production_order(self.planner, self.request.pk, order.pk)
        self.assertEqual(request.production_order, order)
        self.assertEqual(request.status, ProductionRequestStatusChoices.IN_PRODUCTION)

        with self.assertRaises(InvalidStateError):
            ProductionRequestService.link_production_order(self.planner, self.request.pk, order.pk)


class ProductionRequestFromPurchaseOrderTest(TestCase):

    def setUp(self):
        self.buyer = User.objects.create_user(
            email='buyer@example.com', password='testpass123',
            first_name='Priya', last_name='Buyer', department=Department.PROCUREMENT
        )

    def test_purchase_order_request_uses_pr_prefix(self):
        po = ProcurementService.create_purchase_order(
            self.buyer, 'Tirupur Textiles', [{'material_name': 'Cotton Jersey', 'quantity': 100}],
            project_name='Uniform Contract'
        )
        request = ProductionRequestService.create_from_purchase_order(
            self.buyer, po.pk, 'Polo Shirt', 250, unit='pieces'
        )
        self.assertTrue(request.request_number.startswith('PR-'))
        self.assertEqual(request.project_name, 'Uniform Contract')
        self.assertIsNone(request.sales_order)

    def test_purchase_order_needs_project(self):
        po = ProcurementService.create_purchase_order(
            self.buyer, 'Tirupur Textiles', [{'material_name': 'Cotton Jersey', 'quantity': 100}]
        )
        with self.assertRaises(PayloadValidationError):
            ProductionRequestService.create_from_purchase_order(self.buyer, po.pk, 'Polo Shirt', 250)
