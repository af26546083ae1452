from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.utils import timezone

from inventory.models import InventoryItem
from sales.models import SalesOrder
from utils.enums import Department, SalesOrderStatusChoices
from ..workflow_service import MaterialWorkflowService

User = get_user_model()


class WorkflowFixturesMixin:
    """Users, stock and a confirmed sales order shared by the manufacturing tests"""

    def create_fixtures(self):
        self.planner = User.objects.create_user(
            email='planner@example.com', password='testpass123',
            first_name='Kiran', last_name='Planner', department=Department.MANUFACTURING
        )
        self.store = User.objects.create_user(
            email='store@example.com', password='testpass123',
            first_name='Ravi', last_name='Store', department=Department.INVENTORY
        )
        self.qa = User.objects.create_user(
            email='qa@example.com', password='testpass123',
            first_name='Leela', last_name='Checker', department=Department.QA
        )
        self.sales_user = User.objects.create_user(
            email='sales@example.com', password='testpass123',
            first_name='Sam', last_name='Sales', department=Department.SALES
        )
        self.fabric = InventoryItem.objects.create(
            item_code='FAB-001', name='Cotton Jersey 180gsm', unit='meters', quantity_in_stock=Decimal('500')
        )
        self.sales_order = SalesOrder.objects.create(
            customer_name='Acme Apparel',
            project_name='Summer Tees',
            items=[
                {'product_name': 'Crew Neck Tee', 'quantity': 60, 'unit': 'pieces', 'size': 'M', 'color': 'navy'},
                {'product_name': 'Crew Neck Tee', 'quantity': 40, 'unit': 'pieces', 'size': 'L', 'color': 'navy'},
            ],
            status=SalesOrderStatusChoices.CONFIRMED,
            created_by=self.sales_user,
        )

    def dispatch_materials(self, quantity=200):
        mrn = MaterialWorkflowService.create_material_request(
            self.planner, 'Summer Tees',
            [{'inventory_id': self.fabric.pk, 'quantity': quantity, 'unit': 'meters'}],
            sales_order_id=self.sales_order.pk,
        )
        dispatch = MaterialWorkflowService.create_dispatch(
            self.store, mrn.pk, [{'inventory_id': self.fabric.pk, 'quantity_dispatched': quantity, 'unit': 'meters'}]
        )
        return mrn, dispatch

    def verified_materials(self, quantity=200):
        mrn, dispatch = self.dispatch_materials(quantity)
        receipt = MaterialWorkflowService.create_receipt(
            self.planner, dispatch.pk,
            [{'inventory_id': self.fabric.pk, 'quantity_received': quantity, 'unit': 'meters'}]
        )
        verification = MaterialWorkflowService.create_verification(
            self.qa, receipt.pk, verification_checklist={'gsm': True, 'shade': True}, overall_result='passed'
        )
        return mrn, verification

    def approved_production(self, quantity=200):
        mrn, verification = self.verified_materials(quantity)
        return MaterialWorkflowService.create_approval(
            self.planner, verification.pk, 'approved',
            material_allocations=[{'inventory_id': self.fabric.pk, 'quantity_allocated': quantity, 'unit': 'meters'}],
        )


def planning_window(days=6):
    """A window starting now, so stages completed during a test are on time"""
    start = timezone.now() - timedelta(hours=1)
    return start, start + timedelta(days=days)
