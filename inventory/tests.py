from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from manufacturing.workflow_service import MaterialWorkflowService
from notifications.models import WorkflowNotification
from utils.enums import (
    Department, DispatchReceivedStatusChoices, InventoryMovementTypeChoices,
    MaterialRequestStatusChoices, NotificationTypeChoices
)
from utils.exceptions import (
    ConcurrencyConflictError, InvalidStateError, NotFoundError, PayloadValidationError
)
from .models import InventoryItem, InventoryMovement, MaterialDispatch
from .transaction_manager import InventoryTransactionManager

User = get_user_model()


class InventoryTransactionManagerTest(TestCase):
    """Test cases for ledgered stock adjustments"""

    def setUp(self):
        self.user = User.objects.create_user(
            email='store@example.com', password='testpass123',
            first_name='Ravi', last_name='Store', department=Department.INVENTORY
        )
        self.thread = InventoryItem.objects.create(
            item_code='THR-010', name='Polyester Thread 40s', unit='rolls', quantity_in_stock=Decimal('50')
        )

    def test_adjust_stock_writes_movement_with_balance(self):
        movement = InventoryTransactionManager.adjust_stock(
            self.thread.pk, Decimal('-20'), InventoryMovementTypeChoices.DISPATCH_TO_MANUFACTURING, user=self.user
        )
        self.thread.refresh_from_db()
        self.assertEqual(self.thread.quantity_in_stock, Decimal('30'))
        self.assertEqual(movement.quantity, Decimal('-20'))
        self.assertEqual(movement.balance_after, Decimal('30'))

    def test_stock_cannot_go_negative(self):
        with self.assertRaises(InvalidStateError) as ctx:
            InventoryTransactionManager.adjust_stock(
                self.thread.pk, Decimal('-51'), InventoryMovementTypeChoices.ADJUSTMENT
            )
        self.assertIn('Insufficient stock', str(ctx.exception))
        self.thread.refresh_from_db()
        self.assertEqual(self.thread.quantity_in_stock, Decimal('50'))
        self.assertFalse(InventoryMovement.objects.exists())

    def test_unknown_item_is_not_found(self):
        with self.assertRaises(NotFoundError):
            InventoryTransactionManager.adjust_stock(9999, 5, InventoryMovementTypeChoices.ADJUSTMENT)

    def test_lines_without_inventory_id_are_skipped(self):
        movements = InventoryTransactionManager.receive_materials(
            [{'inventory_id': None, 'quantity': 5}, {'inventory_id': self.thread.pk, 'quantity': 5}],
            InventoryMovementTypeChoices.PRODUCTION_RETURN,
        )
        self.assertEqual(len(movements), 1)
        self.thread.refresh_from_db()
        self.assertEqual(self.thread.quantity_in_stock, Decimal('55'))


class MaterialDispatchTest(TestCase):
    """Dispatching against an MRN"""

    def setUp(self):
        self.planner = User.objects.create_user(
            email='planner@example.com', password='testpass123',
            first_name='Kiran', last_name='Planner', department=Department.MANUFACTURING
        )
        self.store = User.objects.create_user(
            email='store@example.com', password='testpass123',
            first_name='Ravi', last_name='Store', department=Department.INVENTORY
        )
        self.fabric = InventoryItem.objects.create(
            item_code='FAB-001', name='Cotton Jersey 180gsm', unit='meters', quantity_in_stock=Decimal('500')
        )
        self.buttons = InventoryItem.objects.create(
            item_code='BTN-004', name='Shell Buttons 14mm', unit='pieces', quantity_in_stock=Decimal('10')
        )
        self.mrn = MaterialWorkflowService.create_material_request(
            self.planner, 'Summer Tees',
            [{'inventory_id': self.fabric.pk, 'quantity': 200, 'unit': 'meters'}],
        )

    def test_dispatch_issues_stock_and_advances_mrn(self):
        with self.captureOnCommitCallbacks(execute=True):
            dispatch = MaterialWorkflowService.create_dispatch(
                self.store, self.mrn.pk,
                [{'inventory_id': self.fabric.pk, 'quantity_dispatched': 200, 'unit': 'meters'}],
            )

        self.assertTrue(dispatch.dispatch_number.startswith('DSP-'))
        self.assertEqual(dispatch.received_status, DispatchReceivedStatusChoices.PENDING)
        self.assertEqual(dispatch.dispatched_materials[0]['material_name'], 'Cotton Jersey 180gsm')
        self.assertEqual(dispatch.dispatched_materials[0]['quantity_dispatched'], 200.0)

        self.fabric.refresh_from_db()
        self.mrn.refresh_from_db()
        self.assertEqual(self.fabric.quantity_in_stock, Decimal('300'))
        self.assertEqual(self.mrn.status, MaterialRequestStatusChoices.MATERIALS_ISSUED)
        self.assertEqual(self.mrn.processed_by, self.store)

        movement = InventoryMovement.objects.get(inventory=self.fabric)
        self.assertEqual(movement.movement_type, InventoryMovementTypeChoices.DISPATCH_TO_MANUFACTURING)
        self.assertEqual(movement.reference_number, dispatch.dispatch_number)
        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.planner, notification_type=NotificationTypeChoices.MATERIAL_DISPATCHED
        ).exists())

    def test_empty_dispatch_rejected(self):
        with self.assertRaises(PayloadValidationError):
            MaterialWorkflowService.create_dispatch(self.store, self.mrn.pk, [])

    def test_missing_mrn_is_not_found(self):
        with self.assertRaises(NotFoundError):
            MaterialWorkflowService.create_dispatch(
                self.store, 9999, [{'inventory_id': self.fabric.pk, 'quantity': 1}]
            )

    def test_insufficient_stock_rolls_back_every_write(self):
        with self.assertRaises(InvalidStateError):
            MaterialWorkflowService.create_dispatch(
                self.store, self.mrn.pk,
                [
                    {'inventory_id': self.fabric.pk, 'quantity': 100},
                    {'inventory_id': self.buttons.pk, 'quantity': 11},
                ],
            )

        self.fabric.refresh_from_db()
        self.mrn.refresh_from_db()
        self.assertEqual(self.fabric.quantity_in_stock, Decimal('500'))
        self.assertEqual(self.mrn.status, MaterialRequestStatusChoices.PENDING)
        self.assertFalse(MaterialDispatch.objects.exists())
        self.assertFalse(InventoryMovement.objects.exists())

    def test_second_dispatch_while_first_unreceived_is_a_conflict(self):
        MaterialWorkflowService.create_dispatch(self.store, self.mrn.pk, [{'inventory_id': self.fabric.pk, 'quantity': 100}])

        with self.assertRaises(ConcurrencyConflictError):
            MaterialWorkflowService.create_dispatch(
                self.store, self.mrn.pk, [{'inventory_id': self.fabric.pk, 'quantity': 100}]
            )
        self.assertEqual(MaterialDispatch.objects.count(), 1)

    @override_settings(GARMENT_ERP_SETTINGS={'ALLOW_MULTIPLE_DISPATCHES_PER_REQUEST': True})
    def test_batched_dispatches_allowed_by_policy(self):
        MaterialWorkflowService.create_dispatch(self.store, self.mrn.pk, [{'inventory_id': self.fabric.pk, 'quantity': 100}])
        MaterialWorkflowService.create_dispatch(self.store, self.mrn.pk, [{'inventory_id': self.fabric.pk, 'quantity': 100}])

        self.fabric.refresh_from_db()
        self.assertEqual(MaterialDispatch.objects.filter(mrn_request=self.mrn).count(), 2)
        self.assertEqual(self.fabric.quantity_in_stock, Decimal('300'))

    def test_dispatch_allowed_again_once_previous_is_received(self):
        first = MaterialWorkflowService.create_dispatch(
            self.store, self.mrn.pk, [{'inventory_id': self.fabric.pk, 'quantity': 100}]
        )
        MaterialWorkflowService.create_receipt(
            self.planner, first.pk, [{'inventory_id': self.fabric.pk, 'quantity_received': 100}]
        )

        second = MaterialWorkflowService.create_dispatch(
            self.store, self.mrn.pk, [{'inventory_id': self.fabric.pk, 'quantity': 100}]
        )
        self.assertEqual(second.received_status, DispatchReceivedStatusChoices.PENDING)


class InventoryAPITest(APITestCase):

    def setUp(self):
        self.store = User.objects.create_user(
            email='store@example.com', password='testpass123',
            first_name='Ravi', last_name='Store', department=Department.INVENTORY
        )
        self.planner = User.objects.create_user(
            email='planner@example.com', password='testpass123',
            first_name='Kiran', last_name='Planner', department=Department.MANUFACTURING
        )
        self.fabric = InventoryItem.objects.create(
            item_code='FAB-001', name='Cotton Jersey 180gsm', unit='meters', quantity_in_stock=Decimal('500')
        )
        self.mrn = MaterialWorkflowService.create_material_request(
            self.planner, 'Summer Tees', [{'inventory_id': self.fabric.pk, 'quantity': 200}]
        )

    def test_health_check_is_public(self):
        response = self.client.get('/api/inventory/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_dispatch_endpoint(self):
        self.client.force_authenticate(user=self.store)
        response = self.client.post('/api/inventory/dispatches/', {
            'mrn_request_id': self.mrn.pk,
            'dispatched_materials': [{'inventory_id': self.fabric.pk, 'quantity_dispatched': '150'}],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['received_status'], DispatchReceivedStatusChoices.PENDING)

    def test_dispatch_with_empty_list_is_400(self):
        self.client.force_authenticate(user=self.store)
        response = self.client.post('/api/inventory/dispatches/', {
            'mrn_request_id': self.mrn.pk, 'dispatched_materials': [],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_dispatch_for_unknown_mrn_is_404(self):
        self.client.force_authenticate(user=self.store)
        response = self.client.post('/api/inventory/dispatches/', {
            'mrn_request_id': 9999,
            'dispatched_materials': [{'inventory_id': self.fabric.pk, 'quantity': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_double_dispatch_is_409(self):
        self.client.force_authenticate(user=self.store)
        payload = {
            'mrn_request_id': self.mrn.pk,
            'dispatched_materials': [{'inventory_id': self.fabric.pk, 'quantity': '10'}],
        }
        self.client.post('/api/inventory/dispatches/', payload, format='json')
        response = self.client.post('/api/inventory/dispatches/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'conflict')

    def test_manufacturing_cannot_dispatch(self):
        self.client.force_authenticate(user=self.planner)
        response = self.client.post('/api/inventory/dispatches/', {
            'mrn_request_id': self.mrn.pk,
            'dispatched_materials': [{'inventory_id': self.fabric.pk, 'quantity': '10'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_stock_is_read_only_through_item_update(self):
        self.client.force_authenticate(user=self.store)
        response = self.client.patch(
            f'/api/inventory/items/{self.fabric.pk}/', {'quantity_in_stock': '9999'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.fabric.refresh_from_db()
        self.assertEqual(self.fabric.quantity_in_stock, Decimal('500'))

    def test_adjust_stock_action(self):
        self.client.force_authenticate(user=self.store)
        response = self.client.post(
            f'/api/inventory/items/{self.fabric.pk}/adjust_stock/',
            {'quantity': '-25', 'notes': 'Cycle count correction'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.fabric.refresh_from_db()
        self.assertEqual(self.fabric.quantity_in_stock, Decimal('475'))
