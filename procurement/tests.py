from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from inventory.models import InventoryItem, InventoryMovement
from notifications.models import WorkflowNotification
from utils.enums import (
    CreditNoteStatusChoices, Department, GRNStatusChoices, InventoryMovementTypeChoices,
    NotificationTypeChoices, PurchaseOrderStatusChoices, SettlementStatusChoices
)
from utils.exceptions import DuplicateEntityError, InvalidStateError, PayloadValidationError
from .models import CreditNote
from .services import ProcurementService

User = get_user_model()


class ProcurementServiceTestBase(TestCase):

    def setUp(self):
        self.buyer = User.objects.create_user(
            email='buyer@example.com', password='testpass123',
            first_name='Priya', last_name='Buyer', department=Department.PROCUREMENT
        )
        self.store = User.objects.create_user(
            email='store@example.com', password='testpass123',
            first_name='Ravi', last_name='Store', department=Department.INVENTORY
        )
        self.finance = User.objects.create_user(
            email='finance@example.com', password='testpass123',
            first_name='Meera', last_name='Finance', department=Department.FINANCE
        )
        self.fabric = InventoryItem.objects.create(
            item_code='FAB-001', name='Cotton Jersey 180gsm', unit='meters', quantity_in_stock=Decimal('0')
        )

    def create_approved_po(self, quantity=100, rate='12.50'):
        po = ProcurementService.create_purchase_order(
            self.buyer, 'Tirupur Textiles',
            [{'material_name': 'Cotton Jersey 180gsm', 'inventory_id': self.fabric.pk,
              'quantity': quantity, 'unit': 'meters', 'rate': rate}],
            project_name='Summer Tees',
        )
        return ProcurementService.approve_purchase_order(self.buyer, po.pk)


class PurchaseOrderTest(ProcurementServiceTestBase):

    def test_create_computes_totals(self):
        po = ProcurementService.create_purchase_order(
            self.buyer, 'Tirupur Textiles',
            [
                {'material_name': 'Cotton Jersey', 'quantity': 100, 'rate': '12.50'},
                {'material_name': 'Rib Collar', 'quantity': 40, 'rate': '3.25'},
            ],
            tax_percentage=5,
        )
        self.assertEqual(po.status, PurchaseOrderStatusChoices.DRAFT)
        self.assertTrue(po.po_number.startswith('PO-'))
        self.assertEqual(po.subtotal, Decimal('1380.00'))
        self.assertEqual(po.total_amount, Decimal('1449.00'))

    def test_create_rejects_bad_lines_before_writing(self):
        with self.assertRaises(PayloadValidationError):
            ProcurementService.create_purchase_order(
                self.buyer, 'Tirupur Textiles', [{'material_name': 'Cotton Jersey', 'quantity': 0}]
            )
        with self.assertRaises(PayloadValidationError):
            ProcurementService.create_purchase_order(self.buyer, 'Tirupur Textiles', [])

    def test_approve_notifies_inventory_after_commit(self):
        po = ProcurementService.create_purchase_order(
            self.buyer, 'Tirupur Textiles', [{'material_name': 'Cotton Jersey', 'quantity': 10}]
        )
        with self.captureOnCommitCallbacks(execute=True):
            ProcurementService.approve_purchase_order(self.buyer, po.pk)

        po.refresh_from_db()
        self.assertEqual(po.status, PurchaseOrderStatusChoices.APPROVED)
        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.store, notification_type=NotificationTypeChoices.PO_APPROVED
        ).exists())

    def test_cannot_approve_twice(self):
        po = self.create_approved_po()
        with self.assertRaises(InvalidStateError):
            ProcurementService.approve_purchase_order(self.buyer, po.pk)


class GoodsReceiptTest(ProcurementServiceTestBase):

    def test_exact_receipt_stocks_and_closes_po(self):
        po = self.create_approved_po()
        grn = ProcurementService.create_grn(self.store, po.pk, [{'line_index': 0, 'received_quantity': 100}])

        po.refresh_from_db()
        self.fabric.refresh_from_db()
        self.assertEqual(po.status, PurchaseOrderStatusChoices.RECEIVED)
        self.assertFalse(grn.has_overage)
        self.assertTrue(grn.is_first_grn)
        self.assertEqual(self.fabric.quantity_in_stock, Decimal('100'))
        movement = InventoryMovement.objects.get(inventory=self.fabric)
        self.assertEqual(movement.movement_type, InventoryMovementTypeChoices.GRN_RECEIPT)
        self.assertEqual(movement.reference_number, grn.grn_number)

    def test_partial_then_final_receipt(self):
        po = self.create_approved_po()
        first = ProcurementService.create_grn(self.store, po.pk, [{'line_index': 0, 'received_quantity': 60}])
        po.refresh_from_db()
        self.assertEqual(po.status, PurchaseOrderStatusChoices.PARTIALLY_RECEIVED)
        self.assertEqual(first.items[0]['shortage_quantity'], 40.0)

        second = ProcurementService.create_grn(self.store, po.pk, [{'line_index': 0, 'received_quantity': 40}])
        po.refresh_from_db()
        self.assertEqual(po.status, PurchaseOrderStatusChoices.RECEIVED)
        self.assertFalse(second.is_first_grn)
        self.assertEqual(second.grn_sequence, 2)

    def test_overage_is_split_from_accepted_quantity(self):
        po = self.create_approved_po()
        with self.captureOnCommitCallbacks(execute=True):
            grn = ProcurementService.create_grn(self.store, po.pk, [{'line_index': 0, 'received_quantity': 110}])

        self.fabric.refresh_from_db()
        self.assertTrue(grn.has_overage)
        self.assertEqual(grn.items[0]['accepted_quantity'], 100.0)
        self.assertEqual(grn.items[0]['overage_quantity'], 10.0)
        self.assertEqual(self.fabric.quantity_in_stock, Decimal('100'))
        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.buyer, notification_type=NotificationTypeChoices.GRN_OVERAGE
        ).exists())

    def test_grn_against_draft_po_rejected(self):
        po = ProcurementService.create_purchase_order(
            self.buyer, 'Tirupur Textiles', [{'material_name': 'Cotton Jersey', 'quantity': 10}]
        )
        with self.assertRaises(InvalidStateError):
            ProcurementService.create_grn(self.store, po.pk, [{'line_index': 0, 'received_quantity': 10}])

    def test_unknown_line_index_rejected(self):
        po = self.create_approved_po()
        with self.assertRaises(PayloadValidationError):
            ProcurementService.create_grn(self.store, po.pk, [{'line_index': 3, 'received_quantity': 10}])


class CreditNoteTest(ProcurementServiceTestBase):

    def test_credit_note_totals_from_overage(self):
        po = self.create_approved_po()
        grn = ProcurementService.create_grn(self.store, po.pk, [{'line_index': 0, 'received_quantity': 110}])

        with self.captureOnCommitCallbacks(execute=True):
            credit_note = ProcurementService.create_credit_note(self.buyer, grn.pk, tax_percentage=18)

        self.assertEqual(credit_note.subtotal, Decimal('125.00'))
        self.assertEqual(credit_note.tax_amount, Decimal('22.50'))
        self.assertEqual(credit_note.total_amount, Decimal('147.50'))
        self.assertEqual(credit_note.status, CreditNoteStatusChoices.DRAFT)
        self.assertEqual(credit_note.settlement_status, SettlementStatusChoices.PENDING)
        grn.refresh_from_db()
        self.assertEqual(grn.status, GRNStatusChoices.CREDIT_NOTE_RAISED)
        self.assertTrue(WorkflowNotification.objects.filter(
            recipient=self.finance, notification_type=NotificationTypeChoices.CREDIT_NOTE_CREATED
        ).exists())

    def test_credit_note_without_overage_rejected(self):
        po = self.create_approved_po()
        grn = ProcurementService.create_grn(self.store, po.pk, [{'line_index': 0, 'received_quantity': 100}])

        with self.assertRaises(InvalidStateError) as ctx:
            ProcurementService.create_credit_note(self.buyer, grn.pk)
        self.assertEqual(str(ctx.exception), "No overage items found in this GRN")
        self.assertFalse(CreditNote.objects.exists())

    def test_second_credit_note_for_same_grn_rejected(self):
        po = self.create_approved_po()
        grn = ProcurementService.create_grn(self.store, po.pk, [{'line_index': 0, 'received_quantity': 105}])
        ProcurementService.create_credit_note(self.buyer, grn.pk)

        with self.assertRaises(DuplicateEntityError):
            ProcurementService.create_credit_note(self.buyer, grn.pk)

    def test_approve_credit_note(self):
        po = self.create_approved_po()
        grn = ProcurementService.create_grn(self.store, po.pk, [{'line_index': 0, 'received_quantity': 105}])
        credit_note = ProcurementService.create_credit_note(self.buyer, grn.pk)

        approved = ProcurementService.approve_credit_note(self.finance, credit_note.pk)
        self.assertEqual(approved.status, CreditNoteStatusChoices.APPROVED)
        self.assertEqual(approved.approved_by, self.finance)


class ProcurementAPITest(APITestCase):

    def setUp(self):
        self.buyer = User.objects.create_user(
            email='buyer@example.com', password='testpass123',
            first_name='Priya', last_name='Buyer', department=Department.PROCUREMENT
        )
        self.sales = User.objects.create_user(
            email='sales@example.com', password='testpass123',
            first_name='Sam', last_name='Sales', department=Department.SALES
        )

    def test_create_purchase_order(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.post('/api/procurement/purchase-orders/', {
            'vendor_name': 'Tirupur Textiles',
            'items': [{'material_name': 'Cotton Jersey', 'quantity': '50', 'rate': '10.00'}],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], PurchaseOrderStatusChoices.DRAFT)

    def test_other_department_is_forbidden(self):
        self.client.force_authenticate(user=self.sales)
        response = self.client.post('/api/procurement/purchase-orders/', {
            'vendor_name': 'Tirupur Textiles',
            'items': [{'material_name': 'Cotton Jersey', 'quantity': '50'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_credit_note_for_missing_grn_is_404(self):
        self.client.force_authenticate(user=self.buyer)
        response = self.client.post('/api/procurement/credit-notes/', {'grn_id': 9999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'not_found')
