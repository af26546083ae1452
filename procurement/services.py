"""
Procurement Service
Purchase orders, goods receipt with overage detection, and credit notes
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import IntegrityError, transaction
from django.utils import timezone

from inventory.transaction_manager import InventoryTransactionManager
from notifications.dispatcher import NotificationDispatcher, NotificationPayload
from utils.enums import (
    CreditNoteStatusChoices, Department, GRNStatusChoices, InventoryMovementTypeChoices,
    NotificationPriorityChoices, NotificationTypeChoices, PurchaseOrderStatusChoices,
    UnitChoices
)
from utils.exceptions import DuplicateEntityError, InvalidStateError, PayloadValidationError
from utils.transitions import fetch_for_update, require_list, require_state, to_decimal
from .models import CreditNote, GoodsReceiptNote, PurchaseOrder

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def _money(value):
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _num(value):
    return Decimal(str(value or 0))


class ProcurementService:
    """
    Central service for the procurement leg of the material lifecycle
    """

    @staticmethod
    def _parse_po_items(raw_items):
        items = require_list(raw_items, 'items')
        parsed = []
        for index, item in enumerate(items, start=1):
            label = f"items line {index}"
            if not isinstance(item, dict):
                raise PayloadValidationError(f"{label} must be an object")
            material_name = str(item.get('material_name') or '').strip()
            if not material_name:
                raise PayloadValidationError(f"{label}.material_name is required")
            quantity = to_decimal(item.get('quantity'), f"{label}.quantity", allow_zero=False)
            rate = to_decimal(item.get('rate', 0), f"{label}.rate")
            unit = item.get('unit') or UnitChoices.PIECES.value
            if unit not in UnitChoices.values:
                raise PayloadValidationError(f"{label}.unit '{unit}' is not a known unit")
            inventory_id = item.get('inventory_id')
            parsed.append({
                'material_name': material_name,
                'inventory_id': int(inventory_id) if inventory_id not in (None, '') else None,
                'quantity': float(quantity),
                'unit': unit,
                'rate': float(rate),
                'amount': float(_money(quantity * rate)),
            })
        return parsed

    @staticmethod
    def create_purchase_order(actor, vendor_name, items, project_name='', sales_order_id=None,
                              production_request_id=None, tax_percentage=0, expected_delivery_date=None,
                              notes=''):
        """
        Create a draft purchase order with computed line and grand totals
        """
        if not str(vendor_name or '').strip():
            raise PayloadValidationError("vendor_name is required")
        parsed_items = ProcurementService._parse_po_items(items)
        tax_percentage = to_decimal(tax_percentage, 'tax_percentage')

        subtotal = _money(sum(_num(item['amount']) for item in parsed_items))
        total = _money(subtotal + subtotal * tax_percentage / Decimal('100'))

        with transaction.atomic():
            po = PurchaseOrder.objects.create(
                vendor_name=vendor_name.strip(),
                project_name=project_name or '',
                sales_order_id=sales_order_id,
                production_request_id=production_request_id,
                items=parsed_items,
                subtotal=subtotal,
                tax_percentage=tax_percentage,
                total_amount=total,
                expected_delivery_date=expected_delivery_date,
                notes=notes,
                created_by=actor,
            )

        logger.info(f"Purchase order {po.po_number} created for {po.vendor_name} ({total})")
        return po

    @staticmethod
    def approve_purchase_order(actor, po_id):
        with transaction.atomic():
            po = fetch_for_update(PurchaseOrder, po_id, 'Purchase order')
            require_state(po, [PurchaseOrderStatusChoices.DRAFT], 'approve', 'purchase order')

            po.status = PurchaseOrderStatusChoices.APPROVED
            po.approved_by = actor
            po.approved_at = timezone.now()
            po.save(update_fields=['status', 'approved_by', 'approved_at', 'updated_at'])

            NotificationDispatcher.notify_department(Department.INVENTORY, NotificationPayload.for_entity(
                po, NotificationTypeChoices.PO_APPROVED,
                title=f"PO {po.po_number} approved",
                message=f"Expect delivery from {po.vendor_name} for {po.project_name or 'stock'}.",
                priority=NotificationPriorityChoices.NORMAL,
                actor=actor,
            ))

        logger.info(f"Purchase order {po.po_number} approved by {actor}")
        return po

    @staticmethod
    def _received_so_far(po):
        """Accepted quantity per PO line index across existing GRNs"""
        received = {}
        for grn in po.grns.all():
            for item in grn.items:
                index = item['line_index']
                received[index] = received.get(index, Decimal('0')) + _num(item.get('accepted_quantity'))
        return received

    @staticmethod
    def create_grn(actor, po_id, items, inward_challan_number='', supplier_invoice_number='', remarks=''):
        """
        Record goods received against a PO.

        items: [{line_index, received_quantity}] where line_index points into
        po.items. Accepted quantity is stocked; anything above the outstanding
        quantity is overage awaiting a credit note.
        """
        received_lines = require_list(items, 'items')

        with transaction.atomic():
            po = fetch_for_update(PurchaseOrder, po_id, 'Purchase order')
            require_state(
                po,
                [PurchaseOrderStatusChoices.APPROVED, PurchaseOrderStatusChoices.PARTIALLY_RECEIVED],
                'receive goods against', 'purchase order'
            )

            received_so_far = ProcurementService._received_so_far(po)
            seen = set()
            grn_items = []
            for position, line in enumerate(received_lines, start=1):
                label = f"items line {position}"
                if not isinstance(line, dict):
                    raise PayloadValidationError(f"{label} must be an object")
                try:
                    line_index = int(line.get('line_index', position - 1))
                except (TypeError, ValueError):
                    raise PayloadValidationError(f"{label}.line_index must be an integer")
                if line_index < 0 or line_index >= len(po.items):
                    raise PayloadValidationError(f"{label}.line_index {line_index} is not a line of {po.po_number}")
                if line_index in seen:
                    raise PayloadValidationError(f"{label}.line_index {line_index} is listed twice")
                seen.add(line_index)

                po_line = po.items[line_index]
                received_qty = to_decimal(line.get('received_quantity'), f"{label}.received_quantity")
                outstanding = max(Decimal('0'), _num(po_line['quantity']) - received_so_far.get(line_index, Decimal('0')))
                accepted = min(received_qty, outstanding)

                grn_items.append({
                    'line_index': line_index,
                    'material_name': po_line['material_name'],
                    'inventory_id': po_line.get('inventory_id'),
                    'unit': po_line.get('unit'),
                    'rate': po_line.get('rate', 0),
                    'outstanding_quantity': float(outstanding),
                    'received_quantity': float(received_qty),
                    'accepted_quantity': float(accepted),
                    'overage_quantity': float(max(Decimal('0'), received_qty - outstanding)),
                    'shortage_quantity': float(max(Decimal('0'), outstanding - received_qty)),
                    'remarks': str(line.get('remarks') or ''),
                })

            previous_count = po.grns.count()
            grn = GoodsReceiptNote.objects.create(
                purchase_order=po,
                items=grn_items,
                has_overage=any(item['overage_quantity'] > 0 for item in grn_items),
                has_shortage=any(item['shortage_quantity'] > 0 for item in grn_items),
                is_first_grn=previous_count == 0,
                grn_sequence=previous_count + 1,
                inward_challan_number=inward_challan_number,
                supplier_invoice_number=supplier_invoice_number,
                remarks=remarks,
                received_by=actor,
            )

            InventoryTransactionManager.receive_materials(
                [{'inventory_id': item['inventory_id'], 'quantity': item['accepted_quantity']}
                 for item in grn_items if item['accepted_quantity'] > 0],
                InventoryMovementTypeChoices.GRN_RECEIPT,
                user=actor, reference=grn,
            )

            for item in grn_items:
                received_so_far[item['line_index']] = (
                    received_so_far.get(item['line_index'], Decimal('0')) + _num(item['accepted_quantity'])
                )
            fully_received = all(
                received_so_far.get(index, Decimal('0')) >= _num(line['quantity'])
                for index, line in enumerate(po.items)
            )
            po.status = (
                PurchaseOrderStatusChoices.RECEIVED if fully_received
                else PurchaseOrderStatusChoices.PARTIALLY_RECEIVED
            )
            po.save(update_fields=['status', 'updated_at'])

            if grn.has_overage:
                NotificationDispatcher.notify_department(Department.PROCUREMENT, NotificationPayload.for_entity(
                    grn, NotificationTypeChoices.GRN_OVERAGE,
                    title=f"Overage on {grn.grn_number}",
                    message=f"{po.vendor_name} delivered more than ordered on {po.po_number}. Raise a credit note.",
                    priority=NotificationPriorityChoices.HIGH,
                    actor=actor,
                    action_required=True,
                ))
            else:
                NotificationDispatcher.notify_department(Department.INVENTORY, NotificationPayload.for_entity(
                    grn, NotificationTypeChoices.GRN_RECEIVED,
                    title=f"{grn.grn_number} received",
                    message=f"Goods for {po.po_number} received and stocked.",
                    priority=NotificationPriorityChoices.NORMAL,
                    actor=actor,
                ))

        logger.info(f"GRN {grn.grn_number} recorded against {po.po_number}; PO now {po.status}")
        return grn

    @staticmethod
    def create_credit_note(actor, grn_id, tax_percentage=0, remarks=''):
        """
        Raise a vendor credit note for the overage lines of a GRN
        """
        tax_percentage = to_decimal(tax_percentage, 'tax_percentage')

        with transaction.atomic():
            grn = fetch_for_update(GoodsReceiptNote, grn_id, 'GRN')
            overage_items = grn.overage_items
            if not overage_items:
                raise InvalidStateError("No overage items found in this GRN")

            if grn.credit_notes.exclude(status=CreditNoteStatusChoices.CANCELLED).exists():
                raise DuplicateEntityError(f"A credit note already exists for {grn.grn_number}")

            po = grn.purchase_order
            lines = []
            for item in overage_items:
                amount = _money(_num(item['overage_quantity']) * _num(item['rate']))
                lines.append({
                    'material_name': item['material_name'],
                    'inventory_id': item.get('inventory_id'),
                    'overage_quantity': item['overage_quantity'],
                    'rate': item['rate'],
                    'amount': float(amount),
                })
            subtotal = _money(sum(_num(line['amount']) for line in lines))
            tax_amount = _money(subtotal * tax_percentage / Decimal('100'))

            try:
                with transaction.atomic():
                    credit_note = CreditNote.objects.create(
                        grn=grn,
                        purchase_order=po,
                        vendor_name=po.vendor_name,
                        items=lines,
                        subtotal=subtotal,
                        tax_percentage=tax_percentage,
                        tax_amount=tax_amount,
                        total_amount=subtotal + tax_amount,
                        remarks=remarks,
                        created_by=actor,
                    )
            except IntegrityError:
                raise DuplicateEntityError(f"A credit note already exists for {grn.grn_number}")

            grn.status = GRNStatusChoices.CREDIT_NOTE_RAISED
            grn.save(update_fields=['status'])

            NotificationDispatcher.notify_department(Department.FINANCE, NotificationPayload.for_entity(
                credit_note, NotificationTypeChoices.CREDIT_NOTE_CREATED,
                title=f"Credit note {credit_note.credit_note_number} raised",
                message=f"{po.vendor_name} owes {credit_note.total_amount} for overage on {grn.grn_number}.",
                priority=NotificationPriorityChoices.HIGH,
                actor=actor,
                action_required=True,
            ))

        logger.info(f"Credit note {credit_note.credit_note_number} raised for {grn.grn_number}")
        return credit_note

    @staticmethod
    def approve_credit_note(actor, credit_note_id):
        with transaction.atomic():
            credit_note = fetch_for_update(CreditNote, credit_note_id, 'Credit note')
            require_state(credit_note, [CreditNoteStatusChoices.DRAFT], 'approve', 'credit note')

            credit_note.status = CreditNoteStatusChoices.APPROVED
            credit_note.approved_by = actor
            credit_note.approved_at = timezone.now()
            credit_note.save(update_fields=['status', 'approved_by', 'approved_at'])

            NotificationDispatcher.notify_department(Department.PROCUREMENT, NotificationPayload.for_entity(
                credit_note, NotificationTypeChoices.CREDIT_NOTE_APPROVED,
                title=f"Credit note {credit_note.credit_note_number} approved",
                message=f"Finance approved the credit note for {credit_note.vendor_name}.",
                priority=NotificationPriorityChoices.NORMAL,
                actor=actor,
            ))

        logger.info(f"Credit note {credit_note.credit_note_number} approved")
        return credit_note
