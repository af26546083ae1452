"""
Material Return Service
Reconciles leftover production materials back into inventory once every
stage of an order is completed
"""
import logging
from collections import defaultdict
from dataclasses import replace
from decimal import Decimal

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from inventory.models import MaterialAllocation
from inventory.transaction_manager import InventoryTransactionManager
from notifications.dispatcher import NotificationDispatcher, NotificationPayload
from utils.enums import (
    Department, InventoryMovementTypeChoices, MaterialReturnStatusChoices,
    NotificationPriorityChoices, NotificationTypeChoices, StageStatusChoices
)
from utils.exceptions import DuplicateEntityError, InvalidStateError, PayloadValidationError
from utils.line_items import lines_to_json, parse_material_lines
from utils.transitions import fetch_for_update, require_state
from .models import MaterialReturn, ProductionOrder

logger = logging.getLogger(__name__)

OPEN_RETURN_STATES = [MaterialReturnStatusChoices.PENDING_APPROVAL, MaterialReturnStatusChoices.APPROVED]


class MaterialReturnService:

    @staticmethod
    def _order_allocations(order):
        allocation_filter = Q(production_order=order)
        if order.production_approval_id:
            allocation_filter |= Q(production_approval_id=order.production_approval_id)
        return MaterialAllocation.objects.filter(allocation_filter)

    @staticmethod
    def _bind_allocations(order, lines):
        """
        Tie each return line to the order's allocation of the same material.
        Lines without an allocation_id are matched on inventory_id; the total
        returned against one allocation may not exceed what is left of it.
        """
        allocations = {
            allocation.pk: allocation
            for allocation in MaterialReturnService._order_allocations(order).select_for_update()
        }

        requested = defaultdict(Decimal)
        bound = []
        for index, line in enumerate(lines, start=1):
            label = f"materials line {index}"
            if line.allocation_id is not None:
                allocation = allocations.get(line.allocation_id)
                if allocation is None:
                    raise PayloadValidationError(
                        f"{label}: allocation {line.allocation_id} is not allocated to {order.production_number}"
                    )
            else:
                allocation = next(
                    (a for a in allocations.values()
                     if line.inventory_id is not None and a.inventory_id == line.inventory_id),
                    None
                )
            if allocation is None:
                bound.append(line)
                continue

            if allocation.is_reconciled:
                raise InvalidStateError(
                    f"Allocation {allocation.pk} for {allocation.material_name} is already reconciled",
                    current_state='reconciled',
                )
            if line.inventory_id is not None and allocation.inventory_id not in (None, line.inventory_id):
                raise PayloadValidationError(
                    f"{label}: inventory {line.inventory_id} does not match allocation {allocation.pk}"
                )
            requested[allocation.pk] += line.quantity
            if requested[allocation.pk] > allocation.quantity_remaining:
                raise PayloadValidationError(
                    f"Returned {allocation.material_name} ({requested[allocation.pk]}) cannot exceed "
                    f"the remaining allocation of {allocation.quantity_remaining}"
                )
            bound.append(replace(
                line,
                allocation_id=allocation.pk,
                inventory_id=line.inventory_id or allocation.inventory_id,
                material_name=line.material_name or allocation.material_name,
            ))
        return bound

    @staticmethod
    def _reconcile_allocations(order, lines):
        """Draw returned lines off their allocations, then close every allocation of the order"""
        for line in lines:
            if line.allocation_id is None:
                continue
            allocation = fetch_for_update(MaterialAllocation, line.allocation_id, 'Material allocation')
            if line.quantity > allocation.quantity_remaining:
                raise InvalidStateError(
                    f"Allocation {allocation.pk} has only {allocation.quantity_remaining} "
                    f"{allocation.material_name} left; cannot return {line.quantity}",
                    current_state=str(allocation.quantity_remaining),
                )
            allocation.quantity_remaining -= line.quantity
            allocation.quantity_returned += line.quantity
            allocation.save(update_fields=['quantity_remaining', 'quantity_returned'])

        return MaterialReturnService._order_allocations(order).filter(is_reconciled=False).update(
            is_reconciled=True, reconciled_at=timezone.now()
        )

    @staticmethod
    def request_return(actor, production_order_id, materials, notes=''):
        lines = parse_material_lines(materials, 'materials')

        with transaction.atomic():
            order = fetch_for_update(ProductionOrder, production_order_id, 'Production order')

            statuses = list(order.stages.values_list('stage_name', 'status'))
            if not statuses:
                raise InvalidStateError(
                    f"{order.production_number} has no stages; nothing to return from",
                    current_state=order.status,
                )
            open_stages = [f"{name} ({status})" for name, status in statuses if status != StageStatusChoices.COMPLETED]
            if open_stages:
                raise InvalidStateError(
                    f"All production stages must be completed before returning materials; "
                    f"still open: {', '.join(open_stages)}",
                    current_state=order.status,
                    required_states=[StageStatusChoices.COMPLETED],
                )

            existing = order.material_returns.filter(status__in=OPEN_RETURN_STATES).first()
            if existing:
                raise DuplicateEntityError(
                    f"Material return {existing.return_number} is already {existing.status} for this order"
                )

            lines = MaterialReturnService._bind_allocations(order, lines)
            material_return = MaterialReturn.objects.create(
                production_order=order,
                total_materials=lines_to_json(lines),
                notes=notes,
                requested_by=actor,
            )

            NotificationDispatcher.notify_department(Department.INVENTORY, NotificationPayload.for_entity(
                material_return, NotificationTypeChoices.MATERIAL_RETURN_REQUESTED,
                title=f"Material return {material_return.return_number}",
                message=f"{len(lines)} leftover material line(s) from {order.production_number} awaiting approval.",
                priority=NotificationPriorityChoices.NORMAL,
                actor=actor,
                action_required=True,
            ))

        logger.info(f"Material return {material_return.return_number} requested for {order.production_number}")
        return material_return

    @staticmethod
    def approve_return(actor, return_id, notes=''):
        with transaction.atomic():
            material_return = fetch_for_update(MaterialReturn, return_id, 'Material return')
            require_state(material_return, [MaterialReturnStatusChoices.PENDING_APPROVAL], 'approve', 'material return')

            material_return.status = MaterialReturnStatusChoices.APPROVED
            material_return.approval_notes = notes
            material_return.approved_by = actor
            material_return.approved_at = timezone.now()
            material_return.save(update_fields=['status', 'approval_notes', 'approved_by', 'approved_at'])

            NotificationDispatcher.notify_user(material_return.requested_by, NotificationPayload.for_entity(
                material_return, NotificationTypeChoices.MATERIAL_RETURN_APPROVED,
                title=f"Material return {material_return.return_number} approved",
                message="Hand the materials over to inventory for processing.",
                priority=NotificationPriorityChoices.NORMAL,
                actor=actor,
            ))

        logger.info(f"Material return {material_return.return_number} approved")
        return material_return

    @staticmethod
    def reject_return(actor, return_id, reason):
        reason = str(reason or '').strip()
        if not reason:
            raise PayloadValidationError("rejection_reason is required")

        with transaction.atomic():
            material_return = fetch_for_update(MaterialReturn, return_id, 'Material return')
            require_state(material_return, [MaterialReturnStatusChoices.PENDING_APPROVAL], 'reject', 'material return')

            material_return.status = MaterialReturnStatusChoices.REJECTED
            material_return.rejection_reason = reason
            material_return.approved_by = actor
            material_return.approved_at = timezone.now()
            material_return.save(update_fields=['status', 'rejection_reason', 'approved_by', 'approved_at'])

            NotificationDispatcher.notify_department(Department.MANUFACTURING, NotificationPayload.for_entity(
                material_return, NotificationTypeChoices.MATERIAL_RETURN_REJECTED,
                title=f"Material return {material_return.return_number} rejected",
                message=f"Reason: {reason}",
                priority=NotificationPriorityChoices.NORMAL,
                actor=actor,
            ))

        logger.info(f"Material return {material_return.return_number} rejected")
        return material_return

    @staticmethod
    def process_return(actor, return_id):
        """
        Put approved returns back on the shelf: one production_return
        movement per inventory-linked line, and every allocation of the
        order marked reconciled
        """
        with transaction.atomic():
            material_return = fetch_for_update(MaterialReturn, return_id, 'Material return')
            require_state(material_return, [MaterialReturnStatusChoices.APPROVED], 'process', 'material return')
            order = material_return.production_order

            lines = parse_material_lines(material_return.total_materials, 'total_materials')
            reconciled = MaterialReturnService._reconcile_allocations(order, lines)
            movements = InventoryTransactionManager.receive_materials(
                [line.as_stock_line() for line in lines],
                InventoryMovementTypeChoices.PRODUCTION_RETURN,
                user=actor, reference=material_return,
                notes=f"Returned from {order.production_number}",
            )

            material_return.status = MaterialReturnStatusChoices.RETURNED
            material_return.returned_by = actor
            material_return.returned_at = timezone.now()
            material_return.save(update_fields=['status', 'returned_by', 'returned_at'])

            payload = NotificationPayload.for_entity(
                material_return, NotificationTypeChoices.MATERIAL_RETURN_PROCESSED,
                title=f"Material return {material_return.return_number} processed",
                message=f"{len(movements)} inventory item(s) restocked, {reconciled} allocation(s) reconciled.",
                priority=NotificationPriorityChoices.LOW,
                actor=actor,
            )
            NotificationDispatcher.notify_user(material_return.requested_by, payload)

        logger.info(f"Material return {material_return.return_number} processed "
                    f"({len(movements)} movements, {reconciled} allocations reconciled)")
        return material_return
