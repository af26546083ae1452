"""
Material Workflow Service
Handles the material chain from request to production start:
MRN -> dispatch -> receipt -> verification -> production approval -> start
"""
import dataclasses
import logging

from django.db import transaction
from django.utils import timezone

from inventory.models import (
    InventoryItem, MaterialAllocation, MaterialDispatch, ProjectMaterialRequest
)
from inventory.transaction_manager import InventoryTransactionManager
from notifications.dispatcher import NotificationDispatcher, NotificationPayload
from sales.models import SalesOrder
from utils.config import get_workflow_setting
from utils.enums import (
    ApprovalDecisionChoices, Department, DispatchReceivedStatusChoices,
    InventoryMovementTypeChoices, MaterialRequestStatusChoices, NotificationPriorityChoices,
    NotificationTypeChoices, PriorityChoices, ReceiptVerificationStatusChoices,
    SalesOrderStatusChoices, VerificationApprovalStatusChoices, VerificationResultChoices
)
from utils.exceptions import (
    ConcurrencyConflictError, InvalidStateError, NotFoundError, PayloadValidationError
)
from utils.line_items import lines_to_json, parse_material_lines
from utils.transitions import fetch_for_update, require_state
from .models import (
    MaterialReceipt, MaterialVerification, ProductionApproval, ProductionOrder, ProductionRequest
)

logger = logging.getLogger(__name__)


class MaterialWorkflowService:
    """
    Central service for moving materials from inventory into production
    """

    @staticmethod
    def _resolve_inventory(lines):
        """Check referenced inventory items exist and fill in missing material names"""
        ids = {line.inventory_id for line in lines if line.inventory_id is not None}
        items = InventoryItem.objects.in_bulk(ids)
        missing = sorted(ids - set(items))
        if missing:
            raise NotFoundError(f"Inventory item(s) not found: {', '.join(str(pk) for pk in missing)}")

        resolved = []
        for line in lines:
            if line.inventory_id is not None and not line.material_name:
                line = dataclasses.replace(line, material_name=items[line.inventory_id].name)
            resolved.append(line)
        return resolved

    @staticmethod
    def create_material_request(actor, project_name, materials, sales_order_id=None,
                                production_request_id=None, priority=PriorityChoices.MEDIUM,
                                required_date=None, notes=''):
        """
        Manufacturing raises an MRN for the materials a project needs
        """
        if not str(project_name or '').strip():
            raise PayloadValidationError("project_name is required")
        lines = parse_material_lines(materials, 'materials')

        with transaction.atomic():
            lines = MaterialWorkflowService._resolve_inventory(lines)
            sales_order = None
            if sales_order_id:
                sales_order = fetch_for_update(SalesOrder, sales_order_id, 'Sales order')
            production_request = None
            if production_request_id:
                production_request = fetch_for_update(ProductionRequest, production_request_id, 'Production request')

            mrn = ProjectMaterialRequest.objects.create(
                project_name=project_name.strip(),
                sales_order=sales_order,
                production_request=production_request,
                requesting_department=getattr(actor, 'department', None) or Department.MANUFACTURING,
                materials_requested=lines_to_json(lines),
                priority=priority,
                required_date=required_date,
                notes=notes,
                created_by=actor,
            )

            NotificationDispatcher.notify_department(Department.INVENTORY, NotificationPayload.for_entity(
                mrn, NotificationTypeChoices.MATERIAL_REQUEST_CREATED,
                title=f"Material request {mrn.request_number}",
                message=f"{len(lines)} material line(s) requested for {mrn.project_name}.",
                priority=NotificationPriorityChoices.NORMAL,
                actor=actor,
                action_required=True,
            ))

        logger.info(f"Material request {mrn.request_number} created for {mrn.project_name}")
        return mrn

    @staticmethod
    def create_dispatch(actor, mrn_request_id, dispatched_materials, dispatch_notes=''):
        """
        Inventory dispatches materials against an MRN and decrements stock
        """
        lines = parse_material_lines(
            dispatched_materials, 'dispatched_materials',
            quantity_keys=('quantity_dispatched', 'quantity')
        )

        with transaction.atomic():
            mrn = fetch_for_update(ProjectMaterialRequest, mrn_request_id, 'Material request')

            if not get_workflow_setting('ALLOW_MULTIPLE_DISPATCHES_PER_REQUEST'):
                active = mrn.dispatches.filter(received_status=DispatchReceivedStatusChoices.PENDING).first()
                if active:
                    raise ConcurrencyConflictError(
                        f"Dispatch {active.dispatch_number} for {mrn.request_number} has not been received yet; "
                        f"only one active dispatch per material request is allowed"
                    )

            lines = MaterialWorkflowService._resolve_inventory(lines)
            dispatch = MaterialDispatch.objects.create(
                mrn_request=mrn,
                project_name=mrn.project_name,
                dispatched_materials=lines_to_json(lines, 'quantity_dispatched'),
                total_items=len(lines),
                dispatch_notes=dispatch_notes,
                dispatched_by=actor,
            )

            InventoryTransactionManager.issue_materials(
                [line.as_stock_line() for line in lines],
                InventoryMovementTypeChoices.DISPATCH_TO_MANUFACTURING,
                user=actor, reference=dispatch,
                notes=f"Dispatched to {mrn.project_name} ({mrn.request_number})",
            )

            mrn.status = MaterialRequestStatusChoices.MATERIALS_ISSUED
            mrn.processed_by = actor
            mrn.processed_at = timezone.now()
            mrn.save(update_fields=['status', 'processed_by', 'processed_at', 'updated_at'])

            NotificationDispatcher.notify_user(mrn.created_by, NotificationPayload.for_entity(
                dispatch, NotificationTypeChoices.MATERIAL_DISPATCHED,
                title=f"Materials dispatched for {mrn.request_number}",
                message=f"{dispatch.dispatch_number}: {len(lines)} item(s) dispatched to {mrn.project_name}. "
                        f"Please confirm receipt.",
                priority=NotificationPriorityChoices.HIGH,
                actor=actor,
                action_required=True,
            ))

        logger.info(f"Dispatch {dispatch.dispatch_number} created for {mrn.request_number}")
        return dispatch

    @staticmethod
    def create_receipt(actor, dispatch_id, received_materials, has_discrepancy=False,
                       discrepancy_details=None, receipt_notes=''):
        """
        Manufacturing confirms what physically arrived against a dispatch
        """
        lines = parse_material_lines(
            received_materials, 'received_materials',
            quantity_keys=('quantity_received', 'quantity')
        )
        has_discrepancy = bool(has_discrepancy)
        if isinstance(discrepancy_details, str):
            discrepancy_details = {'notes': discrepancy_details}
        if has_discrepancy and not discrepancy_details:
            raise PayloadValidationError("discrepancy_details are required when has_discrepancy is true")

        with transaction.atomic():
            dispatch = fetch_for_update(MaterialDispatch, dispatch_id, 'Material dispatch')
            require_state(
                dispatch, [DispatchReceivedStatusChoices.PENDING],
                'receive', 'dispatch', field='received_status'
            )
            mrn = fetch_for_update(ProjectMaterialRequest, dispatch.mrn_request_id, 'Material request')

            receipt = MaterialReceipt.objects.create(
                mrn_request=mrn,
                dispatch=dispatch,
                received_materials=lines_to_json(lines, 'quantity_received'),
                has_discrepancy=has_discrepancy,
                discrepancy_details=discrepancy_details or {},
                receipt_notes=receipt_notes,
                received_by=actor,
            )

            dispatch.received_status = (
                DispatchReceivedStatusChoices.DISCREPANCY if has_discrepancy
                else DispatchReceivedStatusChoices.RECEIVED
            )
            dispatch.save(update_fields=['received_status'])

            mrn.status = (
                MaterialRequestStatusChoices.PARTIALLY_ISSUED if has_discrepancy
                else MaterialRequestStatusChoices.ISSUED
            )
            mrn.save(update_fields=['status', 'updated_at'])

            sales_order = None
            if mrn.sales_order_id and not has_discrepancy:
                sales_order = fetch_for_update(SalesOrder, mrn.sales_order_id, 'Sales order')
                sales_order.record_lifecycle(
                    SalesOrderStatusChoices.MATERIALS_RECEIVED, actor,
                    note=f"Materials received via {receipt.receipt_number}"
                )
                sales_order.save(update_fields=['status', 'lifecycle_history', 'updated_at'])

            if has_discrepancy:
                payload = NotificationPayload.for_entity(
                    receipt, NotificationTypeChoices.MATERIAL_DISCREPANCY,
                    title=f"Discrepancy on {dispatch.dispatch_number}",
                    message=f"Receipt {receipt.receipt_number} reported a discrepancy against your dispatch.",
                    priority=NotificationPriorityChoices.HIGH,
                    actor=actor,
                    action_required=True,
                )
            else:
                payload = NotificationPayload.for_entity(
                    receipt, NotificationTypeChoices.MATERIAL_RECEIVED,
                    title=f"{dispatch.dispatch_number} received",
                    message=f"Manufacturing confirmed receipt {receipt.receipt_number} for {mrn.project_name}.",
                    priority=NotificationPriorityChoices.MEDIUM,
                    actor=actor,
                )
            NotificationDispatcher.notify_user(dispatch.dispatched_by, payload)

            if sales_order is not None:
                NotificationDispatcher.notify_user(actor, NotificationPayload.for_entity(
                    receipt, NotificationTypeChoices.PRODUCTION_READY,
                    title=f"{sales_order.order_number} ready for verification",
                    message=f"All materials for {sales_order.order_number} received. Verify them to start production.",
                    priority=NotificationPriorityChoices.HIGH,
                    actor=actor,
                    action_required=True,
                ))

        logger.info(f"Receipt {receipt.receipt_number} recorded for {dispatch.dispatch_number} "
                    f"({dispatch.received_status})")
        return receipt

    @staticmethod
    def create_verification(actor, receipt_id, verification_checklist=None, overall_result=None,
                            issues_found=None, verification_notes=''):
        """
        QA verifies received materials
        """
        if overall_result not in VerificationResultChoices.values:
            raise PayloadValidationError("overall_result must be 'passed' or 'failed'")
        if verification_checklist is not None and not isinstance(verification_checklist, (dict, list)):
            raise PayloadValidationError("verification_checklist must be an object or a list")

        with transaction.atomic():
            receipt = fetch_for_update(MaterialReceipt, receipt_id, 'Material receipt')
            require_state(
                receipt, [ReceiptVerificationStatusChoices.PENDING],
                'verify', 'receipt', field='verification_status'
            )

            verification = MaterialVerification.objects.create(
                mrn_request_id=receipt.mrn_request_id,
                receipt=receipt,
                verification_checklist=verification_checklist or {},
                overall_result=overall_result,
                issues_found=issues_found or [],
                verification_notes=verification_notes,
                verified_by=actor,
            )

            receipt.verification_status = (
                ReceiptVerificationStatusChoices.VERIFIED if verification.passed
                else ReceiptVerificationStatusChoices.FAILED
            )
            receipt.save(update_fields=['verification_status'])

            mrn = receipt.mrn_request
            if verification.passed:
                payload = NotificationPayload.for_entity(
                    verification, NotificationTypeChoices.VERIFICATION_PASSED,
                    title=f"Materials verified for {mrn.request_number}",
                    message=f"{verification.verification_number} passed. Production approval can proceed.",
                    priority=NotificationPriorityChoices.MEDIUM,
                    actor=actor,
                    action_required=True,
                )
            else:
                payload = NotificationPayload.for_entity(
                    verification, NotificationTypeChoices.VERIFICATION_FAILED,
                    title=f"Material verification failed for {mrn.request_number}",
                    message=f"{verification.verification_number} failed QA. Review the issues before re-requesting.",
                    priority=NotificationPriorityChoices.HIGH,
                    actor=actor,
                    action_required=True,
                )
            NotificationDispatcher.notify_department(mrn.requesting_department, payload)

        logger.info(f"Verification {verification.verification_number} recorded: {overall_result}")
        return verification

    @staticmethod
    def create_approval(actor, verification_id, approval_status, material_allocations=None,
                        production_start_date=None, approval_notes='', rejection_reason='', conditions=''):
        """
        Manager approves or rejects production with verified materials
        """
        if approval_status not in ApprovalDecisionChoices.values:
            raise PayloadValidationError("approval_status must be 'approved' or 'rejected'")
        is_approved = approval_status == ApprovalDecisionChoices.APPROVED
        if not is_approved and not str(rejection_reason or '').strip():
            raise PayloadValidationError("rejection_reason is required when rejecting")
        allocation_lines = parse_material_lines(
            material_allocations or [], 'material_allocations',
            quantity_keys=('quantity_allocated', 'quantity'), allow_empty=True
        )

        with transaction.atomic():
            verification = fetch_for_update(MaterialVerification, verification_id, 'Material verification')
            if not verification.passed:
                raise InvalidStateError(
                    "Cannot approve materials that failed verification",
                    current_state=verification.overall_result,
                    required_states=[VerificationResultChoices.PASSED],
                )
            require_state(
                verification, [VerificationApprovalStatusChoices.PENDING],
                'decide on', 'verification', field='approval_status'
            )
            mrn = fetch_for_update(ProjectMaterialRequest, verification.mrn_request_id, 'Material request')
            allocation_lines = MaterialWorkflowService._resolve_inventory(allocation_lines)

            approval = ProductionApproval.objects.create(
                mrn_request=mrn,
                verification=verification,
                approval_status=approval_status,
                material_allocations=lines_to_json(allocation_lines, 'quantity_allocated'),
                production_start_date=production_start_date,
                approval_notes=approval_notes,
                rejection_reason=rejection_reason or '',
                conditions=conditions,
                approved_by=actor,
            )

            verification.approval_status = (
                VerificationApprovalStatusChoices.APPROVED if is_approved
                else VerificationApprovalStatusChoices.REJECTED
            )
            verification.save(update_fields=['approval_status'])

            if is_approved:
                mrn.status = MaterialRequestStatusChoices.MATERIALS_READY
                MaterialAllocation.objects.bulk_create([
                    MaterialAllocation(
                        mrn_request=mrn,
                        production_approval=approval,
                        inventory_id=line.inventory_id,
                        material_name=line.material_name,
                        unit=line.unit,
                        quantity_allocated=line.quantity,
                        quantity_remaining=line.quantity,
                        allocated_by=actor,
                    )
                    for line in allocation_lines
                ])
            else:
                mrn.status = MaterialRequestStatusChoices.CANCELLED
                mrn.completed_at = timezone.now()
            mrn.save(update_fields=['status', 'completed_at', 'updated_at'])

            NotificationDispatcher.notify_user(mrn.created_by, NotificationPayload.for_entity(
                approval,
                NotificationTypeChoices.PRODUCTION_APPROVED if is_approved
                else NotificationTypeChoices.PRODUCTION_REJECTED,
                title=f"Production {approval_status} for {mrn.request_number}",
                message=(
                    f"{approval.approval_number}: materials are ready, production can start."
                    if is_approved else
                    f"{approval.approval_number}: production rejected. Reason: {rejection_reason}"
                ),
                priority=NotificationPriorityChoices.HIGH,
                actor=actor,
                action_required=is_approved,
            ))

        logger.info(f"Production approval {approval.approval_number} {approval_status} for {mrn.request_number}")
        return approval

    @staticmethod
    def start_production(actor, approval_id, production_order_id=None):
        """
        Flip an approved approval to started and close out its MRN
        """
        with transaction.atomic():
            approval = fetch_for_update(ProductionApproval, approval_id, 'Production approval')
            if approval.approval_status != ApprovalDecisionChoices.APPROVED:
                raise InvalidStateError(
                    "Can only start production for approved requests",
                    current_state=approval.approval_status,
                    required_states=[ApprovalDecisionChoices.APPROVED],
                )
            if approval.production_started:
                raise InvalidStateError(
                    "Production already started for this approval",
                    current_state='started',
                    required_states=['not_started'],
                )

            order = None
            if production_order_id:
                order = fetch_for_update(ProductionOrder, production_order_id, 'Production order')

            now = timezone.now()
            approval.production_started = True
            approval.production_started_at = now
            approval.production_order = order
            approval.save(update_fields=['production_started', 'production_started_at', 'production_order'])

            mrn = fetch_for_update(ProjectMaterialRequest, approval.mrn_request_id, 'Material request')
            mrn.status = MaterialRequestStatusChoices.COMPLETED
            mrn.completed_at = now
            mrn.save(update_fields=['status', 'completed_at', 'updated_at'])

            if order is not None:
                approval.allocations.filter(production_order__isnull=True).update(production_order=order)
                if order.production_approval_id is None:
                    order.production_approval = approval
                    order.save(update_fields=['production_approval', 'updated_at'])

            NotificationDispatcher.notify_department(Department.MANUFACTURING, NotificationPayload.for_entity(
                approval, NotificationTypeChoices.PRODUCTION_STARTED,
                title=f"Production started for {mrn.project_name}",
                message=f"{approval.approval_number} started"
                        + (f" on {order.production_number}." if order else "."),
                priority=NotificationPriorityChoices.NORMAL,
                actor=actor,
            ))

        logger.info(f"Production started from approval {approval.approval_number}")
        return approval
