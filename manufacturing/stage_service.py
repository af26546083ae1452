"""
Stage Execution Service
Shop-floor state machine for production orders:
pending -> in_progress -> completed, with hold/pause/resume, skip, rework,
late detection (freeze) and quality-checkpoint gating
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.utils import timezone

from inventory.models import InventoryItem, MaterialAllocation
from inventory.transaction_manager import InventoryTransactionManager
from notifications.dispatcher import NotificationDispatcher, NotificationPayload
from sales.models import SalesOrder
from utils.config import get_workflow_setting
from utils.enums import (
    ApprovalDecisionChoices, CheckpointResultChoices, Department, InventoryMovementTypeChoices,
    MaterialSourceChoices, NotificationPriorityChoices, NotificationTypeChoices, PriorityChoices,
    ProductionOrderStatusChoices, ProductionRequestStatusChoices, RejectionSeverityChoices,
    SalesOrderStatusChoices, StageStatusChoices
)
from utils.exceptions import InvalidStateError, NotFoundError, PayloadValidationError
from utils.line_items import parse_material_lines
from utils.transitions import (
    fetch_for_update, require_list, require_state, to_datetime, to_decimal, to_quantity
)
from .models import (
    MaterialConsumption, ProductionApproval, ProductionOrder, ProductionStage,
    QualityCheckpoint, Rejection, StageReworkHistory
)

logger = logging.getLogger(__name__)

TERMINAL_STAGE_STATES = [StageStatusChoices.COMPLETED, StageStatusChoices.SKIPPED]
STAGE_UPDATE_FIELDS = [
    'status', 'actual_start_time', 'actual_end_time', 'actual_duration_hours',
    'quantity_processed', 'quantity_approved', 'quantity_rejected',
    'is_late', 'is_frozen', 'late_reason', 'delay_reason',
    'quality_approved', 'approved_by', 'approved_at', 'total_material_used', 'notes', 'updated_at',
]


class StageExecutionService:
    """
    All stage transitions lock the owning order first, then every stage of
    that order, so ordering checks always see live rows.
    """

    # ==================== ORDER CREATION ====================

    @staticmethod
    def _build_stage_plan(stages, planned_start, planned_end):
        if stages is None:
            stages = list(get_workflow_setting('DEFAULT_PRODUCTION_STAGES'))
        stages = require_list(stages, 'stages')

        plan = []
        for index, entry in enumerate(stages, start=1):
            if isinstance(entry, str):
                entry = {'stage_name': entry}
            if not isinstance(entry, dict):
                raise PayloadValidationError(f"stages line {index} must be a stage name or an object")
            name = str(entry.get('stage_name') or '').strip()
            if not name:
                raise PayloadValidationError(f"stages line {index}.stage_name is required")
            stage_order = to_quantity(entry.get('stage_order', index), f"stages line {index}.stage_order", allow_zero=False)
            plan.append({
                'stage_name': name,
                'stage_order': stage_order,
                'planned_start_time': entry.get('planned_start_time'),
                'planned_end_time': entry.get('planned_end_time'),
            })

        for previous, current in zip(plan, plan[1:]):
            if current['stage_order'] <= previous['stage_order']:
                raise PayloadValidationError(
                    f"stage_order must be strictly increasing: {current['stage_name']} "
                    f"({current['stage_order']}) follows {previous['stage_name']} ({previous['stage_order']})"
                )

        # Spread the order window evenly over stages without explicit times
        slot = (planned_end - planned_start) / len(plan)
        for index, entry in enumerate(plan):
            default_start = planned_start + slot * index
            entry['planned_start_time'] = (
                to_datetime(entry['planned_start_time'], f"{entry['stage_name']}.planned_start_time")
                if entry['planned_start_time'] else default_start
            )
            entry['planned_end_time'] = (
                to_datetime(entry['planned_end_time'], f"{entry['stage_name']}.planned_end_time")
                if entry['planned_end_time'] else default_start + slot
            )
        return plan

    @staticmethod
    def create_production_order(actor, product_name, quantity, planned_start_date, planned_end_date,
                                stages=None, checkpoints=None, sales_order_id=None,
                                production_approval_id=None, priority=PriorityChoices.MEDIUM,
                                supervisor=None, notes=''):
        """
        Create an order with its stages seeded in stage_order, all pending.
        checkpoints=None binds one inspection checkpoint to every stage.
        """
        product_name = str(product_name or '').strip()
        if not product_name:
            raise PayloadValidationError("product_name is required")
        quantity = to_quantity(quantity, 'quantity', allow_zero=False)
        planned_start = to_datetime(planned_start_date, 'planned_start_date')
        planned_end = to_datetime(planned_end_date, 'planned_end_date')
        if planned_end <= planned_start:
            raise PayloadValidationError("planned_end_date must be after planned_start_date")
        plan = StageExecutionService._build_stage_plan(stages, planned_start, planned_end)
        if checkpoints is not None:
            checkpoints = require_list(checkpoints, 'checkpoints', allow_empty=True)

        with transaction.atomic():
            approval = None
            if production_approval_id:
                approval = fetch_for_update(ProductionApproval, production_approval_id, 'Production approval')
                require_state(
                    approval, [ApprovalDecisionChoices.APPROVED],
                    'create a production order from', 'production approval', field='approval_status'
                )

            sales_order = None
            if sales_order_id:
                sales_order = fetch_for_update(SalesOrder, sales_order_id, 'Sales order')
                require_state(
                    sales_order,
                    [SalesOrderStatusChoices.CONFIRMED, SalesOrderStatusChoices.PRODUCTION_REQUESTED,
                     SalesOrderStatusChoices.MATERIALS_RECEIVED, SalesOrderStatusChoices.IN_PRODUCTION],
                    'start production for', 'sales order'
                )

            order = ProductionOrder.objects.create(
                sales_order=sales_order,
                production_approval=approval,
                product_name=product_name,
                quantity=quantity,
                priority=priority,
                planned_start_date=planned_start,
                planned_end_date=planned_end,
                notes=notes,
                supervisor=supervisor,
                created_by=actor,
            )

            created_stages = [
                ProductionStage.objects.create(production_order=order, **entry) for entry in plan
            ]
            stages_by_key = {}
            for stage in created_stages:
                stages_by_key[stage.stage_order] = stage
                stages_by_key[stage.stage_name] = stage

            if checkpoints is None:
                checkpoint_rows = [
                    QualityCheckpoint(
                        production_order=order,
                        production_stage=stage,
                        name=f"{stage.stage_name.replace('_', ' ').title()} inspection",
                        checkpoint_order=index,
                    )
                    for index, stage in enumerate(created_stages, start=1)
                ]
            else:
                checkpoint_rows = []
                for index, entry in enumerate(checkpoints, start=1):
                    if not isinstance(entry, dict) or not str(entry.get('name') or '').strip():
                        raise PayloadValidationError(f"checkpoints line {index}.name is required")
                    bound_to = entry.get('stage_order', entry.get('stage_name'))
                    stage = None
                    if bound_to not in (None, ''):
                        stage = stages_by_key.get(bound_to)
                        if stage is None:
                            raise PayloadValidationError(
                                f"checkpoints line {index} references unknown stage '{bound_to}'"
                            )
                    checkpoint_rows.append(QualityCheckpoint(
                        production_order=order,
                        production_stage=stage,
                        name=entry['name'].strip(),
                        acceptance_criteria=entry.get('acceptance_criteria') or '',
                        checkpoint_order=index,
                    ))
            QualityCheckpoint.objects.bulk_create(checkpoint_rows)

            if approval is not None:
                approval.allocations.filter(production_order__isnull=True).update(production_order=order)

            if sales_order is not None and sales_order.status != SalesOrderStatusChoices.IN_PRODUCTION:
                sales_order.record_lifecycle(
                    SalesOrderStatusChoices.IN_PRODUCTION, actor,
                    note=f"Production order {order.production_number} created"
                )
                sales_order.save(update_fields=['status', 'lifecycle_history', 'updated_at'])

            NotificationDispatcher.notify_department(Department.MANUFACTURING, NotificationPayload.for_entity(
                order, NotificationTypeChoices.PRODUCTION_ORDER_CREATED,
                title=f"Production order {order.production_number}",
                message=f"{order.quantity} x {order.product_name} scheduled across {len(created_stages)} stage(s).",
                priority=NotificationPriorityChoices.NORMAL,
                actor=actor,
            ))

        logger.info(f"Production order {order.production_number} created with {len(created_stages)} stages")
        return order

    # ==================== INTERNAL HELPERS ====================

    @staticmethod
    def _lock_stage_and_order(stage_id):
        """Lock the order, then all of its stages; returns (stage, order, stages)"""
        if stage_id in (None, ''):
            raise PayloadValidationError("Production stage id is required")
        try:
            order_id = ProductionStage.objects.values_list('production_order_id', flat=True).get(pk=stage_id)
        except (ProductionStage.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Production stage not found")

        order = fetch_for_update(ProductionOrder, order_id, 'Production order')
        stages = list(
            ProductionStage.objects.select_for_update().filter(production_order=order).order_by('stage_order')
        )
        stage = next(s for s in stages if s.pk == int(stage_id))
        for s in stages:
            s.production_order = order
        return stage, order, stages

    @staticmethod
    def _ensure_not_frozen(stage):
        if stage.is_frozen:
            raise InvalidStateError(
                "Stage is frozen due to exceeding deadline. Contact supervisor.",
                current_state='frozen',
                required_states=['unfrozen'],
            )

    @staticmethod
    def _ensure_predecessors_done(stage, stages):
        blocking = [
            s for s in stages
            if s.stage_order < stage.stage_order and s.status not in TERMINAL_STAGE_STATES
        ]
        if blocking:
            names = ', '.join(f"{s.stage_name} ({s.status})" for s in blocking)
            raise InvalidStateError(
                f"Cannot start {stage.stage_name}: previous stages must be completed or skipped first: {names}",
                current_state=blocking[0].status,
                required_states=TERMINAL_STAGE_STATES,
            )

    @staticmethod
    def _validate_quantities(processed, approved, rejected):
        if approved + rejected > processed:
            raise PayloadValidationError(
                f"Approved + Rejected cannot exceed Processed quantity "
                f"({approved} + {rejected} > {processed})"
            )

    @staticmethod
    def _quantities_from(stage, quantity_processed, quantity_approved, quantity_rejected):
        processed = stage.quantity_processed if quantity_processed is None else to_quantity(
            quantity_processed, 'quantity_processed')
        approved = stage.quantity_approved if quantity_approved is None else to_quantity(
            quantity_approved, 'quantity_approved')
        rejected = stage.quantity_rejected if quantity_rejected is None else to_quantity(
            quantity_rejected, 'quantity_rejected')
        StageExecutionService._validate_quantities(processed, approved, rejected)
        return processed, approved, rejected

    @staticmethod
    def _finish_stage(stage, actor=None, approved=False):
        now = timezone.now()
        stage.status = StageStatusChoices.COMPLETED
        if stage.actual_start_time is None:
            stage.actual_start_time = now
        if stage.actual_end_time is None:
            stage.actual_end_time = now
        stage.actual_duration_hours = stage.compute_duration_hours()
        if approved:
            stage.approved_by = actor
            stage.approved_at = now

    @staticmethod
    def _apply_late_detection(stage, order, actor=None):
        """Freeze a stage that finished after its planned end; returns True when it froze"""
        if not stage.actual_end_time or not stage.planned_end_time:
            return False
        if stage.actual_end_time <= stage.planned_end_time:
            return False

        overrun = stage.actual_end_time - stage.planned_end_time
        stage.is_late = True
        stage.is_frozen = True
        stage.late_reason = (
            f"Finished {overrun} after planned end "
            f"{timezone.localtime(stage.planned_end_time):%Y-%m-%d %H:%M}"
        )
        if stage.status == StageStatusChoices.IN_PROGRESS:
            stage.status = StageStatusChoices.ON_HOLD

        NotificationDispatcher.notify_department(Department.MANUFACTURING, NotificationPayload.for_entity(
            order, NotificationTypeChoices.STAGE_LATE,
            title=f"{stage.stage_name} late on {order.production_number}",
            message=f"{stage.late_reason}. The stage is frozen until a supervisor unfreezes the order.",
            priority=NotificationPriorityChoices.HIGH,
            actor=actor,
            action_required=True,
        ))
        logger.warning(f"Stage {stage.stage_name} of {order.production_number} frozen: {stage.late_reason}")
        return True

    @staticmethod
    def recalculate_order_rollup(order, stages=None, actor=None):
        """
        progress = round(100 * completed / total) with half-up rounding.
        Skipped stages stay in the total but never count as completed, so an
        order with a skipped stage never reaches 100. Quantities are summed
        over all stages. Reaching 100 completes the order; dropping below it
        (rework) reopens a completed order.
        """
        if stages is None:
            stages = list(order.stages.all())
        total = len(stages)
        completed = sum(1 for s in stages if s.status == StageStatusChoices.COMPLETED)
        progress = 0
        if total:
            progress = int((Decimal(100 * completed) / Decimal(total)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))

        order.progress_percentage = progress
        order.approved_quantity = sum(s.quantity_approved for s in stages)
        order.rejected_quantity = sum(s.quantity_rejected for s in stages)
        order.produced_quantity = order.approved_quantity + order.rejected_quantity

        completed_now = False
        if progress == 100 and order.status != ProductionOrderStatusChoices.COMPLETED:
            order.status = ProductionOrderStatusChoices.COMPLETED
            order.actual_end_date = timezone.now()
            completed_now = True
        elif progress < 100 and order.status == ProductionOrderStatusChoices.COMPLETED:
            order.status = ProductionOrderStatusChoices.IN_PROGRESS
            order.actual_end_date = None

        order.save(update_fields=[
            'progress_percentage', 'approved_quantity', 'rejected_quantity', 'produced_quantity',
            'status', 'actual_end_date', 'updated_at'
        ])

        if completed_now:
            StageExecutionService._on_order_completed(order, actor)
        return order

    @staticmethod
    def _on_order_completed(order, actor=None):
        now = timezone.now()
        order.production_requests.filter(
            status=ProductionRequestStatusChoices.IN_PRODUCTION
        ).update(status=ProductionRequestStatusChoices.COMPLETED, completed_at=now, updated_at=now)

        if order.sales_order_id:
            sales_order = SalesOrder.objects.select_for_update().get(pk=order.sales_order_id)
            if sales_order.status == SalesOrderStatusChoices.IN_PRODUCTION:
                sales_order.record_lifecycle(
                    SalesOrderStatusChoices.COMPLETED, actor,
                    note=f"Production order {order.production_number} completed"
                )
                sales_order.save(update_fields=['status', 'lifecycle_history', 'updated_at'])

        payload = NotificationPayload.for_entity(
            order, NotificationTypeChoices.PRODUCTION_COMPLETED,
            title=f"Production order {order.production_number} completed",
            message=f"{order.approved_quantity} approved, {order.rejected_quantity} rejected "
                    f"of {order.quantity} x {order.product_name}.",
            priority=NotificationPriorityChoices.HIGH,
            actor=actor,
        )
        NotificationDispatcher.notify_department(Department.MANUFACTURING, payload)
        if order.sales_order_id:
            NotificationDispatcher.notify_department(Department.SALES, payload)
        logger.info(f"Production order {order.production_number} completed")

    @staticmethod
    def _save_stage(stage):
        stage.save(update_fields=STAGE_UPDATE_FIELDS)

    # ==================== STAGE TRANSITIONS ====================

    @staticmethod
    def start_stage(actor, stage_id, notes=''):
        with transaction.atomic():
            stage, order, stages = StageExecutionService._lock_stage_and_order(stage_id)
            StageExecutionService._ensure_not_frozen(stage)
            require_state(stage, [StageStatusChoices.PENDING, StageStatusChoices.ON_HOLD], 'start', 'stage')
            StageExecutionService._ensure_predecessors_done(stage, stages)

            now = timezone.now()
            stage.status = StageStatusChoices.IN_PROGRESS
            if stage.actual_start_time is None:
                stage.actual_start_time = now
            if notes:
                stage.notes = notes
            StageExecutionService._save_stage(stage)

            if order.status in [ProductionOrderStatusChoices.PENDING, ProductionOrderStatusChoices.ON_HOLD]:
                order.status = ProductionOrderStatusChoices.IN_PROGRESS
                if order.actual_start_date is None:
                    order.actual_start_date = now
                order.save(update_fields=['status', 'actual_start_date', 'updated_at'])

            NotificationDispatcher.notify_user(stage.assigned_to, NotificationPayload.for_entity(
                order, NotificationTypeChoices.STAGE_STARTED,
                title=f"{stage.stage_name} started on {order.production_number}",
                message=f"Stage {stage.stage_order} ({stage.stage_name}) is now in progress.",
                actor=actor,
            ))

        logger.info(f"Stage {stage.stage_name} of {order.production_number} started")
        return stage

    @staticmethod
    def pause_stage(actor, stage_id, reason=''):
        with transaction.atomic():
            stage, order, _ = StageExecutionService._lock_stage_and_order(stage_id)
            StageExecutionService._ensure_not_frozen(stage)
            require_state(stage, [StageStatusChoices.IN_PROGRESS], 'pause', 'stage')

            stage.status = StageStatusChoices.ON_HOLD
            stage.delay_reason = reason or stage.delay_reason
            StageExecutionService._save_stage(stage)

        logger.info(f"Stage {stage.stage_name} of {order.production_number} paused")
        return stage

    @staticmethod
    def hold_stage(actor, stage_id, reason=''):
        with transaction.atomic():
            stage, order, _ = StageExecutionService._lock_stage_and_order(stage_id)
            StageExecutionService._ensure_not_frozen(stage)
            require_state(stage, [StageStatusChoices.PENDING, StageStatusChoices.IN_PROGRESS], 'hold', 'stage')

            stage.status = StageStatusChoices.ON_HOLD
            stage.delay_reason = reason or stage.delay_reason
            StageExecutionService._save_stage(stage)

        logger.info(f"Stage {stage.stage_name} of {order.production_number} put on hold")
        return stage

    @staticmethod
    def resume_stage(actor, stage_id):
        with transaction.atomic():
            stage, order, stages = StageExecutionService._lock_stage_and_order(stage_id)
            StageExecutionService._ensure_not_frozen(stage)
            require_state(stage, [StageStatusChoices.ON_HOLD], 'resume', 'stage')
            StageExecutionService._ensure_predecessors_done(stage, stages)

            stage.status = StageStatusChoices.IN_PROGRESS
            if stage.actual_start_time is None:
                stage.actual_start_time = timezone.now()
            StageExecutionService._save_stage(stage)

        logger.info(f"Stage {stage.stage_name} of {order.production_number} resumed")
        return stage

    @staticmethod
    def skip_stage(actor, stage_id, reason=''):
        with transaction.atomic():
            stage, order, stages = StageExecutionService._lock_stage_and_order(stage_id)
            StageExecutionService._ensure_not_frozen(stage)
            require_state(stage, [StageStatusChoices.PENDING, StageStatusChoices.ON_HOLD], 'skip', 'stage')

            stage.status = StageStatusChoices.SKIPPED
            if reason:
                stage.notes = reason
            StageExecutionService._save_stage(stage)
            StageExecutionService.recalculate_order_rollup(order, stages, actor)

        logger.info(f"Stage {stage.stage_name} of {order.production_number} skipped")
        return stage

    @staticmethod
    def complete_stage(actor, stage_id, quantity_processed=None, quantity_approved=None,
                       quantity_rejected=None, notes=''):
        with transaction.atomic():
            stage, order, stages = StageExecutionService._lock_stage_and_order(stage_id)
            StageExecutionService._ensure_not_frozen(stage)
            require_state(stage, [StageStatusChoices.IN_PROGRESS], 'complete', 'stage')
            processed, approved, rejected = StageExecutionService._quantities_from(
                stage, quantity_processed, quantity_approved, quantity_rejected
            )

            stage.quantity_processed = processed
            stage.quantity_approved = approved
            stage.quantity_rejected = rejected
            if notes:
                stage.notes = notes
            StageExecutionService._finish_stage(stage)
            StageExecutionService._apply_late_detection(stage, order, actor)
            StageExecutionService._save_stage(stage)
            StageExecutionService.recalculate_order_rollup(order, stages, actor)

            NotificationDispatcher.notify_department(Department.QA, NotificationPayload.for_entity(
                order, NotificationTypeChoices.STAGE_COMPLETED,
                title=f"{stage.stage_name} completed on {order.production_number}",
                message=f"Processed {processed}, approved {approved}, rejected {rejected}.",
                actor=actor,
            ))

        logger.info(f"Stage {stage.stage_name} of {order.production_number} completed "
                    f"(order progress {order.progress_percentage}%)")
        return stage

    # ==================== TRACKING & QUALITY ====================

    @staticmethod
    def _record_consumption(actor, stage, order, material_used):
        lines = parse_material_lines(material_used, 'material_used')
        total = Decimal('0')

        for line in lines:
            allocation = None
            inventory = None
            if line.allocation_id is not None:
                allocation = fetch_for_update(MaterialAllocation, line.allocation_id, 'Material allocation')
                if not allocation.belongs_to(order):
                    raise PayloadValidationError(
                        f"Allocation {allocation.pk} is not allocated to {order.production_number}"
                    )
                if allocation.is_reconciled:
                    raise InvalidStateError(
                        f"Allocation {allocation.pk} for {allocation.material_name} is already reconciled",
                        current_state='reconciled',
                    )
                if line.quantity > allocation.quantity_remaining:
                    raise InvalidStateError(
                        f"Insufficient allocated quantity for {allocation.material_name}: "
                        f"remaining {allocation.quantity_remaining}, requested {line.quantity}",
                        current_state=str(allocation.quantity_remaining),
                    )
                allocation.quantity_consumed += line.quantity
                allocation.quantity_remaining -= line.quantity
                allocation.save(update_fields=['quantity_consumed', 'quantity_remaining'])
                inventory = allocation.inventory
                source = MaterialSourceChoices.ALLOCATED
            else:
                source = MaterialSourceChoices.INVENTORY
                if line.inventory_id is not None:
                    InventoryTransactionManager.issue_materials(
                        [line.as_stock_line()], InventoryMovementTypeChoices.PRODUCTION_CONSUMPTION,
                        user=actor, reference=order,
                        notes=f"Consumed by {stage.stage_name}",
                    )
                    inventory = InventoryItem.objects.get(pk=line.inventory_id)

            MaterialConsumption.objects.create(
                production_order=order,
                production_stage=stage,
                allocation=allocation,
                inventory=inventory,
                material_name=line.material_name or (inventory.name if inventory else ''),
                quantity_used=line.quantity,
                unit=line.unit,
                source=source,
                consumed_by=actor,
            )
            total += line.quantity

        stage.total_material_used += total
        return total

    @staticmethod
    def _set_checkpoint_results(actor, stage, result):
        stage.quality_checkpoints.update(
            result=result,
            checked_by=actor,
            checked_at=timezone.now(),
        )

    @staticmethod
    def update_tracking(actor, stage_id, actual_start_time=None, actual_end_time=None,
                        quantity_processed=None, quantity_approved=None, quantity_rejected=None,
                        material_used=None, quality_checkpoint_result=None, notes=None):
        """
        Record shop-floor progress on a stage. A passed quality result completes
        an in-progress stage; any actual_end_time runs late detection.
        """
        if quality_checkpoint_result not in (None, '') and \
                quality_checkpoint_result not in [CheckpointResultChoices.PASSED, CheckpointResultChoices.FAILED]:
            raise PayloadValidationError("quality_checkpoint_result must be 'passed' or 'failed'")

        with transaction.atomic():
            stage, order, stages = StageExecutionService._lock_stage_and_order(stage_id)
            StageExecutionService._ensure_not_frozen(stage)
            if stage.status == StageStatusChoices.SKIPPED:
                raise InvalidStateError(
                    f"Cannot update tracking on skipped stage {stage.stage_name}",
                    current_state=stage.status,
                    required_states=[s for s in StageStatusChoices.values if s != StageStatusChoices.SKIPPED],
                )

            processed, approved, rejected = StageExecutionService._quantities_from(
                stage, quantity_processed, quantity_approved, quantity_rejected
            )
            stage.quantity_processed = processed
            stage.quantity_approved = approved
            stage.quantity_rejected = rejected

            if actual_start_time not in (None, ''):
                stage.actual_start_time = to_datetime(actual_start_time, 'actual_start_time')
            end_time_set = actual_end_time not in (None, '')
            if end_time_set:
                stage.actual_end_time = to_datetime(actual_end_time, 'actual_end_time')
                if stage.actual_start_time and stage.actual_end_time < stage.actual_start_time:
                    raise PayloadValidationError("actual_end_time cannot be before actual_start_time")
                stage.actual_duration_hours = stage.compute_duration_hours()
            if notes is not None:
                stage.notes = notes

            if material_used:
                StageExecutionService._record_consumption(actor, stage, order, material_used)

            was_completed = stage.status == StageStatusChoices.COMPLETED
            if quality_checkpoint_result == CheckpointResultChoices.PASSED:
                StageExecutionService._set_checkpoint_results(actor, stage, CheckpointResultChoices.PASSED)
                stage.quality_approved = True
                if stage.status == StageStatusChoices.IN_PROGRESS:
                    StageExecutionService._finish_stage(stage, actor, approved=True)
                    end_time_set = True
            elif quality_checkpoint_result == CheckpointResultChoices.FAILED:
                StageExecutionService._set_checkpoint_results(actor, stage, CheckpointResultChoices.FAILED)
                stage.quality_approved = False

            if end_time_set:
                StageExecutionService._apply_late_detection(stage, order, actor)
            StageExecutionService._save_stage(stage)

            if stage.status == StageStatusChoices.COMPLETED or was_completed:
                StageExecutionService.recalculate_order_rollup(order, stages, actor)

        logger.info(f"Tracking updated for {stage.stage_name} of {order.production_number} ({stage.status})")
        return stage

    @staticmethod
    def record_checkpoint_result(actor, checkpoint_id, result, notes=''):
        """
        Record one checkpoint outcome. The stage's quality_approved follows
        its checkpoints: true once all pass, false as soon as one fails.
        """
        if result not in [CheckpointResultChoices.PASSED, CheckpointResultChoices.FAILED]:
            raise PayloadValidationError("result must be 'passed' or 'failed'")

        with transaction.atomic():
            checkpoint = fetch_for_update(QualityCheckpoint, checkpoint_id, 'Quality checkpoint')
            stage = None
            if checkpoint.production_stage_id:
                stage, _, _ = StageExecutionService._lock_stage_and_order(checkpoint.production_stage_id)
                StageExecutionService._ensure_not_frozen(stage)

            checkpoint.result = result
            checkpoint.notes = notes or checkpoint.notes
            checkpoint.checked_by = actor
            checkpoint.checked_at = timezone.now()
            checkpoint.save(update_fields=['result', 'notes', 'checked_by', 'checked_at'])

            if stage is not None:
                results = list(stage.quality_checkpoints.values_list('result', flat=True))
                stage.quality_approved = all(r == CheckpointResultChoices.PASSED for r in results)
                stage.save(update_fields=['quality_approved', 'updated_at'])

        logger.info(f"Checkpoint {checkpoint.name} recorded as {result}")
        return checkpoint

    @staticmethod
    def approve_stage(actor, stage_id, notes=''):
        """
        QA approval path: completes the stage once its checkpoints pass.
        Returns the next pending stage of the order, or None.
        """
        with transaction.atomic():
            stage, order, stages = StageExecutionService._lock_stage_and_order(stage_id)
            StageExecutionService._ensure_not_frozen(stage)
            require_state(stage, [StageStatusChoices.IN_PROGRESS], 'approve', 'stage')

            checkpoint_results = list(stage.quality_checkpoints.values_list('result', flat=True))
            if not stage.quality_approved or any(r != CheckpointResultChoices.PASSED for r in checkpoint_results):
                raise InvalidStateError(
                    "Quality checkpoints must be passed before approval",
                    current_state=(
                        CheckpointResultChoices.FAILED if CheckpointResultChoices.FAILED in checkpoint_results
                        else CheckpointResultChoices.PENDING
                    ),
                    required_states=[CheckpointResultChoices.PASSED],
                )

            if notes:
                stage.notes = notes
            StageExecutionService._finish_stage(stage, actor, approved=True)
            StageExecutionService._apply_late_detection(stage, order, actor)
            StageExecutionService._save_stage(stage)
            StageExecutionService.recalculate_order_rollup(order, stages, actor)

            next_stage = next(
                (s for s in stages if s.stage_order > stage.stage_order and s.status == StageStatusChoices.PENDING),
                None
            )

        logger.info(f"Stage {stage.stage_name} of {order.production_number} approved by {actor}")
        return next_stage

    @staticmethod
    def rework_stage(actor, stage_id, failure_reason, failed_quantity=0, additional_cost=0, notes=''):
        """
        Log the failed iteration under the stage's current rework_iteration,
        then bump the iteration and reopen the stage
        """
        failure_reason = str(failure_reason or '').strip()
        if not failure_reason:
            raise PayloadValidationError("failure_reason is required")
        failed_quantity = to_quantity(failed_quantity or 0, 'failed_quantity')
        additional_cost = to_decimal(additional_cost or 0, 'additional_cost')

        with transaction.atomic():
            stage, order, stages = StageExecutionService._lock_stage_and_order(stage_id)
            StageExecutionService._ensure_not_frozen(stage)
            require_state(
                stage, [StageStatusChoices.IN_PROGRESS, StageStatusChoices.COMPLETED], 'rework', 'stage'
            )

            history = StageReworkHistory.objects.create(
                production_stage=stage,
                iteration_number=stage.rework_iteration,
                failure_reason=failure_reason,
                failed_quantity=failed_quantity,
                additional_cost=additional_cost,
                notes=notes,
                failed_by=actor,
            )

            stage.rework_iteration += 1
            stage.status = StageStatusChoices.IN_PROGRESS
            stage.quality_approved = False
            stage.actual_end_time = None
            stage.actual_duration_hours = None
            stage.approved_by = None
            stage.approved_at = None
            stage.cost += additional_cost
            stage.save(update_fields=STAGE_UPDATE_FIELDS + ['rework_iteration', 'cost'])

            stage.quality_checkpoints.update(
                result=CheckpointResultChoices.PENDING, checked_by=None, checked_at=None
            )
            StageExecutionService.recalculate_order_rollup(order, stages, actor)

            NotificationDispatcher.notify_department(Department.MANUFACTURING, NotificationPayload.for_entity(
                order, NotificationTypeChoices.STAGE_REWORK,
                title=f"{stage.stage_name} sent to rework on {order.production_number}",
                message=f"Iteration {history.iteration_number} failed: {failure_reason}. "
                        f"Now on iteration {stage.rework_iteration}.",
                priority=NotificationPriorityChoices.MEDIUM,
                actor=actor,
                action_required=True,
            ))

        logger.info(f"Stage {stage.stage_name} of {order.production_number} reworked "
                    f"(iteration {history.iteration_number} -> {stage.rework_iteration})")
        return stage

    @staticmethod
    def unfreeze_order(actor, order_id, reason):
        """Clear is_frozen on every frozen stage of the order; returns the count"""
        reason = str(reason or '').strip()
        if not reason:
            raise PayloadValidationError("reason is required to unfreeze stages")

        with transaction.atomic():
            order = fetch_for_update(ProductionOrder, order_id, 'Production order')
            frozen = list(order.stages.select_for_update().filter(is_frozen=True))
            stamp = timezone.now().strftime('%Y-%m-%d %H:%M')
            for stage in frozen:
                stage.is_frozen = False
                stage.late_reason = f"{stage.late_reason}\n[{stamp}] Unfrozen by {actor}: {reason}".strip()
                stage.save(update_fields=['is_frozen', 'late_reason', 'updated_at'])

        logger.info(f"Unfroze {len(frozen)} stage(s) of {order.production_number}")
        return len(frozen)

    @staticmethod
    def log_rejections(actor, stage_id, items):
        """
        Record QA rejection line items against a completed stage. The batch
        total may not exceed the stage's quantity_rejected.
        """
        items = require_list(items, 'rejections')
        parsed = []
        for index, item in enumerate(items, start=1):
            label = f"rejections line {index}"
            if not isinstance(item, dict):
                raise PayloadValidationError(f"{label} must be an object")
            reason = str(item.get('rejection_reason') or item.get('reason') or '').strip()
            if not reason:
                raise PayloadValidationError(f"{label}.rejection_reason is required")
            quantity = to_quantity(
                item.get('rejected_quantity', item.get('quantity')), f"{label}.rejected_quantity", allow_zero=False
            )
            severity = item.get('severity') or RejectionSeverityChoices.MINOR
            if severity not in RejectionSeverityChoices.values:
                raise PayloadValidationError(f"{label}.severity must be one of minor, major, critical")
            parsed.append({
                'rejection_reason': reason,
                'detailed_reason': str(item.get('detailed_reason') or ''),
                'rejected_quantity': quantity,
                'severity': severity,
            })

        with transaction.atomic():
            stage, order, _ = StageExecutionService._lock_stage_and_order(stage_id)
            StageExecutionService._ensure_not_frozen(stage)
            if stage.status != StageStatusChoices.COMPLETED:
                raise InvalidStateError(
                    "Rejections can only be logged after stage completion",
                    current_state=stage.status,
                    required_states=[StageStatusChoices.COMPLETED],
                )

            batch_total = sum(entry['rejected_quantity'] for entry in parsed)
            if batch_total > stage.quantity_rejected:
                raise PayloadValidationError(
                    f"Total rejected quantity ({batch_total}) exceeds the stage's "
                    f"recorded rejected quantity ({stage.quantity_rejected})"
                )

            rejections = Rejection.objects.bulk_create([
                Rejection(
                    production_order=order,
                    production_stage=stage,
                    stage_name=stage.stage_name,
                    reported_by=actor,
                    **entry
                )
                for entry in parsed
            ])
            stage.rejection_reasons = list(stage.rejection_reasons or []) + [
                {
                    'reason': entry['rejection_reason'],
                    'quantity': entry['rejected_quantity'],
                    'severity': entry['severity'],
                    'iteration': stage.rework_iteration,
                }
                for entry in parsed
            ]
            stage.save(update_fields=['rejection_reasons', 'updated_at'])

        logger.info(f"Logged {len(rejections)} rejection(s) on {stage.stage_name} of {order.production_number}")
        return rejections
