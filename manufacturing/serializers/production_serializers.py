"""
Serializers for production requests, production orders, stages and returns
"""
from decimal import Decimal

from rest_framework import serializers

from inventory.serializers import MaterialLineSerializer
from utils.enums import (
    CheckpointResultChoices, PriorityChoices, ProductionRequestStatusChoices,
    RejectionSeverityChoices, UnitChoices
)
from ..models import (
    MaterialConsumption, MaterialReturn, ProductionOrder, ProductionRequest, ProductionStage,
    QualityCheckpoint, Rejection, StageReworkHistory
)


# ==================== PRODUCTION REQUESTS ====================

class ProductionRequestSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    order_number = serializers.CharField(source='sales_order.order_number', read_only=True, allow_null=True)
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True, allow_null=True)

    class Meta:
        model = ProductionRequest
        fields = [
            'id', 'request_number', 'sales_order', 'order_number', 'purchase_order', 'po_number',
            'production_order', 'project_name', 'product_name', 'product_description',
            'product_specifications', 'quantity', 'unit', 'priority', 'required_date',
            'status', 'status_display', 'sales_notes', 'manufacturing_notes',
            'requested_by', 'reviewed_by', 'reviewed_at', 'completed_at', 'created_at'
        ]
        read_only_fields = fields


class CreateProductionRequestSerializer(serializers.Serializer):
    """Either sales_order_id, or purchase_order_id with the product details"""
    sales_order_id = serializers.IntegerField(required=False, allow_null=True)
    purchase_order_id = serializers.IntegerField(required=False, allow_null=True)
    product_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    product_description = serializers.CharField(required=False, allow_blank=True, default='')
    product_specifications = serializers.JSONField(required=False, allow_null=True)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0.001'), required=False)
    unit = serializers.ChoiceField(choices=UnitChoices.choices, default=UnitChoices.PIECES)
    priority = serializers.ChoiceField(choices=PriorityChoices.choices, required=False, allow_null=True)
    required_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        has_so = bool(attrs.get('sales_order_id'))
        has_po = bool(attrs.get('purchase_order_id'))
        if has_so == has_po:
            raise serializers.ValidationError("Provide exactly one of sales_order_id or purchase_order_id")
        if has_po:
            missing = [f for f in ('product_name', 'quantity') if not attrs.get(f)]
            if missing:
                raise serializers.ValidationError({f: "Required for a purchase-order request" for f in missing})
        return attrs


class ProductionRequestStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ProductionRequestStatusChoices.choices)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class LinkProductionOrderSerializer(serializers.Serializer):
    production_order_id = serializers.IntegerField()


# ==================== ORDERS & STAGES ====================

class QualityCheckpointSerializer(serializers.ModelSerializer):
    class Meta:
        model = QualityCheckpoint
        fields = [
            'id', 'production_order', 'production_stage', 'name', 'acceptance_criteria',
            'checkpoint_order', 'result', 'notes', 'checked_by', 'checked_at'
        ]
        read_only_fields = fields


class StageReworkHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = StageReworkHistory
        fields = [
            'id', 'production_stage', 'iteration_number', 'failure_reason', 'failed_quantity',
            'additional_cost', 'status', 'notes', 'failed_by', 'failed_at'
        ]
        read_only_fields = fields


class ProductionStageSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    production_number = serializers.CharField(source='production_order.production_number', read_only=True)
    quality_checkpoints = QualityCheckpointSerializer(many=True, read_only=True)
    rework_history = StageReworkHistorySerializer(many=True, read_only=True)

    class Meta:
        model = ProductionStage
        fields = [
            'id', 'production_order', 'production_number', 'stage_name', 'stage_order',
            'status', 'status_display', 'planned_start_time', 'planned_end_time',
            'actual_start_time', 'actual_end_time', 'actual_duration_hours',
            'quantity_processed', 'quantity_approved', 'quantity_rejected',
            'rework_iteration', 'is_late', 'is_frozen', 'late_reason', 'delay_reason',
            'quality_approved', 'approved_by', 'approved_at', 'rejection_reasons',
            'cost', 'total_material_used', 'assigned_to', 'notes',
            'quality_checkpoints', 'rework_history', 'updated_at'
        ]
        read_only_fields = fields


class ProductionOrderListSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = ProductionOrder
        fields = [
            'id', 'production_number', 'sales_order', 'product_name', 'quantity', 'priority',
            'status', 'status_display', 'planned_start_date', 'planned_end_date',
            'progress_percentage', 'is_overdue', 'created_at'
        ]
        read_only_fields = fields


class ProductionOrderSerializer(ProductionOrderListSerializer):
    stages = ProductionStageSerializer(many=True, read_only=True)
    quality_checkpoints = serializers.SerializerMethodField()

    class Meta(ProductionOrderListSerializer.Meta):
        fields = ProductionOrderListSerializer.Meta.fields + [
            'production_approval', 'actual_start_date', 'actual_end_date',
            'approved_quantity', 'rejected_quantity', 'produced_quantity',
            'delay_reason', 'notes', 'supervisor', 'created_by', 'updated_at',
            'stages', 'quality_checkpoints'
        ]
        read_only_fields = fields

    def get_quality_checkpoints(self, obj):
        # Order-level checkpoints only; stage-bound ones are nested under stages
        checkpoints = obj.quality_checkpoints.filter(production_stage__isnull=True)
        return QualityCheckpointSerializer(checkpoints, many=True).data


class CreateProductionOrderSerializer(serializers.Serializer):
    product_name = serializers.CharField(max_length=200)
    quantity = serializers.IntegerField(min_value=1)
    planned_start_date = serializers.DateTimeField()
    planned_end_date = serializers.DateTimeField()
    stages = serializers.ListField(required=False, allow_null=True, default=None)
    checkpoints = serializers.ListField(child=serializers.DictField(), required=False, allow_null=True, default=None)
    sales_order_id = serializers.IntegerField(required=False, allow_null=True)
    production_approval_id = serializers.IntegerField(required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=PriorityChoices.choices, default=PriorityChoices.MEDIUM)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['planned_end_date'] <= attrs['planned_start_date']:
            raise serializers.ValidationError({'planned_end_date': "Must be after planned_start_date"})
        return attrs


class StageReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class CompleteStageSerializer(serializers.Serializer):
    quantity_processed = serializers.IntegerField(min_value=0, required=False)
    quantity_approved = serializers.IntegerField(min_value=0, required=False)
    quantity_rejected = serializers.IntegerField(min_value=0, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class AllocatedLineSerializer(MaterialLineSerializer):
    """A material line that may draw on, or return to, a material allocation"""
    allocation_id = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs.get('allocation_id') is not None:
            return attrs
        return super().validate(attrs)


class StageTrackingSerializer(serializers.Serializer):
    actual_start_time = serializers.DateTimeField(required=False, allow_null=True)
    actual_end_time = serializers.DateTimeField(required=False, allow_null=True)
    quantity_processed = serializers.IntegerField(min_value=0, required=False)
    quantity_approved = serializers.IntegerField(min_value=0, required=False)
    quantity_rejected = serializers.IntegerField(min_value=0, required=False)
    material_used = AllocatedLineSerializer(many=True, required=False)
    quality_checkpoint_result = serializers.ChoiceField(
        choices=[CheckpointResultChoices.PASSED, CheckpointResultChoices.FAILED], required=False, allow_null=True
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ApproveStageSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReworkStageSerializer(serializers.Serializer):
    failure_reason = serializers.CharField()
    failed_quantity = serializers.IntegerField(min_value=0, default=0)
    additional_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class UnfreezeSerializer(serializers.Serializer):
    reason = serializers.CharField()


class CheckpointResultSerializer(serializers.Serializer):
    result = serializers.ChoiceField(choices=[CheckpointResultChoices.PASSED, CheckpointResultChoices.FAILED])
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class RejectionLineSerializer(serializers.Serializer):
    rejection_reason = serializers.CharField(max_length=200)
    detailed_reason = serializers.CharField(required=False, allow_blank=True, default='')
    rejected_quantity = serializers.IntegerField(min_value=1)
    severity = serializers.ChoiceField(choices=RejectionSeverityChoices.choices, default=RejectionSeverityChoices.MINOR)


class LogRejectionsSerializer(serializers.Serializer):
    rejections = RejectionLineSerializer(many=True, allow_empty=False)


class RejectionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Rejection
        fields = [
            'id', 'production_order', 'production_stage', 'stage_name', 'rejection_reason',
            'detailed_reason', 'rejected_quantity', 'severity', 'action_taken', 'reported_by', 'created_at'
        ]
        read_only_fields = fields


class MaterialConsumptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = MaterialConsumption
        fields = [
            'id', 'production_order', 'production_stage', 'allocation', 'inventory', 'material_name',
            'quantity_used', 'unit', 'source', 'consumed_by', 'consumed_at'
        ]
        read_only_fields = fields


# ==================== MATERIAL RETURNS ====================

class MaterialReturnSerializer(serializers.ModelSerializer):
    production_number = serializers.CharField(source='production_order.production_number', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = MaterialReturn
        fields = [
            'id', 'return_number', 'production_order', 'production_number', 'total_materials',
            'status', 'status_display', 'notes', 'approval_notes', 'rejection_reason',
            'requested_by', 'approved_by', 'approved_at', 'returned_by', 'returned_at', 'created_at'
        ]
        read_only_fields = fields


class CreateMaterialReturnSerializer(serializers.Serializer):
    production_order_id = serializers.IntegerField()
    materials = AllocatedLineSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReturnDecisionSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReturnRejectionSerializer(serializers.Serializer):
    reason = serializers.CharField()
