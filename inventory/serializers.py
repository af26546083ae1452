from decimal import Decimal

from rest_framework import serializers

from utils.enums import PriorityChoices, UnitChoices
from .models import (
    InventoryItem, InventoryMovement, MaterialAllocation, MaterialDispatch, ProjectMaterialRequest
)


class MaterialLineSerializer(serializers.Serializer):
    """
    One material line of a request, dispatch, receipt, allocation or return.
    Legacy quantity keys (quantity_dispatched, quantity_received,
    quantity_allocated) are accepted as aliases of quantity.
    """
    QUANTITY_ALIASES = ('quantity_dispatched', 'quantity_received', 'quantity_allocated')

    inventory_id = serializers.IntegerField(required=False, allow_null=True)
    material_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0.001'))
    unit = serializers.ChoiceField(choices=UnitChoices.choices, default=UnitChoices.PIECES)
    reason = serializers.CharField(required=False, allow_blank=True, default='')

    def to_internal_value(self, data):
        if isinstance(data, dict) and data.get('quantity') in (None, ''):
            for alias in self.QUANTITY_ALIASES:
                if data.get(alias) not in (None, ''):
                    data = {**data, 'quantity': data[alias]}
                    break
        return super().to_internal_value(data)

    def validate(self, attrs):
        if not attrs.get('material_name') and attrs.get('inventory_id') is None:
            raise serializers.ValidationError("material_name or inventory_id is required")
        return attrs


class InventoryItemSerializer(serializers.ModelSerializer):
    is_below_reorder_level = serializers.BooleanField(read_only=True)

    class Meta:
        model = InventoryItem
        fields = [
            'id', 'item_code', 'name', 'category', 'unit', 'quantity_in_stock', 'reorder_level',
            'is_below_reorder_level', 'unit_cost', 'location', 'is_active', 'created_at', 'updated_at'
        ]
        # Stock only moves through the transaction manager
        read_only_fields = ['quantity_in_stock', 'created_at', 'updated_at']


class StockAdjustmentSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    notes = serializers.CharField(allow_blank=False)

    def validate_quantity(self, value):
        if value == 0:
            raise serializers.ValidationError("Adjustment quantity cannot be zero")
        return value


class InventoryMovementSerializer(serializers.ModelSerializer):
    item_code = serializers.CharField(source='inventory.item_code', read_only=True)
    movement_type_display = serializers.CharField(source='get_movement_type_display', read_only=True)
    performed_by_name = serializers.SerializerMethodField()

    class Meta:
        model = InventoryMovement
        fields = [
            'id', 'inventory', 'item_code', 'movement_type', 'movement_type_display', 'quantity',
            'balance_after', 'reference_type', 'reference_id', 'reference_number', 'notes',
            'performed_by', 'performed_by_name', 'created_at'
        ]
        read_only_fields = fields

    def get_performed_by_name(self, obj):
        if obj.performed_by:
            return obj.performed_by.full_name
        return None


class MaterialDispatchSerializer(serializers.ModelSerializer):
    request_number = serializers.CharField(source='mrn_request.request_number', read_only=True)
    received_status_display = serializers.CharField(source='get_received_status_display', read_only=True)

    class Meta:
        model = MaterialDispatch
        fields = [
            'id', 'dispatch_number', 'mrn_request', 'request_number', 'project_name',
            'dispatched_materials', 'total_items', 'dispatch_notes', 'received_status',
            'received_status_display', 'dispatched_by', 'dispatched_at'
        ]
        read_only_fields = fields


class ProjectMaterialRequestSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    dispatches = MaterialDispatchSerializer(many=True, read_only=True)

    class Meta:
        model = ProjectMaterialRequest
        fields = [
            'id', 'request_number', 'project_name', 'sales_order', 'production_request',
            'requesting_department', 'materials_requested', 'priority', 'required_date',
            'status', 'status_display', 'notes', 'dispatches', 'created_by', 'processed_by',
            'processed_at', 'completed_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class CreateMaterialRequestSerializer(serializers.Serializer):
    project_name = serializers.CharField(max_length=200)
    materials = MaterialLineSerializer(many=True, allow_empty=False)
    sales_order_id = serializers.IntegerField(required=False, allow_null=True)
    production_request_id = serializers.IntegerField(required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=PriorityChoices.choices, default=PriorityChoices.MEDIUM)
    required_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class CreateDispatchSerializer(serializers.Serializer):
    mrn_request_id = serializers.IntegerField()
    dispatched_materials = MaterialLineSerializer(many=True, allow_empty=False)
    dispatch_notes = serializers.CharField(required=False, allow_blank=True, default='')


class MaterialAllocationSerializer(serializers.ModelSerializer):
    request_number = serializers.CharField(source='mrn_request.request_number', read_only=True)

    class Meta:
        model = MaterialAllocation
        fields = [
            'id', 'mrn_request', 'request_number', 'production_approval', 'production_order',
            'inventory', 'material_name', 'unit', 'quantity_allocated', 'quantity_consumed',
            'quantity_remaining', 'quantity_returned', 'is_reconciled', 'reconciled_at',
            'allocated_by', 'allocated_at'
        ]
        read_only_fields = fields
