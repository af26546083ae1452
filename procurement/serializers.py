from rest_framework import serializers

from utils.enums import UnitChoices
from .models import CreditNote, GoodsReceiptNote, PurchaseOrder


class PurchaseOrderSerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'po_number', 'vendor_name', 'vendor_contact', 'project_name', 'sales_order',
            'production_request', 'items', 'subtotal', 'tax_percentage', 'total_amount',
            'expected_delivery_date', 'status', 'status_display', 'notes',
            'created_by', 'approved_by', 'approved_at', 'created_at'
        ]
        read_only_fields = fields


class PurchaseOrderLineSerializer(serializers.Serializer):
    material_name = serializers.CharField(max_length=200)
    inventory_id = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=0)
    unit = serializers.ChoiceField(choices=UnitChoices.choices, default=UnitChoices.PIECES)
    rate = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, default=0)


class CreatePurchaseOrderSerializer(serializers.Serializer):
    vendor_name = serializers.CharField(max_length=200)
    project_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    sales_order_id = serializers.IntegerField(required=False, allow_null=True)
    production_request_id = serializers.IntegerField(required=False, allow_null=True)
    items = PurchaseOrderLineSerializer(many=True, allow_empty=False)
    tax_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, default=0)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class GoodsReceiptNoteSerializer(serializers.ModelSerializer):
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True)

    class Meta:
        model = GoodsReceiptNote
        fields = [
            'id', 'grn_number', 'purchase_order', 'po_number', 'items', 'has_overage',
            'has_shortage', 'is_first_grn', 'grn_sequence', 'inward_challan_number',
            'supplier_invoice_number', 'status', 'remarks', 'received_by', 'received_at'
        ]
        read_only_fields = fields


class GRNLineSerializer(serializers.Serializer):
    line_index = serializers.IntegerField(min_value=0)
    received_quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=0)
    remarks = serializers.CharField(required=False, allow_blank=True, default='')


class CreateGRNSerializer(serializers.Serializer):
    purchase_order_id = serializers.IntegerField()
    items = GRNLineSerializer(many=True, allow_empty=False)
    inward_challan_number = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    supplier_invoice_number = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    remarks = serializers.CharField(required=False, allow_blank=True, default='')


class CreditNoteSerializer(serializers.ModelSerializer):
    grn_number = serializers.CharField(source='grn.grn_number', read_only=True)

    class Meta:
        model = CreditNote
        fields = [
            'id', 'credit_note_number', 'grn', 'grn_number', 'purchase_order', 'vendor_name',
            'items', 'subtotal', 'tax_percentage', 'tax_amount', 'total_amount', 'status',
            'settlement_status', 'remarks', 'created_by', 'approved_by', 'approved_at', 'created_at'
        ]
        read_only_fields = fields


class CreateCreditNoteSerializer(serializers.Serializer):
    grn_id = serializers.IntegerField()
    tax_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, default=0)
    remarks = serializers.CharField(required=False, allow_blank=True, default='')
