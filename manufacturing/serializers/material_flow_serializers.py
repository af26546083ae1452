"""
Serializers for the material chain: receipt, verification, production approval
"""
from rest_framework import serializers

from inventory.serializers import MaterialLineSerializer
from utils.enums import ApprovalDecisionChoices, VerificationResultChoices
from ..models import MaterialReceipt, MaterialVerification, ProductionApproval


class MaterialReceiptSerializer(serializers.ModelSerializer):
    dispatch_number = serializers.CharField(source='dispatch.dispatch_number', read_only=True)
    request_number = serializers.CharField(source='mrn_request.request_number', read_only=True)
    verification_status_display = serializers.CharField(source='get_verification_status_display', read_only=True)
    received_by_name = serializers.SerializerMethodField()

    class Meta:
        model = MaterialReceipt
        fields = [
            'id', 'receipt_number', 'mrn_request', 'request_number', 'dispatch', 'dispatch_number',
            'received_materials', 'has_discrepancy', 'discrepancy_details', 'receipt_notes',
            'verification_status', 'verification_status_display',
            'received_by', 'received_by_name', 'received_at'
        ]
        read_only_fields = fields

    def get_received_by_name(self, obj):
        if obj.received_by:
            return obj.received_by.full_name
        return None


class CreateReceiptSerializer(serializers.Serializer):
    dispatch_id = serializers.IntegerField()
    received_materials = MaterialLineSerializer(many=True, allow_empty=False)
    has_discrepancy = serializers.BooleanField(default=False)
    discrepancy_details = serializers.JSONField(required=False, allow_null=True)
    receipt_notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['has_discrepancy'] and not attrs.get('discrepancy_details'):
            raise serializers.ValidationError(
                {'discrepancy_details': "Required when has_discrepancy is true"}
            )
        return attrs


class MaterialVerificationSerializer(serializers.ModelSerializer):
    receipt_number = serializers.CharField(source='receipt.receipt_number', read_only=True)
    passed = serializers.BooleanField(read_only=True)

    class Meta:
        model = MaterialVerification
        fields = [
            'id', 'verification_number', 'mrn_request', 'receipt', 'receipt_number',
            'verification_checklist', 'overall_result', 'passed', 'issues_found',
            'verification_notes', 'approval_status', 'verified_by', 'verified_at'
        ]
        read_only_fields = fields


class CreateVerificationSerializer(serializers.Serializer):
    receipt_id = serializers.IntegerField()
    verification_checklist = serializers.JSONField(required=False, default=dict)
    overall_result = serializers.ChoiceField(choices=VerificationResultChoices.choices)
    issues_found = serializers.ListField(required=False, default=list)
    verification_notes = serializers.CharField(required=False, allow_blank=True, default='')


class ProductionApprovalSerializer(serializers.ModelSerializer):
    verification_number = serializers.CharField(source='verification.verification_number', read_only=True)
    request_number = serializers.CharField(source='mrn_request.request_number', read_only=True)
    production_number = serializers.CharField(
        source='production_order.production_number', read_only=True, allow_null=True
    )

    class Meta:
        model = ProductionApproval
        fields = [
            'id', 'approval_number', 'mrn_request', 'request_number', 'verification',
            'verification_number', 'approval_status', 'material_allocations',
            'production_start_date', 'approval_notes', 'rejection_reason', 'conditions',
            'production_started', 'production_started_at', 'production_order', 'production_number',
            'approved_by', 'approved_at'
        ]
        read_only_fields = fields


class CreateApprovalSerializer(serializers.Serializer):
    verification_id = serializers.IntegerField()
    approval_status = serializers.ChoiceField(choices=ApprovalDecisionChoices.choices)
    material_allocations = MaterialLineSerializer(many=True, required=False, default=list)
    production_start_date = serializers.DateField(required=False, allow_null=True)
    approval_notes = serializers.CharField(required=False, allow_blank=True, default='')
    rejection_reason = serializers.CharField(required=False, allow_blank=True, default='')
    conditions = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['approval_status'] == ApprovalDecisionChoices.REJECTED and not attrs['rejection_reason'].strip():
            raise serializers.ValidationError({'rejection_reason': "Required when rejecting"})
        return attrs


class StartProductionSerializer(serializers.Serializer):
    production_order_id = serializers.IntegerField(required=False, allow_null=True)
