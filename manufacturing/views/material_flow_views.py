"""
Views for the material chain: receipts, verifications and production approvals
"""
import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import HasOperationCapability
from ..models import MaterialReceipt, MaterialVerification, ProductionApproval
from ..serializers import (
    CreateApprovalSerializer, CreateReceiptSerializer, CreateVerificationSerializer,
    MaterialReceiptSerializer, MaterialVerificationSerializer, ProductionApprovalSerializer,
    StartProductionSerializer
)
from ..workflow_service import MaterialWorkflowService

logger = logging.getLogger(__name__)


class MaterialReceiptViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Manufacturing confirms dispatches here; one receipt per dispatch
    """
    permission_classes = [HasOperationCapability]
    capability_map = {'create': 'receipt.create'}
    serializer_class = MaterialReceiptSerializer
    queryset = MaterialReceipt.objects.select_related('dispatch', 'mrn_request', 'received_by')
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['mrn_request', 'dispatch', 'has_discrepancy', 'verification_status']
    search_fields = ['receipt_number', 'dispatch__dispatch_number']
    ordering = ['-received_at']

    def create(self, request):
        serializer = CreateReceiptSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        receipt = MaterialWorkflowService.create_receipt(
            request.user,
            data['dispatch_id'],
            [dict(line) for line in data['received_materials']],
            has_discrepancy=data['has_discrepancy'],
            discrepancy_details=data.get('discrepancy_details'),
            receipt_notes=data['receipt_notes'],
        )
        return Response(MaterialReceiptSerializer(receipt).data, status=status.HTTP_201_CREATED)


class MaterialVerificationViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [HasOperationCapability]
    capability_map = {'create': 'verification.create'}
    serializer_class = MaterialVerificationSerializer
    queryset = MaterialVerification.objects.select_related('receipt', 'mrn_request')
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['mrn_request', 'overall_result', 'approval_status']
    ordering = ['-verified_at']

    def create(self, request):
        serializer = CreateVerificationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        verification = MaterialWorkflowService.create_verification(request.user, **serializer.validated_data)
        return Response(MaterialVerificationSerializer(verification).data, status=status.HTTP_201_CREATED)


class ProductionApprovalViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [HasOperationCapability]
    capability_map = {
        'create': 'approval.create',
        'start_production': 'production.start',
    }
    serializer_class = ProductionApprovalSerializer
    queryset = ProductionApproval.objects.select_related('verification', 'mrn_request', 'production_order')
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['mrn_request', 'approval_status', 'production_started']
    ordering = ['-approved_at']

    def create(self, request):
        serializer = CreateApprovalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data['material_allocations'] = [dict(line) for line in data.get('material_allocations', [])]
        approval = MaterialWorkflowService.create_approval(request.user, **data)
        return Response(ProductionApprovalSerializer(approval).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def start_production(self, request, pk=None):
        serializer = StartProductionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        approval = MaterialWorkflowService.start_production(
            request.user, pk, production_order_id=serializer.validated_data.get('production_order_id')
        )
        return Response(ProductionApprovalSerializer(approval).data)
