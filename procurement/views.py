from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters, status
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import HasOperationCapability
from .models import CreditNote, GoodsReceiptNote, PurchaseOrder
from .serializers import (
    CreateCreditNoteSerializer, CreateGRNSerializer, CreatePurchaseOrderSerializer,
    CreditNoteSerializer, GoodsReceiptNoteSerializer, PurchaseOrderSerializer
)
from .services import ProcurementService


class PurchaseOrderViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [HasOperationCapability]
    capability_map = {
        'create': 'purchase_order.create',
        'approve': 'purchase_order.approve',
    }
    serializer_class = PurchaseOrderSerializer
    queryset = PurchaseOrder.objects.all()
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'sales_order', 'production_request']
    search_fields = ['po_number', 'vendor_name', 'project_name']
    ordering = ['-created_at']

    def create(self, request):
        serializer = CreatePurchaseOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        po = ProcurementService.create_purchase_order(request.user, **data)
        return Response(PurchaseOrderSerializer(po).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        po = ProcurementService.approve_purchase_order(request.user, pk)
        return Response(PurchaseOrderSerializer(po).data)


class GoodsReceiptNoteViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [HasOperationCapability]
    capability_map = {'create': 'grn.create'}
    serializer_class = GoodsReceiptNoteSerializer
    queryset = GoodsReceiptNote.objects.select_related('purchase_order')
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['purchase_order', 'has_overage', 'status']
    ordering = ['-received_at']

    def create(self, request):
        serializer = CreateGRNSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        grn = ProcurementService.create_grn(
            request.user,
            data['purchase_order_id'],
            [dict(line) for line in data['items']],
            inward_challan_number=data['inward_challan_number'],
            supplier_invoice_number=data['supplier_invoice_number'],
            remarks=data['remarks'],
        )
        return Response(GoodsReceiptNoteSerializer(grn).data, status=status.HTTP_201_CREATED)


class CreditNoteViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [HasOperationCapability]
    capability_map = {
        'create': 'credit_note.create',
        'approve': 'credit_note.approve',
    }
    serializer_class = CreditNoteSerializer
    queryset = CreditNote.objects.select_related('grn')
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['status', 'settlement_status', 'purchase_order']
    ordering = ['-created_at']

    def create(self, request):
        serializer = CreateCreditNoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        credit_note = ProcurementService.create_credit_note(
            request.user, data['grn_id'],
            tax_percentage=data['tax_percentage'], remarks=data['remarks']
        )
        return Response(CreditNoteSerializer(credit_note).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        credit_note = ProcurementService.approve_credit_note(request.user, pk)
        return Response(CreditNoteSerializer(credit_note).data)
