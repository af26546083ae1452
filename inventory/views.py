from django.db.models import F, Sum
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, status, filters
from rest_framework.decorators import api_view, permission_classes, action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from authentication.permissions import HasOperationCapability
from manufacturing.workflow_service import MaterialWorkflowService
from utils.enums import DispatchReceivedStatusChoices, InventoryMovementTypeChoices, MaterialRequestStatusChoices
from .models import (
    InventoryItem, InventoryMovement, MaterialAllocation, MaterialDispatch, ProjectMaterialRequest
)
from .serializers import (
    CreateDispatchSerializer, CreateMaterialRequestSerializer, InventoryItemSerializer,
    InventoryMovementSerializer, MaterialAllocationSerializer, MaterialDispatchSerializer,
    ProjectMaterialRequestSerializer, StockAdjustmentSerializer
)
from .transaction_manager import InventoryTransactionManager


class InventoryItemViewSet(viewsets.ModelViewSet):
    """
    Stock items. Balances change only through adjust_stock and the workflow.
    """
    permission_classes = [HasOperationCapability]
    capability_map = {
        'create': 'inventory_item.manage',
        'update': 'inventory_item.manage',
        'partial_update': 'inventory_item.manage',
        'destroy': 'inventory_item.manage',
        'adjust_stock': 'inventory_item.manage',
    }
    serializer_class = InventoryItemSerializer
    queryset = InventoryItem.objects.all()
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['category', 'unit', 'is_active']
    search_fields = ['item_code', 'name', 'location']
    ordering_fields = ['item_code', 'name', 'quantity_in_stock']
    ordering = ['item_code']

    @action(detail=False, methods=['get'])
    def low_stock(self, request):
        items = self.filter_queryset(self.get_queryset()).filter(
            is_active=True, quantity_in_stock__lte=F('reorder_level')
        )
        return Response(self.get_serializer(items, many=True).data)

    @action(detail=True, methods=['post'])
    def adjust_stock(self, request, pk=None):
        serializer = StockAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        movement = InventoryTransactionManager.adjust_stock(
            pk,
            serializer.validated_data['quantity'],
            InventoryMovementTypeChoices.ADJUSTMENT,
            user=request.user,
            notes=serializer.validated_data['notes'],
        )
        return Response(InventoryMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


class InventoryMovementViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = InventoryMovementSerializer
    queryset = InventoryMovement.objects.select_related('inventory', 'performed_by')
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['inventory', 'movement_type', 'reference_type', 'reference_id']
    ordering = ['-created_at']


class ProjectMaterialRequestViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [HasOperationCapability]
    capability_map = {'create': 'material_request.create'}
    serializer_class = ProjectMaterialRequestSerializer
    queryset = ProjectMaterialRequest.objects.prefetch_related('dispatches')
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'priority', 'sales_order', 'production_request', 'requesting_department']
    search_fields = ['request_number', 'project_name']
    ordering = ['-created_at']

    def create(self, request):
        serializer = CreateMaterialRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        mrn = MaterialWorkflowService.create_material_request(
            request.user,
            data['project_name'],
            [dict(line) for line in data['materials']],
            sales_order_id=data.get('sales_order_id'),
            production_request_id=data.get('production_request_id'),
            priority=data['priority'],
            required_date=data.get('required_date'),
            notes=data['notes'],
        )
        return Response(ProjectMaterialRequestSerializer(mrn).data, status=status.HTTP_201_CREATED)


class MaterialDispatchViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [HasOperationCapability]
    capability_map = {'create': 'dispatch.create'}
    serializer_class = MaterialDispatchSerializer
    queryset = MaterialDispatch.objects.select_related('mrn_request')
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['mrn_request', 'received_status']
    search_fields = ['dispatch_number', 'project_name']
    ordering = ['-dispatched_at']

    def create(self, request):
        serializer = CreateDispatchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        dispatch = MaterialWorkflowService.create_dispatch(
            request.user,
            data['mrn_request_id'],
            [dict(line) for line in data['dispatched_materials']],
            dispatch_notes=data['dispatch_notes'],
        )
        return Response(MaterialDispatchSerializer(dispatch).data, status=status.HTTP_201_CREATED)


class MaterialAllocationViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = MaterialAllocationSerializer
    queryset = MaterialAllocation.objects.select_related('mrn_request')
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['mrn_request', 'production_approval', 'production_order', 'inventory']


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    """
    Health check endpoint for inventory service
    """
    return Response({'status': 'healthy', 'message': 'Inventory service is running'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """
    Stock and material-request counters for the inventory dashboard
    """
    active_items = InventoryItem.objects.filter(is_active=True)
    return Response({
        'total_items': active_items.count(),
        'low_stock_items': active_items.filter(quantity_in_stock__lte=F('reorder_level')).count(),
        'out_of_stock_items': active_items.filter(quantity_in_stock=0).count(),
        'stock_value': active_items.aggregate(
            value=Sum(F('quantity_in_stock') * F('unit_cost'))
        )['value'] or 0,
        'pending_material_requests': ProjectMaterialRequest.objects.filter(
            status=MaterialRequestStatusChoices.PENDING
        ).count(),
        'dispatches_awaiting_receipt': MaterialDispatch.objects.filter(
            received_status=DispatchReceivedStatusChoices.PENDING
        ).count(),
    })
