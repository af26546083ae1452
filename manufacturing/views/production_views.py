"""
Views for production requests, production orders, stage execution and material returns
"""
import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import HasOperationCapability
from utils.enums import PriorityChoices
from ..material_return_service import MaterialReturnService
from ..models import (
    MaterialConsumption, MaterialReturn, ProductionOrder, ProductionRequest, ProductionStage,
    QualityCheckpoint
)
from ..production_request_service import ProductionRequestService
from ..serializers import (
    ApproveStageSerializer, CheckpointResultSerializer, CompleteStageSerializer,
    CreateMaterialReturnSerializer, CreateProductionOrderSerializer, CreateProductionRequestSerializer,
    LinkProductionOrderSerializer, LogRejectionsSerializer, MaterialConsumptionSerializer,
    MaterialReturnSerializer, ProductionOrderListSerializer, ProductionOrderSerializer,
    ProductionRequestSerializer, ProductionRequestStatusSerializer, ProductionStageSerializer,
    QualityCheckpointSerializer, RejectionSerializer, ReturnDecisionSerializer,
    ReturnRejectionSerializer, ReworkStageSerializer, StageReasonSerializer,
    StageTrackingSerializer, UnfreezeSerializer
)
from ..stage_service import StageExecutionService

logger = logging.getLogger(__name__)


class ProductionRequestViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [HasOperationCapability]
    capability_map = {
        'create': 'production_request.create',
        'update_status': 'production_request.review',
        'link_production_order': 'production_request.review',
    }
    serializer_class = ProductionRequestSerializer
    queryset = ProductionRequest.objects.select_related('sales_order', 'purchase_order')
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'priority', 'sales_order', 'purchase_order']
    search_fields = ['request_number', 'product_name', 'project_name']
    ordering = ['-created_at']

    def create(self, request):
        serializer = CreateProductionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data.get('sales_order_id'):
            production_request = ProductionRequestService.create_from_sales_order(
                request.user, data['sales_order_id'],
                priority=data.get('priority'),
                required_date=data.get('required_date'),
                notes=data['notes'],
            )
        else:
            production_request = ProductionRequestService.create_from_purchase_order(
                request.user, data['purchase_order_id'],
                product_name=data['product_name'],
                quantity=data['quantity'],
                unit=data['unit'],
                required_date=data.get('required_date'),
                priority=data.get('priority') or PriorityChoices.MEDIUM,
                product_description=data['product_description'],
                product_specifications=data.get('product_specifications'),
                notes=data['notes'],
            )
        return Response(ProductionRequestSerializer(production_request).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def update_status(self, request, pk=None):
        serializer = ProductionRequestStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        production_request = ProductionRequestService.update_status(
            request.user, pk, serializer.validated_data['status'], serializer.validated_data['notes']
        )
        return Response(ProductionRequestSerializer(production_request).data)

    @action(detail=True, methods=['post'])
    def link_production_order(self, request, pk=None):
        serializer = LinkProductionOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        production_request = ProductionRequestService.link_production_order(
            request.user, pk, serializer.validated_data['production_order_id']
        )
        return Response(ProductionRequestSerializer(production_request).data)


class ProductionOrderViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [HasOperationCapability]
    capability_map = {
        'create': 'production_order.create',
        'unfreeze': 'stage.unfreeze',
    }
    queryset = ProductionOrder.objects.select_related('sales_order', 'supervisor')
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'priority', 'sales_order', 'production_approval']
    search_fields = ['production_number', 'product_name']
    ordering_fields = ['created_at', 'planned_end_date', 'progress_percentage']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.action == 'list':
            return ProductionOrderListSerializer
        return ProductionOrderSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != 'list':
            queryset = queryset.prefetch_related(
                'stages__quality_checkpoints', 'stages__rework_history'
            )
        return queryset

    def create(self, request):
        serializer = CreateProductionOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = StageExecutionService.create_production_order(request.user, **serializer.validated_data)
        return Response(ProductionOrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def unfreeze(self, request, pk=None):
        serializer = UnfreezeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        count = StageExecutionService.unfreeze_order(request.user, pk, serializer.validated_data['reason'])
        order = self.get_queryset().get(pk=pk)
        return Response({'unfrozen_stages': count, 'order': ProductionOrderSerializer(order).data})

    @action(detail=True, methods=['get'])
    def rejections(self, request, pk=None):
        order = self.get_object()
        return Response(RejectionSerializer(order.rejections.all(), many=True).data)

    @action(detail=True, methods=['get'])
    def consumption(self, request, pk=None):
        order = self.get_object()
        consumptions = MaterialConsumption.objects.filter(production_order=order).select_related('production_stage')
        return Response(MaterialConsumptionSerializer(consumptions, many=True).data)


class ProductionStageViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Stage state machine. Every action goes through StageExecutionService.
    """
    permission_classes = [HasOperationCapability]
    capability_map = {
        'start': 'stage.transition',
        'pause': 'stage.transition',
        'hold': 'stage.transition',
        'resume': 'stage.transition',
        'skip': 'stage.transition',
        'complete': 'stage.transition',
        'update_tracking': 'stage.transition',
        'rework': 'stage.quality',
        'approve': 'stage.quality',
        'log_rejections': 'stage.quality',
    }
    serializer_class = ProductionStageSerializer
    queryset = ProductionStage.objects.select_related('production_order').prefetch_related(
        'quality_checkpoints', 'rework_history'
    )
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['production_order', 'status', 'stage_name', 'is_late', 'is_frozen']
    ordering = ['production_order', 'stage_order']

    def _stage_response(self, pk):
        return Response(self.get_serializer(self.get_queryset().get(pk=pk)).data)

    def _reason(self, request):
        serializer = StageReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data['reason']

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        StageExecutionService.start_stage(request.user, pk)
        return self._stage_response(pk)

    @action(detail=True, methods=['post'])
    def pause(self, request, pk=None):
        StageExecutionService.pause_stage(request.user, pk, self._reason(request))
        return self._stage_response(pk)

    @action(detail=True, methods=['post'])
    def hold(self, request, pk=None):
        StageExecutionService.hold_stage(request.user, pk, self._reason(request))
        return self._stage_response(pk)

    @action(detail=True, methods=['post'])
    def resume(self, request, pk=None):
        StageExecutionService.resume_stage(request.user, pk)
        return self._stage_response(pk)

    @action(detail=True, methods=['post'])
    def skip(self, request, pk=None):
        StageExecutionService.skip_stage(request.user, pk, self._reason(request))
        return self._stage_response(pk)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        serializer = CompleteStageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        StageExecutionService.complete_stage(request.user, pk, **serializer.validated_data)
        return self._stage_response(pk)

    @action(detail=True, methods=['post'])
    def update_tracking(self, request, pk=None):
        serializer = StageTrackingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        if 'material_used' in data:
            data['material_used'] = [dict(line) for line in data['material_used']]
        StageExecutionService.update_tracking(request.user, pk, **data)
        return self._stage_response(pk)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        serializer = ApproveStageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        next_stage = StageExecutionService.approve_stage(request.user, pk, serializer.validated_data['notes'])
        stage = self.get_queryset().get(pk=pk)
        return Response({
            'stage': self.get_serializer(stage).data,
            'next_stage': self.get_serializer(next_stage).data if next_stage else None,
        })

    @action(detail=True, methods=['post'])
    def rework(self, request, pk=None):
        serializer = ReworkStageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        StageExecutionService.rework_stage(request.user, pk, **serializer.validated_data)
        return self._stage_response(pk)

    @action(detail=True, methods=['post'])
    def log_rejections(self, request, pk=None):
        serializer = LogRejectionsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rejections = StageExecutionService.log_rejections(
            request.user, pk, [dict(line) for line in serializer.validated_data['rejections']]
        )
        return Response(RejectionSerializer(rejections, many=True).data, status=status.HTTP_201_CREATED)


class QualityCheckpointViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [HasOperationCapability]
    capability_map = {'record_result': 'stage.quality'}
    serializer_class = QualityCheckpointSerializer
    queryset = QualityCheckpoint.objects.all()
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['production_order', 'production_stage', 'result']

    @action(detail=True, methods=['post'])
    def record_result(self, request, pk=None):
        serializer = CheckpointResultSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        checkpoint = StageExecutionService.record_checkpoint_result(
            request.user, pk, serializer.validated_data['result'], serializer.validated_data['notes']
        )
        return Response(QualityCheckpointSerializer(checkpoint).data)


class MaterialReturnViewSet(viewsets.ReadOnlyModelViewSet):
    permission_classes = [HasOperationCapability]
    capability_map = {
        'create': 'material_return.request',
        'approve': 'material_return.review',
        'reject': 'material_return.review',
        'process': 'material_return.review',
    }
    serializer_class = MaterialReturnSerializer
    queryset = MaterialReturn.objects.select_related('production_order')
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['production_order', 'status']
    search_fields = ['return_number', 'production_order__production_number']
    ordering = ['-created_at']

    def create(self, request):
        serializer = CreateMaterialReturnSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        material_return = MaterialReturnService.request_return(
            request.user,
            data['production_order_id'],
            [dict(line) for line in data['materials']],
            notes=data['notes'],
        )
        return Response(MaterialReturnSerializer(material_return).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        serializer = ReturnDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        material_return = MaterialReturnService.approve_return(request.user, pk, serializer.validated_data['notes'])
        return Response(MaterialReturnSerializer(material_return).data)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        serializer = ReturnRejectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        material_return = MaterialReturnService.reject_return(request.user, pk, serializer.validated_data['reason'])
        return Response(MaterialReturnSerializer(material_return).data)

    @action(detail=True, methods=['post'])
    def process(self, request, pk=None):
        material_return = MaterialReturnService.process_return(request.user, pk)
        return Response(MaterialReturnSerializer(material_return).data)
