import logging

from django.db import transaction
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters
from rest_framework.decorators import action
from rest_framework.response import Response

from authentication.permissions import HasOperationCapability
from utils.enums import SalesOrderStatusChoices
from utils.transitions import fetch_for_update, require_state
from .models import SalesOrder
from .serializers import SalesOrderSerializer

logger = logging.getLogger(__name__)


class SalesOrderViewSet(viewsets.ModelViewSet):
    """
    Sales orders. Status moves are driven by the workflow, except confirm/cancel.
    """
    permission_classes = [HasOperationCapability]
    capability_map = {
        'create': 'sales_order.manage',
        'update': 'sales_order.manage',
        'partial_update': 'sales_order.manage',
        'destroy': 'sales_order.manage',
        'confirm': 'sales_order.manage',
        'cancel': 'sales_order.manage',
    }
    serializer_class = SalesOrderSerializer
    queryset = SalesOrder.objects.select_related('created_by')
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'priority']
    search_fields = ['order_number', 'customer_name', 'project_name']
    ordering_fields = ['created_at', 'delivery_date']
    ordering = ['-created_at']

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    @action(detail=True, methods=['post'])
    def confirm(self, request, pk=None):
        with transaction.atomic():
            order = fetch_for_update(SalesOrder, pk, 'Sales order')
            require_state(order, [SalesOrderStatusChoices.DRAFT], 'confirm', 'sales order')
            order.record_lifecycle(SalesOrderStatusChoices.CONFIRMED, request.user)
            order.save(update_fields=['status', 'lifecycle_history', 'updated_at'])
        logger.info(f"Sales order {order.order_number} confirmed by {request.user.email}")
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        with transaction.atomic():
            order = fetch_for_update(SalesOrder, pk, 'Sales order')
            require_state(
                order,
                [SalesOrderStatusChoices.DRAFT, SalesOrderStatusChoices.CONFIRMED,
                 SalesOrderStatusChoices.PRODUCTION_REQUESTED],
                'cancel', 'sales order'
            )
            order.record_lifecycle(SalesOrderStatusChoices.CANCELLED, request.user, request.data.get('reason', ''))
            order.save(update_fields=['status', 'lifecycle_history', 'updated_at'])
        logger.info(f"Sales order {order.order_number} cancelled by {request.user.email}")
        return Response(self.get_serializer(order).data)
