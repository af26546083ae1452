"""
Production Request Service
Sales (or procurement) hands a product run to manufacturing; manufacturing
reviews it and links it to the production order that fulfils it
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from notifications.dispatcher import NotificationDispatcher, NotificationPayload
from procurement.models import PurchaseOrder
from sales.models import SalesOrder
from utils.enums import (
    Department, NotificationPriorityChoices, NotificationTypeChoices, PriorityChoices,
    ProductionRequestStatusChoices, SalesOrderStatusChoices, UnitChoices
)
from utils.exceptions import DuplicateEntityError, InvalidStateError, PayloadValidationError
from utils.transitions import fetch_for_update, require_state, to_decimal
from .models import ProductionOrder, ProductionRequest

logger = logging.getLogger(__name__)

ALLOWED_STATUS_TRANSITIONS = {
    ProductionRequestStatusChoices.PENDING: [
        ProductionRequestStatusChoices.REVIEWED, ProductionRequestStatusChoices.CANCELLED
    ],
    ProductionRequestStatusChoices.REVIEWED: [
        ProductionRequestStatusChoices.IN_PRODUCTION, ProductionRequestStatusChoices.CANCELLED
    ],
    ProductionRequestStatusChoices.IN_PRODUCTION: [
        ProductionRequestStatusChoices.COMPLETED, ProductionRequestStatusChoices.CANCELLED
    ],
}


class ProductionRequestService:

    @staticmethod
    def _summarize_items(sales_order):
        """Derive product name, quantity and specifications from the order's garment lines"""
        items = [item for item in sales_order.items or [] if isinstance(item, dict)]
        if not items:
            raise PayloadValidationError(f"{sales_order.order_number} has no items to produce")

        names = []
        for item in items:
            name = str(item.get('product_name') or '').strip()
            if name and name not in names:
                names.append(name)
        quantity = sum(to_decimal(item.get('quantity', 0), 'items.quantity') for item in items)
        if quantity <= 0:
            raise PayloadValidationError(f"{sales_order.order_number} has no quantity to produce")

        product_name = names[0] if len(names) == 1 else f"{sales_order.project_name or sales_order.customer_name} ({len(items)} styles)"
        specifications = {
            'items': [
                {key: item.get(key) for key in ('product_name', 'quantity', 'unit', 'size', 'color') if key in item}
                for item in items
            ],
        }
        description = ', '.join(
            f"{item.get('quantity')} x {item.get('product_name', '')}".strip() for item in items
        )
        return product_name, quantity, specifications, description

    @staticmethod
    def create_from_sales_order(actor, sales_order_id, priority=None, required_date=None, notes=''):
        with transaction.atomic():
            sales_order = fetch_for_update(SalesOrder, sales_order_id, 'Sales order')
            if sales_order.status in [SalesOrderStatusChoices.DRAFT, SalesOrderStatusChoices.CANCELLED]:
                raise InvalidStateError(
                    f"Cannot request production for sales order in status '{sales_order.status}'; "
                    f"confirm the order first",
                    current_state=sales_order.status,
                    required_states=[SalesOrderStatusChoices.CONFIRMED],
                )
            if sales_order.production_requests.exclude(status=ProductionRequestStatusChoices.CANCELLED).exists():
                raise DuplicateEntityError("Production request already exists for this sales order")

            product_name, quantity, specifications, description = \
                ProductionRequestService._summarize_items(sales_order)

            try:
                with transaction.atomic():
                    request = ProductionRequest.objects.create(
                        sales_order=sales_order,
                        project_name=sales_order.project_name,
                        product_name=product_name,
                        product_description=description,
                        product_specifications=specifications,
                        quantity=quantity,
                        priority=priority or sales_order.priority,
                        required_date=required_date or sales_order.delivery_date,
                        sales_notes=notes,
                        requested_by=actor,
                    )
            except IntegrityError:
                raise DuplicateEntityError("Production request already exists for this sales order")

            if sales_order.status == SalesOrderStatusChoices.CONFIRMED:
                sales_order.record_lifecycle(
                    SalesOrderStatusChoices.PRODUCTION_REQUESTED, actor,
                    note=f"Production request {request.request_number} raised"
                )
                sales_order.save(update_fields=['status', 'lifecycle_history', 'updated_at'])

            NotificationDispatcher.notify_department(Department.MANUFACTURING, NotificationPayload.for_entity(
                request, NotificationTypeChoices.PRODUCTION_REQUEST_CREATED,
                title=f"Production request {request.request_number}",
                message=f"{sales_order.order_number} ({sales_order.customer_name}): "
                        f"{request.quantity} x {request.product_name}.",
                priority=NotificationPriorityChoices.HIGH,
                actor=actor,
                action_required=True,
            ))

        logger.info(f"Production request {request.request_number} created for {sales_order.order_number}")
        return request

    @staticmethod
    def create_from_purchase_order(actor, purchase_order_id, product_name, quantity, unit=UnitChoices.PIECES,
                                   required_date=None, priority=PriorityChoices.MEDIUM,
                                   product_description='', product_specifications=None, notes=''):
        product_name = str(product_name or '').strip()
        if not product_name:
            raise PayloadValidationError("product_name is required")
        quantity = to_decimal(quantity, 'quantity', allow_zero=False)
        if unit not in UnitChoices.values:
            raise PayloadValidationError(f"unit '{unit}' is not a known unit")
        if product_specifications is not None and not isinstance(product_specifications, dict):
            raise PayloadValidationError("product_specifications must be an object")

        with transaction.atomic():
            po = fetch_for_update(PurchaseOrder, purchase_order_id, 'Purchase order')
            if not po.project_name:
                raise PayloadValidationError(f"{po.po_number} has no project_name; production cannot be requested")

            request = ProductionRequest.objects.create(
                purchase_order=po,
                project_name=po.project_name,
                product_name=product_name,
                product_description=product_description,
                product_specifications=product_specifications or {},
                quantity=quantity,
                unit=unit,
                priority=priority,
                required_date=required_date,
                sales_notes=notes,
                requested_by=actor,
            )

            NotificationDispatcher.notify_department(Department.MANUFACTURING, NotificationPayload.for_entity(
                request, NotificationTypeChoices.PRODUCTION_REQUEST_CREATED,
                title=f"Production request {request.request_number}",
                message=f"{po.po_number} ({po.project_name}): {request.quantity} x {request.product_name}.",
                priority=NotificationPriorityChoices.HIGH,
                actor=actor,
                action_required=True,
            ))

        logger.info(f"Production request {request.request_number} created from {po.po_number}")
        return request

    @staticmethod
    def update_status(actor, request_id, new_status, notes=''):
        if new_status not in ProductionRequestStatusChoices.values:
            raise PayloadValidationError(f"Unknown production request status '{new_status}'")

        with transaction.atomic():
            request = fetch_for_update(ProductionRequest, request_id, 'Production request')
            allowed = ALLOWED_STATUS_TRANSITIONS.get(request.status, [])
            if new_status not in allowed:
                required = ' or '.join(f"'{status}'" for status in allowed) or 'none (terminal)'
                raise InvalidStateError(
                    f"Cannot move production request from '{request.status}' to '{new_status}'; "
                    f"allowed: {required}",
                    current_state=request.status,
                    required_states=allowed,
                )

            now = timezone.now()
            previous = request.status
            request.status = new_status
            if notes:
                request.manufacturing_notes = notes
            if new_status == ProductionRequestStatusChoices.REVIEWED:
                request.reviewed_by = actor
                request.reviewed_at = now
            if new_status in [ProductionRequestStatusChoices.COMPLETED, ProductionRequestStatusChoices.CANCELLED]:
                request.completed_at = now
            request.save(update_fields=[
                'status', 'manufacturing_notes', 'reviewed_by', 'reviewed_at', 'completed_at', 'updated_at'
            ])

            NotificationDispatcher.notify_user(request.requested_by, NotificationPayload.for_entity(
                request, NotificationTypeChoices.PRODUCTION_REQUEST_UPDATED,
                title=f"Production request {request.request_number} {new_status.replace('_', ' ')}",
                message=notes or f"Status changed from {previous} to {new_status}.",
                priority=NotificationPriorityChoices.MEDIUM,
                actor=actor,
            ))

        logger.info(f"Production request {request.request_number}: {previous} -> {new_status}")
        return request

    @staticmethod
    def link_production_order(actor, request_id, production_order_id):
        with transaction.atomic():
            request = fetch_for_update(ProductionRequest, request_id, 'Production request')
            require_state(
                request, [ProductionRequestStatusChoices.PENDING, ProductionRequestStatusChoices.REVIEWED],
                'link a production order to', 'production request'
            )
            order = fetch_for_update(ProductionOrder, production_order_id, 'Production order')

            request.production_order = order
            request.status = ProductionRequestStatusChoices.IN_PRODUCTION
            if request.reviewed_by_id is None:
                request.reviewed_by = actor
                request.reviewed_at = timezone.now()
            request.save(update_fields=['production_order', 'status', 'reviewed_by', 'reviewed_at', 'updated_at'])

            NotificationDispatcher.notify_user(request.requested_by, NotificationPayload.for_entity(
                request, NotificationTypeChoices.PRODUCTION_REQUEST_UPDATED,
                title=f"Production started for {request.request_number}",
                message=f"Scheduled on production order {order.production_number}.",
                priority=NotificationPriorityChoices.MEDIUM,
                actor=actor,
            ))

        logger.info(f"Production request {request.request_number} linked to {order.production_number}")
        return request
