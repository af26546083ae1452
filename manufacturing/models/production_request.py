"""
Production Request Model
Manufacturing's formal ask to produce a product for a sales order or PO
"""
from django.db import models
from django.contrib.auth import get_user_model

from sequences.models import SequencedNumberModel
from utils.enums import PriorityChoices, ProductionRequestStatusChoices, UnitChoices

User = get_user_model()


class ProductionRequest(SequencedNumberModel):
    sequence_field = 'request_number'

    request_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: PRQ-YYYYMMDD-XXXXX (sales) or PR-YYYYMMDD-XXXXX (purchase order)"
    )
    sales_order = models.ForeignKey(
        'sales.SalesOrder', on_delete=models.PROTECT,
        null=True, blank=True, related_name='production_requests'
    )
    purchase_order = models.ForeignKey(
        'procurement.PurchaseOrder', on_delete=models.PROTECT,
        null=True, blank=True, related_name='production_requests'
    )
    production_order = models.ForeignKey(
        'manufacturing.ProductionOrder', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='production_requests'
    )

    project_name = models.CharField(max_length=200, blank=True)
    product_name = models.CharField(max_length=200)
    product_description = models.TextField(blank=True)
    product_specifications = models.JSONField(default=dict, blank=True)
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    unit = models.CharField(max_length=10, choices=UnitChoices.choices, default=UnitChoices.PIECES)
    priority = models.CharField(max_length=10, choices=PriorityChoices.choices, default=PriorityChoices.MEDIUM)
    required_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=ProductionRequestStatusChoices.choices,
        default=ProductionRequestStatusChoices.PENDING
    )
    sales_notes = models.TextField(blank=True)
    manufacturing_notes = models.TextField(blank=True)

    requested_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='production_requests'
    )
    reviewed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='reviewed_production_requests'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Production Request'
        verbose_name_plural = 'Production Requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['sales_order'],
                condition=~models.Q(status='cancelled'),
                name='one_open_production_request_per_sales_order'
            ),
        ]

    def __str__(self):
        return f"{self.request_number} - {self.product_name}"

    def get_sequence_prefix(self):
        if self.purchase_order_id and not self.sales_order_id:
            return 'PR'
        return 'PRQ'
