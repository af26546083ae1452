"""
Sales Order model
The upstream owner of every production run
"""
from django.db import models
from django.contrib.auth import get_user_model
from django.utils import timezone

from sequences.models import SequencedNumberModel
from utils.enums import PriorityChoices, SalesOrderStatusChoices

User = get_user_model()


class SalesOrder(SequencedNumberModel):
    sequence_prefix = 'SO'
    sequence_field = 'order_number'

    order_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: SO-YYYYMMDD-XXXXX"
    )
    customer_name = models.CharField(max_length=200)
    project_name = models.CharField(max_length=200, blank=True)
    items = models.JSONField(
        default=list,
        help_text="Garment lines: [{product_name, quantity, unit, size, color}]"
    )
    delivery_date = models.DateField(null=True, blank=True)
    priority = models.CharField(max_length=10, choices=PriorityChoices.choices, default=PriorityChoices.MEDIUM)
    status = models.CharField(
        max_length=30,
        choices=SalesOrderStatusChoices.choices,
        default=SalesOrderStatusChoices.DRAFT
    )
    lifecycle_history = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_sales_orders'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Sales Order'
        verbose_name_plural = 'Sales Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['order_number']),
        ]

    def __str__(self):
        return f"{self.order_number} - {self.customer_name}"

    @property
    def total_quantity(self):
        return sum(int(item.get('quantity') or 0) for item in self.items or [])

    def record_lifecycle(self, status, user=None, note=''):
        """Move to status and append the step to lifecycle_history (caller saves)"""
        self.status = status
        self.lifecycle_history = list(self.lifecycle_history or []) + [{
            'status': str(status),
            'timestamp': timezone.now().isoformat(),
            'user_id': getattr(user, 'pk', None),
            'note': note,
        }]
