"""
Production Order Models
Shop-floor execution: orders, their ordered stages, quality checkpoints and
material consumption
"""
from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model
from django.utils import timezone

from sequences.models import SequencedNumberModel
from utils.enums import (
    CheckpointResultChoices, MaterialSourceChoices, PriorityChoices,
    ProductionOrderStatusChoices, StageStatusChoices, UnitChoices
)

User = get_user_model()


class ProductionOrder(SequencedNumberModel):
    sequence_prefix = 'PRD'
    sequence_field = 'production_number'

    production_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: PRD-YYYYMMDD-XXXX"
    )
    sales_order = models.ForeignKey(
        'sales.SalesOrder', on_delete=models.PROTECT,
        null=True, blank=True, related_name='production_orders'
    )
    production_approval = models.ForeignKey(
        'manufacturing.ProductionApproval', on_delete=models.PROTECT,
        null=True, blank=True, related_name='production_orders'
    )
    product_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField()
    priority = models.CharField(max_length=10, choices=PriorityChoices.choices, default=PriorityChoices.MEDIUM)
    status = models.CharField(
        max_length=20,
        choices=ProductionOrderStatusChoices.choices,
        default=ProductionOrderStatusChoices.PENDING
    )

    # Planning
    planned_start_date = models.DateTimeField()
    planned_end_date = models.DateTimeField()
    actual_start_date = models.DateTimeField(null=True, blank=True)
    actual_end_date = models.DateTimeField(null=True, blank=True)

    # Rollups
    progress_percentage = models.PositiveSmallIntegerField(default=0)
    approved_quantity = models.PositiveIntegerField(default=0)
    rejected_quantity = models.PositiveIntegerField(default=0)
    produced_quantity = models.PositiveIntegerField(default=0)

    delay_reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    supervisor = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='supervised_production_orders'
    )
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_production_orders'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Production Order'
        verbose_name_plural = 'Production Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
            models.Index(fields=['planned_end_date']),
        ]

    def __str__(self):
        return f"{self.production_number} - {self.product_name}"

    @property
    def is_overdue(self):
        return (
            self.status not in [ProductionOrderStatusChoices.COMPLETED, ProductionOrderStatusChoices.CANCELLED]
            and self.planned_end_date < timezone.now()
        )


class ProductionStage(models.Model):
    """
    One step of a production order (cutting, stitching, ...), executed in stage_order
    """
    production_order = models.ForeignKey(ProductionOrder, on_delete=models.CASCADE, related_name='stages')
    stage_name = models.CharField(max_length=50)
    stage_order = models.PositiveSmallIntegerField()
    status = models.CharField(
        max_length=20,
        choices=StageStatusChoices.choices,
        default=StageStatusChoices.PENDING
    )

    # Timing
    planned_start_time = models.DateTimeField(null=True, blank=True)
    planned_end_time = models.DateTimeField(null=True, blank=True)
    actual_start_time = models.DateTimeField(null=True, blank=True)
    actual_end_time = models.DateTimeField(null=True, blank=True)
    actual_duration_hours = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)

    # Quantities
    quantity_processed = models.PositiveIntegerField(default=0)
    quantity_approved = models.PositiveIntegerField(default=0)
    quantity_rejected = models.PositiveIntegerField(default=0)

    # Rework and deadline tracking
    rework_iteration = models.PositiveSmallIntegerField(default=1)
    is_late = models.BooleanField(default=False)
    is_frozen = models.BooleanField(default=False)
    late_reason = models.TextField(blank=True)
    delay_reason = models.TextField(blank=True)

    # Quality
    quality_approved = models.BooleanField(default=False)
    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='approved_production_stages'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    rejection_reasons = models.JSONField(default=list, blank=True)

    # Cost
    cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    total_material_used = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))

    assigned_to = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='assigned_production_stages'
    )
    notes = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Production Stage'
        verbose_name_plural = 'Production Stages'
        ordering = ['production_order', 'stage_order']
        constraints = [
            models.UniqueConstraint(fields=['production_order', 'stage_order'], name='unique_stage_order_per_order'),
            models.CheckConstraint(
                condition=models.Q(
                    quantity_processed__gte=models.F('quantity_approved') + models.F('quantity_rejected')
                ),
                name='stage_approved_plus_rejected_within_processed'
            ),
        ]
        indexes = [
            models.Index(fields=['production_order', 'status']),
            models.Index(fields=['is_frozen']),
        ]

    def __str__(self):
        return f"{self.production_order.production_number} #{self.stage_order} {self.stage_name} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in [StageStatusChoices.COMPLETED, StageStatusChoices.SKIPPED]

    def compute_duration_hours(self):
        if not self.actual_start_time or not self.actual_end_time:
            return None
        seconds = (self.actual_end_time - self.actual_start_time).total_seconds()
        return (Decimal(str(seconds)) / Decimal('3600')).quantize(Decimal('0.01'))


class QualityCheckpoint(models.Model):
    """
    A quality gate on a production order, optionally bound to one stage.
    A stage's approval requires every checkpoint bound to it to be passed.
    """
    production_order = models.ForeignKey(ProductionOrder, on_delete=models.CASCADE, related_name='quality_checkpoints')
    production_stage = models.ForeignKey(
        ProductionStage, on_delete=models.CASCADE,
        null=True, blank=True, related_name='quality_checkpoints'
    )
    name = models.CharField(max_length=100)
    acceptance_criteria = models.TextField(blank=True)
    checkpoint_order = models.PositiveSmallIntegerField(default=1)
    result = models.CharField(
        max_length=10,
        choices=CheckpointResultChoices.choices,
        default=CheckpointResultChoices.PENDING
    )
    notes = models.TextField(blank=True)
    checked_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='quality_checkpoints'
    )
    checked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = 'Quality Checkpoint'
        verbose_name_plural = 'Quality Checkpoints'
        ordering = ['production_order', 'checkpoint_order']

    def __str__(self):
        return f"{self.name} ({self.result})"


class MaterialConsumption(models.Model):
    """
    Material used by a stage, drawn from an allocation or straight from inventory
    """
    production_order = models.ForeignKey(ProductionOrder, on_delete=models.CASCADE, related_name='material_consumptions')
    production_stage = models.ForeignKey(ProductionStage, on_delete=models.CASCADE, related_name='material_consumptions')
    allocation = models.ForeignKey(
        'inventory.MaterialAllocation', on_delete=models.PROTECT,
        null=True, blank=True, related_name='consumptions'
    )
    inventory = models.ForeignKey(
        'inventory.InventoryItem', on_delete=models.PROTECT,
        null=True, blank=True, related_name='consumptions'
    )
    material_name = models.CharField(max_length=200, blank=True)
    quantity_used = models.DecimalField(max_digits=12, decimal_places=3)
    unit = models.CharField(max_length=10, choices=UnitChoices.choices, default=UnitChoices.PIECES)
    source = models.CharField(max_length=10, choices=MaterialSourceChoices.choices, default=MaterialSourceChoices.ALLOCATED)
    consumed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='material_consumptions'
    )
    consumed_at = models.DateTimeField(auto_now_add=True)
    notes = models.TextField(blank=True)

    class Meta:
        verbose_name = 'Material Consumption'
        verbose_name_plural = 'Material Consumptions'
        ordering = ['-consumed_at']

    def __str__(self):
        return f"{self.material_name or self.inventory_id}: {self.quantity_used}"
