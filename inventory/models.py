from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator

from sequences.models import SequencedNumberModel
from utils.enums import (
    Department, DispatchReceivedStatusChoices, InventoryMovementTypeChoices,
    MaterialRequestStatusChoices, PriorityChoices, UnitChoices
)

User = get_user_model()


class InventoryItem(models.Model):
    """
    A stocked material (fabric, trims, thread, packaging) with its on-hand balance
    """
    item_code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=200)
    category = models.CharField(max_length=50, blank=True)
    unit = models.CharField(max_length=10, choices=UnitChoices.choices, default=UnitChoices.PIECES)
    quantity_in_stock = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    reorder_level = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    unit_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    location = models.CharField(max_length=100, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Inventory Item'
        verbose_name_plural = 'Inventory Items'
        ordering = ['item_code']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_in_stock__gte=0),
                name='inventory_item_non_negative_stock'
            ),
        ]

    def __str__(self):
        return f"{self.item_code} - {self.name}"

    @property
    def is_below_reorder_level(self):
        return self.quantity_in_stock <= self.reorder_level


class InventoryMovement(models.Model):
    """
    Append-only stock ledger; quantity is signed (+ in, - out)
    """
    inventory = models.ForeignKey(InventoryItem, on_delete=models.PROTECT, related_name='movements')
    movement_type = models.CharField(max_length=30, choices=InventoryMovementTypeChoices.choices)
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    balance_after = models.DecimalField(max_digits=12, decimal_places=3)
    reference_type = models.CharField(max_length=50, blank=True)
    reference_id = models.PositiveIntegerField(null=True, blank=True)
    reference_number = models.CharField(max_length=40, blank=True)
    notes = models.TextField(blank=True)
    performed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='inventory_movements'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Inventory Movement'
        verbose_name_plural = 'Inventory Movements'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['inventory', 'created_at']),
            models.Index(fields=['reference_type', 'reference_id']),
        ]

    def __str__(self):
        return f"{self.get_movement_type_display()} {self.quantity} of {self.inventory.item_code}"


class ProjectMaterialRequest(SequencedNumberModel):
    """
    Material Request Note (MRN): manufacturing's request for the materials a
    project needs. Every dispatch, receipt, verification and approval hangs off it.
    """
    sequence_prefix = 'MRN'
    sequence_field = 'request_number'

    request_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: MRN-YYYYMMDD-XXXXX"
    )
    project_name = models.CharField(max_length=200)
    sales_order = models.ForeignKey(
        'sales.SalesOrder', on_delete=models.PROTECT,
        null=True, blank=True, related_name='material_requests'
    )
    production_request = models.ForeignKey(
        'manufacturing.ProductionRequest', on_delete=models.PROTECT,
        null=True, blank=True, related_name='material_requests'
    )
    requesting_department = models.CharField(
        max_length=20, choices=Department.choices, default=Department.MANUFACTURING
    )
    materials_requested = models.JSONField(
        default=list,
        help_text="[{inventory_id, material_name, quantity, unit}]"
    )
    priority = models.CharField(max_length=10, choices=PriorityChoices.choices, default=PriorityChoices.MEDIUM)
    required_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=MaterialRequestStatusChoices.choices,
        default=MaterialRequestStatusChoices.PENDING
    )
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_material_requests'
    )
    processed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='processed_material_requests'
    )
    processed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Project Material Request'
        verbose_name_plural = 'Project Material Requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
        ]

    def __str__(self):
        return f"{self.request_number} - {self.project_name}"


class MaterialDispatch(SequencedNumberModel):
    """
    One dispatch of materials from inventory to a manufacturing project
    """
    sequence_prefix = 'DSP'
    sequence_field = 'dispatch_number'

    dispatch_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: DSP-YYYYMMDD-XXXXX"
    )
    mrn_request = models.ForeignKey(
        ProjectMaterialRequest, on_delete=models.PROTECT, related_name='dispatches'
    )
    project_name = models.CharField(max_length=200, blank=True)
    dispatched_materials = models.JSONField(
        default=list,
        help_text="[{inventory_id, material_name, quantity_dispatched, unit}]"
    )
    total_items = models.PositiveIntegerField(default=0)
    dispatch_notes = models.TextField(blank=True)
    received_status = models.CharField(
        max_length=20,
        choices=DispatchReceivedStatusChoices.choices,
        default=DispatchReceivedStatusChoices.PENDING
    )

    dispatched_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='material_dispatches'
    )
    dispatched_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Material Dispatch'
        verbose_name_plural = 'Material Dispatches'
        ordering = ['-dispatched_at']
        indexes = [
            models.Index(fields=['mrn_request', 'received_status']),
        ]

    def __str__(self):
        return f"{self.dispatch_number} for {self.mrn_request.request_number}"


class MaterialAllocation(models.Model):
    """
    Materials reserved for production on approval; consumption draws them down
    """
    mrn_request = models.ForeignKey(
        ProjectMaterialRequest, on_delete=models.PROTECT, related_name='allocations'
    )
    production_approval = models.ForeignKey(
        'manufacturing.ProductionApproval', on_delete=models.PROTECT,
        null=True, blank=True, related_name='allocations'
    )
    production_order = models.ForeignKey(
        'manufacturing.ProductionOrder', on_delete=models.PROTECT,
        null=True, blank=True, related_name='allocations'
    )
    inventory = models.ForeignKey(
        InventoryItem, on_delete=models.PROTECT,
        null=True, blank=True, related_name='allocations'
    )
    material_name = models.CharField(max_length=200)
    unit = models.CharField(max_length=10, choices=UnitChoices.choices, default=UnitChoices.PIECES)
    quantity_allocated = models.DecimalField(
        max_digits=12, decimal_places=3, validators=[MinValueValidator(Decimal('0'))]
    )
    quantity_consumed = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    quantity_remaining = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))
    quantity_returned = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0'))

    # Set once the order's leftovers have been returned; no further draws
    is_reconciled = models.BooleanField(default=False)
    reconciled_at = models.DateTimeField(null=True, blank=True)

    allocated_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='material_allocations'
    )
    allocated_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Material Allocation'
        verbose_name_plural = 'Material Allocations'
        ordering = ['allocated_at']

    def __str__(self):
        return f"{self.material_name}: {self.quantity_remaining}/{self.quantity_allocated}"

    def belongs_to(self, order):
        return self.production_order_id == order.pk or bool(
            order.production_approval_id and self.production_approval_id == order.production_approval_id
        )
