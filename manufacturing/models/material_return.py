"""
Material Return Model
Post-production reconciliation of leftover materials back to inventory
"""
from django.db import models
from django.contrib.auth import get_user_model

from sequences.models import SequencedNumberModel
from utils.enums import MaterialReturnStatusChoices

User = get_user_model()


class MaterialReturn(SequencedNumberModel):
    sequence_prefix = 'MRT'
    sequence_field = 'return_number'

    return_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: MRT-YYYYMMDD-XXXXX"
    )
    production_order = models.ForeignKey(
        'manufacturing.ProductionOrder', on_delete=models.PROTECT, related_name='material_returns'
    )
    total_materials = models.JSONField(
        default=list,
        help_text="[{inventory_id, material_name, quantity, unit, reason}]"
    )
    status = models.CharField(
        max_length=20,
        choices=MaterialReturnStatusChoices.choices,
        default=MaterialReturnStatusChoices.PENDING_APPROVAL
    )
    notes = models.TextField(blank=True)
    approval_notes = models.TextField(blank=True)
    rejection_reason = models.TextField(blank=True)

    requested_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='requested_material_returns'
    )
    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='approved_material_returns'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    returned_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='processed_material_returns'
    )
    returned_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Material Return'
        verbose_name_plural = 'Material Returns'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['production_order', 'status']),
        ]

    def __str__(self):
        return f"{self.return_number} ({self.get_status_display()})"
