"""
Rework and Rejection Models
Append-only history of failed stage iterations and per-stage rejection line items
"""
from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model

from utils.enums import RejectionSeverityChoices

User = get_user_model()


class StageReworkHistory(models.Model):
    """
    One row per failed iteration of a stage. iteration_number is the stage's
    rework_iteration at the moment it failed.
    """
    production_stage = models.ForeignKey(
        'manufacturing.ProductionStage', on_delete=models.CASCADE, related_name='rework_history'
    )
    iteration_number = models.PositiveSmallIntegerField()
    failure_reason = models.TextField()
    failed_quantity = models.PositiveIntegerField(default=0)
    additional_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    status = models.CharField(max_length=20, default='failed')
    notes = models.TextField(blank=True)
    failed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='stage_rework_entries'
    )
    failed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Stage Rework History'
        verbose_name_plural = 'Stage Rework History'
        ordering = ['production_stage', 'iteration_number']
        constraints = [
            models.UniqueConstraint(
                fields=['production_stage', 'iteration_number'],
                name='unique_rework_iteration_per_stage'
            ),
        ]

    def __str__(self):
        return f"{self.production_stage.stage_name} iteration {self.iteration_number}"


class Rejection(models.Model):
    """
    QA rejection line item logged against a completed stage
    """
    production_order = models.ForeignKey(
        'manufacturing.ProductionOrder', on_delete=models.CASCADE, related_name='rejections'
    )
    production_stage = models.ForeignKey(
        'manufacturing.ProductionStage', on_delete=models.CASCADE, related_name='rejections'
    )
    stage_name = models.CharField(max_length=50)
    rejection_reason = models.CharField(max_length=200)
    detailed_reason = models.TextField(blank=True)
    rejected_quantity = models.PositiveIntegerField()
    severity = models.CharField(
        max_length=10,
        choices=RejectionSeverityChoices.choices,
        default=RejectionSeverityChoices.MINOR
    )
    action_taken = models.CharField(max_length=20, default='pending')
    reported_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='reported_rejections'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Rejection'
        verbose_name_plural = 'Rejections'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['production_order', 'severity']),
        ]

    def __str__(self):
        return f"{self.stage_name}: {self.rejected_quantity} x {self.rejection_reason}"
