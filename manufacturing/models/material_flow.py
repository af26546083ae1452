"""
Material Flow Models
Receipt, QA verification and production approval of dispatched materials
"""
from django.db import models
from django.contrib.auth import get_user_model

from sequences.models import SequencedNumberModel
from utils.enums import (
    ApprovalDecisionChoices, ReceiptVerificationStatusChoices,
    VerificationApprovalStatusChoices, VerificationResultChoices
)

User = get_user_model()


class MaterialReceipt(SequencedNumberModel):
    """
    Manufacturing's confirmation of what physically arrived against one dispatch
    """
    sequence_prefix = 'MRN-RCV'
    sequence_field = 'receipt_number'

    receipt_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: MRN-RCV-YYYYMMDD-XXXXX"
    )
    mrn_request = models.ForeignKey(
        'inventory.ProjectMaterialRequest', on_delete=models.PROTECT, related_name='receipts'
    )
    dispatch = models.OneToOneField(
        'inventory.MaterialDispatch', on_delete=models.PROTECT, related_name='receipt'
    )
    received_materials = models.JSONField(
        default=list,
        help_text="[{inventory_id, material_name, quantity_received, unit}]"
    )
    has_discrepancy = models.BooleanField(default=False)
    discrepancy_details = models.JSONField(default=dict, blank=True)
    receipt_notes = models.TextField(blank=True)
    verification_status = models.CharField(
        max_length=20,
        choices=ReceiptVerificationStatusChoices.choices,
        default=ReceiptVerificationStatusChoices.PENDING
    )

    received_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='material_receipts'
    )
    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Material Receipt'
        verbose_name_plural = 'Material Receipts'
        ordering = ['-received_at']

    def __str__(self):
        return f"{self.receipt_number} ({self.get_verification_status_display()})"


class MaterialVerification(SequencedNumberModel):
    """
    QA sign-off on a received set of materials
    """
    sequence_prefix = 'MRN-VRF'
    sequence_field = 'verification_number'

    verification_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: MRN-VRF-YYYYMMDD-XXXXX"
    )
    mrn_request = models.ForeignKey(
        'inventory.ProjectMaterialRequest', on_delete=models.PROTECT, related_name='verifications'
    )
    receipt = models.OneToOneField(
        MaterialReceipt, on_delete=models.PROTECT, related_name='verification'
    )
    verification_checklist = models.JSONField(default=dict, blank=True)
    overall_result = models.CharField(max_length=10, choices=VerificationResultChoices.choices)
    issues_found = models.JSONField(default=list, blank=True)
    verification_notes = models.TextField(blank=True)
    approval_status = models.CharField(
        max_length=20,
        choices=VerificationApprovalStatusChoices.choices,
        default=VerificationApprovalStatusChoices.PENDING
    )

    verified_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='material_verifications'
    )
    verified_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Material Verification'
        verbose_name_plural = 'Material Verifications'
        ordering = ['-verified_at']

    def __str__(self):
        return f"{self.verification_number} - {self.overall_result}"

    @property
    def passed(self):
        return self.overall_result == VerificationResultChoices.PASSED


class ProductionApproval(SequencedNumberModel):
    """
    Manager's gate to begin production with verified materials
    """
    sequence_prefix = 'PRD-APV'
    sequence_field = 'approval_number'

    approval_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: PRD-APV-YYYYMMDD-XXXXX"
    )
    mrn_request = models.ForeignKey(
        'inventory.ProjectMaterialRequest', on_delete=models.PROTECT, related_name='production_approvals'
    )
    verification = models.OneToOneField(
        MaterialVerification, on_delete=models.PROTECT, related_name='production_approval'
    )
    approval_status = models.CharField(max_length=10, choices=ApprovalDecisionChoices.choices)
    material_allocations = models.JSONField(default=list, blank=True)
    production_start_date = models.DateField(null=True, blank=True)
    approval_notes = models.TextField(blank=True)
    rejection_reason = models.TextField(blank=True)
    conditions = models.TextField(blank=True)

    production_started = models.BooleanField(default=False)
    production_started_at = models.DateTimeField(null=True, blank=True)
    production_order = models.ForeignKey(
        'manufacturing.ProductionOrder', on_delete=models.SET_NULL,
        null=True, blank=True, related_name='started_from_approvals'
    )

    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='production_approvals'
    )
    approved_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Production Approval'
        verbose_name_plural = 'Production Approvals'
        ordering = ['-approved_at']

    def __str__(self):
        return f"{self.approval_number} - {self.approval_status}"
