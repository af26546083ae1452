"""
Procurement Models
Purchase orders, goods receipt notes (GRN) and overage credit notes
"""
from decimal import Decimal

from django.db import models
from django.contrib.auth import get_user_model

from sequences.models import SequencedNumberModel
from utils.enums import (
    CreditNoteStatusChoices, GRNStatusChoices, PurchaseOrderStatusChoices,
    SettlementStatusChoices
)

User = get_user_model()


class PurchaseOrder(SequencedNumberModel):
    sequence_prefix = 'PO'
    sequence_field = 'po_number'

    po_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: PO-YYYYMMDD-XXXXX"
    )
    vendor_name = models.CharField(max_length=200)
    vendor_contact = models.CharField(max_length=200, blank=True)
    project_name = models.CharField(max_length=200, blank=True)
    sales_order = models.ForeignKey(
        'sales.SalesOrder', on_delete=models.PROTECT,
        null=True, blank=True, related_name='purchase_orders'
    )
    production_request = models.ForeignKey(
        'manufacturing.ProductionRequest', on_delete=models.PROTECT,
        null=True, blank=True, related_name='purchase_orders'
    )
    items = models.JSONField(
        default=list,
        help_text="[{material_name, inventory_id, quantity, unit, rate, amount}]"
    )
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    tax_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    expected_delivery_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=PurchaseOrderStatusChoices.choices,
        default=PurchaseOrderStatusChoices.DRAFT
    )
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_purchase_orders'
    )
    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='approved_purchase_orders'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Purchase Order'
        verbose_name_plural = 'Purchase Orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status']),
        ]

    def __str__(self):
        return f"{self.po_number} - {self.vendor_name}"


class GoodsReceiptNote(SequencedNumberModel):
    """
    Receipt of goods against a purchase order. Quantities above what is still
    outstanding on a PO line are recorded as overage and never stocked.
    """
    sequence_prefix = 'GRN'
    sequence_field = 'grn_number'

    grn_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: GRN-YYYYMMDD-XXXXX"
    )
    purchase_order = models.ForeignKey(
        PurchaseOrder, on_delete=models.PROTECT, related_name='grns'
    )
    items = models.JSONField(
        default=list,
        help_text="[{line_index, material_name, inventory_id, unit, rate, outstanding_quantity, "
                  "received_quantity, accepted_quantity, overage_quantity, shortage_quantity}]"
    )
    has_overage = models.BooleanField(default=False)
    has_shortage = models.BooleanField(default=False)
    is_first_grn = models.BooleanField(default=True)
    grn_sequence = models.PositiveIntegerField(default=1)
    inward_challan_number = models.CharField(max_length=50, blank=True)
    supplier_invoice_number = models.CharField(max_length=50, blank=True)
    status = models.CharField(
        max_length=20,
        choices=GRNStatusChoices.choices,
        default=GRNStatusChoices.RECEIVED
    )
    remarks = models.TextField(blank=True)

    received_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='received_grns'
    )
    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Goods Receipt Note'
        verbose_name_plural = 'Goods Receipt Notes'
        ordering = ['-received_at']

    def __str__(self):
        return f"{self.grn_number} for {self.purchase_order.po_number}"

    @property
    def overage_items(self):
        return [item for item in self.items if Decimal(str(item.get('overage_quantity') or 0)) > 0]


class CreditNote(SequencedNumberModel):
    """
    Vendor credit raised for the overage on a GRN
    """
    sequence_prefix = 'CN'
    sequence_field = 'credit_note_number'

    credit_note_number = models.CharField(
        max_length=30, unique=True, editable=False,
        help_text="Auto-generated: CN-YYYYMMDD-XXXXX"
    )
    grn = models.ForeignKey(GoodsReceiptNote, on_delete=models.PROTECT, related_name='credit_notes')
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.PROTECT, related_name='credit_notes')
    vendor_name = models.CharField(max_length=200)
    items = models.JSONField(default=list, help_text="[{material_name, overage_quantity, rate, amount}]")
    subtotal = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    tax_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0'))
    tax_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    total_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0'))
    status = models.CharField(
        max_length=20,
        choices=CreditNoteStatusChoices.choices,
        default=CreditNoteStatusChoices.DRAFT
    )
    settlement_status = models.CharField(
        max_length=20,
        choices=SettlementStatusChoices.choices,
        default=SettlementStatusChoices.PENDING
    )
    remarks = models.TextField(blank=True)

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_credit_notes'
    )
    approved_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='approved_credit_notes'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Credit Note'
        verbose_name_plural = 'Credit Notes'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['grn'],
                condition=~models.Q(status='cancelled'),
                name='one_open_credit_note_per_grn'
            ),
        ]

    def __str__(self):
        return f"{self.credit_note_number} - {self.vendor_name}"
