from django.contrib import admin

from .models import CreditNote, GoodsReceiptNote, PurchaseOrder


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ('po_number', 'vendor_name', 'project_name', 'status', 'total_amount', 'created_at')
    list_filter = ('status',)
    search_fields = ('po_number', 'vendor_name', 'project_name')
    readonly_fields = ('po_number', 'created_at', 'updated_at')


@admin.register(GoodsReceiptNote)
class GoodsReceiptNoteAdmin(admin.ModelAdmin):
    list_display = ('grn_number', 'purchase_order', 'has_overage', 'has_shortage', 'status', 'received_at')
    list_filter = ('status', 'has_overage', 'has_shortage')
    search_fields = ('grn_number', 'purchase_order__po_number')


@admin.register(CreditNote)
class CreditNoteAdmin(admin.ModelAdmin):
    list_display = ('credit_note_number', 'vendor_name', 'total_amount', 'status', 'settlement_status')
    list_filter = ('status', 'settlement_status')
    search_fields = ('credit_note_number', 'vendor_name', 'grn__grn_number')
