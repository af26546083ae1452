from django.contrib import admin
from django.utils.html import format_html
from .models import (
    InventoryItem, InventoryMovement, MaterialAllocation, MaterialDispatch, ProjectMaterialRequest
)


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ('item_code', 'name', 'category', 'unit', 'quantity_in_stock', 'get_stock_status', 'is_active')
    list_filter = ('category', 'unit', 'is_active')
    search_fields = ('item_code', 'name', 'location')
    ordering = ('item_code',)
    # Balance changes go through the movement ledger only
    readonly_fields = ('quantity_in_stock', 'created_at', 'updated_at')

    fieldsets = (
        ('Basic Information', {
            'fields': ('item_code', 'name', 'category', 'unit', 'location', 'is_active')
        }),
        ('Stock', {
            'fields': ('quantity_in_stock', 'reorder_level', 'unit_cost')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def get_stock_status(self, obj):
        if obj.quantity_in_stock <= 0:
            color, label = 'red', 'Out of Stock'
        elif obj.is_below_reorder_level:
            color, label = 'orange', 'Reorder'
        else:
            color, label = 'green', 'In Stock'
        return format_html('<span style="color: {}; font-weight: bold;">{}</span>', color, label)

    get_stock_status.short_description = 'Stock Status'


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ('inventory', 'movement_type', 'quantity', 'balance_after', 'reference_number', 'performed_by', 'created_at')
    list_filter = ('movement_type', 'created_at')
    search_fields = ('inventory__item_code', 'reference_number', 'notes')
    readonly_fields = [f.name for f in InventoryMovement._meta.fields]

    def has_add_permission(self, request):
        return False

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('inventory', 'performed_by')


class MaterialDispatchInline(admin.TabularInline):
    model = MaterialDispatch
    extra = 0
    fields = ('dispatch_number', 'total_items', 'received_status', 'dispatched_by', 'dispatched_at')
    readonly_fields = fields
    can_delete = False


@admin.register(ProjectMaterialRequest)
class ProjectMaterialRequestAdmin(admin.ModelAdmin):
    list_display = ('request_number', 'project_name', 'requesting_department', 'priority', 'status', 'created_at')
    list_filter = ('status', 'priority', 'requesting_department')
    search_fields = ('request_number', 'project_name')
    readonly_fields = ('request_number', 'created_at', 'updated_at', 'processed_at', 'completed_at')
    inlines = [MaterialDispatchInline]


@admin.register(MaterialDispatch)
class MaterialDispatchAdmin(admin.ModelAdmin):
    list_display = ('dispatch_number', 'mrn_request', 'project_name', 'total_items', 'received_status', 'dispatched_at')
    list_filter = ('received_status',)
    search_fields = ('dispatch_number', 'project_name', 'mrn_request__request_number')
    readonly_fields = ('dispatch_number', 'dispatched_at')


@admin.register(MaterialAllocation)
class MaterialAllocationAdmin(admin.ModelAdmin):
    list_display = (
        'material_name', 'mrn_request', 'production_order', 'quantity_allocated',
        'quantity_consumed', 'quantity_returned', 'quantity_remaining', 'is_reconciled'
    )
    list_filter = ('is_reconciled',)
    search_fields = ('material_name', 'mrn_request__request_number')
    readonly_fields = ('allocated_at', 'reconciled_at')
