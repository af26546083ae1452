from django.contrib import admin
from .models import (
    MaterialConsumption, MaterialReceipt, MaterialReturn, MaterialVerification, ProductionApproval,
    ProductionOrder, ProductionRequest, ProductionStage, QualityCheckpoint, Rejection, StageReworkHistory
)


@admin.register(ProductionRequest)
class ProductionRequestAdmin(admin.ModelAdmin):
    list_display = ('request_number', 'product_name', 'quantity', 'unit', 'priority', 'status', 'created_at')
    list_filter = ('status', 'priority')
    search_fields = ('request_number', 'product_name', 'project_name', 'sales_order__order_number')
    readonly_fields = ('request_number', 'reviewed_at', 'completed_at', 'created_at', 'updated_at')
    ordering = ('-created_at',)


@admin.register(MaterialReceipt)
class MaterialReceiptAdmin(admin.ModelAdmin):
    list_display = ('receipt_number', 'dispatch', 'has_discrepancy', 'verification_status', 'received_at')
    list_filter = ('has_discrepancy', 'verification_status')
    search_fields = ('receipt_number', 'dispatch__dispatch_number')
    readonly_fields = ('receipt_number', 'received_at')


@admin.register(MaterialVerification)
class MaterialVerificationAdmin(admin.ModelAdmin):
    list_display = ('verification_number', 'receipt', 'overall_result', 'approval_status', 'verified_at')
    list_filter = ('overall_result', 'approval_status')
    search_fields = ('verification_number', 'receipt__receipt_number')
    readonly_fields = ('verification_number', 'verified_at')


@admin.register(ProductionApproval)
class ProductionApprovalAdmin(admin.ModelAdmin):
    list_display = ('approval_number', 'verification', 'approval_status', 'production_started', 'approved_at')
    list_filter = ('approval_status', 'production_started')
    search_fields = ('approval_number', 'mrn_request__request_number')
    readonly_fields = ('approval_number', 'approved_at', 'production_started_at')


# Inline for displaying stages within the production order admin
class ProductionStageInline(admin.TabularInline):
    model = ProductionStage
    extra = 0
    fields = ('stage_order', 'stage_name', 'status', 'quantity_processed', 'quantity_approved',
              'quantity_rejected', 'rework_iteration', 'is_late', 'is_frozen')
    readonly_fields = ('rework_iteration', 'is_late')
    ordering = ('stage_order',)


@admin.register(ProductionOrder)
class ProductionOrderAdmin(admin.ModelAdmin):
    list_display = ('production_number', 'product_name', 'quantity', 'status', 'progress_display',
                    'planned_end_date', 'created_at')
    list_filter = ('status', 'priority', 'created_at')
    search_fields = ('production_number', 'product_name', 'sales_order__order_number')
    readonly_fields = ('production_number', 'progress_percentage', 'approved_quantity', 'rejected_quantity',
                       'produced_quantity', 'actual_start_date', 'actual_end_date', 'created_at', 'updated_at')
    ordering = ('-created_at',)
    inlines = [ProductionStageInline]

    def progress_display(self, obj):
        return f"{obj.progress_percentage}%"
    progress_display.short_description = 'Progress'
    progress_display.admin_order_field = 'progress_percentage'


@admin.register(ProductionStage)
class ProductionStageAdmin(admin.ModelAdmin):
    list_display = ('production_order', 'stage_order', 'stage_name', 'status', 'is_late', 'is_frozen', 'rework_iteration')
    list_filter = ('status', 'is_late', 'is_frozen', 'stage_name')
    search_fields = ('production_order__production_number', 'stage_name')

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('production_order')


@admin.register(QualityCheckpoint)
class QualityCheckpointAdmin(admin.ModelAdmin):
    list_display = ('name', 'production_order', 'production_stage', 'result', 'checked_at')
    list_filter = ('result',)


@admin.register(StageReworkHistory)
class StageReworkHistoryAdmin(admin.ModelAdmin):
    list_display = ('production_stage', 'iteration_number', 'failed_quantity', 'additional_cost', 'failed_at')
    readonly_fields = ('failed_at',)


@admin.register(Rejection)
class RejectionAdmin(admin.ModelAdmin):
    list_display = ('production_order', 'stage_name', 'rejection_reason', 'rejected_quantity', 'severity', 'created_at')
    list_filter = ('severity', 'stage_name')


@admin.register(MaterialConsumption)
class MaterialConsumptionAdmin(admin.ModelAdmin):
    list_display = ('production_order', 'production_stage', 'material_name', 'quantity_used', 'source', 'consumed_at')
    list_filter = ('source',)


@admin.register(MaterialReturn)
class MaterialReturnAdmin(admin.ModelAdmin):
    list_display = ('return_number', 'production_order', 'status', 'requested_by', 'created_at')
    list_filter = ('status',)
    search_fields = ('return_number', 'production_order__production_number')
    readonly_fields = ('return_number', 'approved_at', 'returned_at', 'created_at')
