from django.contrib import admin

from .models import SalesOrder


@admin.register(SalesOrder)
class SalesOrderAdmin(admin.ModelAdmin):
    list_display = ('order_number', 'customer_name', 'project_name', 'status', 'priority', 'delivery_date')
    list_filter = ('status', 'priority')
    search_fields = ('order_number', 'customer_name', 'project_name')
    readonly_fields = ('order_number', 'lifecycle_history', 'created_at', 'updated_at')
