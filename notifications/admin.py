from django.contrib import admin

from .models import WorkflowNotification


@admin.register(WorkflowNotification)
class WorkflowNotificationAdmin(admin.ModelAdmin):
    list_display = ('title', 'notification_type', 'priority', 'recipient', 'recipient_department', 'is_read', 'created_at')
    list_filter = ('notification_type', 'priority', 'recipient_department', 'is_read')
    search_fields = ('title', 'message', 'related_entity_number', 'recipient__email')
    ordering = ('-created_at',)
