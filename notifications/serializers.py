from django.utils import timezone
from rest_framework import serializers

from .models import WorkflowNotification


class WorkflowNotificationSerializer(serializers.ModelSerializer):
    """Serializer for WorkflowNotification model"""
    notification_type_display = serializers.CharField(source='get_notification_type_display', read_only=True)
    priority_display = serializers.CharField(source='get_priority_display', read_only=True)
    created_by_name = serializers.CharField(source='created_by.full_name', read_only=True, default=None)
    time_ago = serializers.SerializerMethodField()

    class Meta:
        model = WorkflowNotification
        fields = [
            'id', 'notification_type', 'notification_type_display', 'title', 'message',
            'priority', 'priority_display', 'recipient', 'recipient_department',
            'related_entity_type', 'related_entity_id', 'related_entity_number',
            'is_read', 'read_at', 'action_required', 'action_taken', 'action_taken_at',
            'created_at', 'created_by', 'created_by_name', 'time_ago'
        ]
        read_only_fields = fields

    def get_time_ago(self, obj):
        """Get human-readable time since notification was created"""
        diff = timezone.now() - obj.created_at

        if diff.days > 0:
            return f"{diff.days} day{'s' if diff.days > 1 else ''} ago"
        elif diff.seconds > 3600:
            hours = diff.seconds // 3600
            return f"{hours} hour{'s' if hours > 1 else ''} ago"
        elif diff.seconds > 60:
            minutes = diff.seconds // 60
            return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
        return "Just now"
