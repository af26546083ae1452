from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, filters
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import WorkflowNotification
from .serializers import WorkflowNotificationSerializer


class WorkflowNotificationViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Notifications addressed to the current user
    """
    permission_classes = [IsAuthenticated]
    serializer_class = WorkflowNotificationSerializer
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['notification_type', 'is_read', 'action_required', 'priority', 'related_entity_type']
    ordering_fields = ['created_at', 'priority']
    ordering = ['-created_at']

    def get_queryset(self):
        return WorkflowNotification.objects.filter(
            recipient=self.request.user
        ).select_related('created_by')

    @action(detail=False, methods=['get'])
    def unread_count(self, request):
        count = self.get_queryset().filter(is_read=False).count()
        return Response({'unread_count': count})

    @action(detail=True, methods=['post'])
    def mark_as_read(self, request, pk=None):
        """Mark notification as read"""
        notification = self.get_object()
        notification.is_read = True
        notification.read_at = timezone.now()
        notification.save(update_fields=['is_read', 'read_at'])

        serializer = self.get_serializer(notification)
        return Response(serializer.data)

    @action(detail=True, methods=['post'])
    def mark_action_taken(self, request, pk=None):
        """Mark that action has been taken on notification"""
        notification = self.get_object()
        notification.action_taken = True
        notification.action_taken_at = timezone.now()
        notification.save(update_fields=['action_taken', 'action_taken_at'])

        serializer = self.get_serializer(notification)
        return Response(serializer.data)
