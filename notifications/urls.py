from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import WorkflowNotificationViewSet

router = DefaultRouter()
router.register(r'workflow-notifications', WorkflowNotificationViewSet, basename='workflownotification')

app_name = 'notifications'

urlpatterns = [
    path('', include(router.urls)),
]

"""
Workflow Notifications API:

- GET    /api/notifications/workflow-notifications/                         - List user's notifications
- GET    /api/notifications/workflow-notifications/unread_count/            - Unread counter
- GET    /api/notifications/workflow-notifications/{id}/                    - Get one notification
- POST   /api/notifications/workflow-notifications/{id}/mark_as_read/       - Mark as read
- POST   /api/notifications/workflow-notifications/{id}/mark_action_taken/  - Mark action as taken

Query Parameters:
- notification_type: e.g. material_dispatched, stage_late
- is_read, action_required: true/false
- priority: low, normal, medium, high, urgent
"""
