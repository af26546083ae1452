from django.db import models
from django.contrib.auth import get_user_model

from utils.enums import Department, NotificationPriorityChoices, NotificationTypeChoices

User = get_user_model()


class WorkflowNotification(models.Model):
    """
    Department- or user-targeted alert written as a side effect of a
    committed workflow transition
    """
    # Notification details
    notification_type = models.CharField(max_length=40, choices=NotificationTypeChoices.choices)
    title = models.CharField(max_length=200)
    message = models.TextField()
    priority = models.CharField(
        max_length=10,
        choices=NotificationPriorityChoices.choices,
        default=NotificationPriorityChoices.NORMAL
    )

    # Recipients
    recipient = models.ForeignKey(
        User, on_delete=models.CASCADE,
        related_name='workflow_notifications'
    )
    recipient_department = models.CharField(
        max_length=20, choices=Department.choices,
        blank=True, default='',
        help_text="Set when the notification was fanned out to a whole department"
    )

    # Related entity
    related_entity_type = models.CharField(max_length=50, blank=True, default='')
    related_entity_id = models.PositiveIntegerField(null=True, blank=True)
    related_entity_number = models.CharField(max_length=40, blank=True, default='')

    # Status tracking
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)

    # Action tracking
    action_required = models.BooleanField(default=False)
    action_taken = models.BooleanField(default=False)
    action_taken_at = models.DateTimeField(null=True, blank=True)

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='created_workflow_notifications'
    )

    class Meta:
        verbose_name = 'Workflow Notification'
        verbose_name_plural = 'Workflow Notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read']),
            models.Index(fields=['notification_type']),
            models.Index(fields=['related_entity_type', 'related_entity_id']),
            models.Index(fields=['created_at']),
        ]

    def __str__(self):
        return f"{self.get_notification_type_display()} - {self.recipient.email}"
