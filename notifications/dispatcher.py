"""
Notification Dispatcher
Fans workflow alerts out to a department or a single user. Delivery is
best-effort: failures are logged and swallowed, never surfaced to the caller.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.contrib.auth import get_user_model
from django.db import transaction

from utils.enums import NotificationPriorityChoices
from utils.exceptions import NotificationFailure
from .models import WorkflowNotification

logger = logging.getLogger(__name__)
User = get_user_model()


@dataclass(frozen=True)
class NotificationTarget:
    department: Optional[str] = None
    user_id: Optional[int] = None

    @classmethod
    def to_department(cls, department):
        return cls(department=getattr(department, 'value', department))

    @classmethod
    def to_user(cls, user):
        return cls(user_id=getattr(user, 'pk', user))

    def __str__(self):
        if self.user_id is not None:
            return f"user:{self.user_id}"
        return f"department:{self.department}"


@dataclass(frozen=True)
class NotificationPayload:
    notification_type: str
    title: str
    message: str
    priority: str = NotificationPriorityChoices.NORMAL
    related_entity_type: str = ''
    related_entity_id: Optional[int] = None
    related_entity_number: str = ''
    created_by_id: Optional[int] = None
    action_required: bool = False

    @classmethod
    def for_entity(cls, entity, notification_type, title, message, priority=NotificationPriorityChoices.NORMAL,
                   actor=None, action_required=False, number_field=None):
        """Build a payload pointing back at a workflow entity"""
        number = getattr(entity, number_field or getattr(entity, 'sequence_field', None) or '', '') or ''
        return cls(
            notification_type=notification_type,
            title=title,
            message=message,
            priority=priority,
            related_entity_type=entity._meta.model_name,
            related_entity_id=entity.pk,
            related_entity_number=number,
            created_by_id=getattr(actor, 'pk', None),
            action_required=action_required,
        )


class NotificationDispatcher:
    """
    notify() writes one WorkflowNotification per active recipient.
    notify_on_commit() defers notify() until the surrounding transaction commits.
    """

    @staticmethod
    def resolve_recipients(target):
        if target.user_id is not None:
            return list(User.objects.filter(pk=target.user_id, is_active=True))
        if target.department:
            return list(User.objects.filter(department=target.department, is_active=True))
        raise NotificationFailure("Notification target needs a department or a user")

    @staticmethod
    def notify(target, payload):
        try:
            recipients = NotificationDispatcher.resolve_recipients(target)
            if not recipients:
                logger.info(f"No active recipients for {payload.notification_type} at {target}; skipping")
                return []

            with transaction.atomic():
                notifications = WorkflowNotification.objects.bulk_create([
                    WorkflowNotification(
                        notification_type=payload.notification_type,
                        title=payload.title,
                        message=payload.message,
                        priority=payload.priority,
                        recipient=recipient,
                        recipient_department=target.department or '',
                        related_entity_type=payload.related_entity_type,
                        related_entity_id=payload.related_entity_id,
                        related_entity_number=payload.related_entity_number,
                        action_required=payload.action_required,
                        created_by_id=payload.created_by_id,
                    )
                    for recipient in recipients
                ])
            logger.info(f"Sent {payload.notification_type} to {len(notifications)} recipient(s) at {target}")
            return notifications
        except Exception:
            logger.exception(f"Failed to send {payload.notification_type} notification to {target}")
            return []

    @staticmethod
    def notify_on_commit(target, payload):
        """Queue notify() to run once the current transaction has committed"""
        transaction.on_commit(lambda: NotificationDispatcher.notify(target, payload))

    @staticmethod
    def notify_department(department, payload):
        NotificationDispatcher.notify_on_commit(NotificationTarget.to_department(department), payload)

    @staticmethod
    def notify_user(user, payload):
        if user is None:
            logger.info(f"No user to receive {payload.notification_type}; skipping")
            return
        NotificationDispatcher.notify_on_commit(NotificationTarget.to_user(user), payload)
