from unittest import mock

from django.contrib.auth import get_user_model
from django.db import transaction
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from utils.enums import Department, NotificationPriorityChoices, NotificationTypeChoices
from .dispatcher import NotificationDispatcher, NotificationPayload, NotificationTarget
from .models import WorkflowNotification

User = get_user_model()


def make_payload(**overrides):
    values = {
        'notification_type': NotificationTypeChoices.MATERIAL_DISPATCHED,
        'title': 'Materials dispatched',
        'message': 'DSP-20250617-00001 is on its way',
        'priority': NotificationPriorityChoices.HIGH,
    }
    values.update(overrides)
    return NotificationPayload(**values)


class NotificationDispatcherTest(TestCase):
    """Test cases for best-effort notification fan-out"""

    def setUp(self):
        self.inv_1 = User.objects.create_user(
            email='inv1@example.com', password='testpass123',
            first_name='Inv', last_name='One', department=Department.INVENTORY
        )
        self.inv_2 = User.objects.create_user(
            email='inv2@example.com', password='testpass123',
            first_name='Inv', last_name='Two', department=Department.INVENTORY
        )
        self.inactive = User.objects.create_user(
            email='gone@example.com', password='testpass123',
            first_name='Gone', last_name='User', department=Department.INVENTORY, is_active=False
        )

    def test_department_fan_out_skips_inactive_users(self):
        notifications = NotificationDispatcher.notify(
            NotificationTarget.to_department(Department.INVENTORY), make_payload()
        )

        self.assertEqual(len(notifications), 2)
        recipients = set(WorkflowNotification.objects.values_list('recipient__email', flat=True))
        self.assertEqual(recipients, {'inv1@example.com', 'inv2@example.com'})
        self.assertTrue(all(n.recipient_department == Department.INVENTORY for n in notifications))

    def test_single_user_target(self):
        notifications = NotificationDispatcher.notify(NotificationTarget.to_user(self.inv_1), make_payload())
        self.assertEqual(len(notifications), 1)
        self.assertEqual(notifications[0].recipient, self.inv_1)
        self.assertEqual(notifications[0].recipient_department, '')

    def test_empty_department_returns_nothing(self):
        notifications = NotificationDispatcher.notify(
            NotificationTarget.to_department(Department.FINANCE), make_payload()
        )
        self.assertEqual(notifications, [])
        self.assertFalse(WorkflowNotification.objects.exists())

    def test_target_without_department_or_user_is_swallowed(self):
        self.assertEqual(NotificationDispatcher.notify(NotificationTarget(), make_payload()), [])

    def test_write_failure_is_logged_and_swallowed(self):
        with mock.patch.object(WorkflowNotification.objects, 'bulk_create', side_effect=RuntimeError('db down')):
            with self.assertLogs('notifications.dispatcher', level='ERROR'):
                result = NotificationDispatcher.notify(
                    NotificationTarget.to_department(Department.INVENTORY), make_payload()
                )
        self.assertEqual(result, [])

    def test_department_notification_waits_for_commit(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with transaction.atomic():
                NotificationDispatcher.notify_department(Department.INVENTORY, make_payload())
                self.assertFalse(WorkflowNotification.objects.exists())

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(WorkflowNotification.objects.count(), 2)

    def test_notify_user_without_user_is_a_no_op(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            NotificationDispatcher.notify_user(None, make_payload())
        self.assertEqual(callbacks, [])

    def test_payload_for_entity_carries_the_entity_number(self):
        from sales.models import SalesOrder

        order = SalesOrder.objects.create(customer_name='Acme Apparel', project_name='Summer Tees')
        payload = NotificationPayload.for_entity(
            order, NotificationTypeChoices.PRODUCTION_REQUEST_CREATED, 'New request', 'Please review',
            actor=self.inv_1
        )
        self.assertEqual(payload.related_entity_type, 'salesorder')
        self.assertEqual(payload.related_entity_id, order.pk)
        self.assertEqual(payload.related_entity_number, order.order_number)
        self.assertEqual(payload.created_by_id, self.inv_1.pk)


class WorkflowNotificationAPITest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            email='mfg@example.com', password='testpass123',
            first_name='Floor', last_name='Lead', department=Department.MANUFACTURING
        )
        self.other = User.objects.create_user(
            email='other@example.com', password='testpass123',
            first_name='Other', last_name='Person', department=Department.MANUFACTURING
        )
        NotificationDispatcher.notify(NotificationTarget.to_department(Department.MANUFACTURING), make_payload(
            notification_type=NotificationTypeChoices.STAGE_LATE, action_required=True
        ))
        self.client.force_authenticate(user=self.user)

    def test_list_only_shows_own_notifications(self):
        response = self.client.get('/api/notifications/workflow-notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_unread_count_and_mark_as_read(self):
        response = self.client.get('/api/notifications/workflow-notifications/unread_count/')
        self.assertEqual(response.data['unread_count'], 1)

        notification = WorkflowNotification.objects.get(recipient=self.user)
        response = self.client.post(f'/api/notifications/workflow-notifications/{notification.pk}/mark_as_read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        notification.refresh_from_db()
        self.assertTrue(notification.is_read)
        self.assertIsNotNone(notification.read_at)

    def test_mark_action_taken(self):
        notification = WorkflowNotification.objects.get(recipient=self.user)
        self.client.post(f'/api/notifications/workflow-notifications/{notification.pk}/mark_action_taken/')
        notification.refresh_from_db()
        self.assertTrue(notification.action_taken)

    def test_cannot_read_someone_elses_notification(self):
        foreign = WorkflowNotification.objects.get(recipient=self.other)
        response = self.client.post(f'/api/notifications/workflow-notifications/{foreign.pk}/mark_as_read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
