from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from utils.enums import Department
from utils.exceptions import CapabilityDenied
from .capabilities import OPERATION_CAPABILITIES, can_perform, require_capability

User = get_user_model()


class CustomUserModelTest(TestCase):

    def test_create_user_derives_username_from_email(self):
        user = User.objects.create_user(
            email='cutter@example.com', password='testpass123',
            first_name='Asha', last_name='Rao', department=Department.MANUFACTURING
        )
        self.assertEqual(user.username, 'cutter@example.com')
        self.assertEqual(user.full_name, 'Asha Rao')
        self.assertTrue(user.check_password('testpass123'))

    def test_superuser_defaults_to_admin_department(self):
        admin_user = User.objects.create_superuser(
            email='root@example.com', password='testpass123', first_name='Root', last_name='User'
        )
        self.assertEqual(admin_user.department, Department.ADMIN)
        self.assertTrue(admin_user.is_staff)


class CapabilityTest(TestCase):
    """Department capability checks"""

    def setUp(self):
        self.inventory_user = User.objects.create_user(
            email='store@example.com', password='testpass123',
            first_name='Store', last_name='Keeper', department=Department.INVENTORY
        )
        self.sales_user = User.objects.create_user(
            email='sales@example.com', password='testpass123',
            first_name='Sales', last_name='Rep', department=Department.SALES
        )
        self.admin_user = User.objects.create_user(
            email='admin@example.com', password='testpass123',
            first_name='Ops', last_name='Admin', department=Department.ADMIN
        )

    def test_inventory_can_dispatch(self):
        self.assertTrue(can_perform(self.inventory_user, 'dispatch.create'))

    def test_sales_cannot_dispatch(self):
        self.assertFalse(can_perform(self.sales_user, 'dispatch.create'))
        with self.assertRaises(CapabilityDenied) as ctx:
            require_capability(self.sales_user, 'dispatch.create')
        self.assertIn("'sales'", str(ctx.exception))
        self.assertIn('dispatch.create', str(ctx.exception))

    def test_admin_passes_every_check(self):
        for operation in OPERATION_CAPABILITIES:
            self.assertTrue(can_perform(self.admin_user, operation), operation)

    def test_unknown_operation_is_an_error(self):
        with self.assertRaises(KeyError):
            can_perform(self.inventory_user, 'no.such.operation')


class AuthenticationAPITest(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            email='qa@example.com', password='testpass123',
            first_name='Quality', last_name='Lead', department=Department.QA
        )

    def test_obtain_token_returns_user_payload(self):
        response = self.client.post(
            '/api/auth/token/', {'email': 'qa@example.com', 'password': 'testpass123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['department'], Department.QA)

    def test_me_lists_capabilities(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('verification.create', response.data['capabilities'])
        self.assertNotIn('dispatch.create', response.data['capabilities'])

    def test_me_requires_authentication(self):
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
