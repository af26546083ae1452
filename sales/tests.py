from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase

from utils.enums import Department, SalesOrderStatusChoices
from .models import SalesOrder

User = get_user_model()


class SalesOrderAPITest(APITestCase):

    def setUp(self):
        self.sales_user = User.objects.create_user(
            email='sales@example.com', password='testpass123',
            first_name='Sam', last_name='Sales', department=Department.SALES
        )
        self.planner = User.objects.create_user(
            email='planner@example.com', password='testpass123',
            first_name='Kiran', last_name='Planner', department=Department.MANUFACTURING
        )
        self.client.force_authenticate(user=self.sales_user)

    def create_order(self):
        response = self.client.post('/api/sales/orders/', {
            'customer_name': 'Acme Apparel',
            'project_name': 'Summer Tees',
            'items': [{'product_name': 'Crew Neck Tee', 'quantity': 60, 'size': 'M', 'color': 'navy'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def test_create_starts_in_draft_with_number(self):
        data = self.create_order()
        self.assertEqual(data['status'], SalesOrderStatusChoices.DRAFT)
        self.assertTrue(data['order_number'].startswith('SO-'))
        self.assertEqual(data['total_quantity'], 60)

    def test_items_are_required(self):
        response = self.client.post('/api/sales/orders/', {
            'customer_name': 'Acme Apparel', 'items': [],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_confirm_records_lifecycle(self):
        data = self.create_order()
        response = self.client.post(f"/api/sales/orders/{data['id']}/confirm/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], SalesOrderStatusChoices.CONFIRMED)
        self.assertEqual(response.data['lifecycle_history'][-1]['user_id'], self.sales_user.pk)

    def test_confirm_twice_is_invalid_state(self):
        data = self.create_order()
        self.client.post(f"/api/sales/orders/{data['id']}/confirm/")
        response = self.client.post(f"/api/sales/orders/{data['id']}/confirm/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_state')

    def test_cannot_cancel_in_production(self):
        data = self.create_order()
        SalesOrder.objects.filter(pk=data['id']).update(status=SalesOrderStatusChoices.IN_PRODUCTION)
        response = self.client.post(f"/api/sales/orders/{data['id']}/cancel/", {'reason': 'Customer withdrew'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_manufacturing_cannot_create_orders(self):
        self.client.force_authenticate(user=self.planner)
        response = self.client.post('/api/sales/orders/', {
            'customer_name': 'Acme Apparel',
            'items': [{'product_name': 'Crew Neck Tee', 'quantity': 60}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['code'], 'permission_denied')
        self.assertIn("'manufacturing'", response.data['error'])
        self.assertIn('sales_order.manage', response.data['error'])
