"""
Comprehensive test suite for Sales module
Tests: Customer order CRUD, validation, filters, DataTables paging, chart and summary
"""
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.orders import one_month_before
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.sales.models import CustomerOrder


class OrderHelperTests(TestCase):
    """Test the shared order helpers"""

    def test_one_month_before_clamps_to_month_end(self):
        moment = datetime(2024, 3, 31, 12, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(one_month_before(moment), datetime(2024, 2, 29, 12, 0, tzinfo=dt_timezone.utc))

    def test_one_month_before_crosses_year(self):
        moment = datetime(2024, 1, 15, tzinfo=dt_timezone.utc)
        self.assertEqual(one_month_before(moment), datetime(2023, 12, 15, tzinfo=dt_timezone.utc))

    def test_totals(self):
        TestDataFactory.create_customer_order(status='pending', total_value=Decimal('10.00'))
        TestDataFactory.create_customer_order(status='delivered', total_value=Decimal('15.50'))
        totals = CustomerOrder.objects.totals()
        self.assertEqual(totals['total_orders'], 2)
        self.assertEqual(totals['pending'], 1)
        self.assertEqual(totals['delivered'], 1)
        self.assertEqual(totals['total_value'], 25.5)

    def test_totals_empty(self):
        self.assertEqual(CustomerOrder.objects.totals()['total_value'], 0.0)

    def test_order_str(self):
        self.assertEqual(str(TestDataFactory.create_customer_order(order_id='CO-1')), 'CO-1')


class CustomerOrderAPITests(TestCase):
    """Test customer order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def _payload(self, **overrides):
        data = {
            'order_id': 'CO-1001',
            'customer_name': 'Acme Retail',
            'items': '3 x Cordless Drill',
            'total_value': '389.97',
        }
        data.update(overrides)
        return data

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/customer-orders/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_order_defaults_to_pending(self):
        response = self.client.post('/api/customer-orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertIsNotNone(response.data['order_date'])
        self.assertTrue(AuditLog.objects.filter(module='Customer Orders', action='CREATE').exists())

    def test_create_normalises_status(self):
        response = self.client.post('/api/customer-orders/', self._payload(status='Shipped'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'shipped')

    def test_create_invalid_status(self):
        response = self.client.post('/api/customer-orders/', self._payload(status='lost'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('status', response.data['errors'])

    def test_create_requires_positive_total(self):
        response = self.client.post('/api/customer-orders/', self._payload(total_value='0'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('total_value', response.data['errors'])

    def test_create_requires_fields(self):
        response = self.client.post('/api/customer-orders/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ('order_id', 'customer_name', 'items', 'total_value'):
            self.assertIn(field, response.data['errors'])

    def test_duplicate_order_id_conflict(self):
        TestDataFactory.create_customer_order(order_id='CO-1001')
        response = self.client.post('/api/customer-orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error_code'], 'DUPLICATE_ORDER_ID')

    def test_list_plain_newest_first(self):
        now = timezone.now()
        TestDataFactory.create_customer_order(order_id='OLD', order_date=now - timedelta(days=3))
        TestDataFactory.create_customer_order(order_id='NEW', order_date=now)
        response = self.client.get('/api/customer-orders/')
        self.assertEqual([row['order_id'] for row in response.data], ['NEW', 'OLD'])

    def test_list_datatables(self):
        for _ in range(7):
            TestDataFactory.create_customer_order()
        response = self.client.get('/api/customer-orders/', {'draw': 2, 'start': 5, 'length': 5})
        self.assertEqual(response.data['draw'], 2)
        self.assertEqual(response.data['recordsTotal'], 7)
        self.assertEqual(len(response.data['data']), 2)

    def test_list_without_draw_is_plain(self):
        for _ in range(3):
            TestDataFactory.create_customer_order()
        response = self.client.get('/api/customer-orders/', {'start': 1, 'length': 1})
        self.assertIsInstance(response.data, list)
        self.assertEqual(len(response.data), 3)

    def test_filter_by_status_and_customer(self):
        TestDataFactory.create_customer_order(customer_name='Acme Retail', status='pending')
        TestDataFactory.create_customer_order(customer_name='Bolt Stores', status='delivered')
        self.assertEqual(len(self.client.get('/api/customer-orders/', {'status': 'DELIVERED'}).data), 1)
        self.assertEqual(len(self.client.get('/api/customer-orders/', {'customer': 'acme'}).data), 1)

    def test_filter_by_date_range(self):
        now = timezone.now()
        TestDataFactory.create_customer_order(order_date=now - timedelta(days=2))
        TestDataFactory.create_customer_order(order_date=now - timedelta(days=20))
        TestDataFactory.create_customer_order(order_date=now - timedelta(days=90))
        self.assertEqual(len(self.client.get('/api/customer-orders/', {'date_range': 'week'}).data), 1)
        self.assertEqual(len(self.client.get('/api/customer-orders/', {'date_range': 'month'}).data), 2)
        self.assertEqual(len(self.client.get('/api/customer-orders/', {'date_range': 'all'}).data), 3)

    def test_get_update_delete(self):
        order = TestDataFactory.create_customer_order(status='pending')

        response = self.client.get(f'/api/customer-orders/{order.id}/')
        self.assertEqual(response.data['order_id'], order.order_id)

        response = self.client.put(f'/api/customer-orders/{order.id}/', {'status': 'delivered'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        order.refresh_from_db()
        self.assertEqual(order.status, 'delivered')

        response = self.client.delete(f'/api/customer-orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(CustomerOrder.objects.filter(id=order.id).exists())

    def test_missing_order(self):
        response = self.client.get('/api/customer-orders/424242/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_status_chart(self):
        TestDataFactory.create_customer_order(status='pending')
        TestDataFactory.create_customer_order(status='pending')
        TestDataFactory.create_customer_order(status='shipped')
        response = self.client.get('/api/customer-orders/chart/status/')
        self.assertEqual(response.data, {'pending': 2, 'shipped': 1})

    def test_summary(self):
        TestDataFactory.create_customer_order(status='pending', total_value=Decimal('100.00'))
        TestDataFactory.create_customer_order(status='delivered', total_value=Decimal('50.00'))
        response = self.client.get('/api/customer-orders/summary/')
        self.assertEqual(response.data, {
            'total_orders': 2, 'pending': 1, 'delivered': 1, 'total_revenue': 150.0,
        })
