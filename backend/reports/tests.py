"""
Comprehensive test suite for Reports module
Tests: Insights metrics and charts, dashboard summaries, caching
"""
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backend.core.cache_utils import invalidate_insights_cache
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class InsightsTests(TestCase):
    """Test insights endpoint"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def tearDown(self):
        cache.clear()

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/insights/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_empty_insights(self):
        response = self.client.get('/api/insights/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_products'], 0)
        self.assertEqual(response.data['stock_levels_chart']['data'], [0, 0, 0])
        self.assertEqual(response.data['supplier_status_chart'], {'labels': [], 'data': [], 'colors': []})

    def test_headline_metrics(self):
        TestDataFactory.create_product(quantity=9)
        TestDataFactory.create_product(quantity=10)
        TestDataFactory.create_customer_order()
        TestDataFactory.create_audit_log()
        response = self.client.get('/api/insights/')
        self.assertEqual(response.data['total_products'], 2)
        self.assertEqual(response.data['low_stock_count'], 1)
        self.assertEqual(response.data['total_orders'], 1)
        self.assertEqual(response.data['audit_logs_count'], 1)

    def test_stock_levels_chart(self):
        for quantity in (0, 9, 10, 50, 51):
            TestDataFactory.create_product(quantity=quantity)
        chart = self.client.get('/api/insights/').data['stock_levels_chart']
        self.assertEqual(chart['categories'], ['Low Stock (<10)', 'Medium (10-50)', 'High (>50)'])
        self.assertEqual(chart['data'], [2, 2, 1])
        self.assertEqual(chart['colors'], ['#dc3545', '#ffc107', '#28a745'])

    def test_audit_actions_chart(self):
        TestDataFactory.create_audit_log(action='UPDATE')
        TestDataFactory.create_audit_log(action='UPDATE')
        TestDataFactory.create_audit_log(action='CREATE')
        chart = self.client.get('/api/insights/').data['audit_actions_chart']
        self.assertEqual(chart['categories'], ['UPDATE', 'CREATE'])
        self.assertEqual(chart['data'], [2, 1])
        self.assertEqual(chart['colors'], ['#246dec'])

    def test_status_charts_truncate_colors(self):
        TestDataFactory.create_supplier_order(status='pending')
        TestDataFactory.create_customer_order(status='delivered')
        TestDataFactory.create_customer_order(status='pending')
        data = self.client.get('/api/insights/').data
        self.assertEqual(data['supplier_status_chart'], {
            'labels': ['Pending'], 'data': [1], 'colors': ['#ffc107'],
        })
        self.assertEqual(data['customer_status_chart']['labels'], ['Delivered', 'Pending'])
        self.assertEqual(data['customer_status_chart']['colors'], ['#ffc107', '#246dec'])

    def test_insights_are_cached_until_invalidated(self):
        self.client.get('/api/insights/')
        TestDataFactory.create_product()
        self.assertEqual(self.client.get('/api/insights/').data['total_products'], 0)

        invalidate_insights_cache()
        self.assertEqual(self.client.get('/api/insights/').data['total_products'], 1)

    def test_product_write_invalidates_on_commit(self):
        self.client.get('/api/insights/')
        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_product()
        self.assertEqual(self.client.get('/api/insights/').data['total_products'], 1)


class DashboardTests(TestCase):
    """Test dashboard summary endpoint"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def tearDown(self):
        cache.clear()

    def test_dashboard(self):
        TestDataFactory.create_product(quantity=0, price=Decimal('1.00'))
        TestDataFactory.create_product(quantity=4, price=Decimal('2.00'))
        TestDataFactory.create_customer_order(status='delivered', total_value=Decimal('80.00'))
        TestDataFactory.create_supplier_order(status='pending', total_value=Decimal('40.00'))

        response = self.client.get('/api/insights/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['products']['total_products'], 2)
        self.assertEqual(response.data['products']['total_value'], 8.0)
        self.assertEqual(response.data['customer_orders']['total_revenue'], 80.0)
        self.assertEqual(response.data['supplier_orders']['pending'], 1)
        self.assertEqual(response.data['alerts'], {
            'low_stock_count': 1, 'out_of_stock_count': 1, 'total_alerts': 2, 'threshold': 10,
        })
