"""
Comprehensive test suite for Catalog module
Tests: Product CRUD, DataTables paging, filters, charts, summary and stock alerts
"""
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backend.core.models import AuditLog, SystemConfig
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.catalog.models import Product, STOCK_IN, STOCK_LOW, STOCK_OUT, UNCATEGORIZED


class ProductModelTests(TestCase):
    """Test Product model helpers"""

    def test_product_str(self):
        product = TestDataFactory.create_product(name='Widget', sku='WID-001')
        self.assertEqual(str(product), 'Widget (WID-001)')

    def test_stock_status(self):
        self.assertEqual(TestDataFactory.create_product(quantity=0).stock_status, STOCK_OUT)
        self.assertEqual(TestDataFactory.create_product(quantity=4).stock_status, STOCK_LOW)
        self.assertEqual(TestDataFactory.create_product(quantity=5).stock_status, STOCK_IN)

    def test_status(self):
        self.assertEqual(TestDataFactory.create_product(quantity=0).status, 'out-of-stock')
        self.assertEqual(TestDataFactory.create_product(quantity=1).status, 'in-stock')

    def test_summary_values_stock(self):
        TestDataFactory.create_product(price=Decimal('10.00'), quantity=3)
        TestDataFactory.create_product(price=Decimal('2.50'), quantity=0)
        TestDataFactory.create_product(price=Decimal('1.00'), quantity=100)
        summary = Product.objects.summary()
        self.assertEqual(summary['total_products'], 3)
        self.assertEqual(summary['low_stock'], 1)
        self.assertEqual(summary['out_of_stock'], 1)
        self.assertEqual(summary['total_value'], 130.0)

    def test_category_counts_groups_blank(self):
        TestDataFactory.create_product(category_name='Tools')
        TestDataFactory.create_product(category_name='Tools')
        TestDataFactory.create_product(category_name='')
        TestDataFactory.create_product(category_name='   ')
        counts = Product.objects.category_counts()
        self.assertEqual(counts['Tools'], 2)
        self.assertEqual(counts[UNCATEGORIZED], 2)


class ProductAPITests(TestCase):
    """Test product endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def _payload(self, **overrides):
        data = {
            'name': 'Cordless Drill',
            'sku': 'DRL-100',
            'price': '129.99',
            'category_name': 'Tools',
            'quantity': 12,
            'description': '18V drill',
        }
        data.update(overrides)
        return data

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/products/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['status'], 401)

    def test_create_product(self):
        response = self.client.post('/api/products/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sku'], 'DRL-100')
        self.assertEqual(response.data['stock_status'], STOCK_IN)
        self.assertTrue(Product.objects.filter(sku='DRL-100').exists())

    def test_create_product_is_audited(self):
        self.client.post('/api/products/', self._payload(), format='json')
        log = AuditLog.objects.get(action='CREATE', module='Inventory')
        self.assertEqual(log.entity, 'DRL-100')
        self.assertEqual(log.actor, self.user)

    def test_create_duplicate_sku_conflict(self):
        TestDataFactory.create_product(sku='DRL-100')
        response = self.client.post('/api/products/', self._payload(sku='drl-100'), format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error_code'], 'DUPLICATE_SKU')
        self.assertEqual(response['Content-Type'], 'application/problem+json')

    def test_create_validation_errors(self):
        response = self.client.post('/api/products/', self._payload(name='A', quantity=-1, price='-5'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_code'], 'VALIDATION_ERROR')
        for field in ('name', 'quantity', 'price'):
            self.assertIn(field, response.data['errors'])

    def test_create_missing_required_fields(self):
        response = self.client.post('/api/products/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('sku', response.data['errors'])
        self.assertIn('name', response.data['errors'])

    def test_list_products_plain(self):
        TestDataFactory.create_product()
        TestDataFactory.create_product()
        response = self.client.get('/api/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsInstance(response.data, list)
        self.assertEqual(len(response.data), 2)

    def test_list_products_datatables(self):
        for i in range(15):
            TestDataFactory.create_product(name=f'Item {i:02d}')
        response = self.client.get('/api/products/', {'draw': 3, 'start': 10, 'length': 10})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['draw'], 3)
        self.assertEqual(response.data['recordsTotal'], 15)
        self.assertEqual(response.data['recordsFiltered'], 15)
        self.assertEqual(len(response.data['data']), 5)

    def test_datatables_length_all(self):
        for _ in range(12):
            TestDataFactory.create_product()
        response = self.client.get('/api/products/', {'draw': 1, 'start': 0, 'length': -1})
        self.assertEqual(len(response.data['data']), 12)

    def test_datatables_filtered_count(self):
        TestDataFactory.create_product(name='Hammer', category_name='Tools')
        TestDataFactory.create_product(name='Paint', category_name='Decor')
        response = self.client.get('/api/products/', {'draw': 1, 'category': 'tools'})
        self.assertEqual(response.data['recordsTotal'], 2)
        self.assertEqual(response.data['recordsFiltered'], 1)
        self.assertEqual(response.data['data'][0]['name'], 'Hammer')

    def test_search_by_name_or_sku(self):
        TestDataFactory.create_product(name='Hammer', sku='HAM-1')
        TestDataFactory.create_product(name='Saw', sku='SAW-1')
        self.assertEqual(len(self.client.get('/api/products/', {'search': 'ham'}).data), 1)
        self.assertEqual(len(self.client.get('/api/products/', {'search': 'saw-1'}).data), 1)

    def test_filter_by_price_and_status(self):
        TestDataFactory.create_product(price=Decimal('5.00'), quantity=0)
        TestDataFactory.create_product(price=Decimal('50.00'), quantity=3)
        TestDataFactory.create_product(price=Decimal('500.00'), quantity=30)
        response = self.client.get('/api/products/', {'min_price': 10, 'max_price': 100})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/products/', {'status': 'Out of Stock'})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/products/', {'status': 'low stock'})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/products/', {'status': 'bogus'})
        self.assertEqual(len(response.data), 0)

    def test_get_product(self):
        product = TestDataFactory.create_product()
        response = self.client.get(f'/api/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], product.id)

    def test_get_missing_product(self):
        response = self.client.get('/api/products/9999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error_code'], 'RESOURCE_NOT_FOUND')
        self.assertIn('9999', response.data['detail'])

    def test_update_product_partial(self):
        product = TestDataFactory.create_product(quantity=10)
        response = self.client.put(f'/api/products/{product.id}/', {'quantity': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        self.assertEqual(product.quantity, 3)
        log = AuditLog.objects.get(action='UPDATE', module='Inventory')
        self.assertEqual(log.changes['quantity'], {'old': '10', 'new': '3'})

    def test_update_keeps_own_sku(self):
        product = TestDataFactory.create_product(sku='OWN-1')
        response = self.client.patch(f'/api/products/{product.id}/', {'sku': 'OWN-1', 'name': 'Renamed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_update_to_taken_sku_conflict(self):
        TestDataFactory.create_product(sku='TAKEN-1')
        product = TestDataFactory.create_product()
        response = self.client.patch(f'/api/products/{product.id}/', {'sku': 'TAKEN-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_delete_product(self):
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(id=product.id).exists())
        log = AuditLog.objects.get(action='DELETE', module='Inventory')
        self.assertEqual(log.severity, 'high')

    def test_category_chart(self):
        TestDataFactory.create_product(category_name='Tools')
        TestDataFactory.create_product(category_name='')
        response = self.client.get('/api/products/chart/category/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {UNCATEGORIZED: 1, 'Tools': 1})

    def test_stock_levels_chart(self):
        TestDataFactory.create_product(quantity=0)
        TestDataFactory.create_product(quantity=2)
        TestDataFactory.create_product(quantity=40)
        response = self.client.get('/api/products/chart/stock-levels/')
        self.assertEqual(response.data, {STOCK_IN: 1, STOCK_LOW: 1, STOCK_OUT: 1})

    def test_summary(self):
        TestDataFactory.create_product(price=Decimal('2.00'), quantity=5)
        response = self.client.get('/api/products/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_products'], 1)
        self.assertEqual(response.data['total_value'], 10.0)


class AlertTests(TestCase):
    """Test stock alert endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_alerts_use_default_threshold(self):
        TestDataFactory.create_product(name='Low', quantity=10)
        TestDataFactory.create_product(name='Fine', quantity=11)
        TestDataFactory.create_product(name='Empty', quantity=0)
        response = self.client.get('/api/alerts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['threshold'], 10)
        self.assertEqual([row['name'] for row in response.data['low_stock_items']], ['Low'])
        self.assertEqual([row['name'] for row in response.data['out_of_stock_items']], ['Empty'])
        self.assertEqual(response.data['total_alerts'], 2)

    def test_alerts_follow_configured_threshold(self):
        SystemConfig.objects.update_or_create(key='LowStockThreshold', defaults={'value': '3', 'category': 'Business'})
        TestDataFactory.create_product(quantity=3)
        TestDataFactory.create_product(quantity=4)
        response = self.client.get('/api/alerts/')
        self.assertEqual(response.data['threshold'], 3)
        self.assertEqual(response.data['low_stock_count'], 1)

    def test_low_stock_ordered_by_quantity(self):
        TestDataFactory.create_product(name='B', quantity=7)
        TestDataFactory.create_product(name='A', quantity=2)
        response = self.client.get('/api/alerts/')
        self.assertEqual([row['quantity'] for row in response.data['low_stock_items']], [2, 7])

    def test_alerts_capped_at_twenty(self):
        for _ in range(25):
            TestDataFactory.create_product(quantity=0)
        response = self.client.get('/api/alerts/')
        self.assertEqual(len(response.data['out_of_stock_items']), 20)

    def test_alert_count(self):
        for _ in range(25):
            TestDataFactory.create_product(quantity=0)
        TestDataFactory.create_product(quantity=1)
        response = self.client.get('/api/alerts/count/')
        self.assertEqual(response.data, {'low_stock_count': 1, 'out_of_stock_count': 25, 'total_alerts': 26})
