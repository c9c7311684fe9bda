"""
Comprehensive test suite for Purchasing module
Tests: Supplier order CRUD, validation, filters, DataTables paging, chart and summary
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.purchasing.models import SupplierOrder


class SupplierOrderAPITests(TestCase):
    """Test supplier order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def _payload(self, **overrides):
        data = {
            'order_id': 'SO-2001',
            'supplier_name': 'Northwind Traders',
            'items': '100 x Drill Bits',
            'total_value': '450.00',
            'status': 'approved',
        }
        data.update(overrides)
        return data

    def test_create_order(self):
        response = self.client.post('/api/supplier-orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['supplier_name'], 'Northwind Traders')
        self.assertEqual(response.data['status'], 'approved')
        log = AuditLog.objects.get(module='Supplier Orders', action='CREATE')
        self.assertEqual(log.entity, 'SO-2001')

    def test_blank_supplier_rejected(self):
        response = self.client.post('/api/supplier-orders/', self._payload(supplier_name='  '), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('supplier_name', response.data['errors'])

    def test_duplicate_order_id_conflict(self):
        TestDataFactory.create_supplier_order(order_id='SO-2001')
        response = self.client.post('/api/supplier-orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_same_order_id_allowed_across_order_types(self):
        TestDataFactory.create_customer_order(order_id='SO-2001')
        response = self.client.post('/api/supplier-orders/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_list_plain_and_datatables(self):
        for _ in range(3):
            TestDataFactory.create_supplier_order()
        self.assertEqual(len(self.client.get('/api/supplier-orders/').data), 3)
        response = self.client.get('/api/supplier-orders/', {'draw': 1, 'start': 0, 'length': 2})
        self.assertEqual(response.data['recordsFiltered'], 3)
        self.assertEqual(len(response.data['data']), 2)

    def test_filter_by_supplier(self):
        TestDataFactory.create_supplier_order(supplier_name='Northwind Traders')
        TestDataFactory.create_supplier_order(supplier_name='Contoso Supply')
        response = self.client.get('/api/supplier-orders/', {'supplier': 'north'})
        self.assertEqual(len(response.data), 1)

    def test_update_and_audit_changes(self):
        order = TestDataFactory.create_supplier_order(status='pending')
        response = self.client.patch(f'/api/supplier-orders/{order.id}/', {'status': 'shipped'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(module='Supplier Orders', action='UPDATE')
        self.assertEqual(log.changes['status'], {'old': 'pending', 'new': 'shipped'})

    def test_delete_order(self):
        order = TestDataFactory.create_supplier_order()
        response = self.client.delete(f'/api/supplier-orders/{order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(SupplierOrder.objects.filter(id=order.id).exists())

    def test_delete_missing_order(self):
        response = self.client.delete('/api/supplier-orders/9999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_status_chart_and_summary(self):
        TestDataFactory.create_supplier_order(status='pending', total_value=Decimal('200.00'))
        TestDataFactory.create_supplier_order(status='delivered', total_value=Decimal('300.00'))
        chart = self.client.get('/api/supplier-orders/chart/status/')
        self.assertEqual(chart.data, {'delivered': 1, 'pending': 1})
        summary = self.client.get('/api/supplier-orders/summary/')
        self.assertEqual(summary.data, {
            'total_orders': 2, 'pending': 1, 'delivered': 1, 'total_value': 500.0,
        })
