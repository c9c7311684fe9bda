"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.core.models import AuditLog
from backend.catalog.models import Product
from backend.sales.models import CustomerOrder
from backend.purchasing.models import SupplierOrder
from decimal import Decimal
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(email=None, full_name=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not email:
            email = f'testuser_{TestDataFactory.random_string(6).lower()}@test.com'
        return User.objects.create_user(
            email=email,
            password=password,
            full_name=full_name or 'Test User',
            is_staff=is_staff,
            is_superuser=is_superuser,
        )

    @staticmethod
    def create_product(name=None, sku=None, price=Decimal('100.00'), quantity=25, category_name='General',
                       description=''):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU-{TestDataFactory.random_string(8).upper()}'
        return Product.objects.create(
            name=name,
            sku=sku,
            price=price,
            quantity=quantity,
            category_name=category_name,
            description=description,
        )

    @staticmethod
    def create_customer_order(order_id=None, customer_name='Test Customer', items='2 x Widget',
                              total_value=Decimal('250.00'), status='pending', order_date=None):
        """Create a test customer order"""
        return CustomerOrder.objects.create(
            order_id=order_id or f'CO-{TestDataFactory.random_string(8).upper()}',
            customer_name=customer_name,
            items=items,
            total_value=total_value,
            status=status,
            order_date=order_date or timezone.now(),
        )

    @staticmethod
    def create_supplier_order(order_id=None, supplier_name='Test Supplier', items='100 x Widget',
                              total_value=Decimal('1500.00'), status='pending', order_date=None):
        """Create a test supplier order"""
        return SupplierOrder.objects.create(
            order_id=order_id or f'SO-{TestDataFactory.random_string(8).upper()}',
            supplier_name=supplier_name,
            items=items,
            total_value=total_value,
            status=status,
            order_date=order_date or timezone.now(),
        )

    @staticmethod
    def create_audit_log(action='CREATE', module='Inventory', entity='SKU-1', details='Test entry',
                         severity='low', user='Test User', timestamp=None):
        """Create a test audit log entry"""
        return AuditLog.objects.create(
            action=action,
            module=module,
            entity=entity,
            details=details,
            severity=severity,
            user=user,
            timestamp=timestamp or timezone.now(),
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
