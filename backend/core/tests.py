"""
Comprehensive test suite for Core module
Tests: Authentication, user profile, audit trail, health checks, system configuration,
settings, backups, middleware and problem details
"""
import logging
import shutil
import tempfile
from datetime import timedelta
from io import StringIO
from pathlib import Path
from unittest import mock

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import Throttled
from rest_framework.test import APIClient
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken

from backend.catalog.models import Product
from backend.core.exceptions import problem_details_handler
from backend.core.logging import CorrelationIdFilter, get_correlation_id
from backend.core.models import AuditLog, SystemBackup, SystemConfig, User
from backend.core.system_config import DEFAULT_CONFIGS, get_low_stock_threshold
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class UserModelTests(TestCase):
    """Test the email based user model"""

    def test_create_user_normalises_email(self):
        user = User.objects.create_user(email='Jane@Example.COM', password='secret12', full_name='Jane')
        self.assertEqual(user.email, 'Jane@example.com')
        self.assertTrue(user.check_password('secret12'))
        self.assertFalse(user.is_staff)

    def test_create_user_requires_email(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='secret12')

    def test_create_superuser(self):
        user = User.objects.create_superuser(email='admin@test.com', password='secret12', full_name='Admin')
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_superuser)


class AuthTests(TestCase):
    """Test registration, login, refresh and logout"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.password = 'testpass123'
        self.user = TestDataFactory.create_user(email='jane@test.com', full_name='Jane Doe')

    def _login(self, email='jane@test.com', password=None):
        return self.client.post('/api/auth/login/', {
            'email': email, 'password': password or self.password,
        }, format='json')

    def test_register(self):
        response = self.client.post('/api/auth/register/', {
            'full_name': 'New Person',
            'email': 'New.Person@Test.com',
            'password': 'secret12',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['email'], 'new.person@test.com')
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertTrue(AuditLog.objects.filter(action='REGISTER').exists())

    def test_register_duplicate_email(self):
        response = self.client.post('/api/auth/register/', {
            'full_name': 'Jane Again', 'email': 'JANE@test.com', 'password': 'secret12',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error_code'], 'EMAIL_EXISTS')

    def test_register_validation(self):
        response = self.client.post('/api/auth/register/', {
            'full_name': 'X', 'email': 'not-an-email', 'password': '123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ('full_name', 'email', 'password'):
            self.assertIn(field, response.data['errors'])

    def test_register_password_mismatch(self):
        response = self.client.post('/api/auth/register/', {
            'full_name': 'New Person', 'email': 'np@test.com',
            'password': 'secret12', 'password_confirm': 'secret13',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password_confirm', response.data['errors'])

    def test_login(self):
        response = self._login(email='JANE@test.com')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['full_name'], 'Jane Doe')
        self.assertIn('access_expires', response.data)
        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.last_login)

    def test_login_bad_password(self):
        response = self._login(password='wrong-password')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error_code'], 'INVALID_CREDENTIALS')
        self.assertEqual(response['Content-Type'], 'application/problem+json')
        log = AuditLog.objects.get(action='LOGIN_FAILED')
        self.assertEqual(log.severity, 'medium')
        self.assertEqual(log.entity, 'jane@test.com')

    def test_login_mixed_case_stored_email(self):
        TestDataFactory.create_user(email='Admin@Example.com', password='secret123')
        for email in ('Admin@Example.com', 'admin@example.com'):
            response = self._login(email=email, password='secret123')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['user']['email'], 'Admin@example.com')

    def test_login_inactive_user(self):
        self.user.is_active = False
        self.user.save()
        self.assertEqual(self._login().status_code, status.HTTP_401_UNAUTHORIZED)

    def test_access_token_works(self):
        access = self._login().data['access']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'jane@test.com')

    def test_refresh_rotates_and_blacklists(self):
        refresh = self._login().data['refresh']
        response = self.client.post('/api/auth/refresh/', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertNotEqual(response.data['refresh'], refresh)

        reused = self.client.post('/api/auth/refresh/', {'refresh': refresh}, format='json')
        self.assertEqual(reused.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(reused.data['error_code'], 'INVALID_TOKEN')

    def test_refresh_garbage_token(self):
        response = self.client.post('/api/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_requires_token(self):
        response = self.client.post('/api/auth/refresh/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_logout_revokes_refresh_token(self):
        tokens = self._login().data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
        response = self.client.post('/api/auth/logout/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post('/api/auth/refresh/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_rotated_token_revoked(self):
        tokens = self._login().data
        rotated = self.client.post('/api/auth/refresh/', {'refresh': tokens['refresh']}, format='json').data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {rotated['access']}")
        response = self.client.post('/api/auth/logout/', {'refresh': rotated['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.post('/api/auth/refresh/', {'refresh': rotated['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_all_sessions(self):
        first = self._login().data
        second = self._login().data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {first['access']}")
        response = self.client.post('/api/auth/logout/', {'all': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertGreaterEqual(BlacklistedToken.objects.count(), 2)
        response = self.client.post('/api/auth/refresh/', {'refresh': second['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_other_users_token_forbidden(self):
        other = TestDataFactory.create_user(email='other@test.com')
        other_refresh = self._login(email='other@test.com').data['refresh']
        access = self._login().data['access']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        response = self.client.post('/api/auth/logout/', {'refresh': other_refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(User.objects.filter(pk=other.pk).exists())

    def test_logout_invalid_token(self):
        access = self._login().data['access']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        response = self.client.post('/api/auth/logout/', {'refresh': 'garbage'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error_code'], 'INVALID_TOKEN')

    def test_logout_requires_token_or_all(self):
        access = self._login().data['access']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        response = self.client.post('/api/auth/logout/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error_code'], 'UNAUTHORIZED')


class UserProfileTests(TestCase):
    """Test user profile endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(email='jane@test.com', full_name='Jane Doe')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_profile_me(self):
        response = self.client.get('/api/user-profile/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'jane@test.com')
        self.assertNotIn('password', response.data)

    def test_profile_by_id_self(self):
        response = self.client.get(f'/api/user-profile/{self.user.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_profile_by_id_other_forbidden(self):
        other = TestDataFactory.create_user()
        response = self.client.get(f'/api/user-profile/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_profile_by_id_staff(self):
        staff = TestDataFactory.create_user(is_staff=True)
        self.client.authenticate_user(staff)
        self.assertEqual(self.client.get(f'/api/user-profile/{self.user.id}/').status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/user-profile/99999/').status_code, status.HTTP_404_NOT_FOUND)

    def test_update_profile(self):
        response = self.client.put('/api/user-profile/update/', {
            'full_name': 'Jane Smith', 'phone_number': '555-0100', 'date_of_birth': '1990-05-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Profile updated successfully')
        self.assertEqual(response.data['data']['full_name'], 'Jane Smith')
        self.user.refresh_from_db()
        self.assertEqual(self.user.phone_number, '555-0100')
        self.assertEqual(str(self.user.date_of_birth), '1990-05-01')

    def test_update_ignores_empty_values(self):
        response = self.client.put('/api/user-profile/update/', {
            'full_name': '', 'phone_number': '555-0199',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.full_name, 'Jane Doe')
        self.assertEqual(self.user.phone_number, '555-0199')

    def test_profile_picture(self):
        response = self.client.put('/api/user-profile/profile-picture/', {
            'picture_url': 'https://cdn.test/jane.png',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.profile_picture_url, 'https://cdn.test/jane.png')

    def test_profile_picture_required(self):
        response = self.client.put('/api/user-profile/profile-picture/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('picture_url', response.data['errors'])

    def test_profile_picture_rejects_scheme(self):
        response = self.client.put('/api/user-profile/profile-picture/', {
            'picture_url': 'javascript:alert(1)',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_change_password(self):
        response = self.client.post('/api/user-profile/change-password/', {
            'old_password': 'testpass123', 'new_password': 'newpass123', 'confirm_password': 'newpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('newpass123'))

    def test_change_password_revokes_refresh_tokens(self):
        login = APIClient().post('/api/auth/login/', {
            'email': 'jane@test.com', 'password': 'testpass123',
        }, format='json').data
        self.client.post('/api/user-profile/change-password/', {
            'old_password': 'testpass123', 'new_password': 'newpass123', 'confirm_password': 'newpass123',
        }, format='json')
        response = APIClient().post('/api/auth/refresh/', {'refresh': login['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_change_password_wrong_old(self):
        response = self.client.post('/api/user-profile/change-password/', {
            'old_password': 'nope', 'new_password': 'newpass123', 'confirm_password': 'newpass123',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('old_password', response.data['errors'])

    def test_change_password_mismatch_and_length(self):
        response = self.client.post('/api/user-profile/change-password/', {
            'old_password': 'testpass123', 'new_password': 'newpass123', 'confirm_password': 'other123',
        }, format='json')
        self.assertIn('confirm_password', response.data['errors'])
        response = self.client.post('/api/user-profile/change-password/', {
            'old_password': 'testpass123', 'new_password': 'abc', 'confirm_password': 'abc',
        }, format='json')
        self.assertIn('new_password', response.data['errors'])

    def test_change_password_requires_all_fields(self):
        response = self.client.post('/api/user-profile/change-password/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ('old_password', 'new_password', 'confirm_password'):
            self.assertIn(field, response.data['errors'])


class AuditTests(TestCase):
    """Test audit trail endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_paged_and_sorted(self):
        now = timezone.now()
        for i in range(30):
            TestDataFactory.create_audit_log(entity=f'E{i}', timestamp=now - timedelta(minutes=i))
        response = self.client.get('/api/audit/logs/', {'page': 2, 'page_size': 10})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_count'], 30)
        self.assertEqual(response.data['total_pages'], 3)
        self.assertEqual(response.data['data'][0]['entity'], 'E10')

        response = self.client.get('/api/audit/logs/', {'sort_by': 'timestamp', 'sort_direction': 'asc'})
        self.assertEqual(response.data['data'][0]['entity'], 'E29')

    def test_filters(self):
        TestDataFactory.create_audit_log(action='DELETE', module='Inventory', severity='high', user='Alice')
        TestDataFactory.create_audit_log(action='CREATE', module='Customer Orders', user='Bob')
        old = TestDataFactory.create_audit_log(timestamp=timezone.now() - timedelta(days=10))
        self.assertEqual(self.client.get('/api/audit/logs/', {'action': 'delete'}).data['total_count'], 1)
        self.assertEqual(self.client.get('/api/audit/logs/', {'module': 'customer orders'}).data['total_count'], 1)
        self.assertEqual(self.client.get('/api/audit/logs/', {'severity': 'HIGH'}).data['total_count'], 1)
        self.assertEqual(self.client.get('/api/audit/logs/', {'user': 'ali'}).data['total_count'], 1)
        start = (timezone.now() - timedelta(days=1)).date().isoformat()
        response = self.client.get('/api/audit/logs/', {'start_date': start})
        self.assertNotIn(old.id, [row['id'] for row in response.data['data']])

    def test_create_entry(self):
        response = self.client.post('/api/audit/', {
            'user': 'Jane', 'action': 'export', 'module': 'Reports', 'details': 'Exported CSV',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['action'], 'EXPORT')
        self.assertEqual(response.data['severity'], 'low')
        self.assertIsNotNone(response.data['ip_address'])

    def test_create_entry_via_logs_endpoint(self):
        response = self.client.post('/api/audit/logs/', {
            'user': 'Jane', 'action': 'DELETE', 'module': 'Inventory',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['severity'], 'high')

    def test_create_entry_requires_fields(self):
        response = self.client.post('/api/audit/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('action', response.data['errors'])

    def test_detail(self):
        entry = TestDataFactory.create_audit_log()
        self.assertEqual(self.client.get(f'/api/audit/logs/{entry.id}/').data['id'], entry.id)
        self.assertEqual(self.client.get('/api/audit/logs/99999/').status_code, status.HTTP_404_NOT_FOUND)

    def test_recent(self):
        for _ in range(15):
            TestDataFactory.create_audit_log()
        response = self.client.get('/api/audit/recent/', {'limit': 5})
        self.assertEqual(response.data['count'], 5)
        self.assertEqual(response.data['total_count'], 15)

    def test_statistics(self):
        TestDataFactory.create_audit_log(severity='medium')
        TestDataFactory.create_audit_log(severity='high')
        TestDataFactory.create_audit_log(severity='critical')
        TestDataFactory.create_audit_log(timestamp=timezone.now() - timedelta(days=3))
        response = self.client.get('/api/audit/statistics/')
        self.assertEqual(response.data, {
            'total_logs': 4, 'today_activities': 3, 'warnings': 1, 'errors': 1, 'critical_events': 1,
        })

    def test_purge_command(self):
        TestDataFactory.create_audit_log(timestamp=timezone.now() - timedelta(days=100))
        TestDataFactory.create_audit_log(timestamp=timezone.now() - timedelta(days=5))
        out = StringIO()
        call_command('purge_audit_logs', '--dry-run', stdout=out)
        self.assertIn('1 audit log entries', out.getvalue())
        self.assertEqual(AuditLog.objects.count(), 2)

        call_command('purge_audit_logs', stdout=StringIO())
        self.assertEqual(AuditLog.objects.count(), 1)

        call_command('purge_audit_logs', '--days', '2', stdout=StringIO())
        self.assertEqual(AuditLog.objects.count(), 0)


class HealthTests(TestCase):
    """Test anonymous health probes"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def test_health(self):
        response = self.client.get('/api/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'Healthy')
        self.assertEqual(response.data['entries']['database']['status'], 'Healthy')

    def test_health_unhealthy_database(self):
        down = {'status': 'Unhealthy', 'duration_ms': 1.0, 'description': 'Database connection failed'}
        with mock.patch('backend.core.views.check_database', return_value=down):
            response = self.client.get('/api/health/')
            self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
            self.assertEqual(response.data['status'], 'Unhealthy')
            ready = self.client.get('/api/health/ready/')
            self.assertEqual(ready.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    def test_ready_and_live(self):
        self.assertEqual(self.client.get('/api/health/ready/').data['status'], 'Ready')
        live = self.client.get('/api/health/live/')
        self.assertEqual(live.data['status'], 'Alive')
        self.assertGreaterEqual(live.data['uptime'], 0)


class SystemConfigTests(TestCase):
    """Test configuration endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_defaults_seeded(self):
        keys = set(SystemConfig.objects.values_list('key', flat=True))
        self.assertTrue({config['key'] for config in DEFAULT_CONFIGS} <= keys)
        response = self.client.get('/api/system-config/')
        self.assertEqual(len(response.data), SystemConfig.objects.count())

    def test_get_by_key(self):
        response = self.client.get('/api/system-config/AppName/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['category'], 'General')
        self.assertEqual(self.client.get('/api/system-config/NoSuchKey/').status_code, status.HTTP_404_NOT_FOUND)

    def test_by_category(self):
        response = self.client.get('/api/system-config/category/security/')
        self.assertEqual({row['key'] for row in response.data}, {'SessionTimeoutMinutes', 'EnableTwoFactorAuth'})

    def test_update_key(self):
        response = self.client.put('/api/system-config/AppName/', {'value': 'Stockroom'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(SystemConfig.objects.get(key='AppName').value, 'Stockroom')
        log = AuditLog.objects.get(module='System Config', action='UPDATE')
        self.assertEqual(log.changes['value']['new'], 'Stockroom')

    def test_update_requires_staff(self):
        self.client.authenticate_user(self.user)
        response = self.client.put('/api/system-config/AppName/', {'value': 'Hacked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error_code'], 'FORBIDDEN')

    def test_bulk_update(self):
        response = self.client.put('/api/system-config/bulk/update/', {'configurations': [
            {'key': 'AppName', 'value': 'Bulk App'},
            {'key': 'MaxUploadSizeMb', 'value': '20'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(SystemConfig.objects.get(key='MaxUploadSizeMb').value, '20')

    def test_bulk_update_is_atomic(self):
        before = SystemConfig.objects.get(key='AppName').value
        response = self.client.put('/api/system-config/bulk/update/', {'configurations': [
            {'key': 'AppName', 'value': 'Changed'},
            {'key': 'Missing', 'value': 'x'},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(SystemConfig.objects.get(key='AppName').value, before)

    def test_bulk_update_requires_items(self):
        response = self.client.put('/api/system-config/bulk/update/', {'configurations': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_reset_key(self):
        config = SystemConfig.objects.get(key='TaxRate')
        config.value = '25'
        config.save()
        response = self.client.post('/api/system-config/reset/TaxRate/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['value'], config.default_value)

    def test_reset_key_without_default(self):
        SystemConfig.objects.create(key='CustomFlag', value='on', category='General')
        response = self.client.post('/api/system-config/reset/CustomFlag/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_reset_all(self):
        SystemConfig.objects.filter(key='AppName').update(value='Changed')
        SystemConfig.objects.filter(key='Currency').delete()
        response = self.client.post('/api/system-config/reset-all/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotEqual(SystemConfig.objects.get(key='AppName').value, 'Changed')
        self.assertTrue(SystemConfig.objects.filter(key='Currency').exists())

    def test_reset_requires_staff(self):
        self.client.authenticate_user(self.user)
        self.assertEqual(self.client.post('/api/system-config/reset-all/').status_code, status.HTTP_403_FORBIDDEN)

    @override_settings(BACKUP_DIR=tempfile.gettempdir())
    def test_health_status(self):
        response = self.client.get('/api/system-config/health/status/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(response.data['status'], ['Healthy', 'Warning', 'Critical'])
        self.assertTrue(response.data['database']['is_connected'])
        self.assertGreaterEqual(response.data['database']['record_count'], 2)
        self.assertIn('usage_percentage', response.data['storage'])

    def test_statistics(self):
        TestDataFactory.create_product()
        TestDataFactory.create_customer_order(status='delivered', total_value='120.00')
        TestDataFactory.create_customer_order(status='pending', total_value='80.00')
        TestDataFactory.create_supplier_order()
        TestDataFactory.create_audit_log(severity='critical')
        TestDataFactory.create_audit_log(severity='high', timestamp=timezone.now() - timedelta(days=2))
        response = self.client.get('/api/system-config/statistics/')
        self.assertEqual(response.data['total_users'], 2)
        self.assertEqual(response.data['total_products'], 1)
        self.assertEqual(response.data['total_orders'], 3)
        self.assertEqual(response.data['total_revenue'], 120.0)
        self.assertEqual(response.data['system_errors'], 1)

    def test_activity_logs(self):
        TestDataFactory.create_audit_log(action='LOGIN_FAILED', module='Authentication', details='Bad password')
        response = self.client.get('/api/system-config/activity-logs/', {'page': 1, 'page_size': 5})
        row = response.data['data'][0]
        self.assertEqual(row['details'], 'Authentication - Bad password')
        self.assertEqual(row['ip_address'], 'Unknown')
        self.assertEqual(row['status'], 'Failed')

    def test_activity_logs_bad_paging(self):
        response = self.client.get('/api/system-config/activity-logs/', {'page': 'x'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cache_clear(self):
        cache.set('probe', 1)
        response = self.client.post('/api/system-config/cache/clear/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(cache.get('probe'))


class SystemSettingsTests(TestCase):
    """Test the typed settings object"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def _payload(self, **overrides):
        data = {
            'company_name': 'Acme Inc.',
            'currency': 'EUR',
            'tax_rate': '7.50',
            'low_stock_threshold': 4,
            'low_stock_notifications': False,
            'email_notifications': True,
            'order_notifications': True,
            'audit_retention': 30,
            'records_per_page': 50,
        }
        data.update(overrides)
        return data

    def test_defaults(self):
        response = self.client.get('/api/system-settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['company_name'], 'Product Management Inc.')
        self.assertEqual(response.data['low_stock_threshold'], 10)
        self.assertTrue(response.data['low_stock_notifications'])
        self.assertIn('last_updated', response.data)

    def test_save_settings(self):
        response = self.client.put('/api/system-settings/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['currency'], 'EUR')
        self.assertFalse(response.data['low_stock_notifications'])
        self.assertEqual(get_low_stock_threshold(), 4)
        self.assertEqual(SystemConfig.objects.get(key='LowStockNotifications').value, 'false')

    def test_settings_alias_route(self):
        response = self.client.post('/api/system-config/settings/', self._payload(records_per_page=100), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/system-config/settings/').data['records_per_page'], 100)

    def test_validation(self):
        response = self.client.put('/api/system-settings/', self._payload(
            company_name='  ', tax_rate='150', audit_retention=0, records_per_page=1,
        ), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ('company_name', 'tax_rate', 'audit_retention', 'records_per_page'):
            self.assertIn(field, response.data['errors'])

    def test_write_requires_staff(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.put('/api/system-settings/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class BackupTests(TestCase):
    """Test dumpdata based backups"""

    def setUp(self):
        cache.clear()
        self.backup_dir = tempfile.mkdtemp()
        self.override = override_settings(BACKUP_DIR=self.backup_dir)
        self.override.enable()
        self.admin = TestDataFactory.create_user(is_staff=True)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def tearDown(self):
        self.override.disable()
        shutil.rmtree(self.backup_dir, ignore_errors=True)

    def test_create_and_list(self):
        TestDataFactory.create_product()
        response = self.client.post('/api/system-config/backup/create/', {
            'backup_name': 'Nightly', 'description': 'Test backup',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['created_by'], self.admin.email)
        backup = SystemBackup.objects.get(pk=response.data['id'])
        self.assertTrue(Path(backup.file_path).exists())

        listing = self.client.get('/api/system-config/backup/list/')
        self.assertEqual(len(listing.data), 1)

    def test_create_requires_something_to_back_up(self):
        response = self.client.post('/api/system-config/backup/create/', {
            'backup_name': 'Empty', 'include_data': False, 'include_settings': False,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('include_data', response.data['errors'])

    def test_restore(self):
        product = TestDataFactory.create_product(sku='KEEP-1')
        backup_id = self.client.post('/api/system-config/backup/create/', {
            'backup_name': 'Before delete', 'include_settings': False,
        }, format='json').data['id']
        product.delete()

        response = self.client.post(f'/api/system-config/backup/restore/{backup_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(Product.objects.filter(sku='KEEP-1').exists())

    def test_restore_conflicting_sku(self):
        product = TestDataFactory.create_product(sku='SKU-ONE', name='Original')
        backup_id = self.client.post('/api/system-config/backup/create/', {
            'backup_name': 'Before recreate', 'include_settings': False,
        }, format='json').data['id']
        product.delete()
        TestDataFactory.create_product(sku='SKU-ONE', name='Replacement')

        response = self.client.post(f'/api/system-config/backup/restore/{backup_id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error_code'], 'RESTORE_CONFLICT')
        self.assertEqual(list(Product.objects.values_list('name', flat=True)), ['Replacement'])
        self.assertTrue(AuditLog.objects.filter(action='RESTORE_FAILED', entity='Before recreate').exists())

    def test_restore_unreadable_fixture(self):
        path = Path(self.backup_dir) / 'broken.json'
        path.write_text('{not json')
        backup = SystemBackup.objects.create(backup_name='Broken', file_path=str(path), status='completed')
        response = self.client.post(f'/api/system-config/backup/restore/{backup.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('backup', response.data['errors'])

    def test_restore_missing_file(self):
        backup = SystemBackup.objects.create(backup_name='Gone', file_path='/nonexistent/file.json',
                                             status='completed')
        response = self.client.post(f'/api/system-config/backup/restore/{backup.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete(self):
        backup_id = self.client.post('/api/system-config/backup/create/', {
            'backup_name': 'Temp',
        }, format='json').data['id']
        path = Path(SystemBackup.objects.get(pk=backup_id).file_path)
        response = self.client.delete(f'/api/system-config/backup/{backup_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(path.exists())
        self.assertEqual(self.client.delete(f'/api/system-config/backup/{backup_id}/').status_code,
                         status.HTTP_404_NOT_FOUND)

    def test_requires_staff(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/system-config/backup/list/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class MiddlewareTests(TestCase):
    """Test correlation IDs, timing and security headers"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def test_correlation_id_generated(self):
        response = self.client.get('/api/health/live/')
        self.assertTrue(response['X-Correlation-ID'])
        self.assertIn('X-Response-Time-ms', response)

    def test_correlation_id_echoed_into_problem(self):
        user = TestDataFactory.create_user()
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.get('/api/products/4040/', HTTP_X_CORRELATION_ID='trace-123')
        self.assertEqual(response['X-Correlation-ID'], 'trace-123')
        self.assertEqual(response.data['correlation_id'], 'trace-123')
        self.assertEqual(response.data['instance'], '/api/products/4040/')

    def test_security_headers(self):
        response = self.client.get('/api/health/live/')
        self.assertEqual(response['X-Content-Type-Options'], 'nosniff')
        self.assertEqual(response['X-Frame-Options'], 'DENY')

    def test_auth_request_body_not_logged(self):
        TestDataFactory.create_user(email='logger@test.com', password='Sup3r-Secret-pw')
        with self.assertLogs('backend.core.middleware', level='DEBUG') as logs:
            self.client.post('/api/auth/login/', {
                'email': 'logger@test.com', 'password': 'Sup3r-Secret-pw',
            }, format='json')
        output = '\n'.join(logs.output)
        self.assertNotIn('Sup3r-Secret-pw', output)
        self.assertIn('[redacted]', output)

    def test_other_request_body_logged_at_debug(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user())
        with self.assertLogs('backend.core.middleware', level='DEBUG') as logs:
            client.post('/api/products/', {'name': 'Visible Widget'}, format='json')
        self.assertTrue(any('Visible Widget' in line for line in logs.output))

    @override_settings(SLOW_REQUEST_MS=-1)
    def test_slow_request_warning(self):
        with self.assertLogs('backend.core.middleware', level='WARNING') as logs:
            self.client.get('/api/health/live/')
        self.assertTrue(any(line.startswith('WARNING') and 'Slow request' in line for line in logs.output))

    def test_fast_request_not_flagged(self):
        with self.assertLogs('backend.core.middleware', level='INFO') as logs:
            self.client.get('/api/health/live/')
        self.assertFalse(any('Slow request' in line for line in logs.output))

    def test_django_request_log_keeps_correlation_id(self):
        seen = []

        class Capture(logging.Handler):
            def emit(self, record):
                seen.append(record.correlation_id)

        handler = Capture()
        handler.addFilter(CorrelationIdFilter())
        request_logger = logging.getLogger('django.request')
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user())
        request_logger.addHandler(handler)
        try:
            client.get('/api/products/4040/', HTTP_X_CORRELATION_ID='trace-404')
        finally:
            request_logger.removeHandler(handler)
        self.assertIn('trace-404', seen)
        self.assertEqual(get_correlation_id(), '-')


class ProblemDetailsTests(TestCase):
    """Test error translation to RFC 7807 bodies"""

    def test_unknown_api_route(self):
        response = self.client.get('/api/does-not-exist/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response['Content-Type'], 'application/problem+json')
        body = response.json()
        self.assertEqual(body['status'], 404)
        self.assertEqual(body['instance'], '/api/does-not-exist/')

    def test_method_not_allowed(self):
        user = TestDataFactory.create_user()
        client = AuthenticatedAPIClient()
        client.authenticate_user(user)
        response = client.delete('/api/products/summary/')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertEqual(response.data['status'], 405)

    def test_throttled(self):
        response = problem_details_handler(Throttled(wait=29.2), {})
        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)
        self.assertEqual(response.data['retry_after'], 30)
        self.assertEqual(response.data['error_code'], 'RATE_LIMIT_EXCEEDED')

    def test_unhandled_exception(self):
        with self.assertLogs('backend.core', level='ERROR'):
            response = problem_details_handler(RuntimeError('boom'), {})
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertNotIn('boom', response.data['detail'])
