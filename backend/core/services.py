"""
Service functions shared by the core views: token issuance and revocation,
health probes, system statistics and fixture backups.
"""
import logging
import shutil
import time
from datetime import datetime, timedelta, timezone as dt_timezone
from pathlib import Path

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.serializers.base import DeserializationError
from django.db import connection, transaction, DatabaseError, IntegrityError
from django.db.models import Sum
from django.utils import timezone
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from .exceptions import ConflictException, ValidationFailedException
from .models import AuditLog, SystemBackup, SystemConfig

logger = logging.getLogger('backend.core')

User = get_user_model()

PROCESS_STARTED_AT = timezone.now()

BUSINESS_DATA_LABELS = ['catalog', 'sales', 'purchasing']
SETTINGS_LABELS = ['core.systemconfig']


# --- Tokens ---

class AppRefreshToken(RefreshToken):
    """Refresh token whose access tokens carry the user's email and name"""

    @classmethod
    def for_user(cls, user):
        token = super().for_user(user)
        token['email'] = user.email
        token['full_name'] = user.full_name
        return token


def _expiry(token):
    return datetime.fromtimestamp(token['exp'], tz=dt_timezone.utc)


def issue_tokens(user):
    """Mint and persist a refresh token, returning the login payload"""
    refresh = AppRefreshToken.for_user(user)
    access = refresh.access_token
    return {
        'access': str(access),
        'refresh': str(refresh),
        'access_expires': _expiry(access),
        'refresh_expires': _expiry(refresh),
    }


def revoke_refresh_token(raw_token):
    """Blacklist one refresh token; raises TokenError when it is invalid"""
    RefreshToken(raw_token).blacklist()


def revoke_all_tokens(user):
    """Blacklist every outstanding refresh token of ``user``"""
    outstanding = OutstandingToken.objects.filter(user=user, blacklistedtoken__isnull=True)
    count = 0
    for token in outstanding:
        BlacklistedToken.objects.get_or_create(token=token)
        count += 1
    if count:
        logger.info('Revoked %s refresh tokens for user %s', count, user.pk)
    return count


# --- Health ---

def check_database():
    """Run a trivial query and report how long it took"""
    started = time.perf_counter()
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchone()
    except DatabaseError as e:
        logger.error('Database health check failed: %s', e)
        return {
            'status': 'Unhealthy',
            'duration_ms': round((time.perf_counter() - started) * 1000, 2),
            'description': 'Database connection failed',
            'error': str(e),
        }
    return {
        'status': 'Healthy',
        'duration_ms': round((time.perf_counter() - started) * 1000, 2),
        'description': 'Database connection is healthy',
    }


def uptime_seconds():
    return int((timezone.now() - PROCESS_STARTED_AT).total_seconds())


def _record_count():
    from backend.catalog.models import Product
    from backend.purchasing.models import SupplierOrder
    from backend.sales.models import CustomerOrder

    return sum(model.objects.count() for model in (User, Product, CustomerOrder, SupplierOrder, AuditLog))


def backup_dir():
    path = Path(settings.BACKUP_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def storage_usage():
    usage = shutil.disk_usage(backup_dir())
    backups_mb = sum(f.stat().st_size for f in backup_dir().glob('*.json')) / (1024 * 1024)
    return {
        'total_storage_mb': round(usage.total / (1024 * 1024), 2),
        'used_storage_mb': round(usage.used / (1024 * 1024), 2),
        'available_storage_mb': round(usage.free / (1024 * 1024), 2),
        'usage_percentage': round(usage.used / usage.total * 100, 2) if usage.total else 0.0,
        'backups_mb': round(backups_mb, 2),
    }


def system_health():
    """Health summary for the system configuration page"""
    database = check_database()
    connected = database['status'] == 'Healthy'
    last_backup = SystemBackup.objects.filter(status='completed').values_list('created_at', flat=True).first()

    health = {
        'status': 'Healthy',
        'check_time': timezone.now(),
        'database': {
            'is_connected': connected,
            'record_count': _record_count() if connected else 0,
            'response_time_ms': database['duration_ms'],
            'last_backup': last_backup,
            'message': database['description'],
        },
        'api': {
            'is_running': True,
            'version': getattr(settings, 'API_VERSION', '1.0.0'),
            'uptime_seconds': uptime_seconds(),
            'error_count': AuditLog.objects.filter(
                severity__in=['high', 'critical'],
                timestamp__gte=timezone.now() - timedelta(hours=24),
            ).count() if connected else 0,
        },
        'storage': storage_usage(),
    }

    usage = health['storage']['usage_percentage']
    if not connected or usage > 90:
        health['status'] = 'Critical'
    elif usage > 75:
        health['status'] = 'Warning'
    return health


def system_statistics():
    from backend.catalog.models import Product
    from backend.purchasing.models import SupplierOrder
    from backend.sales.models import CustomerOrder

    today = timezone.localdate()
    revenue = CustomerOrder.objects.filter(status='delivered').aggregate(total=Sum('total_value'))['total']
    return {
        'total_users': User.objects.count(),
        'active_users_today': User.objects.filter(last_login__date=today).count(),
        'total_products': Product.objects.count(),
        'total_orders': CustomerOrder.objects.count() + SupplierOrder.objects.count(),
        'total_revenue': float(revenue or 0),
        'system_errors': AuditLog.objects.filter(
            severity__in=['high', 'critical'],
            timestamp__gte=timezone.now() - timedelta(hours=24),
        ).count(),
        'system_uptime_since': PROCESS_STARTED_AT,
    }


# --- Backups ---

def create_backup(backup_name, description='', include_data=True, include_settings=True, user=None):
    """Dump the selected apps to a JSON fixture under BACKUP_DIR"""
    labels = []
    if include_data:
        labels.extend(BUSINESS_DATA_LABELS)
    if include_settings:
        labels.extend(SETTINGS_LABELS)
    if not labels:
        raise ValidationFailedException(
            'Nothing to back up.',
            {'include_data': ['Select business data, settings or both.']},
        )

    stamp = timezone.now().strftime('%Y%m%d_%H%M%S')
    path = backup_dir() / f'backup_{stamp}_{SystemBackup.objects.count() + 1}.json'
    backup = SystemBackup(
        backup_name=backup_name,
        description=description or '',
        file_path=str(path),
        include_data=include_data,
        include_settings=include_settings,
        created_by=user if user is not None and user.is_authenticated else None,
    )
    try:
        call_command('dumpdata', *labels, output=str(path), indent=2, verbosity=0)
        backup.file_size_mb = round(path.stat().st_size / (1024 * 1024), 4)
        backup.status = 'completed'
        logger.info('Backup %s written to %s', backup_name, path)
    except Exception as e:
        logger.exception('Backup %s failed: %s', backup_name, e)
        backup.status = 'failed'
    backup.save()
    return backup


def restore_backup(backup):
    """Load a backup fixture in one transaction"""
    path = Path(backup.file_path)
    if backup.status != 'completed' or not path.exists():
        raise ValidationFailedException(
            'Backup file is not available.',
            {'backup': [f"Backup '{backup.backup_name}' cannot be restored."]},
        )
    try:
        with transaction.atomic():
            call_command('loaddata', str(path), verbosity=0)
    except IntegrityError as e:
        logger.warning('Backup %s conflicts with current data: %s', backup.backup_name, e)
        raise ConflictException(
            f"Backup '{backup.backup_name}' conflicts with existing records: {e}",
            error_code='RESTORE_CONFLICT',
        )
    except DeserializationError as e:
        logger.warning('Backup %s is not a readable fixture: %s', backup.backup_name, e)
        raise ValidationFailedException(
            'Backup file could not be read.',
            {'backup': [str(e)]},
        )
    logger.info('Backup %s restored from %s', backup.backup_name, path)
    return True


def delete_backup(backup):
    path = Path(backup.file_path) if backup.file_path else None
    if path is not None and path.exists():
        path.unlink()
    backup.delete()


def config_for_key(key):
    return SystemConfig.objects.filter(key=key).first()
