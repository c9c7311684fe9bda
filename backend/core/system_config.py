"""
Database-backed runtime configuration.

Every key has a row in SystemConfig seeded from DEFAULT_CONFIGS; the typed
"system settings" object used by the settings page is a view over the
Business, Notifications and DataManagement keys.
"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from .models import SystemConfig

logger = logging.getLogger('backend.core')

DEFAULT_CONFIGS = [
    {'key': 'AppName', 'value': 'Product Management System', 'description': 'Application name', 'category': 'General'},
    {'key': 'MaxUploadSizeMb', 'value': '100', 'description': 'Maximum file upload size in MB', 'category': 'General'},
    {'key': 'EnableNotifications', 'value': 'true', 'description': 'Enable system notifications', 'category': 'General'},
    {'key': 'SessionTimeoutMinutes', 'value': '30', 'description': 'Session timeout in minutes', 'category': 'Security'},
    {'key': 'EnableTwoFactorAuth', 'value': 'false', 'description': 'Enable two-factor authentication', 'category': 'Security'},
    {'key': 'CompanyName', 'value': 'Product Management Inc.', 'description': 'Company name shown on documents', 'category': 'Business'},
    {'key': 'Currency', 'value': 'USD', 'description': 'Currency code for prices', 'category': 'Business'},
    {'key': 'TaxRate', 'value': '10', 'description': 'Default tax rate in percent', 'category': 'Business'},
    {'key': 'LowStockThreshold', 'value': '10', 'description': 'Quantity at or below which a product raises a low stock alert', 'category': 'Business'},
    {'key': 'LowStockNotifications', 'value': 'true', 'description': 'Notify when products run low', 'category': 'Notifications'},
    {'key': 'EmailNotifications', 'value': 'true', 'description': 'Send notifications by email', 'category': 'Notifications'},
    {'key': 'OrderNotifications', 'value': 'true', 'description': 'Notify on new and updated orders', 'category': 'Notifications'},
    {'key': 'AuditRetention', 'value': '90', 'description': 'Days to keep audit log entries', 'category': 'DataManagement'},
    {'key': 'RecordsPerPage', 'value': '25', 'description': 'Default page size for grids', 'category': 'DataManagement'},
]

DEFAULT_VALUES = {config['key']: config['value'] for config in DEFAULT_CONFIGS}

# settings object field -> (config key, type)
SETTINGS_FIELDS = {
    'company_name': ('CompanyName', str),
    'currency': ('Currency', str),
    'tax_rate': ('TaxRate', Decimal),
    'low_stock_threshold': ('LowStockThreshold', int),
    'low_stock_notifications': ('LowStockNotifications', bool),
    'email_notifications': ('EmailNotifications', bool),
    'order_notifications': ('OrderNotifications', bool),
    'audit_retention': ('AuditRetention', int),
    'records_per_page': ('RecordsPerPage', int),
}


def _coerce(raw, kind, fallback):
    if kind is bool:
        return str(raw).strip().lower() in ('1', 'true', 'yes', 'on')
    if kind is int:
        try:
            return int(raw)
        except (TypeError, ValueError):
            return int(fallback)
    if kind is Decimal:
        try:
            return Decimal(str(raw))
        except (InvalidOperation, TypeError):
            return Decimal(fallback)
    return raw


def _serialize(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def seed_default_configs():
    """Insert any missing default keys, leaving existing values alone"""
    created = 0
    for config in DEFAULT_CONFIGS:
        _, was_created = SystemConfig.objects.get_or_create(
            key=config['key'],
            defaults={
                'value': config['value'],
                'default_value': config['value'],
                'description': config['description'],
                'category': config['category'],
            },
        )
        created += int(was_created)
    return created


def get_config_value(key, default=None):
    value = SystemConfig.objects.filter(key=key).values_list('value', flat=True).first()
    if value is None:
        return DEFAULT_VALUES.get(key, default)
    return value


def get_int_setting(key, default):
    return _coerce(get_config_value(key, default), int, default)


def get_low_stock_threshold():
    return get_int_setting('LowStockThreshold', 10)


def get_system_settings():
    """Typed settings object plus last-updated metadata"""
    rows = {config.key: config for config in SystemConfig.objects.filter(
        key__in=[key for key, _ in SETTINGS_FIELDS.values()]
    )}
    data = {}
    for field, (key, kind) in SETTINGS_FIELDS.items():
        raw = rows[key].value if key in rows else DEFAULT_VALUES[key]
        data[field] = _coerce(raw, kind, DEFAULT_VALUES[key])

    updated = [row.updated_at for row in rows.values() if row.updated_at]
    data['last_updated'] = max(updated) if updated else timezone.now()
    return data


@transaction.atomic
def save_system_settings(values):
    """Persist a validated settings dict (snake_case fields)"""
    for field, value in values.items():
        if field not in SETTINGS_FIELDS:
            continue
        key, _ = SETTINGS_FIELDS[field]
        default = next(c for c in DEFAULT_CONFIGS if c['key'] == key)
        SystemConfig.objects.update_or_create(
            key=key,
            defaults={
                'value': _serialize(value),
                'default_value': default['value'],
                'description': default['description'],
                'category': default['category'],
            },
        )
    logger.info('System settings saved: %s', ', '.join(sorted(values)))
    return get_system_settings()


def reset_config(config):
    """Restore one row to its default; returns False when it has none"""
    default = config.default_value if config.default_value is not None else DEFAULT_VALUES.get(config.key)
    if default is None:
        return False
    config.value = default
    config.save(update_fields=['value', 'updated_at'])
    return True


@transaction.atomic
def reset_all_configs():
    count = 0
    for config in SystemConfig.objects.select_for_update():
        if reset_config(config):
            count += 1
    seed_default_configs()
    return count
