"""System configuration, settings, backups and maintenance endpoints"""
import logging
import math

from django.core.cache import cache
from django.db import transaction
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from rest_framework.response import Response

from .exceptions import BusinessException, NotFoundException, ValidationFailedException
from .models import AuditLog, SystemBackup, SystemConfig
from .serializers import (
    SystemConfigSerializer, SystemConfigUpdateSerializer, BulkConfigUpdateSerializer,
    SystemSettingsSerializer, SystemBackupSerializer, BackupCreateSerializer, ActivityLogSerializer,
)
from .services import (
    system_health, system_statistics, create_backup, restore_backup, delete_backup, config_for_key,
)
from .system_config import get_system_settings, save_system_settings, reset_config, reset_all_configs
from .utils import create_audit_log

logger = logging.getLogger('backend.core')

MODULE = 'System Config'


def _get_config(key):
    config = config_for_key(key)
    if config is None:
        raise NotFoundException('Configuration', key)
    return config


def _get_backup(pk):
    try:
        return SystemBackup.objects.get(pk=pk)
    except SystemBackup.DoesNotExist:
        raise NotFoundException('Backup', pk)


def _require_staff(request):
    if not request.user.is_staff:
        raise PermissionDenied('Administrator privileges are required for this operation.')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def config_list(request):
    configs = SystemConfig.objects.all()
    return Response(SystemConfigSerializer(configs, many=True).data)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def config_detail(request, key):
    """Read one configuration key; PUT updates its value (staff only)"""
    config = _get_config(key)
    if request.method == 'GET':
        return Response(SystemConfigSerializer(config).data)

    _require_staff(request)
    serializer = SystemConfigUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    old_value = config.value
    config.value = serializer.validated_data['value']
    if 'description' in serializer.validated_data:
        config.description = serializer.validated_data['description']
    config.save()
    create_audit_log(request, 'UPDATE', MODULE, entity=config.key,
                     details=f'Configuration {config.key} updated',
                     changes={'value': {'old': old_value, 'new': config.value}})
    logger.info('Configuration %s updated by %s', config.key, request.user.email)
    return Response(SystemConfigSerializer(config).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def config_by_category(request, category):
    configs = SystemConfig.objects.filter(category__iexact=category)
    return Response(SystemConfigSerializer(configs, many=True).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminUser])
def config_bulk_update(request):
    """Update several keys in one transaction; any unknown key aborts all"""
    serializer = BulkConfigUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    items = serializer.validated_data['configurations']

    with transaction.atomic():
        updated = []
        for item in items:
            config = SystemConfig.objects.select_for_update().filter(key=item['key']).first()
            if config is None:
                raise NotFoundException('Configuration', item['key'])
            config.value = item['value']
            if 'description' in item:
                config.description = item['description']
            config.save()
            updated.append(config)

    create_audit_log(request, 'UPDATE', MODULE, entity='bulk',
                     details=f"Bulk updated {len(updated)} configurations",
                     changes={'keys': [config.key for config in updated]})
    return Response({
        'message': f'{len(updated)} configurations updated successfully',
        'data': SystemConfigSerializer(updated, many=True).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def config_reset(request, key):
    config = _get_config(key)
    if not reset_config(config):
        raise NotFoundException('Default value for configuration', key)
    create_audit_log(request, 'RESET', MODULE, entity=config.key, details=f'Configuration {config.key} reset to default')
    return Response(SystemConfigSerializer(config).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def config_reset_all(request):
    count = reset_all_configs()
    create_audit_log(request, 'RESET', MODULE, entity='all', details=f'{count} configurations reset to defaults')
    return Response({'message': 'All configurations reset to default values', 'count': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def health_status(request):
    return Response(system_health())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def statistics(request):
    return Response(system_statistics())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def activity_logs(request):
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
        page_size = min(max(int(request.query_params.get('page_size', 20)), 1), 500)
    except ValueError:
        raise ValidationFailedException('Invalid paging parameters.', {'page': ['Must be integers.']})

    queryset = AuditLog.objects.order_by('-timestamp', '-id')
    total_count = queryset.count()
    offset = (page - 1) * page_size
    return Response({
        'data': ActivityLogSerializer(queryset[offset:offset + page_size], many=True).data,
        'total_count': total_count,
        'page': page,
        'page_size': page_size,
        'total_pages': math.ceil(total_count / page_size) if total_count else 0,
    })


# Backups

@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def backup_create(request):
    serializer = BackupCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    backup = create_backup(user=request.user, **serializer.validated_data)
    create_audit_log(request, 'BACKUP', MODULE, entity=backup.backup_name,
                     details=f'Backup {backup.status}',
                     severity='low' if backup.status == 'completed' else 'high')
    code = status.HTTP_201_CREATED if backup.status == 'completed' else status.HTTP_500_INTERNAL_SERVER_ERROR
    return Response(SystemBackupSerializer(backup).data, status=code)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def backup_list(request):
    backups = SystemBackup.objects.select_related('created_by')
    return Response(SystemBackupSerializer(backups, many=True).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def backup_restore(request, pk):
    backup = _get_backup(pk)
    try:
        restore_backup(backup)
    except BusinessException as e:
        create_audit_log(request, 'RESTORE_FAILED', MODULE, entity=backup.backup_name,
                         details=e.message, severity='high')
        raise
    cache.clear()
    create_audit_log(request, 'RESTORE', MODULE, entity=backup.backup_name,
                     details='Backup restored', severity='high')
    return Response({'message': f"Backup '{backup.backup_name}' restored successfully"})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def backup_delete(request, pk):
    backup = _get_backup(pk)
    name = backup.backup_name
    delete_backup(backup)
    create_audit_log(request, 'DELETE', MODULE, entity=name, details='Backup deleted')
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def cache_clear(request):
    cache.clear()
    create_audit_log(request, 'CLEAR_CACHE', MODULE, entity='cache', details='Application cache cleared')
    logger.info('Cache cleared by %s', request.user.email)
    return Response({'message': 'Cache cleared successfully'})


# Typed business settings

@api_view(['GET', 'POST', 'PUT'])
@permission_classes([IsAuthenticated])
def system_settings(request):
    """Typed settings object used by the settings page; writes are staff only"""
    if request.method == 'GET':
        return Response(SystemSettingsSerializer(get_system_settings()).data)

    _require_staff(request)
    serializer = SystemSettingsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    saved = save_system_settings(serializer.validated_data)
    create_audit_log(request, 'UPDATE', MODULE, entity='settings', details='System settings updated',
                     changes={key: str(value) for key, value in serializer.validated_data.items()})
    return Response(SystemSettingsSerializer(saved).data)
