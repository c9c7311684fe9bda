"""Utility functions for audit logging and DataTables paging"""
import logging

from .models import AuditLog

logger = logging.getLogger(__name__)

SEVERITY_BY_ACTION = {
    'DELETE': 'high',
    'LOGIN_FAILED': 'medium',
}


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def severity_for_action(action):
    """Deletions are high severity, everything else low unless listed"""
    return SEVERITY_BY_ACTION.get((action or '').upper(), 'low')


def actor_display_name(user):
    if user is None or not getattr(user, 'is_authenticated', False):
        return 'Anonymous'
    return user.full_name or user.email


def create_audit_log(request=None, action=None, module=None, entity=None, details=None,
                     changes=None, user=None, severity=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action verb, stored upper-case (CREATE, UPDATE, DELETE, LOGIN, ...)
        module: Area of the application, e.g. "Inventory" or "Customer Orders"
        entity: Human-readable identifier of the object acted upon
        details: Free text description
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        severity: Overrides the severity derived from the action

    Never raises: a failed audit write is logged and swallowed so the
    calling operation still succeeds.
    """
    try:
        if not action or not module:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, module={module})")
            return None

        audit_user = user
        if audit_user is None and request is not None:
            audit_user = getattr(request, 'user', None)
        actor = audit_user if audit_user is not None and getattr(audit_user, 'is_authenticated', False) else None

        action = action.upper()
        return AuditLog.objects.create(
            user=actor_display_name(audit_user),
            actor=actor,
            action=action,
            module=module,
            entity=str(entity)[:255] if entity is not None else None,
            details=str(details)[:1000] if details is not None else None,
            ip_address=get_client_ip(request) if request else None,
            severity=severity or severity_for_action(action),
            changes=changes or {},
        )
    except Exception as e:
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def field_changes(instance, validated_data):
    """{field: {'old': ..., 'new': ...}} for values an update is about to change"""
    changes = {}
    for field, new in validated_data.items():
        old = getattr(instance, field, None)
        if old != new:
            changes[field] = {'old': str(old) if old is not None else None,
                              'new': str(new) if new is not None else None}
    return changes


def _int_param(params, name, default):
    try:
        return int(params.get(name, default))
    except (TypeError, ValueError):
        return default


def wants_datatables(request):
    """Grid requests carry ``draw``; anything else gets a plain list"""
    return 'draw' in request.query_params


def datatables_response(request, queryset, serializer_class, records_total=None):
    """
    Page ``queryset`` with the DataTables server-side protocol.

    Reads ``draw``, ``start`` and ``length`` from the query string and
    returns the envelope the grid expects. ``length`` of -1 means all rows.
    """
    params = request.query_params
    draw = _int_param(params, 'draw', 1)
    start = max(_int_param(params, 'start', 0), 0)
    length = _int_param(params, 'length', 10)

    records_filtered = queryset.count()
    if records_total is None:
        records_total = queryset.model.objects.count()

    page = queryset[start:] if length < 0 else queryset[start:start + length]
    return {
        'draw': draw,
        'recordsTotal': records_total,
        'recordsFiltered': records_filtered,
        'data': serializer_class(page, many=True).data,
    }
