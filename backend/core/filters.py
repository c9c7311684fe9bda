import django_filters
from .models import AuditLog


class AuditLogFilter(django_filters.FilterSet):
    """Filters for the audit trail grid"""
    start_date = django_filters.DateFilter(field_name='timestamp', lookup_expr='date__gte')
    end_date = django_filters.DateFilter(field_name='timestamp', lookup_expr='date__lte')
    user = django_filters.CharFilter(field_name='user', lookup_expr='icontains')
    action = django_filters.CharFilter(method='filter_action')
    module = django_filters.CharFilter(field_name='module', lookup_expr='iexact')
    severity = django_filters.CharFilter(field_name='severity', lookup_expr='iexact')

    class Meta:
        model = AuditLog
        fields = ['start_date', 'end_date', 'user', 'action', 'module', 'severity']

    def filter_action(self, queryset, name, value):
        return queryset.filter(action=value.strip().upper())
