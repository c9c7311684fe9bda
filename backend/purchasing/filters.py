import django_filters
from backend.core.orders import OrderFilterBase
from .models import SupplierOrder


class SupplierOrderFilter(OrderFilterBase):
    """Filter for the supplier orders grid"""
    supplier = django_filters.CharFilter(field_name='supplier_name', lookup_expr='icontains')

    class Meta:
        model = SupplierOrder
        fields = ['status', 'supplier', 'date_range']
