import django_filters
from backend.core.orders import OrderFilterBase
from .models import CustomerOrder


class CustomerOrderFilter(OrderFilterBase):
    """Filter for the customer orders grid"""
    customer = django_filters.CharFilter(field_name='customer_name', lookup_expr='icontains')

    class Meta:
        model = CustomerOrder
        fields = ['status', 'customer', 'date_range']
