import django_filters
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter for the inventory grid using django-filter"""

    # Name / SKU search
    search = django_filters.CharFilter(method='filter_search', label='Search')

    category = django_filters.CharFilter(field_name='category_name', lookup_expr='iexact')
    min_price = django_filters.NumberFilter(field_name='price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='price', lookup_expr='lte')

    # "In Stock", "Low Stock" or "Out of Stock"
    status = django_filters.CharFilter(method='filter_status', label='Stock status')

    class Meta:
        model = Product
        fields = ['search', 'category', 'min_price', 'max_price', 'status']

    def filter_search(self, queryset, name, value):
        return queryset.search(value)

    def filter_status(self, queryset, name, value):
        if not value.strip():
            return queryset
        return queryset.with_stock_status(value)
