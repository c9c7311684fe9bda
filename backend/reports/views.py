"""
Insights and dashboard aggregates

Both payloads are built from a handful of grouped queries and kept in the
Django cache for a short time. Writes to products, orders and audit entries
drop the cached copies (see backend.core.cache_signals).
"""
import logging

from django.db.models import Count, Q
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.catalog.models import Product
from backend.core.cache_utils import (
    cached_query,
    INSIGHTS_CACHE_TTL, INSIGHTS_CACHE_PREFIX,
    DASHBOARD_CACHE_TTL, DASHBOARD_CACHE_PREFIX,
)
from backend.core.models import AuditLog
from backend.core.orders import ORDER_STATUS_CHOICES
from backend.core.system_config import get_low_stock_threshold
from backend.purchasing.models import SupplierOrder
from backend.sales.models import CustomerOrder

logger = logging.getLogger('backend.reports')

INSIGHTS_LOW_STOCK = 10
INSIGHTS_HIGH_STOCK = 50

STOCK_LEVEL_CATEGORIES = ['Low Stock (<10)', 'Medium (10-50)', 'High (>50)']
STOCK_LEVEL_COLORS = ['#dc3545', '#ffc107', '#28a745']
AUDIT_ACTIONS_COLOR = '#246dec'
SUPPLIER_STATUS_COLORS = ['#ffc107', '#28a745', '#dc3545']
CUSTOMER_STATUS_COLORS = ['#ffc107', '#246dec', '#28a745']

STATUS_LABELS = dict(ORDER_STATUS_CHOICES)


def _status_chart(counts, colors):
    """Pie chart payload; only statuses that occur get a slice"""
    labels = [STATUS_LABELS.get(value, value.title()) for value in counts]
    return {
        'labels': labels,
        'data': list(counts.values()),
        'colors': colors[:len(labels)],
    }


def _stock_levels_chart():
    levels = Product.objects.aggregate(
        low=Count('id', filter=Q(quantity__lt=INSIGHTS_LOW_STOCK)),
        medium=Count('id', filter=Q(quantity__gte=INSIGHTS_LOW_STOCK, quantity__lte=INSIGHTS_HIGH_STOCK)),
        high=Count('id', filter=Q(quantity__gt=INSIGHTS_HIGH_STOCK)),
    )
    return {
        'categories': STOCK_LEVEL_CATEGORIES,
        'data': [levels['low'], levels['medium'], levels['high']],
        'colors': STOCK_LEVEL_COLORS,
    }


def _audit_actions_chart():
    rows = AuditLog.objects.values('action').annotate(count=Count('id')).order_by('-count', 'action')
    return {
        'categories': [row['action'] for row in rows],
        'data': [row['count'] for row in rows],
        'colors': [AUDIT_ACTIONS_COLOR],
    }


@cached_query(cache_ttl=INSIGHTS_CACHE_TTL, key_prefix=INSIGHTS_CACHE_PREFIX)
def build_insights():
    logger.info('Building insights aggregates')
    return {
        'total_products': Product.objects.count(),
        'low_stock_count': Product.objects.filter(quantity__lt=INSIGHTS_LOW_STOCK).count(),
        'total_orders': CustomerOrder.objects.count(),
        'audit_logs_count': AuditLog.objects.count(),
        'stock_levels_chart': _stock_levels_chart(),
        'audit_actions_chart': _audit_actions_chart(),
        'supplier_status_chart': _status_chart(SupplierOrder.objects.status_counts(), SUPPLIER_STATUS_COLORS),
        'customer_status_chart': _status_chart(CustomerOrder.objects.status_counts(), CUSTOMER_STATUS_COLORS),
    }


@cached_query(cache_ttl=DASHBOARD_CACHE_TTL, key_prefix=DASHBOARD_CACHE_PREFIX)
def build_dashboard():
    threshold = get_low_stock_threshold()
    low = Product.objects.filter(quantity__gt=0, quantity__lte=threshold).count()
    out = Product.objects.out_of_stock().count()
    customer = CustomerOrder.objects.totals()
    supplier = SupplierOrder.objects.totals()
    return {
        'products': Product.objects.summary(),
        'customer_orders': {
            'total_orders': customer['total_orders'],
            'pending': customer['pending'],
            'delivered': customer['delivered'],
            'total_revenue': customer['total_value'],
        },
        'supplier_orders': supplier,
        'alerts': {
            'low_stock_count': low,
            'out_of_stock_count': out,
            'total_alerts': low + out,
            'threshold': threshold,
        },
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def insights(request):
    """Headline numbers and chart series for the insights page"""
    return Response(build_insights())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    return Response(build_dashboard())
