"""
Shared shape of customer and supplier orders: abstract model, queryset and
filter base. The concrete models live in backend.sales and
backend.purchasing.
"""
import calendar
from datetime import timedelta
from decimal import Decimal

import django_filters
from django.db import models
from django.db.models import Count, Q, Sum
from django.utils import timezone
from rest_framework import serializers

from .exceptions import ConflictException

ORDER_STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('approved', 'Approved'),
    ('confirmed', 'Confirmed'),
    ('shipped', 'Shipped'),
    ('delivered', 'Delivered'),
    ('cancelled', 'Cancelled'),
]
ORDER_STATUSES = [value for value, _ in ORDER_STATUS_CHOICES]


def one_month_before(moment):
    """Same day and time one calendar month earlier, clamped to month end"""
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class OrderQuerySet(models.QuerySet):

    def in_date_range(self, date_range):
        """``week`` = last 7 days, ``month`` = last calendar month, anything else = all"""
        now = timezone.now()
        date_range = (date_range or '').strip().lower()
        if date_range == 'week':
            return self.filter(order_date__gte=now - timedelta(days=7))
        if date_range == 'month':
            return self.filter(order_date__gte=one_month_before(now))
        return self

    def status_counts(self):
        rows = self.values('status').annotate(count=Count('id')).order_by('status')
        return {row['status']: row['count'] for row in rows}

    def totals(self):
        totals = self.aggregate(
            total_orders=Count('id'),
            pending=Count('id', filter=Q(status='pending')),
            delivered=Count('id', filter=Q(status='delivered')),
            total_value=Sum('total_value'),
        )
        totals['total_value'] = float(totals['total_value'] or Decimal('0'))
        return totals


class OrderBase(models.Model):
    order_id = models.CharField(max_length=50, unique=True)
    order_date = models.DateTimeField(default=timezone.now, db_index=True)
    items = models.TextField()
    total_value = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=20, choices=ORDER_STATUS_CHOICES, default='pending', db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = OrderQuerySet.as_manager()

    def __str__(self):
        return self.order_id

    class Meta:
        abstract = True
        ordering = ['-order_date', '-id']


class OrderFilterBase(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name='status', lookup_expr='iexact')
    date_range = django_filters.CharFilter(method='filter_date_range')

    def filter_date_range(self, queryset, name, value):
        return queryset.in_date_range(value)


class OrderSerializerBase(serializers.ModelSerializer):
    """Validation shared by customer and supplier order payloads"""
    order_id = serializers.CharField(max_length=50)
    items = serializers.CharField()
    total_value = serializers.DecimalField(max_digits=14, decimal_places=2)
    status = serializers.CharField(required=False, default='pending')
    order_date = serializers.DateTimeField(required=False)

    def validate_order_id(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Order ID is required.')
        queryset = self.Meta.model.objects.filter(order_id=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise ConflictException(f"An order with ID '{value}' already exists.", error_code='DUPLICATE_ORDER_ID')
        return value

    def validate_items(self, value):
        if not value.strip():
            raise serializers.ValidationError('Items are required.')
        return value.strip()

    def validate_total_value(self, value):
        if value <= 0:
            raise serializers.ValidationError('Total value must be greater than 0.')
        return value

    def validate_status(self, value):
        value = value.strip().lower()
        if value not in ORDER_STATUSES:
            raise serializers.ValidationError(
                f"Status must be one of: {', '.join(ORDER_STATUSES)}."
            )
        return value
