from decimal import Decimal

from django.db import models
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum, Value
from django.db.models.functions import Coalesce, NullIf, Trim

# Grid status buckets: "Low Stock" is 0 < quantity < LOW_STOCK_LIMIT
LOW_STOCK_LIMIT = 5

STOCK_IN = 'In Stock'
STOCK_LOW = 'Low Stock'
STOCK_OUT = 'Out of Stock'

UNCATEGORIZED = 'Uncategorized'


class ProductQuerySet(models.QuerySet):
    """Query helpers for product listings, charts and alerts"""

    def in_stock(self):
        return self.filter(quantity__gte=LOW_STOCK_LIMIT)

    def low_stock(self):
        return self.filter(quantity__gt=0, quantity__lt=LOW_STOCK_LIMIT)

    def out_of_stock(self):
        return self.filter(quantity=0)

    def with_stock_status(self, label):
        """Filter by one of the grid's status labels; unknown labels match nothing"""
        buckets = {
            STOCK_IN.lower(): self.in_stock,
            STOCK_LOW.lower(): self.low_stock,
            STOCK_OUT.lower(): self.out_of_stock,
        }
        bucket = buckets.get(label.strip().lower())
        return bucket() if bucket else self.none()

    def search(self, term):
        term = term.strip()
        if not term:
            return self
        return self.filter(Q(name__icontains=term) | Q(sku__icontains=term))

    def alert_low_stock(self, threshold, limit=20):
        return self.filter(quantity__gt=0, quantity__lte=threshold).order_by('quantity', 'name')[:limit]

    def alert_out_of_stock(self, limit=20):
        return self.filter(quantity=0).order_by('name')[:limit]

    def category_counts(self):
        """{category: product count}, blank categories grouped as Uncategorized"""
        rows = (
            self.annotate(category=Coalesce(NullIf(Trim('category_name'), Value('')), Value(UNCATEGORIZED)))
            .values('category')
            .annotate(count=Count('id'))
            .order_by('category')
        )
        return {row['category']: row['count'] for row in rows}

    def stock_level_counts(self):
        counts = self.aggregate(
            in_stock=Count('id', filter=Q(quantity__gte=LOW_STOCK_LIMIT)),
            low_stock=Count('id', filter=Q(quantity__gt=0, quantity__lt=LOW_STOCK_LIMIT)),
            out_of_stock=Count('id', filter=Q(quantity=0)),
        )
        return {
            STOCK_IN: counts['in_stock'],
            STOCK_LOW: counts['low_stock'],
            STOCK_OUT: counts['out_of_stock'],
        }

    def summary(self):
        stock_value = ExpressionWrapper(F('quantity') * F('price'), output_field=DecimalField(max_digits=18, decimal_places=2))
        totals = self.aggregate(
            total_products=Count('id'),
            low_stock=Count('id', filter=Q(quantity__gt=0, quantity__lt=LOW_STOCK_LIMIT)),
            out_of_stock=Count('id', filter=Q(quantity=0)),
            total_value=Sum(stock_value),
        )
        totals['total_value'] = float(totals['total_value'] or Decimal('0'))
        return totals


class Product(models.Model):
    """Inventory item"""
    name = models.CharField(max_length=100, db_index=True)
    sku = models.CharField(max_length=50, unique=True)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    category_name = models.CharField(max_length=50, blank=True, default='', db_index=True)
    quantity = models.PositiveIntegerField(default=0)
    description = models.CharField(max_length=500, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductQuerySet.as_manager()

    def __str__(self):
        return f"{self.name} ({self.sku})"

    @property
    def status(self):
        return 'in-stock' if self.quantity > 0 else 'out-of-stock'

    @property
    def stock_status(self):
        if self.quantity == 0:
            return STOCK_OUT
        if self.quantity < LOW_STOCK_LIMIT:
            return STOCK_LOW
        return STOCK_IN

    class Meta:
        db_table = 'products'
        ordering = ['id']
