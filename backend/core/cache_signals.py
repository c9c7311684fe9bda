"""
Cache invalidation signals
Invalidate cached aggregates when the data behind them changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from backend.catalog.models import Product
from backend.purchasing.models import SupplierOrder
from backend.sales.models import CustomerOrder
from .cache_utils import invalidate_insights_cache
from .models import AuditLog


@receiver([post_save, post_delete], sender=Product)
@receiver([post_save, post_delete], sender=CustomerOrder)
@receiver([post_save, post_delete], sender=SupplierOrder)
@receiver([post_save, post_delete], sender=AuditLog)
def invalidate_aggregates(sender, instance, **kwargs):
    """Invalidate insights after the surrounding transaction commits"""
    if kwargs.get('raw'):
        return
    # Run after commit so the cache is not repopulated with stale rows
    transaction.on_commit(invalidate_insights_cache)
