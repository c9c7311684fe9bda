from django.db import models
from backend.core.orders import OrderBase


class SupplierOrder(OrderBase):
    """Purchase order placed with a supplier"""
    supplier_name = models.CharField(max_length=100, db_index=True)

    class Meta(OrderBase.Meta):
        db_table = 'supplier_orders'
