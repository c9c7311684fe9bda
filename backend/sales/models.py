from django.db import models
from backend.core.orders import OrderBase


class CustomerOrder(OrderBase):
    """Sales order placed by a customer"""
    customer_name = models.CharField(max_length=100, db_index=True)

    class Meta(OrderBase.Meta):
        db_table = 'customer_orders'
