from rest_framework import serializers
from backend.core.orders import OrderSerializerBase
from .models import CustomerOrder


class CustomerOrderSerializer(OrderSerializerBase):
    customer_name = serializers.CharField(max_length=100)

    class Meta:
        model = CustomerOrder
        fields = ['id', 'order_id', 'customer_name', 'order_date', 'items', 'total_value', 'status',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_customer_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Customer name is required.')
        return value
