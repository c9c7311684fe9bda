from rest_framework import serializers
from backend.core.orders import OrderSerializerBase
from .models import SupplierOrder


class SupplierOrderSerializer(OrderSerializerBase):
    supplier_name = serializers.CharField(max_length=100)

    class Meta:
        model = SupplierOrder
        fields = ['id', 'order_id', 'supplier_name', 'order_date', 'items', 'total_value', 'status',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_supplier_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Supplier name is required.')
        return value
