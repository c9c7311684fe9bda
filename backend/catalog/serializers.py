from rest_framework import serializers
from backend.core.exceptions import ConflictException
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=2, max_length=100)
    sku = serializers.CharField(min_length=3, max_length=50)
    category_name = serializers.CharField(max_length=50, required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=0)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    status = serializers.CharField(read_only=True)
    stock_status = serializers.CharField(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'sku', 'price', 'category_name', 'quantity', 'description',
                  'status', 'stock_status', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if len(value) < 2:
            raise serializers.ValidationError('Name must be between 2 and 100 characters.')
        return value

    def validate_sku(self, value):
        value = value.strip()
        queryset = Product.objects.filter(sku__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise ConflictException(f"A product with SKU '{value}' already exists.", error_code='DUPLICATE_SKU')
        return value

    def validate_category_name(self, value):
        return value.strip()
