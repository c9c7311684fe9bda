from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'category_name', 'price', 'quantity', 'updated_at']
    list_filter = ['category_name']
    search_fields = ['name', 'sku', 'description']
    ordering = ['id']
    readonly_fields = ['created_at', 'updated_at']
