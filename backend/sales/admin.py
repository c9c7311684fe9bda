from django.contrib import admin
from .models import CustomerOrder


@admin.register(CustomerOrder)
class CustomerOrderAdmin(admin.ModelAdmin):
    list_display = ['order_id', 'customer_name', 'order_date', 'total_value', 'status']
    list_filter = ['status', 'order_date']
    search_fields = ['order_id', 'customer_name', 'items']
    ordering = ['-order_date']
    readonly_fields = ['created_at', 'updated_at']
