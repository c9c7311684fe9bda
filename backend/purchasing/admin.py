from django.contrib import admin
from .models import SupplierOrder


@admin.register(SupplierOrder)
class SupplierOrderAdmin(admin.ModelAdmin):
    list_display = ['order_id', 'supplier_name', 'order_date', 'get_total', 'status']
    list_filter = ['status', 'order_date']
    search_fields = ['order_id', 'supplier_name', 'items']
    ordering = ['-order_date']
    readonly_fields = ['created_at', 'updated_at']

    def get_total(self, obj):
        return f"{obj.total_value:.2f}"
    get_total.short_description = 'Total'
