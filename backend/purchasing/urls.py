from django.urls import path
from .views import (
    supplier_order_list_create, supplier_order_detail,
    supplier_order_status_chart, supplier_order_summary,
)

urlpatterns = [
    path('supplier-orders/', supplier_order_list_create, name='supplier-order-list-create'),
    path('supplier-orders/<int:pk>/', supplier_order_detail, name='supplier-order-detail'),
    path('supplier-orders/chart/status/', supplier_order_status_chart, name='supplier-order-status-chart'),
    path('supplier-orders/summary/', supplier_order_summary, name='supplier-order-summary'),
]
