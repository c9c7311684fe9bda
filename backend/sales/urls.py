from django.urls import path
from .views import (
    customer_order_list_create, customer_order_detail,
    customer_order_status_chart, customer_order_summary,
)

urlpatterns = [
    path('customer-orders/', customer_order_list_create, name='customer-order-list-create'),
    path('customer-orders/<int:pk>/', customer_order_detail, name='customer-order-detail'),
    path('customer-orders/chart/status/', customer_order_status_chart, name='customer-order-status-chart'),
    path('customer-orders/summary/', customer_order_summary, name='customer-order-summary'),
]
