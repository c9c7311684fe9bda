from django.urls import path
from .views import (
    product_list_create, product_detail,
    product_category_chart, product_stock_levels_chart, product_summary,
    alerts, alerts_count,
)

urlpatterns = [
    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/chart/category/', product_category_chart, name='product-category-chart'),
    path('products/chart/stock-levels/', product_stock_levels_chart, name='product-stock-levels-chart'),
    path('products/summary/', product_summary, name='product-summary'),

    # Alert endpoints
    path('alerts/', alerts, name='alerts'),
    path('alerts/count/', alerts_count, name='alerts-count'),
]
