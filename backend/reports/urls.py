from django.urls import path
from . import views

urlpatterns = [
    path('insights/', views.insights, name='insights'),
    path('insights/dashboard/', views.dashboard, name='insights-dashboard'),
]
