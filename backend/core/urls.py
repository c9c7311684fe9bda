from django.urls import path
from . import views, views_system

urlpatterns = [
    # Auth endpoints
    path('auth/register/', views.register, name='register'),
    path('auth/login/', views.login, name='login'),
    path('auth/refresh/', views.token_refresh, name='token-refresh'),
    path('auth/logout/', views.logout, name='logout'),
    path('auth/me/', views.user_me, name='user-me'),

    # User profile endpoints
    path('user-profile/me/', views.profile_me, name='profile-me'),
    path('user-profile/update/', views.profile_update, name='profile-update'),
    path('user-profile/profile-picture/', views.profile_picture, name='profile-picture'),
    path('user-profile/change-password/', views.change_password, name='change-password'),
    path('user-profile/<int:user_id>/', views.profile_detail, name='profile-detail'),

    # Audit endpoints
    path('audit/', views.audit_log_create, name='audit-create'),
    path('audit/logs/', views.audit_logs, name='audit-logs'),
    path('audit/logs/<int:pk>/', views.audit_log_detail, name='audit-log-detail'),
    path('audit/recent/', views.audit_recent, name='audit-recent'),
    path('audit/statistics/', views.audit_statistics, name='audit-statistics'),

    # Health endpoints (anonymous)
    path('health/', views.health, name='health'),
    path('health/ready/', views.health_ready, name='health-ready'),
    path('health/live/', views.health_live, name='health-live'),

    # System configuration endpoints
    path('system-config/', views_system.config_list, name='config-list'),
    path('system-config/category/<str:category>/', views_system.config_by_category, name='config-category'),
    path('system-config/bulk/update/', views_system.config_bulk_update, name='config-bulk-update'),
    path('system-config/reset/<str:key>/', views_system.config_reset, name='config-reset'),
    path('system-config/reset-all/', views_system.config_reset_all, name='config-reset-all'),
    path('system-config/health/status/', views_system.health_status, name='system-health'),
    path('system-config/statistics/', views_system.statistics, name='system-statistics'),
    path('system-config/activity-logs/', views_system.activity_logs, name='activity-logs'),
    path('system-config/backup/create/', views_system.backup_create, name='backup-create'),
    path('system-config/backup/list/', views_system.backup_list, name='backup-list'),
    path('system-config/backup/restore/<int:pk>/', views_system.backup_restore, name='backup-restore'),
    path('system-config/backup/<int:pk>/', views_system.backup_delete, name='backup-delete'),
    path('system-config/cache/clear/', views_system.cache_clear, name='cache-clear'),
    path('system-config/settings/', views_system.system_settings, name='config-settings'),
    path('system-config/<str:key>/', views_system.config_detail, name='config-detail'),
    path('system-settings/', views_system.system_settings, name='system-settings'),
]
