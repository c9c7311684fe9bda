from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, AuditLog, SystemConfig, SystemBackup


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'full_name', 'phone_number', 'is_active', 'is_staff', 'created_at']
    list_filter = ['is_active', 'is_staff', 'is_superuser', 'created_at']
    search_fields = ['email', 'full_name', 'phone_number']
    ordering = ['email']
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Profile', {'fields': ('full_name', 'phone_number', 'date_of_birth', 'profile_picture_url')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Important dates', {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'full_name', 'password1', 'password2'),
        }),
    )


@admin.register(SystemConfig)
class SystemConfigAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'category', 'updated_at']
    list_filter = ['category']
    search_fields = ['key', 'description']
    ordering = ['category', 'key']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(SystemBackup)
class SystemBackupAdmin(admin.ModelAdmin):
    list_display = ['backup_name', 'status', 'file_size_mb', 'created_by', 'created_at']
    list_filter = ['status']
    ordering = ['-created_at']
    readonly_fields = ['file_path', 'file_size_mb', 'created_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['timestamp', 'user', 'action', 'module', 'entity', 'severity', 'ip_address']
    list_filter = ['action', 'module', 'severity', 'timestamp']
    search_fields = ['user', 'entity', 'details']
    ordering = ['-timestamp']
    readonly_fields = ['timestamp', 'user', 'actor', 'action', 'module', 'entity', 'details',
                       'ip_address', 'severity', 'changes']
