from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils import timezone


class UserManager(BaseUserManager):
    """Manager for the email-login user model"""
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('The email address is required')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Dashboard user, identified by email"""
    username = None
    first_name = None
    last_name = None

    email = models.EmailField(unique=True)
    full_name = models.CharField(max_length=100)
    phone_number = models.CharField(max_length=20, blank=True, null=True)
    date_of_birth = models.DateField(blank=True, null=True)
    # URL or data: URI uploaded from the profile page
    profile_picture_url = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['full_name']

    objects = UserManager()

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.full_name

    def get_short_name(self):
        return self.full_name.split(' ')[0] if self.full_name else self.email

    class Meta:
        db_table = 'users'
        ordering = ['id']


class SystemConfig(models.Model):
    """Runtime configuration entry, editable from the system settings page"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True)
    default_value = models.TextField(blank=True, null=True)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=50, default='General', db_index=True)
    is_encrypted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'system_configs'
        ordering = ['category', 'key']


class SystemBackup(models.Model):
    """A JSON fixture snapshot written by the backup endpoint"""
    STATUS_CHOICES = [
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]

    backup_name = models.CharField(max_length=150)
    description = models.TextField(blank=True)
    file_path = models.CharField(max_length=500, blank=True)
    file_size_mb = models.FloatField(default=0)
    include_data = models.BooleanField(default=True)
    include_settings = models.BooleanField(default=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='completed')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='backups')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.backup_name

    class Meta:
        db_table = 'system_backups'
        ordering = ['-created_at']


class AuditLog(models.Model):
    """Audit trail for user and system activity"""
    SEVERITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]

    timestamp = models.DateTimeField(default=timezone.now)
    user = models.CharField(max_length=100, help_text="Display name or email of whoever performed the action")
    actor = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=50)
    module = models.CharField(max_length=100)
    entity = models.CharField(max_length=255, blank=True, null=True)
    details = models.CharField(max_length=1000, blank=True, null=True)
    ip_address = models.CharField(max_length=45, blank=True, null=True)
    severity = models.CharField(max_length=20, choices=SEVERITY_CHOICES, default='low')
    changes = models.JSONField(default=dict, blank=True)

    def __str__(self):
        return f"{self.action} {self.module} by {self.user}"

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['-timestamp'], name='audit_timestamp_idx'),
            models.Index(fields=['action'], name='audit_action_idx'),
            models.Index(fields=['module'], name='audit_module_idx'),
            models.Index(fields=['severity'], name='audit_severity_idx'),
        ]
