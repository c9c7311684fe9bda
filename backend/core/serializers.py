from rest_framework import serializers
from .models import User, AuditLog, SystemConfig, SystemBackup


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'full_name', 'email', 'phone_number', 'date_of_birth', 'profile_picture_url',
                  'is_active', 'is_staff', 'last_login', 'created_at', 'updated_at']
        read_only_fields = fields


class RegisterSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(min_length=2, max_length=100)
    email = serializers.EmailField(max_length=254)
    password = serializers.CharField(write_only=True, min_length=6, max_length=50)
    password_confirm = serializers.CharField(write_only=True, required=False)

    class Meta:
        model = User
        fields = ['full_name', 'email', 'password', 'password_confirm', 'phone_number']

    def validate_email(self, value):
        return value.strip().lower()

    def validate(self, attrs):
        confirm = attrs.pop('password_confirm', None)
        if confirm is not None and confirm != attrs['password']:
            raise serializers.ValidationError({"password_confirm": "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, is_active=True, **validated_data)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False, allow_blank=True)
    all = serializers.BooleanField(required=False, default=False)

    def validate(self, attrs):
        if not attrs.get('all') and not attrs.get('refresh'):
            raise serializers.ValidationError({"refresh": "A refresh token is required unless all is true."})
        return attrs


class ProfileUpdateSerializer(serializers.Serializer):
    """Only non-empty values are applied"""
    full_name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    phone_number = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=20)
    date_of_birth = serializers.DateField(required=False, allow_null=True)

    def update(self, instance, validated_data):
        changed = []
        for field, value in validated_data.items():
            if value in (None, ''):
                continue
            if isinstance(value, str):
                value = value.strip()
                if not value:
                    continue
            if getattr(instance, field) != value:
                setattr(instance, field, value)
                changed.append(field)
        if changed:
            instance.save(update_fields=changed + ['updated_at'])
        instance._changed_fields = changed
        return instance


class ProfilePictureSerializer(serializers.Serializer):
    picture_url = serializers.CharField(allow_blank=False, trim_whitespace=True)

    def validate_picture_url(self, value):
        if not value.startswith(('http://', 'https://', 'data:image/', '/')):
            raise serializers.ValidationError('Picture must be an http(s) URL, site path or data:image URI.')
        return value


class ChangePasswordSerializer(serializers.Serializer):
    old_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)
    confirm_password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        if attrs['new_password'] != attrs['confirm_password']:
            raise serializers.ValidationError({"confirm_password": "New password and confirmation do not match."})
        if len(attrs['new_password']) < 6:
            raise serializers.ValidationError({"new_password": "New password must be at least 6 characters long."})
        user = self.context['request'].user
        if not user.check_password(attrs['old_password']):
            raise serializers.ValidationError({"old_password": "Current password is incorrect."})
        return attrs


class AuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLog
        fields = ['id', 'timestamp', 'user', 'action', 'module', 'entity', 'details',
                  'ip_address', 'severity', 'changes']
        read_only_fields = ['id', 'timestamp', 'changes']


class AuditLogCreateSerializer(serializers.ModelSerializer):
    user = serializers.CharField(max_length=100)
    action = serializers.CharField(max_length=50)
    module = serializers.CharField(max_length=100)
    severity = serializers.ChoiceField(choices=AuditLog.SEVERITY_CHOICES, required=False)

    class Meta:
        model = AuditLog
        fields = ['user', 'action', 'module', 'entity', 'details', 'ip_address', 'severity']

    def validate_action(self, value):
        return value.strip().upper()


class ActivityLogSerializer(serializers.ModelSerializer):
    """Audit entries shaped as rows of the system activity grid"""
    details = serializers.SerializerMethodField()
    ip_address = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'details', 'ip_address', 'timestamp', 'status']

    def get_details(self, obj):
        return f"{obj.module} - {obj.details}" if obj.details else obj.module

    def get_ip_address(self, obj):
        return obj.ip_address or 'Unknown'

    def get_status(self, obj):
        return 'Failed' if obj.action.endswith('FAILED') else 'Success'


class SystemConfigSerializer(serializers.ModelSerializer):
    class Meta:
        model = SystemConfig
        fields = ['id', 'key', 'value', 'default_value', 'description', 'category', 'is_encrypted',
                  'created_at', 'updated_at']
        read_only_fields = fields


class SystemConfigUpdateSerializer(serializers.Serializer):
    value = serializers.CharField(allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)


class BulkConfigItemSerializer(serializers.Serializer):
    key = serializers.CharField(max_length=100)
    value = serializers.CharField(allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)


class BulkConfigUpdateSerializer(serializers.Serializer):
    configurations = BulkConfigItemSerializer(many=True, allow_empty=False)


class SystemSettingsSerializer(serializers.Serializer):
    company_name = serializers.CharField(max_length=200)
    currency = serializers.CharField(max_length=10, default='USD')
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100, default=10)
    low_stock_threshold = serializers.IntegerField(min_value=1, default=10)
    low_stock_notifications = serializers.BooleanField(default=True)
    email_notifications = serializers.BooleanField(default=True)
    order_notifications = serializers.BooleanField(default=True)
    audit_retention = serializers.IntegerField(min_value=1, max_value=365, default=90)
    records_per_page = serializers.IntegerField(min_value=5, max_value=500, default=25)
    last_updated = serializers.DateTimeField(read_only=True)

    def validate_company_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Company name is required')
        return value


class SystemBackupSerializer(serializers.ModelSerializer):
    created_by = serializers.SerializerMethodField()

    class Meta:
        model = SystemBackup
        fields = ['id', 'backup_name', 'description', 'file_size_mb', 'include_data', 'include_settings',
                  'status', 'created_by', 'created_at']
        read_only_fields = fields

    def get_created_by(self, obj):
        return obj.created_by.email if obj.created_by else None


class BackupCreateSerializer(serializers.Serializer):
    backup_name = serializers.CharField(max_length=150)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    include_data = serializers.BooleanField(default=True)
    include_settings = serializers.BooleanField(default=True)
