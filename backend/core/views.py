import logging
import math
import time
from datetime import datetime, timezone as dt_timezone

from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.models import update_last_login
from django.core.exceptions import ObjectDoesNotExist
from django.db.models import Count, Q
from django.http import JsonResponse
from django.utils import timezone
from django.views import defaults
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.token_blacklist.models import OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken

from .exceptions import (
    PROBLEM_CONTENT_TYPE, BusinessException, ConflictException, ForbiddenException,
    NotFoundException, UnauthorizedException, build_problem,
)
from .filters import AuditLogFilter
from .models import AuditLog
from .serializers import (
    UserSerializer, RegisterSerializer, LoginSerializer, LogoutSerializer,
    ProfileUpdateSerializer, ProfilePictureSerializer, ChangePasswordSerializer,
    AuditLogSerializer, AuditLogCreateSerializer,
)
from .services import issue_tokens, revoke_all_tokens, revoke_refresh_token, check_database, uptime_seconds
from .throttling import AuthRateThrottle
from .utils import create_audit_log, get_client_ip, severity_for_action

logger = logging.getLogger('backend.core')

User = get_user_model()

AUDIT_SORT_FIELDS = {
    'timestamp': 'timestamp',
    'user': 'user',
    'action': 'action',
    'module': 'module',
    'severity': 'severity',
}
AUDIT_MAX_PAGE_SIZE = 500


# --- Auth ---

class AppTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that records rotated tokens and handles deleted users gracefully"""

    def validate(self, attrs):
        try:
            data = super().validate(attrs)
        except (AuthenticationFailed, TokenError):
            raise UnauthorizedException('Refresh token is invalid or expired.', error_code='INVALID_TOKEN')
        except ObjectDoesNotExist:
            raise UnauthorizedException('Refresh token is invalid. User no longer exists.', error_code='INVALID_TOKEN')

        if 'refresh' in data:
            rotated = RefreshToken(data['refresh'], verify=False)
            user_id = rotated.payload.get(jwt_settings.USER_ID_CLAIM)
            OutstandingToken.objects.get_or_create(
                jti=rotated[jwt_settings.JTI_CLAIM],
                defaults={
                    'user': User.objects.filter(**{jwt_settings.USER_ID_FIELD: user_id}).first(),
                    'token': str(rotated),
                    'created_at': rotated.current_time,
                    'expires_at': datetime.fromtimestamp(rotated['exp'], tz=dt_timezone.utc),
                },
            )
        return data


@api_view(['POST'])
@permission_classes([AllowAny])
@authentication_classes([])
@throttle_classes([AuthRateThrottle])
def register(request):
    """User registration endpoint"""
    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    email = serializer.validated_data['email']
    if User.objects.filter(email__iexact=email).exists():
        raise ConflictException(f"A user with email '{email}' already exists.", error_code='EMAIL_EXISTS')

    user = serializer.save()
    tokens = issue_tokens(user)
    create_audit_log(request, 'REGISTER', 'Authentication', entity=user.email,
                     details='New user registered', user=user)
    logger.info('User registered: %s', user.email)
    return Response({
        'user': UserSerializer(user).data,
        'access': tokens['access'],
        'refresh': tokens['refresh'],
        'access_expires': tokens['access_expires'],
        'refresh_expires': tokens['refresh_expires'],
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
@authentication_classes([])
@throttle_classes([AuthRateThrottle])
def login(request):
    """Exchange email and password for an access/refresh token pair"""
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    email = serializer.validated_data['email'].strip()
    # Stored emails keep the case of their local part
    stored_email = (User.objects.filter(email__iexact=email)
                    .order_by('pk').values_list('email', flat=True).first())
    user = authenticate(request, email=stored_email or email,
                        password=serializer.validated_data['password'])

    if user is None:
        logger.warning('Failed login attempt for %s', email)
        create_audit_log(request, 'LOGIN_FAILED', 'Authentication', entity=email,
                         details='Invalid email or password', severity='medium')
        raise UnauthorizedException('Invalid email or password.', error_code='INVALID_CREDENTIALS')

    update_last_login(None, user)
    tokens = issue_tokens(user)
    create_audit_log(request, 'LOGIN', 'Authentication', entity=user.email,
                     details='User logged in', user=user)
    logger.info('User logged in: %s', user.email)
    return Response({**tokens, 'user': UserSerializer(user).data})


@api_view(['POST'])
@permission_classes([AllowAny])
@authentication_classes([])
@throttle_classes([AuthRateThrottle])
def token_refresh(request):
    """Rotate a refresh token and issue a new access token"""
    serializer = AppTokenRefreshSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return Response(serializer.validated_data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Revoke one refresh token, or all of the user's tokens with ``all: true``"""
    serializer = LogoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    if serializer.validated_data.get('all'):
        revoked = revoke_all_tokens(request.user)
        details = f'Logged out of all sessions ({revoked} tokens revoked)'
    else:
        raw = serializer.validated_data['refresh']
        try:
            token = RefreshToken(raw)
        except TokenError:
            raise BusinessException('Refresh token is invalid or already revoked.', error_code='INVALID_TOKEN')
        if str(token.payload.get(jwt_settings.USER_ID_CLAIM)) != str(request.user.pk):
            raise ForbiddenException('Refresh token belongs to another user.')
        revoke_refresh_token(raw)
        details = 'User logged out'

    create_audit_log(request, 'LOGOUT', 'Authentication', entity=request.user.email, details=details)
    return Response({'message': 'Logged out successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user"""
    return Response(UserSerializer(request.user).data)


# --- User profile ---

@api_view(['GET'])
@permission_classes([IsAuthenticated])
def profile_me(request):
    return Response(UserSerializer(request.user).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def profile_detail(request, user_id):
    """Profile by id: users may read their own, staff may read any"""
    if request.user.pk != user_id and not request.user.is_staff:
        raise ForbiddenException('You can only view your own profile.')
    try:
        user = User.objects.get(pk=user_id)
    except User.DoesNotExist:
        raise NotFoundException('User', user_id)
    return Response(UserSerializer(user).data)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def profile_update(request):
    serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    if user._changed_fields:
        create_audit_log(request, 'UPDATE', 'User Profile', entity=user.email,
                         details=f"Updated {', '.join(user._changed_fields)}",
                         changes={'fields': user._changed_fields})
    return Response({
        'message': 'Profile updated successfully',
        'data': UserSerializer(user).data,
    })


@api_view(['PUT', 'POST'])
@permission_classes([IsAuthenticated])
def profile_picture(request):
    serializer = ProfilePictureSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = request.user
    user.profile_picture_url = serializer.validated_data['picture_url']
    user.save(update_fields=['profile_picture_url', 'updated_at'])
    create_audit_log(request, 'UPDATE', 'User Profile', entity=user.email, details='Updated profile picture')
    return Response({
        'message': 'Profile picture updated successfully',
        'data': UserSerializer(user).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password(request):
    serializer = ChangePasswordSerializer(data=request.data, context={'request': request})
    serializer.is_valid(raise_exception=True)
    user = request.user
    user.set_password(serializer.validated_data['new_password'])
    user.save(update_fields=['password', 'updated_at'])
    revoke_all_tokens(user)
    create_audit_log(request, 'CHANGE_PASSWORD', 'User Profile', entity=user.email,
                     details='Password changed, all sessions revoked')
    logger.info('Password changed for user %s', user.pk)
    return Response({'message': 'Password changed successfully. Please log in again.'})


# --- Audit ---

def _bounded_int(value, default, minimum, maximum=None):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return default
    value = max(value, minimum)
    return min(value, maximum) if maximum is not None else value


def _log_client_event(request):
    serializer = AuditLogCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    entry = AuditLog.objects.create(
        user=data['user'],
        actor=request.user if request.user.is_authenticated else None,
        action=data['action'],
        module=data['module'],
        entity=data.get('entity'),
        details=data.get('details'),
        ip_address=data.get('ip_address') or get_client_ip(request),
        severity=data.get('severity') or severity_for_action(data['action']),
    )
    return Response(AuditLogSerializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def audit_logs(request):
    """Filtered, sorted and paged audit trail; POST records a client event"""
    if request.method == 'POST':
        return _log_client_event(request)

    params = request.query_params
    queryset = AuditLogFilter(params, queryset=AuditLog.objects.all()).qs

    sort_field = AUDIT_SORT_FIELDS.get(params.get('sort_by', 'timestamp').lower(), 'timestamp')
    direction = params.get('sort_direction', 'desc').lower()
    ordering = sort_field if direction == 'asc' else f'-{sort_field}'
    queryset = queryset.order_by(ordering, '-id')

    page = _bounded_int(params.get('page'), 1, 1)
    page_size = _bounded_int(params.get('page_size'), 25, 1, AUDIT_MAX_PAGE_SIZE)
    total_count = queryset.count()
    offset = (page - 1) * page_size

    return Response({
        'data': AuditLogSerializer(queryset[offset:offset + page_size], many=True).data,
        'total_count': total_count,
        'page': page,
        'total_pages': math.ceil(total_count / page_size) if total_count else 0,
        'page_size': page_size,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def audit_log_create(request):
    return _log_client_event(request)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    try:
        entry = AuditLog.objects.get(pk=pk)
    except AuditLog.DoesNotExist:
        raise NotFoundException('Audit log', pk)
    return Response(AuditLogSerializer(entry).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_recent(request):
    limit = _bounded_int(request.query_params.get('limit'), 10, 1, 100)
    entries = AuditLog.objects.order_by('-timestamp', '-id')[:limit]
    data = AuditLogSerializer(entries, many=True).data
    return Response({
        'data': data,
        'count': len(data),
        'total_count': AuditLog.objects.count(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_statistics(request):
    today = timezone.localdate()
    stats = AuditLog.objects.aggregate(
        total_logs=Count('id'),
        today_activities=Count('id', filter=Q(timestamp__date=today)),
        warnings=Count('id', filter=Q(severity='medium')),
        errors=Count('id', filter=Q(severity='high')),
        critical_events=Count('id', filter=Q(severity='critical')),
    )
    return Response(stats)


# --- Health ---

def _health_response(payload, healthy):
    return Response(payload, status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE)


@api_view(['GET'])
@permission_classes([AllowAny])
@authentication_classes([])
def health(request):
    started = time.perf_counter()
    database = check_database()
    healthy = database['status'] == 'Healthy'
    return _health_response({
        'status': 'Healthy' if healthy else 'Unhealthy',
        'total_duration': round((time.perf_counter() - started) * 1000, 2),
        'entries': {
            'database': database,
            'self': {'status': 'Healthy', 'description': 'API is running'},
        },
    }, healthy)


@api_view(['GET'])
@permission_classes([AllowAny])
@authentication_classes([])
def health_ready(request):
    healthy = check_database()['status'] == 'Healthy'
    return _health_response({
        'status': 'Ready' if healthy else 'Not Ready',
        'timestamp': timezone.now(),
    }, healthy)


@api_view(['GET'])
@permission_classes([AllowAny])
@authentication_classes([])
def health_live(request):
    return Response({
        'status': 'Alive',
        'timestamp': timezone.now(),
        'uptime': uptime_seconds(),
    })


# --- Error handlers for non-DRF routes ---

def problem_not_found(request, exception=None):
    if not request.path.startswith('/api/'):
        return defaults.page_not_found(request, exception)
    problem = build_problem(404, f"No endpoint matches '{request.path}'.", request.path)
    return JsonResponse(problem, status=404, content_type=PROBLEM_CONTENT_TYPE)


def problem_server_error(request):
    if not request.path.startswith('/api/'):
        return defaults.server_error(request)
    problem = build_problem(500, 'An unexpected error occurred. Please try again later.', request.path)
    return JsonResponse(problem, status=500, content_type=PROBLEM_CONTENT_TYPE)
