import logging
import uuid

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404

from .models import AuditLog, UserActivity
from .permissions import IsAdminRole
from .serializers import (
    UserSerializer, UserCreateSerializer,
    AuditLogSerializer, UserActivitySerializer,
)
from .services import get_audit_log_stats, get_user_activity_stats
from .utils import create_audit_log, paginate, record_user_activity

logger = logging.getLogger(__name__)

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.role
        token['branch_id'] = user.branch_id
        # Copied into every access token minted from this refresh token
        token['session_id'] = uuid.uuid4().hex
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except TokenError as e:
            raise InvalidToken(e.args[0])

        user = serializer.user
        session_id = None
        try:
            session_id = RefreshToken(serializer.validated_data['refresh']).get('session_id')
        except TokenError:
            pass
        record_user_activity(request, 'LOGIN', session_id=session_id, login=True, user=user)
        create_audit_log(request=request, user=user, action='login', resource='USER',
                         resource_id=user.id, description=f"{user.username} logged in")
        return Response(serializer.validated_data, status=status.HTTP_200_OK)


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Close the caller's activity session"""
    session_id = request.auth.get('session_id') if request.auth else None
    if session_id:
        UserActivity.objects.filter(session_id=session_id).update(is_active_session=False)
    create_audit_log(request=request, action='logout', resource='USER', resource_id=request.user.id,
                     description=f"{request.user.username} logged out")
    return Response({'success': True, 'message': 'Logged out'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with role flags"""
    user = request.user
    data = UserSerializer(user).data
    data['is_admin'] = user.is_admin_role
    data['can_manage_cron'] = user.is_admin_role
    data['can_finalize_sales'] = user.role in (User.ROLE_CASHIER, User.ROLE_ADMIN) and not user.is_superuser
    return Response(data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        role = request.query_params.get('role')
        if role:
            users = users.filter(role=role)
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        create_audit_log(request=request, action='create', resource='USER', resource_id=user.id,
                         description=f"Created user {user.username} ({user.role})")
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        serializer.save()
        create_audit_log(request=request, action='update', resource='USER', resource_id=user.id,
                         changes=dict(request.data))
        return Response(serializer.data)
    else:
        create_audit_log(request=request, action='delete', resource='USER', resource_id=user.id,
                         description=f"Deleted user {user.username}")
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def audit_log_list(request):
    """List audit logs, newest first, filtered by action/resource/user"""
    queryset = AuditLog.objects.select_related('user')

    action = request.query_params.get('action')
    if action:
        queryset = queryset.filter(action=action)
    resource = request.query_params.get('resource')
    if resource:
        queryset = queryset.filter(resource__iexact=resource)
    user_id = request.query_params.get('user')
    if user_id:
        queryset = queryset.filter(user_id=user_id)
    date_from = request.query_params.get('date_from')
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    date_to = request.query_params.get('date_to')
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    page, pagination = paginate(request, queryset)
    return Response({'data': AuditLogSerializer(page, many=True).data, 'pagination': pagination})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def audit_log_detail(request, pk):
    log = get_object_or_404(AuditLog, pk=pk)
    return Response(AuditLogSerializer(log).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def audit_log_stats(request):
    return Response(get_audit_log_stats())


# UserActivity views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_activity_list(request):
    """List user activity, optionally scoped to one user or session"""
    queryset = UserActivity.objects.select_related('user')

    user_id = request.query_params.get('user')
    if user_id:
        queryset = queryset.filter(user_id=user_id)
    session_id = request.query_params.get('session_id')
    if session_id:
        queryset = queryset.filter(session_id=session_id)
    is_active = request.query_params.get('is_active')
    if is_active is not None:
        queryset = queryset.filter(is_active_session=is_active.lower() in ('true', '1'))

    page, pagination = paginate(request, queryset)
    return Response({'data': UserActivitySerializer(page, many=True).data, 'pagination': pagination})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_activity_stats(request):
    user_id = request.query_params.get('user')
    user = get_object_or_404(User, pk=user_id) if user_id else None
    return Response(get_user_activity_stats(user=user))
