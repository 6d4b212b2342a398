from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, logout, user_me,
    user_list_create, user_detail,
    audit_log_list, audit_log_detail, audit_log_stats,
    user_activity_list, user_activity_stats,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', logout, name='logout'),
    path('auth/me/', user_me, name='user-me'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/', user_detail, name='user-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
    path('audit-logs/stats/', audit_log_stats, name='audit-log-stats'),
    path('audit-logs/<int:pk>/', audit_log_detail, name='audit-log-detail'),

    # UserActivity endpoints
    path('user-activities/', user_activity_list, name='user-activity-list'),
    path('user-activities/stats/', user_activity_stats, name='user-activity-stats'),
]
