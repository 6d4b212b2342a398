from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, AuditLog, UserActivity


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'role', 'branch', 'is_active', 'is_superuser']
    list_filter = ['role', 'is_active', 'is_superuser', 'branch']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Pharmacy', {'fields': ('role', 'phone', 'branch')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Pharmacy', {'fields': ('role', 'branch')}),
    )


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'user', 'action', 'resource', 'resource_id', 'ip_address']
    list_filter = ['action', 'resource']
    search_fields = ['description', 'resource_id', 'user__username']
    readonly_fields = [f.name for f in AuditLog._meta.fields]
    ordering = ['-created_at']


@admin.register(UserActivity)
class UserActivityAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'user', 'action', 'method', 'path', 'is_active_session']
    list_filter = ['action', 'is_active_session']
    search_fields = ['user__username', 'session_id', 'path']
    ordering = ['-created_at']
