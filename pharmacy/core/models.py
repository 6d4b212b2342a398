from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Pharmacy staff account with an application role"""
    ROLE_ADMIN = 'admin'
    ROLE_PHARMACIST = 'pharmacist'
    ROLE_CASHIER = 'cashier'
    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_PHARMACIST, 'Pharmacist'),
        (ROLE_CASHIER, 'Cashier'),
    ]

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CASHIER)
    phone = models.CharField(max_length=20, blank=True, null=True)
    branch = models.ForeignKey('locations.Branch', on_delete=models.SET_NULL, null=True, blank=True, related_name='users')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_admin_role(self):
        return self.is_superuser or self.role == self.ROLE_ADMIN

    class Meta:
        db_table = 'users'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('view', 'View'),
        ('login', 'Login'),
        ('logout', 'Logout'),
        ('sale_create', 'Sale Created'),
        ('sale_finalize', 'Sale Finalized'),
        ('stock_restore', 'Stock Restored'),
        ('cron_trigger', 'Cron Job Triggered'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    resource = models.CharField(max_length=100)
    resource_id = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"{self.action} {self.resource}:{self.resource_id}"

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['action'], name='idx_audit_action'),
            models.Index(fields=['resource'], name='idx_audit_resource'),
        ]


class UserActivity(models.Model):
    """Per-request activity trail grouped into login sessions"""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='activities')
    session_id = models.CharField(max_length=100, db_index=True)
    action = models.CharField(max_length=100)
    path = models.CharField(max_length=500, blank=True)
    method = models.CharField(max_length=10, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)
    is_active_session = models.BooleanField(default=True)
    login_time = models.DateTimeField(null=True, blank=True)
    last_activity = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    def __str__(self):
        return f"{self.user_id} {self.action}"

    class Meta:
        db_table = 'user_activities'
        ordering = ['-created_at']
        verbose_name_plural = 'user activities'
