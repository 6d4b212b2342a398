from django.contrib import admin
from .models import ExpiryNotification


@admin.register(ExpiryNotification)
class ExpiryNotificationAdmin(admin.ModelAdmin):
    list_display = ['title', 'drug', 'alert_level', 'type', 'is_read', 'created_at']
    list_filter = ['alert_level', 'type', 'is_read']
    search_fields = ['title', 'drug__name']
    ordering = ['-created_at']
