from datetime import timedelta
from django.conf import settings
from django.db import models
from django.utils import timezone
from pharmacy.catalog.models import Drug

NOTIFICATION_LIFETIME_DAYS = 30


def default_expires_at():
    return timezone.now() + timedelta(days=NOTIFICATION_LIFETIME_DAYS)


class ExpiryNotification(models.Model):
    """Expiry alerts raised for drugs in stock"""
    TYPE_CHOICES = [
        ('expiry_alert', 'Expiry Alert'),
        ('batch_expired', 'Batch Expired'),
        ('low_stock_expiry', 'Low Stock Expiry'),
    ]
    ALERT_LEVEL_CHOICES = [
        ('expired', 'Expired'),
        ('critical', 'Critical'),
        ('warning', 'Warning'),
        ('notice', 'Notice'),
    ]

    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    title = models.CharField(max_length=255)
    message = models.TextField()
    drug = models.ForeignKey(Drug, on_delete=models.CASCADE, related_name='expiry_notifications')
    alert_level = models.CharField(max_length=10, choices=ALERT_LEVEL_CHOICES)
    is_read = models.BooleanField(default=False)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='expiry_notifications')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    expires_at = models.DateTimeField(default=default_expires_at)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'expiry_notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['drug', 'alert_level', 'created_at'], name='idx_expiry_notif_drug_level'),
            models.Index(fields=['is_read', 'created_at'], name='idx_expiry_notif_read'),
        ]
