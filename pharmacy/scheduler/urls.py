from django.urls import re_path
from . import views

# Trailing slash optional so POSTs from clients without one are not redirected
urlpatterns = [
    re_path(r'^cron/status/?$', views.cron_status, name='cron-status'),
    re_path(r'^cron/events/?$', views.cron_events, name='cron-events'),
    re_path(r'^cron/trigger-expiry-notifications/?$', views.trigger_expiry_notifications,
            name='cron-trigger-expiry-notifications'),
    re_path(r'^cron/trigger-cleanup-notifications/?$', views.trigger_cleanup_notifications,
            name='cron-trigger-cleanup-notifications'),
    re_path(r'^cron/trigger-daily-audit-cleanup/?$', views.trigger_daily_audit_cleanup,
            name='cron-trigger-daily-audit-cleanup'),
    re_path(r'^cron/trigger-weekly-audit-cleanup/?$', views.trigger_weekly_audit_cleanup,
            name='cron-trigger-weekly-audit-cleanup'),
    re_path(r'^cron/trigger-monthly-user-activity-cleanup/?$', views.trigger_monthly_user_activity_cleanup,
            name='cron-trigger-monthly-user-activity-cleanup'),
    re_path(r'^cron/trigger-inventory-check/?$', views.trigger_inventory_check,
            name='cron-trigger-inventory-check'),
    re_path(r'^cron/trigger-expired-sessions-cleanup/?$', views.trigger_expired_sessions_cleanup,
            name='cron-trigger-expired-sessions-cleanup'),
    re_path(r'^cron/trigger-weekly-summary-reports/?$', views.trigger_weekly_summary_reports,
            name='cron-trigger-weekly-summary-reports'),
]
