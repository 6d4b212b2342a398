"""The pharmacy's maintenance jobs and the adapters that run them"""
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from pharmacy.catalog.services import find_low_stock_drugs
from pharmacy.core.services import cleanup_old_activities, deactivate_expired_sessions, delete_old_audit_logs
from pharmacy.expiry.services import cleanup_old_notifications, create_expiry_notifications
from pharmacy.pos.expired_sales import cleanup_expired_sales
from pharmacy.pos.services import build_sales_summary
from .runner import MANUAL, IntervalSchedule, JobDefinition, JobRunner

AUDIT_LOG_RETENTION_DAYS = 30
USER_ACTIVITY_RETENTION_DAYS = 30
WEEKLY_AUDIT_LOG_RETENTION_DAYS = 7
MANUAL_AUDIT_LOG_DEFAULT_DAYS = 1

TRIGGER_PREFIX = '/api/v1/cron/'


def run_expiry_notifications():
    return {'createdCount': create_expiry_notifications()}


def run_notification_cleanup():
    return {'deletedCount': cleanup_old_notifications()}


def run_audit_log_cleanup(days_to_keep=AUDIT_LOG_RETENTION_DAYS):
    return {'deletedCount': delete_old_audit_logs(days_to_keep=days_to_keep)}


def run_user_activity_cleanup():
    return {'deletedCount': cleanup_old_activities(days_to_keep=USER_ACTIVITY_RETENTION_DAYS)}


def run_inventory_check():
    drugs = list(find_low_stock_drugs().values('id', 'name', 'quantity', 'low_stock_threshold'))
    return {
        'lowStockCount': len(drugs),
        'drugs': [
            {'id': d['id'], 'name': d['name'], 'quantity': d['quantity'], 'threshold': d['low_stock_threshold']}
            for d in drugs
        ],
    }


def run_expired_sessions_cleanup():
    return {'deactivatedCount': deactivate_expired_sessions()}


def run_weekly_summary_report():
    now = timezone.now()
    return build_sales_summary(now - timedelta(days=7), now)


def build_job_runner(publisher=None, expired_sale_interval_minutes=None):
    """A runner with every pharmacy job registered, publishing to ``publisher``"""
    if expired_sale_interval_minutes is None:
        expired_sale_interval_minutes = settings.EXPIRED_SALE_CLEANUP_INTERVAL_MINUTES
    runner = JobRunner(publisher=publisher)

    def run_expired_sale_cleanup(operation_type='automatic', triggered_by=None, branch=None):
        return cleanup_expired_sales(operation_type, triggered_by=triggered_by, branch=branch,
                                     publisher=publisher).to_dict()

    def run_manual_audit_log_cleanup(days_to_keep=MANUAL_AUDIT_LOG_DEFAULT_DAYS):
        return run_audit_log_cleanup(days_to_keep=days_to_keep)

    def run_weekly_audit_log_cleanup():
        return run_audit_log_cleanup(days_to_keep=WEEKLY_AUDIT_LOG_RETENTION_DAYS)

    definitions = [
        JobDefinition(
            name='daily-expiry-notifications',
            description='Creates expiry notifications every day at 8:00 AM',
            schedule='0 8 * * *',
            run=run_expiry_notifications,
            job_type='expiry-notifications',
            manual_trigger=TRIGGER_PREFIX + 'trigger-expiry-notifications',
        ),
        JobDefinition(
            name='weekly-notification-cleanup',
            description='Cleans up read notifications older than 30 days every Sunday at 2:00 AM',
            schedule='0 2 * * 0',
            run=run_notification_cleanup,
            job_type='notification-cleanup',
            manual_trigger=TRIGGER_PREFIX + 'trigger-cleanup-notifications',
        ),
        JobDefinition(
            name='daily-audit-log-cleanup',
            description='Deletes audit logs older than 30 days every day at 3:00 AM',
            schedule='0 3 * * *',
            run=run_audit_log_cleanup,
            job_type='audit-cleanup',
        ),
        JobDefinition(
            name='monthly-user-activity-cleanup',
            description='Deletes user activities older than 30 days on the 1st of every month at 4:00 AM',
            schedule='0 4 1 * *',
            run=run_user_activity_cleanup,
            job_type='user-activity-cleanup',
            manual_trigger=TRIGGER_PREFIX + 'trigger-monthly-user-activity-cleanup',
        ),
        JobDefinition(
            name='expired-sale-cleanup',
            description='Restores stock for unfinalized sales whose short code expired',
            schedule=IntervalSchedule(minutes=expired_sale_interval_minutes),
            run=run_expired_sale_cleanup,
            job_type='expired-sale-cleanup',
            manual_trigger='/api/v1/expired-sales/cleanup-expired',
            accepts_params=('operation_type', 'triggered_by', 'branch'),
        ),
        JobDefinition(
            name='manual-daily-audit-log-cleanup',
            description='Deletes audit logs older than daysToKeep days (default 1); manual only',
            schedule=MANUAL,
            run=run_manual_audit_log_cleanup,
            job_type='audit-cleanup',
            manual_trigger=TRIGGER_PREFIX + 'trigger-daily-audit-cleanup',
            accepts_params=('days_to_keep',),
        ),
        JobDefinition(
            name='weekly-audit-log-cleanup',
            description='Deletes audit logs older than 7 days',
            schedule=MANUAL,
            run=run_weekly_audit_log_cleanup,
            job_type='audit-cleanup',
            manual_trigger=TRIGGER_PREFIX + 'trigger-weekly-audit-cleanup',
        ),
        JobDefinition(
            name='inventory-check',
            description='Reports drugs at or below their low-stock threshold',
            schedule=MANUAL,
            run=run_inventory_check,
            job_type='inventory-check',
            manual_trigger=TRIGGER_PREFIX + 'trigger-inventory-check',
        ),
        JobDefinition(
            name='expired-sessions-cleanup',
            description='Deactivates sessions idle for more than 24 hours',
            schedule=MANUAL,
            run=run_expired_sessions_cleanup,
            job_type='expired-sessions-cleanup',
            manual_trigger=TRIGGER_PREFIX + 'trigger-expired-sessions-cleanup',
        ),
        JobDefinition(
            name='weekly-summary-reports',
            description='Summarises finalized sales over the last 7 days',
            schedule=MANUAL,
            run=run_weekly_summary_report,
            job_type='weekly-summary-reports',
            manual_trigger=TRIGGER_PREFIX + 'trigger-weekly-summary-reports',
        ),
    ]
    for definition in definitions:
        runner.register(definition)
    return runner
