"""
Maintenance and reporting operations over audit logs and user activity.

The retention helpers return the exact number of rows they removed or
changed so scheduled jobs can report it.
"""
import logging
from datetime import timedelta

from django.db.models import Count
from django.utils import timezone

from .models import AuditLog, UserActivity

logger = logging.getLogger(__name__)


def delete_old_audit_logs(days_to_keep=90, now=None):
    """Delete audit logs created more than ``days_to_keep`` days ago"""
    cutoff = (now or timezone.now()) - timedelta(days=days_to_keep)
    deleted, _ = AuditLog.objects.filter(created_at__lt=cutoff).delete()
    logger.info(f"Deleted {deleted} audit logs older than {days_to_keep} days")
    return deleted


def cleanup_old_activities(days_to_keep=90, now=None):
    """Delete user activity rows created more than ``days_to_keep`` days ago"""
    cutoff = (now or timezone.now()) - timedelta(days=days_to_keep)
    deleted, _ = UserActivity.objects.filter(created_at__lt=cutoff).delete()
    logger.info(f"Deleted {deleted} user activities older than {days_to_keep} days")
    return deleted


def deactivate_expired_sessions(max_idle_hours=24, now=None):
    """Mark sessions idle for longer than ``max_idle_hours`` as inactive"""
    cutoff = (now or timezone.now()) - timedelta(hours=max_idle_hours)
    active = UserActivity.objects.filter(is_active_session=True)
    recent_sessions = active.filter(last_activity__gte=cutoff).values_list('session_id', flat=True)
    expired = active.exclude(session_id__in=recent_sessions)
    session_count = expired.values('session_id').distinct().count()
    # update() leaves auto_now untouched
    expired.update(is_active_session=False)
    logger.info(f"Deactivated {session_count} sessions idle for more than {max_idle_hours} hours")
    return session_count


def get_audit_log_stats(now=None):
    now = now or timezone.now()
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_start = now - timedelta(days=7)

    action_breakdown = {
        row['action']: row['count']
        for row in AuditLog.objects.values('action').annotate(count=Count('id')).order_by()
    }
    resource_breakdown = {
        row['resource']: row['count']
        for row in AuditLog.objects.values('resource').annotate(count=Count('id')).order_by()
    }
    top_users = [
        {'userId': row['user'], 'username': row['user__username'], 'count': row['count']}
        for row in AuditLog.objects.filter(user__isnull=False)
        .values('user', 'user__username')
        .annotate(count=Count('id'))
        .order_by('-count')[:5]
    ]

    return {
        'totalLogs': AuditLog.objects.count(),
        'todayLogs': AuditLog.objects.filter(created_at__gte=today_start).count(),
        'weekLogs': AuditLog.objects.filter(created_at__gte=week_start).count(),
        'actionBreakdown': action_breakdown,
        'resourceBreakdown': resource_breakdown,
        'topUsers': top_users,
    }


def get_user_activity_stats(user=None):
    queryset = UserActivity.objects.all()
    if user is not None:
        queryset = queryset.filter(user=user)

    action_counts = {
        row['action']: row['count']
        for row in queryset.values('action').annotate(count=Count('id')).order_by()
    }
    return {
        'totalActivities': queryset.count(),
        'activeSessions': queryset.filter(is_active_session=True).values('session_id').distinct().count(),
        'totalSessions': queryset.values('session_id').distinct().count(),
        'actionBreakdown': action_counts,
    }
