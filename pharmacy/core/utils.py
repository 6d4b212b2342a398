"""Utility functions for audit logging and activity tracking"""
import logging

from django.utils import timezone

from .models import AuditLog, UserActivity

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def get_user_agent(request):
    if not request or not hasattr(request, 'META'):
        return ''
    return (request.META.get('HTTP_USER_AGENT') or '')[:500]


def create_audit_log(request=None, action=None, resource=None, resource_id=None,
                     description='', changes=None, user=None):
    """
    Create an audit log entry

    Args:
        request: Django/DRF request (for user, IP and user agent) - optional if user is provided
        action: Action type (create, update, delete, sale_create, cron_trigger, ...)
        resource: Name of the resource being acted upon (DRUG, SALE, CRON_JOB, ...)
        resource_id: ID of the object (as string)
        description: Human-readable summary
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)

    Audit failures never propagate into the calling operation.
    """
    try:
        audit_user = user
        if audit_user is None and request is not None and hasattr(request, 'user'):
            audit_user = request.user

        if not action or not resource:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, resource={resource})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            resource=resource,
            resource_id=str(resource_id) if resource_id is not None else '',
            description=description or '',
            changes=changes or {},
            ip_address=get_client_ip(request) if request else None,
            user_agent=get_user_agent(request),
        )
    except Exception as e:
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def get_session_id(request):
    """Login session identifier carried in the JWT, falling back to the token id"""
    token = getattr(request, 'auth', None)
    if token is None:
        return None
    try:
        return token.get('session_id') or token.get('jti')
    except AttributeError:
        return None


def record_user_activity(request, action, session_id=None, login=False, user=None):
    """Append an activity row for the authenticated user on ``request``"""
    user = user or getattr(request, 'user', None)
    if not user or not user.is_authenticated:
        return None
    session_id = session_id or get_session_id(request)
    if not session_id:
        return None
    try:
        if login:
            login_time = timezone.now()
        else:
            first = UserActivity.objects.filter(session_id=session_id).order_by('created_at').first()
            login_time = first.login_time if first else None
        return UserActivity.objects.create(
            user=user,
            session_id=session_id,
            action=action,
            path=(request.path or '')[:500],
            method=request.method or '',
            ip_address=get_client_ip(request),
            user_agent=get_user_agent(request),
            login_time=login_time,
        )
    except Exception as e:
        logger.error(f"Failed to record user activity: {str(e)}")
        return None


def paginate(request, queryset, default_limit=50, max_limit=500):
    """Slice ``queryset`` by ``page``/``limit`` query params; returns (page, pagination meta)"""
    try:
        page = max(int(request.query_params.get('page', 1)), 1)
        limit = min(max(int(request.query_params.get('limit', default_limit)), 1), max_limit)
    except (TypeError, ValueError):
        page, limit = 1, default_limit
    total = queryset.count()
    offset = (page - 1) * limit
    return queryset[offset:offset + limit], {
        'total': total,
        'page': page,
        'limit': limit,
        'totalPages': (total + limit - 1) // limit,
    }
