import json
import logging
import queue
import threading

from django.apps import apps
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.http import StreamingHttpResponse
from django.utils import timezone
from rest_framework import serializers
from rest_framework.decorators import api_view, authentication_classes, permission_classes, renderer_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.renderers import BaseRenderer, JSONRenderer
from rest_framework.response import Response
from rest_framework_simplejwt.authentication import JWTAuthentication

from pharmacy.core.permissions import IsAdminRole
from pharmacy.core.utils import create_audit_log

logger = logging.getLogger(__name__)

STREAM_QUEUE_MAX_SIZE = 100


def _scheduler_app():
    return apps.get_app_config('scheduler')


class DaysToKeepSerializer(serializers.Serializer):
    daysToKeep = serializers.IntegerField(min_value=1, required=False, default=1)


def _job_title(name):
    return name.replace('-', ' ').title()


def job_info(definition, tracker):
    info = {
        'name': _job_title(definition.name),
        'key': definition.name,
        'jobType': definition.job_type,
        'schedule': str(definition.schedule),
        'description': definition.description,
        'manualTrigger': definition.manual_trigger,
    }
    info.update(tracker.snapshot(definition.name))
    return info


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def cron_status(request):
    """Registered jobs with their latest status"""
    app = _scheduler_app()
    jobs = app.runner.list_jobs()
    manual = app.runner.get('manual-daily-audit-log-cleanup')
    data = {
        'cronJobs': [job_info(job, app.tracker) for job in jobs if job.is_scheduled or job.manual_trigger],
        'manualControl': {
            'dailyAuditLogCleanup': {
                'description': manual.description,
                'endpoint': manual.manual_trigger,
                'note': 'Not automated - requires manual trigger',
            },
        },
        'schedulerRunning': bool(app.scheduler and app.scheduler.running),
    }
    return Response({'success': True, 'message': 'Cron job status retrieved successfully', 'data': data})


def _trigger(request, job_name, message, **params):
    result = _scheduler_app().runner.run_manual(job_name, **params)
    create_audit_log(request=request, action='cron_trigger', resource='CRON_JOB', resource_id=job_name,
                     description=f"Manually triggered {job_name}",
                     changes={'params': params, 'result': result} if params else {'result': result})
    body = {'success': True, 'message': message}
    if result is not None:
        body['data'] = result
    return Response(body)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def trigger_expiry_notifications(request):
    return _trigger(request, 'daily-expiry-notifications', 'Expiry notifications triggered successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def trigger_cleanup_notifications(request):
    return _trigger(request, 'weekly-notification-cleanup', 'Notification cleanup triggered successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def trigger_daily_audit_cleanup(request):
    """Delete audit logs older than ``daysToKeep`` days (default 1)"""
    serializer = DaysToKeepSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    days_to_keep = serializer.validated_data['daysToKeep']
    return _trigger(request, 'manual-daily-audit-log-cleanup',
                    f"Audit logs older than {days_to_keep} days cleaned up successfully",
                    days_to_keep=days_to_keep)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def trigger_weekly_audit_cleanup(request):
    return _trigger(request, 'weekly-audit-log-cleanup', 'Weekly audit log cleanup triggered successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def trigger_monthly_user_activity_cleanup(request):
    return _trigger(request, 'monthly-user-activity-cleanup', 'User activity cleanup triggered successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def trigger_inventory_check(request):
    return _trigger(request, 'inventory-check', 'Inventory check triggered successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def trigger_expired_sessions_cleanup(request):
    return _trigger(request, 'expired-sessions-cleanup', 'Expired sessions cleanup triggered successfully')


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def trigger_weekly_summary_reports(request):
    return _trigger(request, 'weekly-summary-reports', 'Weekly summary reports generated successfully')


# Real-time event stream
class QueryTokenJWTAuthentication(JWTAuthentication):
    """JWT from the ``token`` query param; EventSource cannot send headers"""

    def authenticate(self, request):
        raw_token = request.query_params.get('token')
        if not raw_token:
            return None
        validated_token = self.get_validated_token(raw_token)
        return self.get_user(validated_token), validated_token


class EventStreamRenderer(BaseRenderer):
    media_type = 'text/event-stream'
    format = 'event-stream'
    charset = 'utf-8'

    def render(self, data, accepted_media_type=None, renderer_context=None):
        # Only error responses reach the renderer; the stream itself bypasses it
        return json.dumps(data, cls=DjangoJSONEncoder)


def sse_frame(event_name, payload):
    return f"event: {event_name}\ndata: {json.dumps(payload, cls=DjangoJSONEncoder)}\n\n"


def event_stream(broadcaster, heartbeat_seconds, username=''):
    """Yield SSE frames for every broadcast event until the client goes away"""
    events = queue.Queue(maxsize=STREAM_QUEUE_MAX_SIZE)
    overflow = threading.Event()

    def enqueue(event_name, payload):
        if overflow.is_set():
            return
        try:
            events.put_nowait((event_name, payload))
        except queue.Full:
            overflow.set()
            logger.warning("Event stream queue overflow for %s, closing stream", username)

    unsubscribe = broadcaster.subscribe_all(enqueue)
    logger.info("Event stream client connected: %s", username)
    try:
        yield sse_frame('connect', {'timestamp': timezone.now().isoformat()})
        while True:
            if overflow.is_set():
                yield sse_frame('overflow', {'message': 'Stream buffer full, please reconnect'})
                return
            try:
                event_name, payload = events.get(timeout=heartbeat_seconds)
            except queue.Empty:
                yield ': heartbeat\n\n'
                continue
            yield sse_frame(event_name, payload)
    finally:
        unsubscribe()
        logger.info("Event stream client disconnected: %s", username)


@api_view(['GET'])
@authentication_classes([JWTAuthentication, QueryTokenJWTAuthentication])
@permission_classes([IsAuthenticated, IsAdminRole])
@renderer_classes([EventStreamRenderer, JSONRenderer])
def cron_events(request):
    """Server-Sent Events stream of job and cleanup events"""
    response = StreamingHttpResponse(
        event_stream(_scheduler_app().broadcaster, settings.CRON_EVENT_STREAM_HEARTBEAT_SECONDS,
                     username=request.user.username),
        content_type='text/event-stream',
    )
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response
