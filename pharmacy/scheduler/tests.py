"""
Test suite for the job scheduler
Tests: Job runner events and locking, Event broadcaster, Status tracker,
Cron triggers, Cron API endpoints, Event stream, Management commands
"""
import threading
from datetime import datetime, timedelta, timezone as dt_timezone
from io import StringIO
from unittest.mock import MagicMock

from django.apps import apps
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from pharmacy.core.models import AuditLog
from pharmacy.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .events import EventBroadcaster, JobEventType, JobStatusTracker
from .exceptions import JobAlreadyRunning, JobExecutionFailed, JobNotFound, JobRegistrationError
from .jobs import build_job_runner
from .runner import MANUAL, IntervalSchedule, JobDefinition, JobRunner
from .scheduler import CronScheduler, _translate_day_of_week, build_trigger, cron_trigger
from .views import event_stream, sse_frame


class RecordingPublisher:
    def __init__(self):
        self.events = []

    def publish(self, event_name, payload):
        self.events.append((event_name, payload))

    @property
    def names(self):
        return [name for name, _ in self.events]


def make_job(name='test-job', run=None, schedule=MANUAL, **kwargs):
    return JobDefinition(
        name=name,
        description='Test job',
        schedule=schedule,
        run=run or (lambda: {'ok': True}),
        job_type='test',
        **kwargs
    )


class BlockingJob:
    """Job body that holds its lock until released"""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()
        self.calls = 0

    def __call__(self):
        self.calls += 1
        self.started.set()
        self.release.wait(5)
        return {'calls': self.calls}


class JobRunnerTests(TestCase):
    """Test job execution and event ordering"""

    def setUp(self):
        self.publisher = RecordingPublisher()
        self.runner = JobRunner(publisher=self.publisher)

    def test_successful_run_publishes_triggered_then_completed(self):
        self.runner.register(make_job())
        result = self.runner.run_manual('test-job')

        self.assertEqual(result, {'ok': True})
        self.assertEqual(self.publisher.names, [
            JobEventType.TRIGGERED.value,
            JobEventType.COMPLETED.value,
            JobEventType.STATUS_UPDATED.value,
        ])
        completed = self.publisher.events[1][1]
        self.assertEqual(completed['jobName'], 'test-job')
        self.assertEqual(completed['jobType'], 'test')
        self.assertEqual(completed['result'], {'ok': True})
        self.assertGreaterEqual(completed['durationMs'], 0)
        self.assertEqual(self.publisher.events[2][1]['status'], 'completed')

    def test_failed_run_publishes_failed_event_with_message(self):
        def explode():
            raise ValueError('database unavailable')

        self.runner.register(make_job(run=explode))
        with self.assertRaises(JobExecutionFailed) as ctx:
            self.runner.run_manual('test-job')

        self.assertEqual(str(ctx.exception.detail), 'database unavailable')
        self.assertEqual(self.publisher.names, [
            JobEventType.TRIGGERED.value,
            JobEventType.FAILED.value,
            JobEventType.STATUS_UPDATED.value,
        ])
        failed = self.publisher.events[1][1]
        self.assertEqual(failed['error'], 'database unavailable')
        self.assertNotIn('result', failed)
        self.assertNotIn('Traceback', failed['error'])

    def test_unknown_job_raises_not_found_without_events(self):
        with self.assertRaises(JobNotFound):
            self.runner.run_manual('missing-job')
        self.assertEqual(self.publisher.events, [])

    def test_duplicate_registration_rejected(self):
        self.runner.register(make_job())
        with self.assertRaises(JobRegistrationError):
            self.runner.register(make_job())

    def test_unexpected_params_rejected(self):
        self.runner.register(make_job())
        with self.assertRaises(TypeError):
            self.runner.run_manual('test-job', days_to_keep=3)
        self.assertEqual(self.publisher.events, [])

    def test_params_passed_to_job(self):
        self.runner.register(make_job(run=lambda days_to_keep=1: {'days': days_to_keep},
                                      accepts_params=('days_to_keep',)))
        self.assertEqual(self.runner.run_manual('test-job', days_to_keep=4), {'days': 4})

    def test_manual_trigger_rejected_while_running(self):
        job = BlockingJob()
        self.runner.register(make_job(run=job))
        worker = threading.Thread(target=self.runner.run_manual, args=('test-job',))
        worker.start()
        try:
            self.assertTrue(job.started.wait(5))
            self.assertTrue(self.runner.is_running('test-job'))
            with self.assertRaises(JobAlreadyRunning):
                self.runner.run_manual('test-job')
        finally:
            job.release.set()
            worker.join(5)

        self.assertEqual(job.calls, 1)
        self.assertEqual(self.publisher.names.count(JobEventType.TRIGGERED.value), 1)
        self.assertFalse(self.runner.is_running('test-job'))

    def test_scheduled_tick_skipped_while_running(self):
        job = BlockingJob()
        self.runner.register(make_job(run=job, schedule='*/5 * * * *'))
        worker = threading.Thread(target=self.runner.run_scheduled, args=('test-job',))
        worker.start()
        try:
            self.assertTrue(job.started.wait(5))
            self.assertIsNone(self.runner.run_scheduled('test-job'))
        finally:
            job.release.set()
            worker.join(5)

        self.assertEqual(job.calls, 1)
        self.assertEqual(self.publisher.names.count(JobEventType.TRIGGERED.value), 1)

    def test_scheduled_failure_does_not_propagate(self):
        def explode():
            raise RuntimeError('boom')

        self.runner.register(make_job(run=explode, schedule='0 3 * * *'))
        self.runner.run_scheduled('test-job')
        self.assertIn(JobEventType.FAILED.value, self.publisher.names)

    def test_lock_released_after_failure(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError('first run fails')
            return {'attempt': len(calls)}

        self.runner.register(make_job(run=flaky))
        with self.assertRaises(JobExecutionFailed):
            self.runner.run_manual('test-job')
        self.assertEqual(self.runner.run_manual('test-job'), {'attempt': 2})

    def test_list_jobs_scheduled_only(self):
        self.runner.register(make_job(name='manual-job'))
        self.runner.register(make_job(name='cron-job', schedule='0 8 * * *'))
        self.runner.register(make_job(name='interval-job', schedule=IntervalSchedule(minutes=10)))

        names = [job.name for job in self.runner.list_jobs(scheduled_only=True)]
        self.assertEqual(names, ['cron-job', 'interval-job'])
        self.assertEqual(len(self.runner.list_jobs()), 3)


class EventBroadcasterTests(TestCase):
    """Test in-process event fan-out"""

    def test_subscribers_receive_events_in_order(self):
        broadcaster = EventBroadcaster()
        received = []
        broadcaster.subscribe(JobEventType.TRIGGERED, received.append)
        broadcaster.publish(JobEventType.TRIGGERED.value, {'n': 1})
        broadcaster.publish(JobEventType.TRIGGERED.value, {'n': 2})
        broadcaster.publish(JobEventType.COMPLETED.value, {'n': 3})
        self.assertEqual(received, [{'n': 1}, {'n': 2}])

    def test_subscribe_all_receives_event_names(self):
        broadcaster = EventBroadcaster()
        received = []
        broadcaster.subscribe_all(lambda name, payload: received.append(name))
        broadcaster.publish('cron-job-triggered', {})
        broadcaster.publish('expired-sales-cleaned', {'count': 2})
        self.assertEqual(received, ['cron-job-triggered', 'expired-sales-cleaned'])

    def test_unsubscribe_stops_delivery(self):
        broadcaster = EventBroadcaster()
        received = []
        unsubscribe = broadcaster.subscribe_all(lambda name, payload: received.append(name))
        self.assertEqual(broadcaster.subscriber_count(), 1)
        unsubscribe()
        broadcaster.publish('cron-job-triggered', {})
        self.assertEqual(received, [])
        self.assertEqual(broadcaster.subscriber_count(), 0)

    def test_failing_handler_does_not_block_others(self):
        broadcaster = EventBroadcaster()
        received = []

        def broken(name, payload):
            raise RuntimeError('handler error')

        broadcaster.subscribe_all(broken)
        broadcaster.subscribe_all(lambda name, payload: received.append(payload))
        broadcaster.publish('cron-status-updated', {'status': 'completed'})
        self.assertEqual(received, [{'status': 'completed'}])


class JobStatusTrackerTests(TestCase):
    """Test per-job status derived from events"""

    def setUp(self):
        self.now = [100.0]
        self.broadcaster = EventBroadcaster()
        self.tracker = JobStatusTracker(clock=lambda: self.now[0])
        self.tracker.attach(self.broadcaster)
        self.runner = JobRunner(publisher=self.broadcaster)

    def test_unknown_job_is_idle(self):
        snapshot = self.tracker.snapshot('never-ran')
        self.assertEqual(snapshot['status'], 'idle')
        self.assertIsNone(snapshot['lastRunAt'])

    def test_completed_status_decays_to_idle(self):
        self.runner.register(make_job())
        self.runner.run_manual('test-job')

        snapshot = self.tracker.snapshot('test-job')
        self.assertEqual(snapshot['status'], 'completed')
        self.assertIsNotNone(snapshot['lastRunAt'])
        self.assertIsNotNone(snapshot['lastDurationMs'])

        self.now[0] += 5
        self.assertEqual(self.tracker.snapshot('test-job')['status'], 'idle')

    def test_failed_status_held_longer(self):
        def explode():
            raise RuntimeError('disk full')

        self.runner.register(make_job(run=explode))
        with self.assertRaises(JobExecutionFailed):
            self.runner.run_manual('test-job')

        self.now[0] += 5
        snapshot = self.tracker.snapshot('test-job')
        self.assertEqual(snapshot['status'], 'failed')
        self.assertEqual(snapshot['lastError'], 'disk full')
        self.now[0] += 3
        self.assertEqual(self.tracker.snapshot('test-job')['status'], 'idle')

    def test_running_while_triggered(self):
        self.broadcaster.publish(JobEventType.TRIGGERED.value, {'jobName': 'test-job', 'timestamp': 'now'})
        self.assertEqual(self.tracker.snapshot('test-job')['status'], 'running')


class CronTriggerTests(TestCase):
    """Test crontab translation to APScheduler triggers"""

    def test_weekday_numbers_translated_from_sunday_based(self):
        self.assertEqual(_translate_day_of_week('0'), 'sun')
        self.assertEqual(_translate_day_of_week('7'), 'sun')
        self.assertEqual(_translate_day_of_week('1-5'), 'mon-fri')
        self.assertEqual(_translate_day_of_week('0,6'), 'sun,sat')
        self.assertEqual(_translate_day_of_week('*'), '*')
        self.assertEqual(_translate_day_of_week('*/2'), 'sun,tue,thu,sat')
        self.assertEqual(_translate_day_of_week('0-6'), 'sun,mon,tue,wed,thu,fri,sat')
        self.assertEqual(_translate_day_of_week('5-7'), 'fri,sat,sun')
        self.assertEqual(_translate_day_of_week('0-6/3'), 'sun,wed,sat')
        self.assertEqual(_translate_day_of_week('1-5/2'), 'mon-fri/2')

    def test_full_week_range_fires_next_day(self):
        trigger = cron_trigger('0 3 * * 0-6', timezone='UTC')
        saturday = datetime(2024, 1, 6, 12, 0, tzinfo=dt_timezone.utc)
        next_fire = trigger.get_next_fire_time(None, saturday)
        self.assertEqual(next_fire, datetime(2024, 1, 7, 3, 0, tzinfo=dt_timezone.utc))

    def test_sunday_expression_fires_on_sunday(self):
        trigger = cron_trigger('0 2 * * 0', timezone='UTC')
        monday = datetime(2024, 1, 1, 0, 0, tzinfo=dt_timezone.utc)
        next_fire = trigger.get_next_fire_time(None, monday)
        self.assertEqual(next_fire, datetime(2024, 1, 7, 2, 0, tzinfo=dt_timezone.utc))

    def test_monthly_expression(self):
        trigger = cron_trigger('0 4 1 * *', timezone='UTC')
        now = datetime(2024, 1, 15, 12, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(trigger.get_next_fire_time(None, now), datetime(2024, 2, 1, 4, 0, tzinfo=dt_timezone.utc))

    def test_wrong_field_count_rejected(self):
        with self.assertRaises(ValueError):
            cron_trigger('0 8 * *')

    def test_interval_schedule(self):
        trigger = build_trigger(IntervalSchedule(minutes=10), timezone='UTC')
        self.assertEqual(trigger.interval, timedelta(minutes=10))


class CronSchedulerTests(TestCase):
    """Test timer registration"""

    def setUp(self):
        self.runner = build_job_runner(publisher=RecordingPublisher())
        self.backend = MagicMock()
        self.scheduler = CronScheduler(self.runner, timezone='UTC', scheduler=self.backend)

    def test_start_registers_each_scheduled_job_once(self):
        self.scheduler.start()
        self.scheduler.start()

        self.assertTrue(self.scheduler.running)
        self.backend.start.assert_called_once()
        job_ids = [c.kwargs['id'] for c in self.backend.add_job.call_args_list]
        self.assertEqual(sorted(job_ids), [
            'daily-audit-log-cleanup',
            'daily-expiry-notifications',
            'expired-sale-cleanup',
            'monthly-user-activity-cleanup',
            'weekly-notification-cleanup',
        ])
        for c in self.backend.add_job.call_args_list:
            self.assertEqual(c.kwargs['max_instances'], 1)
            self.assertTrue(c.kwargs['coalesce'])

    def test_shutdown(self):
        self.scheduler.start()
        self.scheduler.shutdown()
        self.assertFalse(self.scheduler.running)
        self.backend.shutdown.assert_called_once_with(wait=False)


class JobRegistryTests(TestCase):
    """Test the registered pharmacy jobs"""

    def setUp(self):
        self.publisher = RecordingPublisher()
        self.runner = build_job_runner(publisher=self.publisher, expired_sale_interval_minutes=10)

    def test_registered_jobs_and_schedules(self):
        schedules = {job.name: job.schedule for job in self.runner.list_jobs()}
        self.assertEqual(schedules['daily-expiry-notifications'], '0 8 * * *')
        self.assertEqual(schedules['weekly-notification-cleanup'], '0 2 * * 0')
        self.assertEqual(schedules['daily-audit-log-cleanup'], '0 3 * * *')
        self.assertEqual(schedules['monthly-user-activity-cleanup'], '0 4 1 * *')
        self.assertEqual(schedules['expired-sale-cleanup'], IntervalSchedule(minutes=10))
        for name in ('manual-daily-audit-log-cleanup', 'weekly-audit-log-cleanup', 'inventory-check',
                     'expired-sessions-cleanup', 'weekly-summary-reports'):
            self.assertEqual(schedules[name], MANUAL)

    def test_manual_audit_cleanup_defaults_to_one_day(self):
        user = TestDataFactory.create_user()
        TestDataFactory.create_audit_log(user=user)
        TestDataFactory.create_audit_log(user=user, days_old=2)
        TestDataFactory.create_audit_log(user=user, days_old=3)

        result = self.runner.run_manual('manual-daily-audit-log-cleanup')
        self.assertEqual(result, {'deletedCount': 2})
        self.assertEqual(AuditLog.objects.count(), 1)

    def test_manual_audit_cleanup_with_days(self):
        TestDataFactory.create_audit_log(days_old=2)
        TestDataFactory.create_audit_log(days_old=10)

        result = self.runner.run_manual('manual-daily-audit-log-cleanup', days_to_keep=5)
        self.assertEqual(result, {'deletedCount': 1})

    def test_inventory_check_reports_low_stock(self):
        low = TestDataFactory.create_drug(name='Amoxicillin', quantity=3, low_stock_threshold=10)
        TestDataFactory.create_drug(name='Paracetamol', quantity=50, low_stock_threshold=10)

        result = self.runner.run_manual('inventory-check')
        self.assertEqual(result['lowStockCount'], 1)
        self.assertEqual(result['drugs'][0]['id'], low.id)
        self.assertEqual(result['drugs'][0]['threshold'], 10)

    def test_weekly_summary_report(self):
        result = self.runner.run_manual('weekly-summary-reports')
        self.assertEqual(result['saleCount'], 0)
        self.assertEqual(result['totalRevenue'], 0.0)


class CronApiTests(TestCase):
    """Test cron status and trigger endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.app = apps.get_app_config('scheduler')

    def test_status(self):
        response = self.client.get('/api/v1/cron/status/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        keys = [job['key'] for job in response.data['data']['cronJobs']]
        self.assertIn('daily-expiry-notifications', keys)
        self.assertIn('expired-sale-cleanup', keys)
        for job in response.data['data']['cronJobs']:
            self.assertIn(job['status'], ('idle', 'running', 'completed', 'failed'))
        self.assertEqual(response.data['data']['manualControl']['dailyAuditLogCleanup']['endpoint'],
                         '/api/v1/cron/trigger-daily-audit-cleanup')

    def test_non_admin_forbidden(self):
        cashier = TestDataFactory.create_user()
        self.client.authenticate_user(cashier)

        self.assertEqual(self.client.get('/api/v1/cron/status/').status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.post('/api/v1/cron/trigger-inventory-check/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data['success'])

    def test_unauthenticated(self):
        self.client.logout()
        response = self.client.post('/api/v1/cron/trigger-inventory-check/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_daily_audit_cleanup_default(self):
        TestDataFactory.create_audit_log(days_old=0)
        TestDataFactory.create_audit_log(days_old=3)
        TestDataFactory.create_audit_log(days_old=10)

        response = self.client.post('/api/v1/cron/trigger-daily-audit-cleanup/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'], {'deletedCount': 2})

    def test_daily_audit_cleanup_days_to_keep(self):
        TestDataFactory.create_audit_log(days_old=3)
        TestDataFactory.create_audit_log(days_old=10)

        response = self.client.post('/api/v1/cron/trigger-daily-audit-cleanup/', {'daysToKeep': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'], {'deletedCount': 1})
        self.assertIn('5 days', response.data['message'])

    def test_daily_audit_cleanup_invalid_days(self):
        for value in (0, -2, 'abc'):
            response = self.client.post('/api/v1/cron/trigger-daily-audit-cleanup/', {'daysToKeep': value},
                                        format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertFalse(response.data['success'])

    def test_trigger_without_trailing_slash(self):
        response = self.client.post('/api/v1/cron/trigger-inventory-check')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('lowStockCount', response.data['data'])

    def test_trigger_writes_audit_log(self):
        self.client.post('/api/v1/cron/trigger-expired-sessions-cleanup/')
        log = AuditLog.objects.get(action='cron_trigger')
        self.assertEqual(log.resource_id, 'expired-sessions-cleanup')
        self.assertEqual(log.user, self.admin)

    def test_trigger_publishes_events(self):
        received = []
        unsubscribe = self.app.broadcaster.subscribe_all(lambda name, payload: received.append((name, payload)))
        try:
            response = self.client.post('/api/v1/cron/trigger-cleanup-notifications/')
        finally:
            unsubscribe()

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([name for name, _ in received], [
            'cron-job-triggered', 'cron-job-completed', 'cron-status-updated',
        ])
        self.assertEqual(received[0][1]['jobName'], 'weekly-notification-cleanup')
        self.assertEqual(received[0][1]['jobType'], 'notification-cleanup')

    def test_trigger_while_running_conflicts(self):
        lock = self.app.runner._locks['inventory-check']
        lock.acquire()
        try:
            response = self.client.post('/api/v1/cron/trigger-inventory-check/')
        finally:
            lock.release()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['success'])

    def test_all_triggers_succeed(self):
        for endpoint in ('trigger-expiry-notifications', 'trigger-cleanup-notifications',
                         'trigger-daily-audit-cleanup', 'trigger-weekly-audit-cleanup',
                         'trigger-monthly-user-activity-cleanup', 'trigger-inventory-check',
                         'trigger-expired-sessions-cleanup', 'trigger-weekly-summary-reports'):
            response = self.client.post(f'/api/v1/cron/{endpoint}/')
            self.assertEqual(response.status_code, status.HTTP_200_OK, endpoint)
            self.assertTrue(response.data['success'])


class EventStreamTests(TestCase):
    """Test the Server-Sent Events channel"""

    def test_sse_frame(self):
        frame = sse_frame('cron-job-triggered', {'jobName': 'inventory-check'})
        self.assertEqual(frame, 'event: cron-job-triggered\ndata: {"jobName": "inventory-check"}\n\n')

    def test_stream_forwards_events_and_heartbeats(self):
        broadcaster = EventBroadcaster()
        stream = event_stream(broadcaster, heartbeat_seconds=0.01)

        self.assertTrue(next(stream).startswith('event: connect\n'))
        self.assertEqual(broadcaster.subscriber_count(), 1)

        broadcaster.publish('expired-sales-cleaned', {'count': 3})
        self.assertEqual(next(stream), 'event: expired-sales-cleaned\ndata: {"count": 3}\n\n')
        self.assertEqual(next(stream), ': heartbeat\n\n')

        stream.close()
        self.assertEqual(broadcaster.subscriber_count(), 0)

    def test_stream_closes_on_overflow(self):
        broadcaster = EventBroadcaster()
        stream = event_stream(broadcaster, heartbeat_seconds=0.01)
        next(stream)

        for i in range(101):
            broadcaster.publish('cron-status-updated', {'n': i})

        self.assertTrue(next(stream).startswith('event: overflow\n'))
        with self.assertRaises(StopIteration):
            next(stream)
        self.assertEqual(broadcaster.subscriber_count(), 0)

    def test_events_endpoint_accepts_query_token(self):
        admin = TestDataFactory.create_admin()
        token_client = AuthenticatedAPIClient().authenticate_user(admin)
        client = APIClient()

        response = client.get(f'/api/v1/cron/events/?token={token_client.access_token}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response['Content-Type'].startswith('text/event-stream'))
        self.assertEqual(response['Cache-Control'], 'no-cache')
        first = next(response.streaming_content)
        self.assertTrue(first.startswith(b'event: connect\n'))
        response.close()

    def test_events_endpoint_requires_admin(self):
        cashier = TestDataFactory.create_user()
        token_client = AuthenticatedAPIClient().authenticate_user(cashier)

        response = APIClient().get(f'/api/v1/cron/events/?token={token_client.access_token}')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_events_endpoint_requires_token(self):
        response = APIClient().get('/api/v1/cron/events/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class RunJobCommandTests(TestCase):
    """Test the run_job management command"""

    def test_list(self):
        out = StringIO()
        call_command('run_job', '--list', stdout=out)
        self.assertIn('daily-expiry-notifications', out.getvalue())
        self.assertIn('every 10 minutes', out.getvalue())

    def test_run_with_days_to_keep(self):
        TestDataFactory.create_audit_log(days_old=4)
        out = StringIO()
        call_command('run_job', 'manual-daily-audit-log-cleanup', '--days-to-keep', '2', stdout=out)
        self.assertIn('"deletedCount": 1', out.getvalue())

    def test_unknown_job(self):
        with self.assertRaises(CommandError):
            call_command('run_job', 'no-such-job', stdout=StringIO())

    def test_params_not_accepted(self):
        with self.assertRaises(CommandError):
            call_command('run_job', 'inventory-check', '--days-to-keep', '3', stdout=StringIO())
