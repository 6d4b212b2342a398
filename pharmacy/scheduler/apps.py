import atexit
import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class SchedulerConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'pharmacy.scheduler'

    broadcaster = None
    tracker = None
    runner = None
    scheduler = None

    def ready(self):
        from .events import EventBroadcaster, JobStatusTracker
        from .jobs import build_job_runner

        self.broadcaster = EventBroadcaster()
        self.tracker = JobStatusTracker()
        self.tracker.attach(self.broadcaster)
        self.runner = build_job_runner(publisher=self.broadcaster)

        if settings.CRON_SCHEDULER_AUTOSTART:
            self.start_scheduler()

    def start_scheduler(self):
        """Start timers for every scheduled job in this process"""
        from .scheduler import CronScheduler

        if self.scheduler is None:
            self.scheduler = CronScheduler(self.runner, timezone=settings.CRON_TIMEZONE)
        if not self.scheduler.running:
            self.scheduler.start()
            atexit.register(self.stop_scheduler)
        return self.scheduler

    def stop_scheduler(self):
        if self.scheduler is not None:
            self.scheduler.shutdown()
