"""
Management command to run the job scheduler in a dedicated process
"""
import signal
import threading

from django.apps import apps
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = "Runs the scheduled maintenance jobs until interrupted"

    def handle(self, *args, **options):
        app = apps.get_app_config('scheduler')
        scheduler = app.start_scheduler()

        for job in app.runner.list_jobs(scheduled_only=True):
            self.stdout.write(f"  {job.name}: {job.schedule}")
        self.stdout.write(self.style.SUCCESS("Scheduler running. Press Ctrl+C to stop."))

        stop = threading.Event()
        signal.signal(signal.SIGTERM, lambda *_: stop.set())
        try:
            while not stop.wait(1):
                pass
        except KeyboardInterrupt:
            pass
        finally:
            scheduler.shutdown(wait=True)
            self.stdout.write(self.style.SUCCESS("Scheduler stopped"))
