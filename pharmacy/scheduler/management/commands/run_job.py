"""
Management command to run one maintenance job immediately
"""
import json

from django.apps import apps
from django.core.management.base import BaseCommand, CommandError
from django.core.serializers.json import DjangoJSONEncoder

from pharmacy.scheduler.exceptions import JobAlreadyRunning, JobExecutionFailed, JobNotFound


class Command(BaseCommand):
    help = "Runs a registered job synchronously and prints its result"

    def add_arguments(self, parser):
        parser.add_argument('name', nargs='?', help='Job name (omit with --list)')
        parser.add_argument('--days-to-keep', type=int, help='Retention for manual-daily-audit-log-cleanup')
        parser.add_argument('--list', action='store_true', help='List registered jobs')

    def handle(self, *args, **options):
        runner = apps.get_app_config('scheduler').runner

        if options['list'] or not options['name']:
            for job in runner.list_jobs():
                self.stdout.write(f"{job.name:<35} {str(job.schedule):<20} {job.description}")
            return

        params = {}
        if options['days_to_keep'] is not None:
            if options['days_to_keep'] < 1:
                raise CommandError('--days-to-keep must be a positive integer')
            params['days_to_keep'] = options['days_to_keep']

        try:
            result = runner.run_manual(options['name'], **params)
        except (JobNotFound, JobAlreadyRunning, JobExecutionFailed) as e:
            raise CommandError(str(e.detail))
        except TypeError as e:
            raise CommandError(str(e))

        self.stdout.write(self.style.SUCCESS(f"Job {options['name']} completed"))
        if result is not None:
            self.stdout.write(json.dumps(result, indent=2, cls=DjangoJSONEncoder))
