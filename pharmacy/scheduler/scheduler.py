"""
Timers for scheduled jobs.

Wraps APScheduler's BackgroundScheduler: one APScheduler job per scheduled
JobDefinition, each firing ``JobRunner.run_scheduled`` on a worker thread.
"""
import logging
import re

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from django.db import close_old_connections

from .runner import IntervalSchedule

logger = logging.getLogger(__name__)

# Crontab counts weekdays from Sunday (0 or 7); APScheduler counts from Monday
CRONTAB_WEEKDAYS = {0: 'sun', 1: 'mon', 2: 'tue', 3: 'wed', 4: 'thu', 5: 'fri', 6: 'sat', 7: 'sun'}


def _translate_day_of_week(field):
    """
    Rewrite a crontab day-of-week field with weekday names.

    Numeric ranges that touch Sunday (0 or 7) and stepped wildcards become
    explicit lists of names.
    """
    parts = []
    for part in field.split(','):
        days, _, step = part.partition('/')
        bounds = re.fullmatch(r'(\d+)-(\d+)', days)
        if days == '*' and step:
            start, end = 0, 6
        elif bounds and (int(bounds.group(1)) == 0 or int(bounds.group(2)) == 7):
            start, end = int(bounds.group(1)), int(bounds.group(2))
        else:
            days = re.sub(r'\d+', lambda m: CRONTAB_WEEKDAYS[int(m.group())], days)
            parts.append(f"{days}/{step}" if step else days)
            continue
        parts.extend(CRONTAB_WEEKDAYS[day] for day in range(start, end + 1, int(step or 1)))
    return ','.join(dict.fromkeys(parts))


def cron_trigger(expression, timezone=None):
    """CronTrigger for a standard 5-field crontab expression"""
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"Expected 5 cron fields, got {len(fields)}: {expression!r}")
    minute, hour, day, month, day_of_week = fields
    return CronTrigger(
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=_translate_day_of_week(day_of_week),
        timezone=timezone,
    )


def build_trigger(schedule, timezone=None):
    if isinstance(schedule, IntervalSchedule):
        return IntervalTrigger(minutes=schedule.minutes, timezone=timezone)
    return cron_trigger(schedule, timezone=timezone)


class CronScheduler:
    """Runs a JobRunner's scheduled jobs on their timers"""

    def __init__(self, runner, timezone=None, scheduler=None):
        self.runner = runner
        self.timezone = timezone
        self.scheduler = scheduler or BackgroundScheduler(timezone=timezone)
        self._started = False

    @property
    def running(self):
        return self._started

    def _run(self, name):
        close_old_connections()
        try:
            self.runner.run_scheduled(name)
        finally:
            close_old_connections()

    def start(self):
        if self._started:
            return
        for definition in self.runner.list_jobs(scheduled_only=True):
            self.scheduler.add_job(
                self._run,
                trigger=build_trigger(definition.schedule, self.timezone),
                args=[definition.name],
                id=definition.name,
                name=definition.description,
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            logger.info("Scheduled job %s (%s)", definition.name, definition.schedule)
        self.scheduler.start()
        self._started = True
        logger.info("Cron scheduler started with %d jobs", len(self.scheduler.get_jobs()))

    def shutdown(self, wait=False):
        if not self._started:
            return
        self.scheduler.shutdown(wait=wait)
        self._started = False
        logger.info("Cron scheduler stopped")
