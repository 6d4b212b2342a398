"""
Registry and execution of maintenance jobs.

Every run of a job publishes exactly one ``cron-job-triggered`` event
followed by exactly one terminal event (``cron-job-completed`` or
``cron-job-failed``), then a ``cron-status-updated`` event. Runs of the
same job never overlap: a second manual trigger is rejected and a
scheduled tick is skipped while the job holds its lock.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from django.utils import timezone

from .events import JobEventType, make_event
from .exceptions import JobAlreadyRunning, JobExecutionFailed, JobNotFound, JobRegistrationError

logger = logging.getLogger(__name__)

MANUAL = 'manual'


@dataclass(frozen=True)
class IntervalSchedule:
    minutes: int

    def __str__(self):
        return f"every {self.minutes} minutes"


Schedule = Union[str, IntervalSchedule]


@dataclass(frozen=True)
class JobDefinition:
    """A named job; ``schedule`` is a 5-field cron expression, an IntervalSchedule or MANUAL"""

    name: str
    description: str
    schedule: Schedule
    run: Callable[..., Any]
    job_type: str
    manual_trigger: Optional[str] = None
    accepts_params: tuple = ()

    @property
    def is_scheduled(self) -> bool:
        return self.schedule != MANUAL


class JobRunner:
    def __init__(self, publisher=None):
        self.publisher = publisher
        self._jobs: Dict[str, JobDefinition] = {}
        self._locks: Dict[str, threading.Lock] = {}

    def register(self, definition: JobDefinition) -> JobDefinition:
        if definition.name in self._jobs:
            raise JobRegistrationError(f"Job '{definition.name}' is already registered")
        self._jobs[definition.name] = definition
        self._locks[definition.name] = threading.Lock()
        logger.info("Registered job: %s (schedule=%s)", definition.name, definition.schedule)
        return definition

    def get(self, name: str) -> JobDefinition:
        try:
            return self._jobs[name]
        except KeyError:
            raise JobNotFound(f"Job '{name}' not found")

    def list_jobs(self, scheduled_only: bool = False) -> List[JobDefinition]:
        jobs = list(self._jobs.values())
        if scheduled_only:
            jobs = [job for job in jobs if job.is_scheduled]
        return jobs

    def is_running(self, name: str) -> bool:
        return self._locks[self.get(name).name].locked()

    def run_manual(self, name: str, **params) -> Any:
        """
        Run a job now and return its result.

        Raises JobNotFound (no events), JobAlreadyRunning (no events) or
        JobExecutionFailed after the failed event has been published.
        """
        definition = self.get(name)
        unexpected = set(params) - set(definition.accepts_params)
        if unexpected:
            raise TypeError(f"Job '{name}' does not accept: {', '.join(sorted(unexpected))}")

        lock = self._locks[name]
        if not lock.acquire(blocking=False):
            logger.warning("Manual trigger of %s rejected: already running", name)
            raise JobAlreadyRunning(f"Job '{name}' is already running")
        try:
            return self._execute(definition, params)
        finally:
            lock.release()

    def run_scheduled(self, name: str) -> None:
        """Timer entry point; failures are logged and never propagate"""
        definition = self.get(name)
        lock = self._locks[name]
        if not lock.acquire(blocking=False):
            logger.warning("Skipping scheduled run of %s: previous run still in progress", name)
            return
        try:
            self._execute(definition, {})
        except JobExecutionFailed:
            pass
        finally:
            lock.release()

    def _publish(self, event_name, payload):
        if self.publisher is not None:
            self.publisher.publish(event_name, payload)

    def _publish_status(self, definition, status):
        self._publish(JobEventType.STATUS_UPDATED.value, {
            'jobName': definition.name,
            'jobType': definition.job_type,
            'status': status,
            'timestamp': timezone.now().isoformat(),
        })

    def _execute(self, definition, params):
        started = time.monotonic()
        triggered = make_event('triggered', definition)
        self._publish(triggered.event_name, triggered.to_payload())
        logger.info("Job %s started", definition.name)

        try:
            result = definition.run(**params)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            failed = make_event('failed', definition, error=message)
            self._publish(failed.event_name, failed.to_payload())
            self._publish_status(definition, 'failed')
            logger.error("Job %s failed: %s", definition.name, message, exc_info=True)
            raise JobExecutionFailed(message) from e

        duration_ms = int((time.monotonic() - started) * 1000)
        completed = make_event('completed', definition, duration_ms=duration_ms, result=result)
        self._publish(completed.event_name, completed.to_payload())
        self._publish_status(definition, 'completed')
        logger.info("Job %s completed in %sms", definition.name, duration_ms)
        return result
