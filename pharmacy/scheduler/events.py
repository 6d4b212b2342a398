"""
Job status events and their in-process fan-out.

``EventBroadcaster`` delivers each published event synchronously to every
current subscriber. There is no history: a subscriber only sees events
published after it subscribed. ``JobStatusTracker`` is one such subscriber;
it keeps the latest status per job for the status endpoint.
"""
import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol

from django.utils import timezone

logger = logging.getLogger(__name__)


class JobEventType(str, Enum):
    """Event names on the real-time channel"""

    TRIGGERED = "cron-job-triggered"
    COMPLETED = "cron-job-completed"
    FAILED = "cron-job-failed"
    STATUS_UPDATED = "cron-status-updated"
    EXPIRED_SALES_CLEANED = "expired-sales-cleaned"


JOB_EVENT_KINDS = {
    'triggered': JobEventType.TRIGGERED,
    'completed': JobEventType.COMPLETED,
    'failed': JobEventType.FAILED,
}

STATUS_IDLE = 'idle'
STATUS_RUNNING = 'running'
STATUS_COMPLETED = 'completed'
STATUS_FAILED = 'failed'

# Seconds a terminal status stays visible before reading as idle again
COMPLETED_DISPLAY_SECONDS = 5
FAILED_DISPLAY_SECONDS = 8


@dataclass(frozen=True)
class JobEvent:
    """One lifecycle event of a job execution"""

    kind: str  # triggered | completed | failed
    job_name: str
    job_type: str
    timestamp: datetime
    duration_ms: Optional[int] = None
    result: Any = None
    error: Optional[str] = None

    @property
    def event_name(self) -> str:
        return JOB_EVENT_KINDS[self.kind].value

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            'jobName': self.job_name,
            'jobType': self.job_type,
            'timestamp': self.timestamp.isoformat(),
        }
        if self.kind == 'completed':
            payload['durationMs'] = self.duration_ms
            payload['duration'] = self.duration_ms
            if self.result is not None:
                payload['result'] = self.result
        elif self.kind == 'failed':
            payload['error'] = self.error
        return payload


class Publisher(Protocol):
    def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        ...


Handler = Callable[[Dict[str, Any]], None]
AnyHandler = Callable[[str, Dict[str, Any]], None]


class EventBroadcaster:
    """Thread-safe synchronous fan-out of named events"""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[Handler]] = {}
        self._all_subscribers: List[AnyHandler] = []

    def subscribe(self, event_name: str, handler: Handler) -> Callable[[], None]:
        """Subscribe ``handler(payload)`` to one event name; returns an unsubscribe callable"""
        event_name = getattr(event_name, 'value', event_name)
        with self._lock:
            self._subscribers.setdefault(event_name, []).append(handler)

        def unsubscribe():
            with self._lock:
                handlers = self._subscribers.get(event_name, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def subscribe_all(self, handler: AnyHandler) -> Callable[[], None]:
        """Subscribe ``handler(event_name, payload)`` to every event"""
        with self._lock:
            self._all_subscribers.append(handler)

        def unsubscribe():
            with self._lock:
                if handler in self._all_subscribers:
                    self._all_subscribers.remove(handler)

        return unsubscribe

    def subscriber_count(self) -> int:
        with self._lock:
            return sum(len(h) for h in self._subscribers.values()) + len(self._all_subscribers)

    def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        event_name = getattr(event_name, 'value', event_name)
        with self._lock:
            handlers = list(self._subscribers.get(event_name, ()))
            all_handlers = list(self._all_subscribers)

        if not handlers and not all_handlers:
            logger.debug("No subscribers for %s", event_name)
            return

        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.error("Error in event handler for %s", event_name, exc_info=True)
        for handler in all_handlers:
            try:
                handler(event_name, payload)
            except Exception:
                logger.error("Error in event handler for %s", event_name, exc_info=True)


@dataclass
class _JobState:
    status: str = STATUS_IDLE
    last_run_at: Optional[str] = None
    last_duration_ms: Optional[int] = None
    last_error: Optional[str] = None
    finished_at: Optional[float] = None


class JobStatusTracker:
    """Latest status per job, fed by job events"""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._states: Dict[str, _JobState] = {}

    def attach(self, broadcaster: EventBroadcaster) -> Callable[[], None]:
        return broadcaster.subscribe_all(self.handle)

    def handle(self, event_name: str, payload: Dict[str, Any]) -> None:
        job_name = payload.get('jobName')
        if not job_name:
            return
        with self._lock:
            state = self._states.setdefault(job_name, _JobState())
            if event_name == JobEventType.TRIGGERED.value:
                state.status = STATUS_RUNNING
                state.last_run_at = payload.get('timestamp')
                state.finished_at = None
            elif event_name == JobEventType.COMPLETED.value:
                state.status = STATUS_COMPLETED
                state.last_duration_ms = payload.get('durationMs')
                state.last_error = None
                state.finished_at = self._clock()
            elif event_name == JobEventType.FAILED.value:
                state.status = STATUS_FAILED
                state.last_error = payload.get('error')
                state.finished_at = self._clock()

    def snapshot(self, job_name: str) -> Dict[str, Any]:
        with self._lock:
            state = self._states.get(job_name) or _JobState()
            status = state.status
            if state.finished_at is not None:
                hold = COMPLETED_DISPLAY_SECONDS if status == STATUS_COMPLETED else FAILED_DISPLAY_SECONDS
                if self._clock() - state.finished_at >= hold:
                    status = STATUS_IDLE
            return {
                'status': status,
                'lastRunAt': state.last_run_at,
                'lastDurationMs': state.last_duration_ms,
                'lastError': state.last_error,
            }


def make_event(kind, definition, duration_ms=None, result=None, error=None) -> JobEvent:
    return JobEvent(
        kind=kind,
        job_name=definition.name,
        job_type=definition.job_type,
        timestamp=timezone.now(),
        duration_ms=duration_ms,
        result=result,
        error=error,
    )
