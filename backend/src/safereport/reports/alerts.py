"""Best-effort alert scheduling after a report is committed.

Once a report is durably stored, the downstream scheduler is asked to set
up timeline/escalation alerts for it. That request runs as a detached
task: the submission response never waits for it, and a failure is only
reported to the AlertObserver (which logs it by default). Retries belong
to the scheduler service.
"""

import asyncio
import logging
from datetime import datetime
from typing import Protocol
from uuid import UUID

from ..config import get_settings
from .errors import SchedulingFault

logger = logging.getLogger(__name__)


class AlertScheduler(Protocol):
    """Downstream alert scheduler."""

    def schedule(self, report_id: UUID, organization_id: str, created_at: datetime) -> None:
        """Request alerts for a new report. May block on I/O."""
        ...


class AlertObserver(Protocol):
    """Observes dispatch attempts and failures."""

    def on_attempt(self, report_id: UUID) -> None:
        ...

    def on_failure(self, report_id: UUID, error: Exception) -> None:
        ...


class LoggingAlertObserver:
    """Default observer: failures become warnings."""

    def on_attempt(self, report_id: UUID) -> None:
        logger.debug(f"Scheduling timeline alerts for report {report_id}")

    def on_failure(self, report_id: UUID, error: Exception) -> None:
        logger.warning(
            f"Timeline alerts not scheduled for report {report_id}: {error}",
            extra={"report_id": str(report_id), "event": "alert_scheduling_failed"},
        )


class CeleryAlertScheduler:
    """Publishes alert requests to the scheduler service through Celery."""

    def __init__(self, app=None, task_name: str | None = None, queue: str | None = None):
        settings = get_settings()
        self._app = app
        self.task_name = task_name or settings.alert_task_name
        self.queue = queue or settings.alert_queue

    @property
    def app(self):
        if self._app is None:
            from ..worker import app as celery_app

            self._app = celery_app
        return self._app

    def schedule(self, report_id: UUID, organization_id: str, created_at: datetime) -> None:
        try:
            self.app.send_task(
                self.task_name,
                kwargs={
                    "report_id": str(report_id),
                    "organization_id": organization_id,
                    "created_at": created_at.isoformat(),
                },
                queue=self.queue,
            )
        except Exception as e:
            raise SchedulingFault(f"Could not publish {self.task_name}: {e}") from e


class AlertDispatcher:
    """Runs alert scheduling as detached tasks.

    ``dispatch`` returns immediately. ``drain`` waits for everything still
    in flight, for shutdown and tests.
    """

    def __init__(self, scheduler: AlertScheduler, observer: AlertObserver | None = None):
        self._scheduler = scheduler
        self._observer = observer or LoggingAlertObserver()
        self._pending: set[asyncio.Task] = set()

    def dispatch(self, report_id: UUID, organization_id: str, created_at: datetime) -> asyncio.Task:
        """Start scheduling alerts for a committed report without waiting."""
        task = asyncio.create_task(self._run(report_id, organization_id, created_at))
        # Keep a reference until done so the task is not garbage collected.
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, report_id: UUID, organization_id: str, created_at: datetime) -> None:
        self._observer.on_attempt(report_id)
        try:
            await asyncio.to_thread(
                self._scheduler.schedule, report_id, organization_id, created_at
            )
        except Exception as e:
            self._observer.on_failure(report_id, e)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every in-flight dispatch to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


_dispatcher: AlertDispatcher | None = None


def get_alert_dispatcher() -> AlertDispatcher:
    """Get the alert dispatcher singleton."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = AlertDispatcher(CeleryAlertScheduler())
    return _dispatcher
