"""Celery configuration for SafeReport.

The API only publishes to Celery. Timeline and escalation alert tasks are
consumed by the scheduler service, which registers the task bodies under
the names published here.
"""

from celery import Celery

from .config import get_settings

settings = get_settings()

app = Celery(
    "safereport",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Publishing is fire-and-forget from the API
    task_ignore_result=True,
    # Task routing
    task_routes={
        "safereport.alerts.*": {"queue": settings.alert_queue},
    },
    # Fail fast if the broker is down instead of hanging the publisher
    broker_connection_timeout=5,
    broker_connection_retry_on_startup=True,
    task_publish_retry=True,
    task_publish_retry_policy={
        "max_retries": 2,
        "interval_start": 0,
        "interval_step": 0.5,
        "interval_max": 1,
    },
)
