"""Celery Application Configuration

Celery beat is the periodic caller of the engine. Exactly one beat entry
sweeps due automations so that sweeps never overlap.
"""

from celery import Celery
from celery.schedules import crontab
from automation_engine.core.config import settings


def make_celery() -> Celery:
    """
    Create and configure Celery application instance.

    Returns:
        Configured Celery application
    """
    # Construct RabbitMQ broker URL
    broker_url = (
        f"amqp://{settings.RABBITMQ_USER}:{settings.RABBITMQ_PASSWORD}"
        f"@{settings.RABBITMQ_HOST}:{settings.RABBITMQ_PORT}//"
    )

    # Construct Redis result backend URL
    redis_password_part = f":{settings.REDIS_PASSWORD}@" if settings.REDIS_PASSWORD else ""
    result_backend = (
        f"redis://{redis_password_part}{settings.REDIS_HOST}:"
        f"{settings.REDIS_PORT}/{settings.REDIS_DB}"
    )

    celery_app = Celery(
        "automation_engine",
        broker=broker_url,
        backend=result_backend,
        include=[
            "automation_engine.tasks.automation_tasks",
        ]
    )

    celery_app.conf.update(
        # Task execution settings
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,

        # Task result settings
        result_expires=3600,  # Results expire after 1 hour

        # Beat schedule configuration
        beat_schedule={
            'process-due-automations': {
                'task': 'automations.process_due',
                'schedule': settings.AUTOMATION_POLL_INTERVAL_SECONDS,
                # A sweep that misses its window is superseded by the next one
                'options': {'expires': settings.AUTOMATION_POLL_INTERVAL_SECONDS},
            },
            'report-stale-runs': {
                'task': 'automations.report_stale_runs',
                'schedule': crontab(hour=3, minute=0),
            },
        },

        # Task routing
        task_routes={
            "automations.*": {"queue": "automations"},
        },

        # One sweep at a time per worker process
        worker_prefetch_multiplier=1,
        worker_max_tasks_per_child=1000,

        # Task execution limits
        task_time_limit=settings.AUTOMATION_POLL_INTERVAL_SECONDS,
        task_soft_time_limit=settings.AUTOMATION_POLL_INTERVAL_SECONDS * 0.9,

        # No redelivery of a sweep that already ran actions
        task_acks_late=False,

        # Monitoring
        worker_send_task_events=True,
        task_send_sent_event=True,
    )

    return celery_app


# Create global Celery app instance
celery_app = make_celery()
