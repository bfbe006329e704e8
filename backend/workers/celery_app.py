from celery import Celery
from celery.signals import beat_init
from celery.schedules import schedule
from kombu import Queue

from webhook_client.application.services.retention_service import RetentionConfig
from webhook_client.core.config import settings

celery_app = Celery(
    "webhook_client",
    broker=settings.cache_redis_url,
    backend=settings.cache_redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_default_queue="webhooks",
    task_queues=(
        Queue("webhooks"),
        Queue("maintenance"),
    ),
    task_routes={
        "workers.tasks.process_webhook_call": {"queue": "webhooks"},
        "workers.tasks.prune_webhook_calls": {"queue": "maintenance"},
    },
    beat_schedule={
        "prune-webhook-calls-daily": {
            "task": "workers.tasks.prune_webhook_calls",
            "schedule": schedule(settings.prune_schedule_seconds),
            "options": {"queue": "maintenance"},
        },
    },
)


@beat_init.connect
def _validate_retention_config(**kwargs) -> None:
    RetentionConfig.from_settings(settings)


celery_app.autodiscover_tasks(["workers"])
