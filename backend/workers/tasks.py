import logging
from uuid import UUID

from webhook_client.application.services.retention_service import (
    RetentionConfig,
    prune_webhook_calls as prune_webhook_calls_service,
)
from webhook_client.application.services.webhook_call_service import get_webhook_call
from webhook_client.application.services.webhook_processing_service import run_webhook_call
from webhook_client.core.config import settings
from webhook_client.infrastructure.db.session import SessionLocal
from workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="workers.tasks.process_webhook_call", acks_late=True)
def process_webhook_call(call_id: str) -> dict:
    with SessionLocal() as db:
        webhook_call = get_webhook_call(db, UUID(call_id))
        if webhook_call is None:
            logger.warning("webhook_call_missing call_id=%s", call_id)
            return {"status": "missing"}

        run_webhook_call(db, webhook_call)
        logger.info("webhook_call_processed call_id=%s name=%s", call_id, webhook_call.name)
    return {"status": "processed", "call_id": call_id}


@celery_app.task(name="workers.tasks.prune_webhook_calls")
def prune_webhook_calls() -> dict:
    config = RetentionConfig.from_settings(settings)
    with SessionLocal() as db:
        deleted = prune_webhook_calls_service(db, config)
    return {"deleted": deleted, "delete_after_days": config.delete_after_days}
