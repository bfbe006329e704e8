import logging

from sqlalchemy.orm import Session

from webhook_client.domain.models.webhook_call import WebhookCall

logger = logging.getLogger(__name__)


def log_webhook_call(db: Session, webhook_call: WebhookCall) -> dict:
    """Default handler: acknowledge the call in the logs and do nothing else."""
    payload = webhook_call.webhook_payload
    attachment_count = sum(len(items) for items in (payload.attachments or {}).values())
    logger.info(
        "webhook_call_received id=%s name=%s fields=%s attachments=%s",
        webhook_call.id,
        webhook_call.name,
        sorted(payload.fields),
        attachment_count,
    )
    return {"id": str(webhook_call.id), "fields": len(payload.fields), "attachments": attachment_count}
