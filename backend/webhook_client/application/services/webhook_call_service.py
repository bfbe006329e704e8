import logging
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from webhook_client.domain.models.webhook_call import ExceptionInfo, WebhookCall
from webhook_client.infrastructure.db.webhook_call_repository import WebhookCallRepository

logger = logging.getLogger(__name__)


def get_webhook_call(db: Session, call_id: UUID) -> WebhookCall | None:
    return WebhookCallRepository(db).get(call_id)


def save_exception(db: Session, webhook_call: WebhookCall, exc: BaseException) -> WebhookCall:
    webhook_call.record_exception(ExceptionInfo.from_exception(exc))
    WebhookCallRepository(db).save(webhook_call)
    db.commit()
    logger.info(
        "webhook_call_exception_saved id=%s name=%s error=%s",
        webhook_call.id,
        webhook_call.name,
        type(exc).__name__,
    )
    return webhook_call


def clear_exception(db: Session, webhook_call: WebhookCall) -> WebhookCall:
    webhook_call.reset_exception()
    # Write the column even when it was already null.
    flag_modified(webhook_call, "exception")
    WebhookCallRepository(db).save(webhook_call)
    db.commit()
    return webhook_call


def serialize_webhook_call(webhook_call: WebhookCall) -> dict:
    return {
        "id": str(webhook_call.id),
        "name": webhook_call.name,
        "url": webhook_call.url,
        "headers": webhook_call.headers or {},
        "payload": webhook_call.payload or {},
        "exception": webhook_call.exception,
        "created_at": webhook_call.created_at.isoformat() if webhook_call.created_at else None,
        "updated_at": webhook_call.updated_at.isoformat() if webhook_call.updated_at else None,
    }
