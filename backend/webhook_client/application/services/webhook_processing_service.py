import importlib
import logging
from collections.abc import Callable
from functools import lru_cache
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from webhook_client.application.services.webhook_call_service import clear_exception, save_exception
from webhook_client.core.config import settings
from webhook_client.core.errors import InvalidConfig
from webhook_client.domain.models.webhook_call import WebhookCall
from webhook_client.domain.webhook_config import WebhookConfig, WebhookConfigRepository
from webhook_client.infrastructure.observability.metrics import WEBHOOK_PROCESSING_FAILURES_TOTAL

logger = logging.getLogger(__name__)

WebhookHandler = Callable[[Session, WebhookCall], Any]


@lru_cache
def get_webhook_config_repository() -> WebhookConfigRepository:
    return WebhookConfigRepository.from_settings(settings.webhook_configs)


def resolve_handler(path: str) -> WebhookHandler:
    """Import a handler given as ``package.module:function`` or ``package.module.function``."""
    module_path, separator, attribute = path.partition(":")
    if not separator:
        module_path, _, attribute = path.rpartition(".")
    if not module_path or not attribute:
        raise InvalidConfig(f"`process_webhook_job` must be a dotted path to a callable, got {path!r}")

    module = importlib.import_module(module_path)
    handler = getattr(module, attribute, None)
    if not callable(handler):
        raise InvalidConfig(f"`process_webhook_job` {path!r} does not point to a callable")
    return handler


def process_webhook_call_async(call_id: UUID) -> None:
    from workers.tasks import process_webhook_call  # local import to avoid import cycle

    process_webhook_call.apply_async(kwargs={"call_id": str(call_id)})
    logger.info("process_webhook_call_enqueued call_id=%s", call_id)


def dispatch_webhook_call(
    db: Session,
    config: WebhookConfig,
    webhook_call: WebhookCall,
    enqueue: Callable[[UUID], None] | None = None,
) -> WebhookCall:
    if not config.process_webhook_job:
        logger.info("webhook_call_not_dispatched id=%s name=%s reason=no_job", webhook_call.id, config.name)
        return webhook_call

    enqueue = enqueue or process_webhook_call_async
    try:
        clear_exception(db, webhook_call)
        enqueue(webhook_call.id)
    except Exception as exc:
        db.rollback()
        save_exception(db, webhook_call, exc)
        raise
    return webhook_call


def run_webhook_call(
    db: Session,
    webhook_call: WebhookCall,
    configs: WebhookConfigRepository | None = None,
) -> Any:
    """Run the configured handler for a stored call and record any failure on it."""
    repository = configs if configs is not None else get_webhook_config_repository()
    try:
        config = repository.get(webhook_call.name)
        if not config.process_webhook_job:
            raise InvalidConfig(f"Webhook config `{config.name}` has no `process_webhook_job`")
        handler = resolve_handler(config.process_webhook_job)
        result = handler(db, webhook_call)
        db.commit()
    except Exception as exc:
        db.rollback()
        save_exception(db, webhook_call, exc)
        WEBHOOK_PROCESSING_FAILURES_TOTAL.labels(name=webhook_call.name).inc()
        logger.exception("webhook_call_processing_failed id=%s name=%s", webhook_call.id, webhook_call.name)
        raise
    return result
