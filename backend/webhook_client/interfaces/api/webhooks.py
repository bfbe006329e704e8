import asyncio
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from webhook_client.application.services.webhook_call_service import get_webhook_call, serialize_webhook_call
from webhook_client.application.services.webhook_capture_service import (
    InboundWebhookRequest,
    read_inbound_request,
    store_webhook,
)
from webhook_client.application.services.webhook_processing_service import dispatch_webhook_call
from webhook_client.core.errors import InvalidWebhookPayload, StorageWriteError, WebhookConfigNotFound
from webhook_client.domain.webhook_config import WebhookConfig, WebhookConfigRepository
from webhook_client.infrastructure.db.session import get_db
from webhook_client.infrastructure.logging.context import reset_webhook_name, set_webhook_name
from webhook_client.infrastructure.storage.blob_storage import BlobStorage, get_blob_storage
from webhook_client.interfaces.api.deps import get_webhook_configs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def _resolve_config(configs: WebhookConfigRepository, name: str) -> WebhookConfig:
    try:
        return configs.get(name)
    except WebhookConfigNotFound as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error_code": exc.error_code, "message": str(exc)},
        ) from exc


def _require_webhook_call(db: Session, call_id: UUID):
    webhook_call = get_webhook_call(db, call_id)
    if webhook_call is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error_code": "webhook_call_not_found", "message": "Webhook call not found"},
        )
    return webhook_call


def _store_and_dispatch(
    db: Session, config: WebhookConfig, inbound: InboundWebhookRequest, storage: BlobStorage
) -> None:
    webhook_call = store_webhook(db, config, inbound, storage)
    dispatch_webhook_call(db, config, webhook_call)


@router.post("/{config_name}", status_code=status.HTTP_200_OK)
async def receive_webhook(
    config_name: str,
    request: Request,
    db: Session = Depends(get_db),
    storage: BlobStorage = Depends(get_blob_storage),
    configs: WebhookConfigRepository = Depends(get_webhook_configs),
) -> dict:
    config = _resolve_config(configs, config_name)
    name_token = set_webhook_name(config.name)
    try:
        inbound = await read_inbound_request(request)
        await asyncio.to_thread(_store_and_dispatch, db, config, inbound, storage)
    except InvalidWebhookPayload as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error_code": exc.error_code, "message": str(exc)},
        ) from exc
    except StorageWriteError as exc:
        logger.exception("webhook_call_storage_failed name=%s", config.name)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"error_code": exc.error_code, "message": "Webhook attachments could not be stored"},
        ) from exc
    finally:
        reset_webhook_name(name_token)

    return {"message": "ok"}


@router.get("/calls/{call_id}", status_code=status.HTTP_200_OK)
def read_webhook_call(call_id: UUID, db: Session = Depends(get_db)) -> dict:
    return serialize_webhook_call(_require_webhook_call(db, call_id))


@router.post("/calls/{call_id}/replay", status_code=status.HTTP_200_OK)
def replay_webhook_call(
    call_id: UUID,
    db: Session = Depends(get_db),
    configs: WebhookConfigRepository = Depends(get_webhook_configs),
) -> dict:
    webhook_call = _require_webhook_call(db, call_id)
    config = _resolve_config(configs, webhook_call.name)
    dispatch_webhook_call(db, config, webhook_call)
    logger.info("webhook_call_replayed id=%s name=%s", webhook_call.id, webhook_call.name)
    return {"message": "ok", "id": str(webhook_call.id)}
