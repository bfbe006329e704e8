from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile
from starlette.requests import Request

from webhook_client.application.services.attachment_extractor import discard_blobs, extract_attachments
from webhook_client.application.services.header_selector import group_headers, select_headers
from webhook_client.core.errors import InvalidWebhookPayload
from webhook_client.domain.models.webhook_call import WebhookCall, WebhookPayload
from webhook_client.domain.webhook_config import WebhookConfig
from webhook_client.infrastructure.db.webhook_call_repository import WebhookCallRepository
from webhook_client.infrastructure.observability.metrics import WEBHOOK_CALLS_STORED_TOTAL
from webhook_client.infrastructure.storage.blob_storage import BlobStorage

logger = logging.getLogger(__name__)

FORM_MEDIA_TYPES = {"application/x-www-form-urlencoded", "multipart/form-data"}


@dataclass
class InboundWebhookRequest:
    full_url: str
    headers: dict[str, list[str]] = field(default_factory=dict)
    fields: dict[str, Any] = field(default_factory=dict)
    files: dict[str, list[UploadFile]] = field(default_factory=dict)


def _add_field(fields: dict[str, Any], key: str, value: Any) -> None:
    if key not in fields:
        fields[key] = value
    elif isinstance(fields[key], list):
        fields[key].append(value)
    else:
        fields[key] = [fields[key], value]


def _add_fields(fields: dict[str, Any], items: Iterable[tuple[str, Any]]) -> None:
    for key, value in items:
        _add_field(fields, key, value)


def _is_json(media_type: str) -> bool:
    return "/json" in media_type or "+json" in media_type


def _json_fields(decoded: Any) -> dict[str, Any]:
    if isinstance(decoded, dict):
        return decoded
    if isinstance(decoded, list):
        return {str(index): value for index, value in enumerate(decoded)}
    return {"0": decoded}


async def read_inbound_request(request: Request) -> InboundWebhookRequest:
    """Read the parts of a Starlette request that a webhook call stores.

    Query parameters come first, body fields override them; uploaded files are
    grouped by form field name in the order they were sent.
    """
    fields: dict[str, Any] = {}
    _add_fields(fields, request.query_params.multi_items())
    body_fields: dict[str, Any] = {}
    files: dict[str, list[UploadFile]] = {}

    media_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    if media_type in FORM_MEDIA_TYPES:
        form = await request.form()
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                if value.filename:
                    files.setdefault(key, []).append(value)
                continue
            _add_field(body_fields, key, value)
    elif _is_json(media_type):
        body = await request.body()
        if body.strip():
            try:
                body_fields = _json_fields(json.loads(body))
            except ValueError as exc:
                raise InvalidWebhookPayload("Request body is not valid JSON") from exc

    fields.update(body_fields)
    return InboundWebhookRequest(
        full_url=str(request.url),
        headers=group_headers(request.headers.items()),
        fields=fields,
        files=files,
    )


def store_webhook(
    db: Session,
    config: WebhookConfig,
    request: InboundWebhookRequest,
    storage: BlobStorage,
    *,
    namespace: str | None = None,
) -> WebhookCall:
    headers = select_headers(config.store_headers, request.headers)

    attachments = None
    if request.files:
        attachments = extract_attachments(request.files, storage, namespace=namespace)

    payload = WebhookPayload(fields=dict(request.fields), attachments=attachments)
    webhook_call = WebhookCall(
        name=config.name,
        url=request.full_url,
        headers=headers,
        payload=payload.to_dict(),
        exception=None,
    )

    try:
        WebhookCallRepository(db).add(webhook_call)
        db.commit()
    except Exception:
        db.rollback()
        if attachments:
            discard_blobs(storage, [item.storage_path for items in attachments.values() for item in items])
        raise

    attachment_count = sum(len(items) for items in (attachments or {}).values())
    WEBHOOK_CALLS_STORED_TOTAL.labels(name=config.name).inc()
    logger.info(
        "webhook_call_stored id=%s name=%s attachments=%s",
        webhook_call.id,
        config.name,
        attachment_count,
    )
    return webhook_call
