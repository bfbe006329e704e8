from __future__ import annotations

import traceback
import uuid
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, Text, func, inspect
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, validates

from webhook_client.core.errors import ImmutableWebhookCallError
from webhook_client.infrastructure.db.base import Base

ATTACHMENTS_KEY = "attachments"


@dataclass(frozen=True)
class AttachmentMetadata:
    original_name: str
    storage_path: str
    mime_type: str | None
    size: int

    def to_dict(self) -> dict:
        return {
            "original_name": self.original_name,
            "storage_path": self.storage_path,
            "mime_type": self.mime_type,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AttachmentMetadata:
        return cls(
            original_name=str(data["original_name"]),
            storage_path=str(data["storage_path"]),
            mime_type=data.get("mime_type"),
            size=int(data.get("size") or 0),
        )


@dataclass(frozen=True)
class ExceptionInfo:
    code: int
    message: str
    trace: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> ExceptionInfo:
        code = getattr(exc, "code", None)
        if not isinstance(code, int) or isinstance(code, bool):
            code = getattr(exc, "errno", None)
        if not isinstance(code, int) or isinstance(code, bool):
            code = 0
        return cls(
            code=code,
            message=str(exc),
            trace="".join(traceback.format_exception(exc)),
        )

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "trace": self.trace}


def _is_attachment_index(value: Any) -> bool:
    # A body field named "attachments" is kept as a field unless it has the stored metadata shape.
    if not isinstance(value, Mapping) or not value:
        return False
    return all(
        isinstance(items, list)
        and all(isinstance(item, Mapping) and "original_name" in item and "storage_path" in item for item in items)
        for items in value.values()
    )


@dataclass(frozen=True)
class WebhookPayload:
    """Body fields of a webhook call plus the metadata of its uploaded files."""

    fields: dict[str, Any] = field(default_factory=dict)
    attachments: dict[str, list[AttachmentMetadata]] | None = None

    def to_dict(self) -> dict:
        payload = dict(self.fields)
        if self.attachments:
            payload[ATTACHMENTS_KEY] = {
                key: [item.to_dict() for item in items] for key, items in self.attachments.items()
            }
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> WebhookPayload:
        data = dict(data or {})
        raw_attachments = data.pop(ATTACHMENTS_KEY, None)
        attachments = None
        if _is_attachment_index(raw_attachments):
            attachments = {
                str(key): [AttachmentMetadata.from_dict(item) for item in items]
                for key, items in raw_attachments.items()
            }
        elif raw_attachments is not None:
            data[ATTACHMENTS_KEY] = raw_attachments
        return cls(fields=data, attachments=attachments)


class HeaderBag(Mapping[str, list[str]]):
    """Case-insensitive read view over stored headers."""

    def __init__(self, headers: Mapping[str, Any] | None = None) -> None:
        self._headers: dict[str, list[str]] = {}
        for name, value in (headers or {}).items():
            values = value if isinstance(value, (list, tuple)) else [value]
            self._headers.setdefault(name.lower(), []).extend(str(item) for item in values)

    def __getitem__(self, name: str) -> list[str]:
        return self._headers[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._headers

    def has(self, name: str) -> bool:
        return name in self

    def get_list(self, name: str) -> list[str]:
        return list(self._headers.get(name.lower(), []))

    def get(self, name: str, default: str | None = None) -> str | None:
        values = self._headers.get(name.lower())
        if not values:
            return default
        return values[0]


class WebhookCall(Base):
    __tablename__ = "webhook_calls"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    headers: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    payload: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    exception: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @validates("name", "url", "headers", "payload")
    def _guard_capture_fields(self, key: str, value: Any) -> Any:
        state = inspect(self)
        if not (state.transient or state.pending):
            raise ImmutableWebhookCallError(key)
        return value

    def record_exception(self, info: ExceptionInfo) -> None:
        self.exception = info.to_dict()

    def reset_exception(self) -> None:
        self.exception = None

    @property
    def exception_info(self) -> ExceptionInfo | None:
        if not self.exception:
            return None
        return ExceptionInfo(
            code=int(self.exception.get("code") or 0),
            message=str(self.exception.get("message") or ""),
            trace=str(self.exception.get("trace") or ""),
        )

    @property
    def webhook_payload(self) -> WebhookPayload:
        return WebhookPayload.from_dict(self.payload)

    def header_bag(self) -> HeaderBag:
        return HeaderBag(self.headers)
