import io

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from starlette.datastructures import Headers, UploadFile

from webhook_client.application.services.webhook_capture_service import InboundWebhookRequest, store_webhook
from webhook_client.core.errors import ImmutableWebhookCallError, StorageWriteError
from webhook_client.domain.models.webhook_call import WebhookCall, WebhookPayload
from webhook_client.domain.webhook_config import WebhookConfig


def _upload(name: str, content: bytes, content_type: str = "application/pdf") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=name,
        size=len(content),
        headers=Headers({"content-type": content_type}),
    )


def _count_calls(db) -> int:
    return db.execute(select(func.count()).select_from(WebhookCall)).scalar_one()


def _blob_count(storage) -> int:
    namespace_dir = storage.root / "webhooks"
    return len(list(namespace_dir.iterdir())) if namespace_dir.exists() else 0


def test_capture_selected_headers_and_json_payload(db, storage) -> None:
    config = WebhookConfig(name="github", store_headers=["x-sig"])
    request = InboundWebhookRequest(
        full_url="https://example.test/webhooks/github?delivery=1",
        headers={"X-Sig": "abc", "Content-Type": "json"},
        fields={"event": "ping"},
    )

    webhook_call = store_webhook(db, config, request, storage)

    stored = db.get(WebhookCall, webhook_call.id)
    assert stored is not None
    assert stored.name == "github"
    assert stored.url == "https://example.test/webhooks/github?delivery=1"
    assert stored.headers == {"X-Sig": "abc"}
    assert stored.payload == {"event": "ping"}
    assert stored.exception is None
    assert stored.created_at is not None
    assert _blob_count(storage) == 0


def test_capture_with_two_files_in_one_field(db, storage) -> None:
    config = WebhookConfig(name="default", store_headers="*")
    request = InboundWebhookRequest(
        full_url="https://example.test/webhooks/default",
        headers={"content-type": ["multipart/form-data; boundary=x"]},
        fields={"event": "upload"},
        files={"doc": [_upload("a.pdf", b"12345"), _upload("b.txt", b"abc", content_type="text/plain")]},
    )

    webhook_call = store_webhook(db, config, request, storage)

    payload = db.get(WebhookCall, webhook_call.id).payload
    assert payload["event"] == "upload"
    docs = payload["attachments"]["doc"]
    assert [doc["original_name"] for doc in docs] == ["a.pdf", "b.txt"]
    assert [doc["size"] for doc in docs] == [5, 3]
    assert [doc["mime_type"] for doc in docs] == ["application/pdf", "text/plain"]
    assert _blob_count(storage) == 2
    assert all(storage.exists(doc["storage_path"]) for doc in docs)


def test_attachment_count_matches_uploaded_files(db, storage) -> None:
    config = WebhookConfig(name="default", store_headers="*")
    files = {
        "doc": [_upload("a.pdf", b"a"), _upload("b.pdf", b"b")],
        "photo": [_upload("c.png", b"c", content_type="image/png")],
        "scan": [_upload("d.tif", b"d", content_type="image/tiff")],
    }

    webhook_call = store_webhook(db, config, InboundWebhookRequest(full_url="https://example.test", files=files), storage)

    attachments = webhook_call.webhook_payload.attachments
    assert list(attachments) == ["doc", "photo", "scan"]
    assert sum(len(items) for items in attachments.values()) == 4
    assert _blob_count(storage) == 4


def test_storage_failure_creates_no_record(db, storage, monkeypatch) -> None:
    def fail_write(namespace, filename, stream):
        raise StorageWriteError("disk full")

    monkeypatch.setattr(storage, "write", fail_write)
    config = WebhookConfig(name="default", store_headers="*")
    request = InboundWebhookRequest(full_url="https://example.test", files={"doc": [_upload("a.pdf", b"a")]})

    with pytest.raises(StorageWriteError):
        store_webhook(db, config, request, storage)

    assert _count_calls(db) == 0


def test_database_failure_removes_written_blobs(db, storage, monkeypatch) -> None:
    def fail_commit():
        raise OperationalError("INSERT INTO webhook_calls", {}, Exception("database unavailable"))

    monkeypatch.setattr(db, "commit", fail_commit)
    config = WebhookConfig(name="default", store_headers="*")
    request = InboundWebhookRequest(
        full_url="https://example.test",
        files={"doc": [_upload("a.pdf", b"a"), _upload("b.pdf", b"b")]},
    )

    with pytest.raises(OperationalError):
        store_webhook(db, config, request, storage)

    monkeypatch.undo()
    assert _count_calls(db) == 0
    assert _blob_count(storage) == 0


def test_capture_fields_cannot_change_after_creation(db, storage) -> None:
    config = WebhookConfig(name="default", store_headers="*")
    webhook_call = store_webhook(
        db,
        config,
        InboundWebhookRequest(full_url="https://example.test", fields={"event": "ping"}),
        storage,
    )

    for field_name, value in [("payload", {}), ("headers", {}), ("name", "other"), ("url", "https://other.test")]:
        with pytest.raises(ImmutableWebhookCallError):
            setattr(webhook_call, field_name, value)

    db.expire_all()
    assert db.get(WebhookCall, webhook_call.id).payload == {"event": "ping"}


def test_header_bag_is_case_insensitive(db, storage) -> None:
    config = WebhookConfig(name="default", store_headers="*")
    webhook_call = store_webhook(
        db,
        config,
        InboundWebhookRequest(
            full_url="https://example.test",
            headers={"x-sig": ["abc"], "accept": ["text/html", "application/json"]},
        ),
        storage,
    )

    bag = webhook_call.header_bag()
    assert bag.get("X-Sig") == "abc"
    assert bag.get_list("Accept") == ["text/html", "application/json"]
    assert bag.has("ACCEPT")
    assert bag.get("missing", "fallback") == "fallback"


def test_payload_envelope_round_trips_stored_shape() -> None:
    payload = WebhookPayload.from_dict(
        {
            "event": "upload",
            "attachments": {
                "doc": [{"original_name": "a.pdf", "storage_path": "webhooks/x.pdf", "mime_type": None, "size": 3}]
            },
        }
    )
    assert payload.fields == {"event": "upload"}
    assert payload.attachments["doc"][0].storage_path == "webhooks/x.pdf"
    assert WebhookPayload(fields={"event": "ping"}).to_dict() == {"event": "ping"}
