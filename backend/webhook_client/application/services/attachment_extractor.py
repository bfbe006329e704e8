import hashlib
import logging
import mimetypes
from collections.abc import Iterable, Mapping, Sequence
from pathlib import PurePosixPath
from typing import BinaryIO, Protocol
from uuid import uuid4

from webhook_client.core.config import settings
from webhook_client.core.errors import StorageWriteError
from webhook_client.domain.models.webhook_call import AttachmentMetadata
from webhook_client.infrastructure.observability.metrics import WEBHOOK_ATTACHMENTS_STORED_TOTAL
from webhook_client.infrastructure.storage.blob_storage import BlobStorage

logger = logging.getLogger(__name__)


class UploadedFile(Protocol):
    """The subset of ``starlette.datastructures.UploadFile`` the extractor reads."""

    filename: str | None
    content_type: str | None
    size: int | None
    file: BinaryIO


def client_extension(original_name: str) -> str:
    return PurePosixPath(original_name.replace("\\", "/")).suffix.lstrip(".")


def generate_filename(original_name: str, extension: str) -> str:
    digest = hashlib.md5(f"{uuid4().hex}{original_name}".encode("utf-8"), usedforsecurity=False).hexdigest()
    return f"{digest}.{extension}" if extension else digest


def _as_file_list(uploaded: UploadedFile | Sequence[UploadedFile]) -> list[UploadedFile]:
    if isinstance(uploaded, (list, tuple)):
        return list(uploaded)
    return [uploaded]


def _store_upload(upload: UploadedFile, storage: BlobStorage, namespace: str) -> AttachmentMetadata:
    original_name = upload.filename or ""
    extension = client_extension(original_name)
    mime_type = upload.content_type or mimetypes.guess_type(original_name)[0]

    stream = upload.file
    if stream.seekable():
        stream.seek(0)
    storage_path, bytes_written = storage.write(namespace, generate_filename(original_name, extension), stream)

    return AttachmentMetadata(
        original_name=original_name,
        storage_path=storage_path,
        mime_type=mime_type,
        size=upload.size if upload.size is not None else bytes_written,
    )


def discard_blobs(storage: BlobStorage, storage_paths: Iterable[str]) -> None:
    for storage_path in storage_paths:
        try:
            storage.delete(storage_path)
        except (OSError, StorageWriteError):
            logger.warning("webhook_attachment_cleanup_failed path=%s", storage_path, exc_info=True)


def extract_attachments(
    uploaded_parts: Mapping[str, UploadedFile | Sequence[UploadedFile]],
    storage: BlobStorage,
    *,
    namespace: str | None = None,
) -> dict[str, list[AttachmentMetadata]]:
    """Write every uploaded file to blob storage and return its metadata per form field.

    Files are written one at a time in input order. When any write fails the
    blobs already written by this call are removed and the error propagates,
    so callers never see a partial attachment set.
    """
    target_namespace = namespace or settings.webhook_blob_namespace
    stored_files: dict[str, list[AttachmentMetadata]] = {}
    written_paths: list[str] = []

    try:
        for key, uploaded_files in uploaded_parts.items():
            field_files = stored_files.setdefault(key, [])
            for upload in _as_file_list(uploaded_files):
                metadata = _store_upload(upload, storage, target_namespace)
                written_paths.append(metadata.storage_path)
                field_files.append(metadata)
    except Exception:
        logger.warning(
            "webhook_attachments_extraction_failed written=%s namespace=%s",
            len(written_paths),
            target_namespace,
        )
        discard_blobs(storage, written_paths)
        raise

    WEBHOOK_ATTACHMENTS_STORED_TOTAL.inc(len(written_paths))
    return stored_files
