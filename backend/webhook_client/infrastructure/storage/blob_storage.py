import logging
import os
import shutil
import tempfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Protocol

from webhook_client.core.config import settings
from webhook_client.core.errors import StorageWriteError

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024


class BlobStorage(Protocol):
    def write(self, namespace: str, filename: str, stream: BinaryIO) -> tuple[str, int]: ...

    def delete(self, storage_path: str) -> bool: ...

    def exists(self, storage_path: str) -> bool: ...

    def open(self, storage_path: str) -> BinaryIO: ...


class LocalBlobStorage:
    """Filesystem disk: blobs live at ``<root>/<namespace>/<filename>``.

    Storage paths handed back to callers are relative to the root and always
    use forward slashes, so they stay valid if the root moves.
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root).expanduser().resolve()

    def _resolve(self, storage_path: str) -> Path:
        try:
            target = (self.root / PurePosixPath(storage_path)).resolve()
        except (OSError, ValueError) as exc:
            raise StorageWriteError(f"Invalid storage path {storage_path!r}: {exc}") from exc
        if not target.is_relative_to(self.root):
            raise StorageWriteError(f"Storage path escapes the storage root: {storage_path}")
        return target

    def write(self, namespace: str, filename: str, stream: BinaryIO) -> tuple[str, int]:
        storage_path = str(PurePosixPath(namespace) / filename)
        target = self._resolve(storage_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(target.parent), suffix=".tmp")
        except (OSError, ValueError) as exc:
            raise StorageWriteError(f"Could not write blob {storage_path}: {exc}") from exc

        tmp = Path(tmp_path)
        try:
            with os.fdopen(fd, "wb") as handle:
                shutil.copyfileobj(stream, handle, COPY_CHUNK_SIZE)
                bytes_written = handle.tell()
            tmp.replace(target)
        except (OSError, ValueError) as exc:
            tmp.unlink(missing_ok=True)
            raise StorageWriteError(f"Could not write blob {storage_path}: {exc}") from exc
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

        logger.debug("blob_written path=%s bytes=%s", storage_path, bytes_written)
        return storage_path, bytes_written

    def delete(self, storage_path: str) -> bool:
        target = self._resolve(storage_path)
        if not target.is_file():
            return False
        target.unlink()
        return True

    def exists(self, storage_path: str) -> bool:
        return self._resolve(storage_path).is_file()

    def open(self, storage_path: str) -> BinaryIO:
        return self._resolve(storage_path).open("rb")


def get_blob_storage() -> BlobStorage:
    return LocalBlobStorage(settings.webhook_storage_root)
