from __future__ import annotations

import logging
from datetime import datetime

from blobkeep.storage.base import DEFAULT_CONTENT_TYPE, ObjectMetadata, StorageBackend
from blobkeep.storage.paths import upload_file_path

logger = logging.getLogger(__name__)


class StorageService:
    """Single entry point to object storage for the rest of the application.

    Holds exactly one backend, chosen at startup by ``get_storage``. Every
    operation is plain delegation.
    """

    def __init__(self, backend: StorageBackend, write_timeout: float = 30.0) -> None:
        self._backend = backend
        self.write_timeout = write_timeout

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    @property
    def backend_name(self) -> str:
        return self._backend.name

    def save(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        timeout: float | None = None,
    ) -> str:
        return self._backend.save(
            key,
            data,
            content_type=content_type,
            timeout=timeout or self.write_timeout,
        )

    def download(self, key: str) -> bytes:
        return self._backend.download(key)

    def exists(self, key: str) -> bool:
        return self._backend.exists(key)

    def list_by_prefix(self, prefix: str) -> list[str]:
        return self._backend.list_by_prefix(prefix)

    def count_files_with_prefix(self, prefix: str) -> int:
        count = len(self._backend.list_by_prefix(prefix))
        logger.info("Files with prefix %s: %d", prefix, count)
        return count

    def get_upload_signed_url(
        self,
        key: str,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        expires_at: datetime | int | None = None,
        bucket: str | None = None,
    ) -> str:
        return self._backend.get_upload_signed_url(
            key, content_type=content_type, expires_at=expires_at, bucket=bucket
        )

    def get_download_signed_url(
        self,
        key: str,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        expires_at: datetime | int | None = None,
    ) -> str:
        return self._backend.get_download_signed_url(key, content_type=content_type, expires_at=expires_at)

    def get_file_metadata(self, key: str) -> ObjectMetadata:
        return self._backend.get_file_metadata(key)

    def get_upload_file_metadata(self, owner_id: str, file_name: str) -> ObjectMetadata:
        return self._backend.get_file_metadata(upload_file_path(owner_id, file_name))
