from __future__ import annotations

import hashlib
import logging
import time
import uuid
from datetime import datetime
from pathlib import Path, PurePosixPath
from urllib.parse import urlencode

from blobkeep.errors import ConfigurationError, ObjectNotFoundError, PathTraversalError, StorageIOError
from blobkeep.signing import check_token, issue_token, to_epoch_seconds
from blobkeep.storage.base import DEFAULT_CONTENT_TYPE, ObjectMetadata, StorageBackend, run_with_timeout

logger = logging.getLogger(__name__)

_TMP_SUFFIX = ".blobkeep-tmp"


class LocalStorage(StorageBackend):
    """Filesystem backend that signs its own transfer URLs.

    Signed URLs point at the ``/upload`` and ``/download`` routes of the web
    app, which re-check the signature before touching ``base_dir``.
    """

    name = "local"

    def __init__(
        self,
        base_dir: str,
        secret_key: str,
        public_base_url: str = "http://localhost:8000",
        default_expiry: int = 3600,
        write_timeout: float = 30.0,
        read_timeout: float = 30.0,
    ) -> None:
        if not secret_key:
            raise ConfigurationError("A signing secret is required for local storage")
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._secret_key = secret_key
        self.public_base_url = public_base_url.rstrip("/")
        self.default_expiry = default_expiry
        self.write_timeout = write_timeout
        self.read_timeout = read_timeout

    def __repr__(self) -> str:
        return f"LocalStorage(base_dir={str(self.base_dir)!r})"

    def _resolve(self, key: str) -> Path:
        """Map key onto a path under base_dir, rejecting anything that escapes it."""
        if not key or "\x00" in key or "\\" in key:
            raise PathTraversalError(key=key)
        pure = PurePosixPath(key)
        if pure.is_absolute() or ".." in pure.parts:
            raise PathTraversalError(key=key)

        resolved = (self.base_dir / pure).resolve()
        if resolved == self.base_dir or not resolved.is_relative_to(self.base_dir):
            raise PathTraversalError(key=key)
        return resolved

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.parent / f".{uuid.uuid4().hex}{_TMP_SUFFIX}"
        try:
            tmp.write_bytes(data)
            tmp.replace(path)
        finally:
            tmp.unlink(missing_ok=True)

    def save(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        timeout: float | None = None,
    ) -> str:
        path = self._resolve(key)
        try:
            run_with_timeout(lambda: self._write(path, data), timeout or self.write_timeout, key)
        except OSError as e:
            raise StorageIOError(f"Failed to write object: {e}", key=key, cause=e) from e
        logger.debug("Saved %s (%d bytes, %s)", key, len(data), content_type or DEFAULT_CONTENT_TYPE)
        return key

    def download(self, key: str) -> bytes:
        path = self._resolve(key)
        logger.debug("Reading %s from %s", key, path)
        try:
            return run_with_timeout(path.read_bytes, self.read_timeout, key)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as e:
            raise ObjectNotFoundError(key=key) from e
        except OSError as e:
            raise StorageIOError(f"Failed to read object: {e}", key=key, cause=e) from e

    def exists(self, key: str) -> bool:
        try:
            return self._resolve(key).is_file()
        except PathTraversalError:
            return False

    def list_by_prefix(self, prefix: str) -> list[str]:
        # Only walk the directory the prefix points into.
        directory = prefix.rpartition("/")[0]
        if directory:
            try:
                root = self._resolve(directory)
            except PathTraversalError:
                return []
        else:
            root = self.base_dir

        if not root.is_dir():
            return []

        keys = []
        for path in root.rglob("*"):
            if not path.is_file() or path.name.endswith(_TMP_SUFFIX):
                continue
            key = path.relative_to(self.base_dir).as_posix()
            if key.startswith(prefix):
                keys.append(key)
        return sorted(keys)

    def _signed_url(self, route: str, key: str, content_type: str, expires_at: datetime | int | None) -> str:
        self._resolve(key)
        content_type = content_type or DEFAULT_CONTENT_TYPE
        if expires_at is None:
            expires_at = int(time.time()) + self.default_expiry
        token = issue_token(key, content_type, self._secret_key, expires_at=to_epoch_seconds(expires_at))
        logger.debug("Issued %s URL for %s expiring at %d", route, key, token.expiry)
        return f"{self.public_base_url}/{route}?{urlencode(token.as_query())}"

    def get_upload_signed_url(
        self,
        key: str,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        expires_at: datetime | int | None = None,
        bucket: str | None = None,
    ) -> str:
        # There is a single local root; an alternate bucket has no meaning here.
        return self._signed_url("upload", key, content_type, expires_at)

    def get_download_signed_url(
        self,
        key: str,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        expires_at: datetime | int | None = None,
    ) -> str:
        return self._signed_url("download", key, content_type, expires_at)

    def verify_transfer(self, key: str, expiry: str, content_type: str, signature: str) -> bool:
        """Check a token presented to the transfer endpoints."""
        return check_token(key, expiry, content_type, signature, self._secret_key)

    def get_file_metadata(self, key: str) -> ObjectMetadata:
        data = self.download(key)
        return ObjectMetadata(content_hash=hashlib.md5(data).hexdigest(), public_url="")
