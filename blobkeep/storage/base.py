from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from blobkeep.errors import StorageTimeoutError

DEFAULT_CONTENT_TYPE = "application/octet-stream"

T = TypeVar("T")

# Shared by every backend; a timed-out transfer keeps its worker until it finishes.
_transfer_pool = ThreadPoolExecutor(max_workers=16, thread_name_prefix="blobkeep-transfer")


@dataclass(frozen=True)
class ObjectMetadata:
    content_hash: str
    public_url: str = ""


def run_with_timeout(fn: Callable[[], T], timeout: float | None, key: str) -> T:
    """Run ``fn`` and wait at most ``timeout`` seconds for it.

    On timeout a call still queued is cancelled and never runs; a call that
    already started runs to completion in the background. Either way the
    caller gets ``StorageTimeoutError``.
    """
    if timeout is None:
        return fn()
    future = _transfer_pool.submit(fn)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as e:
        future.cancel()
        raise StorageTimeoutError(f"Transfer exceeded {timeout:g}s", key=key, cause=e) from e


class StorageBackend(ABC):
    name: str = ""

    @abstractmethod
    def save(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        timeout: float | None = None,
    ) -> str:
        """Save data under key, overwriting any existing object. Return the key."""
        ...

    @abstractmethod
    def download(self, key: str) -> bytes:
        """Return the full object. Raise ObjectNotFoundError if absent."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def list_by_prefix(self, prefix: str) -> list[str]:
        """Return sorted object keys starting with prefix; empty when none match."""
        ...

    @abstractmethod
    def get_upload_signed_url(
        self,
        key: str,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        expires_at: datetime | int | None = None,
        bucket: str | None = None,
    ) -> str:
        """Return a URL that allows one PUT of key with content_type."""
        ...

    @abstractmethod
    def get_download_signed_url(
        self,
        key: str,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        expires_at: datetime | int | None = None,
    ) -> str:
        """Return a URL that allows GET of key."""
        ...

    @abstractmethod
    def get_file_metadata(self, key: str) -> ObjectMetadata: ...
