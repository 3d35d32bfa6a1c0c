from __future__ import annotations

import logging
import time
from datetime import datetime

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, ConnectTimeoutError, ReadTimeoutError

from blobkeep.errors import ConfigurationError, ObjectNotFoundError, StorageIOError, StorageTimeoutError
from blobkeep.signing import to_epoch_seconds
from blobkeep.storage.base import DEFAULT_CONTENT_TYPE, ObjectMetadata, StorageBackend, run_with_timeout

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _is_not_found(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code", "")) in _NOT_FOUND_CODES


class S3Storage(StorageBackend):
    """S3-compatible bucket backend; signed URLs are native presigned URLs."""

    name = "s3"

    def __init__(
        self,
        bucket: str,
        region: str,
        access_key_id: str,
        secret_access_key: str,
        endpoint_url: str = "",
        presigned_expiry: int = 900,
        write_timeout: float = 30.0,
        public_base_url: str = "",
    ) -> None:
        if not bucket:
            raise ConfigurationError("An S3 bucket name is required for s3 storage")
        self.bucket = bucket
        self.presigned_expiry = presigned_expiry
        self.write_timeout = write_timeout
        self.public_base_url = public_base_url.rstrip("/")

        client_kwargs: dict = {
            "service_name": "s3",
            "config": Config(connect_timeout=10, read_timeout=write_timeout, retries={"max_attempts": 1}),
        }
        if region:
            client_kwargs["region_name"] = region
        # Fall back to the default credential chain when no explicit keys are set.
        if access_key_id and secret_access_key:
            client_kwargs["aws_access_key_id"] = access_key_id
            client_kwargs["aws_secret_access_key"] = secret_access_key
        if endpoint_url:
            client_kwargs["endpoint_url"] = endpoint_url

        self.client = boto3.client(**client_kwargs)

    def __repr__(self) -> str:
        return f"S3Storage(bucket={self.bucket!r})"

    def _expires_in(self, expires_at: datetime | int | None) -> int:
        if expires_at is None:
            return self.presigned_expiry
        return max(1, to_epoch_seconds(expires_at) - int(time.time()))

    def save(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        timeout: float | None = None,
    ) -> str:
        def _put() -> None:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type or DEFAULT_CONTENT_TYPE,
            )

        try:
            run_with_timeout(_put, timeout or self.write_timeout, key)
        except (ReadTimeoutError, ConnectTimeoutError) as e:
            raise StorageTimeoutError(f"Upload timed out: {e}", key=key, cause=e) from e
        except (ClientError, BotoCoreError) as e:
            raise StorageIOError(f"Upload failed: {e}", key=key, cause=e) from e
        logger.info("Uploaded %s to s3://%s/%s (%d bytes)", key, self.bucket, key, len(data))
        return key

    def download(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(key=key) from e
            raise StorageIOError(f"Download failed: {e}", key=key, cause=e) from e
        except (ReadTimeoutError, ConnectTimeoutError) as e:
            raise StorageTimeoutError(f"Download timed out: {e}", key=key, cause=e) from e
        except BotoCoreError as e:
            raise StorageIOError(f"Download failed: {e}", key=key, cause=e) from e

    def _head(self, key: str) -> dict:
        try:
            return self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(key=key) from e
            raise StorageIOError(f"Metadata probe failed: {e}", key=key, cause=e) from e
        except BotoCoreError as e:
            raise StorageIOError(f"Metadata probe failed: {e}", key=key, cause=e) from e

    def exists(self, key: str) -> bool:
        try:
            self._head(key)
        except ObjectNotFoundError:
            return False
        return True

    def list_by_prefix(self, prefix: str) -> list[str]:
        paginator = self.client.get_paginator("list_objects_v2")
        keys = []
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []))
        except (ClientError, BotoCoreError) as e:
            raise StorageIOError(f"Listing failed: {e}", key=prefix, cause=e) from e
        logger.debug("Listed %d objects under s3://%s/%s", len(keys), self.bucket, prefix)
        return sorted(keys)

    def get_upload_signed_url(
        self,
        key: str,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        expires_at: datetime | int | None = None,
        bucket: str | None = None,
    ) -> str:
        url = self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": bucket or self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=self._expires_in(expires_at),
        )
        logger.debug("Generated presigned upload URL for %s", key)
        return url

    def get_download_signed_url(
        self,
        key: str,
        *,
        content_type: str = DEFAULT_CONTENT_TYPE,
        expires_at: datetime | int | None = None,
    ) -> str:
        url = self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self._expires_in(expires_at),
        )
        logger.debug("Generated presigned download URL for %s", key)
        return url

    def get_file_metadata(self, key: str) -> ObjectMetadata:
        head = self._head(key)
        content_hash = head.get("ETag", "").strip('"')
        public_url = f"{self.public_base_url}/{key}" if self.public_base_url else ""
        return ObjectMetadata(content_hash=content_hash, public_url=public_url)
