import logging

from blobkeep.errors import ConfigurationError
from blobkeep.settings import Settings
from blobkeep.storage.service import StorageService

logger = logging.getLogger(__name__)


def get_storage(settings: Settings) -> StorageService:
    backend = settings.storage_backend

    if backend == "local":
        from blobkeep.storage.local import LocalStorage

        logger.info("Using storage backend: local path=%s", settings.storage_local_path)
        local = LocalStorage(
            settings.storage_local_path,
            secret_key=settings.get_signing_secret(),
            public_base_url=settings.public_base_url,
            default_expiry=settings.local_url_expiry,
            write_timeout=settings.write_timeout,
            read_timeout=settings.read_timeout,
        )
        return StorageService(local, write_timeout=settings.write_timeout)

    if backend == "s3":
        from blobkeep.storage.s3 import S3Storage

        logger.info("Using storage backend: s3 bucket=%s", settings.s3_bucket)
        s3 = S3Storage(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            endpoint_url=settings.s3_endpoint_url,
            presigned_expiry=settings.s3_presigned_expiry,
            write_timeout=settings.write_timeout,
            public_base_url=settings.s3_public_base_url,
        )
        return StorageService(s3, write_timeout=settings.write_timeout)

    raise ConfigurationError(f"Unsupported storage backend: {backend}")
