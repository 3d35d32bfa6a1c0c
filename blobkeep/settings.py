from pydantic_settings import BaseSettings, SettingsConfigDict

from blobkeep.errors import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="BLOBKEEP_", extra="ignore")

    storage_backend: str = "local"
    storage_local_path: str = "/tmp/blobkeep-files"
    storage_signing_secret: str = ""

    # Base URL the transfer endpoints are reachable at from outside.
    public_base_url: str = "http://localhost:8000"
    local_url_expiry: int = 3600  # seconds

    s3_bucket: str = ""
    s3_region: str = ""
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_endpoint_url: str = ""
    s3_public_base_url: str = ""
    s3_presigned_expiry: int = 900  # 15 minutes in seconds

    write_timeout: float = 30.0
    read_timeout: float = 30.0
    max_upload_bytes: int = 8 * 1024 * 1024

    cors_origins: list[str] = ["*"]

    server_host: str = "0.0.0.0"
    server_port: int = 8000

    log_level: str = "INFO"
    log_json: bool = False

    def get_signing_secret(self) -> str:
        if not self.storage_signing_secret:
            raise ConfigurationError(
                "BLOBKEEP_STORAGE_SIGNING_SECRET is not set. "
                "The local storage backend cannot sign URLs without it."
            )
        return self.storage_signing_secret


settings = Settings()
