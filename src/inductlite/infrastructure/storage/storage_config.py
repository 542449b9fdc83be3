"""Storage configuration and backend selection.

STORAGE_MODE selects the backend:
    local  - files under LOCAL_STORAGE_ROOT (default)
    s3     - EXPORTS_S3_BUCKET on AWS S3 or an S3-compatible endpoint
"""

from dataclasses import dataclass
from typing import Optional

from ...config import Settings
from ...domain.storage.ports import StorageBackendPort
from .local_storage_adapter import LocalStorageAdapter
from .s3_storage_adapter import S3StorageAdapter


@dataclass
class StorageConfig:
    """Configuration for S3-compatible object storage.

    Attributes:
        endpoint_url: S3 endpoint URL (e.g., 'http://localhost:9000' for MinIO,
                      None for AWS S3 which uses default regional endpoints)
        access_key: S3 access key ID (None uses the default credential chain)
        secret_key: S3 secret access key
        bucket_name: Bucket holding export artifacts
        region: AWS region (default: 'us-east-1')
    """
    endpoint_url: Optional[str]
    access_key: Optional[str]
    secret_key: Optional[str]
    bucket_name: str
    region: str = "us-east-1"


def storage_config_from_settings(settings: Settings) -> StorageConfig:
    """Build S3 configuration from settings.

    Raises:
        ValueError: If EXPORTS_S3_BUCKET is not configured
    """
    if not settings.EXPORTS_S3_BUCKET:
        raise ValueError("EXPORTS_S3_BUCKET is not configured")

    return StorageConfig(
        endpoint_url=settings.S3_ENDPOINT_URL,
        access_key=settings.AWS_ACCESS_KEY_ID,
        secret_key=settings.AWS_SECRET_ACCESS_KEY,
        bucket_name=settings.EXPORTS_S3_BUCKET,
        region=settings.AWS_REGION,
    )


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Raises:
        ValueError: If configuration is invalid
    """
    if not config.bucket_name:
        raise ValueError("Storage bucket_name is required")

    if bool(config.access_key) != bool(config.secret_key):
        raise ValueError("Set both AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY, or neither")

    if config.endpoint_url:
        if not config.endpoint_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid endpoint_url: {config.endpoint_url}. "
                "Must start with http:// or https://"
            )
    else:
        if not config.region:
            raise ValueError("AWS region is required when using S3 (S3_ENDPOINT_URL not set)")


def build_storage_backend(settings: Settings) -> StorageBackendPort:
    """Instantiate the backend selected by STORAGE_MODE.

    Raises:
        ValueError: If STORAGE_MODE is unknown or S3 configuration is invalid
    """
    mode = (settings.STORAGE_MODE or "local").lower()
    if mode == "local":
        return LocalStorageAdapter(settings.LOCAL_STORAGE_ROOT)
    if mode == "s3":
        config = storage_config_from_settings(settings)
        validate_storage_config(config)
        return S3StorageAdapter(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
        )
    raise ValueError(f"Unknown STORAGE_MODE: {settings.STORAGE_MODE}")
