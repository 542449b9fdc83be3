"""Storage backends for export artifacts and contractor documents."""

from .local_storage_adapter import LocalStorageAdapter
from .s3_storage_adapter import S3StorageAdapter
from .storage_config import StorageConfig, build_storage_backend

__all__ = ["LocalStorageAdapter", "S3StorageAdapter", "StorageConfig", "build_storage_backend"]
