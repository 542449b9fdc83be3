"""S3 Storage Adapter - Implementation of StorageBackendPort using boto3.

Works against AWS S3 and S3-compatible services (MinIO in development).
Export artifacts are stored under exports/{company_id}/{filename} and
addressed by s3://{bucket}/{key} paths.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import asyncio
import functools
import logging
from typing import Optional, Tuple

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from ...domain.exports.errors import StorageError
from ...domain.storage.ports import StorageBackendPort, WrittenFile
from .keys import export_object_key

logger = logging.getLogger(__name__)

_MISSING_CODES = ("NoSuchKey", "404", "NotFound")


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class S3StorageAdapter(StorageBackendPort):
    """S3-compatible storage adapter using boto3.

    Example:
        config = storage_config_from_settings(get_settings())
        storage = S3StorageAdapter(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
        )

        written = await storage.write(company_id, "job.csv", csv_text)
        # written.path == "s3://<bucket>/exports/<company_id>/job.csv"
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: Optional[str],
        secret_key: Optional[str],
        bucket_name: str,
        region: str = "us-east-1",
    ):
        """Initialize S3 storage adapter.

        Args:
            endpoint_url: S3 endpoint URL (None for AWS S3, URL for MinIO)
            access_key: S3 access key ID (None to use the default credential chain)
            secret_key: S3 secret access key
            bucket_name: S3 bucket name
            region: AWS region (default: 'us-east-1')

        Raises:
            StorageError: If S3 client initialization fails
        """
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
            self.bucket_name = bucket_name
            self.region = region

            logger.info(
                f"Initialized S3 storage adapter: bucket={bucket_name}, "
                f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        except Exception as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

    async def write(self, company_id: str, filename: str, content: str) -> WrittenFile:
        """Upload UTF-8 text as text/csv.

        Raises:
            StorageError: If upload fails
        """
        try:
            storage_key = export_object_key(company_id, filename)
        except ValueError as e:
            raise StorageError(str(e))

        body = content.encode("utf-8")
        try:
            await self._call(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=storage_key,
                Body=body,
                ContentType="text/csv",
                Metadata={"company_id": company_id},
            )
        except ClientError as e:
            error_code = _error_code(e)
            logger.error(
                f"S3 upload failed: storage_key={storage_key}, "
                f"error={error_code}, message={e}",
                extra={"company_id": company_id},
            )
            raise StorageError(f"Failed to upload file: {error_code}")
        except Exception as e:
            logger.error(f"Unexpected error during upload: {e}")
            raise StorageError(f"Failed to upload file: {e}")

        logger.info(
            f"Uploaded file: storage_key={storage_key}, size={len(body)}",
            extra={"company_id": company_id},
        )
        return WrittenFile(path=f"s3://{self.bucket_name}/{storage_key}", size=len(body))

    async def delete(self, path: str) -> None:
        """Delete by s3:// path or bare key. Missing objects are ignored.

        Raises:
            StorageError: If deletion fails
        """
        bucket, storage_key = self._parse_path(path)
        try:
            await self._call(self.s3_client.delete_object, Bucket=bucket, Key=storage_key)
        except ClientError as e:
            error_code = _error_code(e)
            if error_code in _MISSING_CODES:
                logger.info(f"File not found for deletion: storage_key={storage_key}")
                return
            logger.error(
                f"S3 deletion failed: storage_key={storage_key}, "
                f"error={error_code}"
            )
            raise StorageError(f"Failed to delete file: {error_code}")
        except Exception as e:
            logger.error(f"Unexpected error during deletion: {e}")
            raise StorageError(f"Failed to delete file: {e}")

        logger.info(f"Deleted file: bucket={bucket}, storage_key={storage_key}")

    async def verify_bucket_exists(self) -> bool:
        """Verify that the configured bucket exists.

        Called by the entry-point scripts on startup to fail fast when the
        bucket is missing.

        Raises:
            StorageError: If bucket check fails or bucket doesn't exist
        """
        try:
            await self._call(self.s3_client.head_bucket, Bucket=self.bucket_name)
            logger.info(f"Verified bucket exists: {self.bucket_name}")
            return True
        except ClientError as e:
            error_code = _error_code(e)
            if error_code == "404":
                raise StorageError(
                    f"Bucket '{self.bucket_name}' does not exist. "
                    f"Create it first or update EXPORTS_S3_BUCKET."
                )
            raise StorageError(f"Failed to verify bucket: {error_code}")
        except Exception as e:
            raise StorageError(f"Failed to verify bucket: {e}")

    async def _call(self, method, **kwargs):
        """Run a blocking boto3 client call on the default thread pool."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, functools.partial(method, **kwargs))

    def _parse_path(self, path: str) -> Tuple[str, str]:
        """Split s3://bucket/key; bare keys use the configured bucket.

        Example:
            >>> adapter._parse_path("s3://exports-bucket/exports/c1/j1.csv")
            ('exports-bucket', 'exports/c1/j1.csv')
            >>> adapter._parse_path("exports/c1/j1.csv")
            ('<configured bucket>', 'exports/c1/j1.csv')
        """
        if path.startswith("s3://"):
            bucket, _, storage_key = path[len("s3://"):].partition("/")
            if bucket and storage_key:
                return bucket, storage_key
            raise StorageError(f"Invalid S3 path: {path}")
        return self.bucket_name, path.lstrip("/")
