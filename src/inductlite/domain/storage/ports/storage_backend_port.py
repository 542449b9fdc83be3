"""Storage Backend Port - where export artifacts and contractor documents live.

Local-disk and S3 adapters satisfy this contract identically: write returns
the path later handed back to delete, and delete treats a missing object as
already deleted.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class WrittenFile:
    """Metadata for a written artifact.

    Attributes:
        path: Backend-specific location (filesystem path or s3://bucket/key)
        size: Size in bytes of the stored content
    """
    path: str
    size: int


class StorageBackendPort(ABC):

    @abstractmethod
    async def write(self, company_id: str, filename: str, content: str) -> WrittenFile:
        """Store UTF-8 text content under the tenant's export prefix.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete a stored object. Missing objects are not an error.

        Raises:
            StorageError: If deletion fails for any other reason
        """
        pass
