"""Local Storage Adapter - StorageBackendPort on the local filesystem.

Used in development and single-host deployments (STORAGE_MODE=local).
Files are written to {root}/exports/{company_id}/{filename}.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import asyncio
import logging
from pathlib import Path
from typing import Union

from ...domain.exports.errors import StorageError
from ...domain.storage.ports import StorageBackendPort, WrittenFile
from .keys import export_object_key

logger = logging.getLogger(__name__)


class LocalStorageAdapter(StorageBackendPort):
    """Filesystem storage rooted at a single directory.

    Example:
        storage = LocalStorageAdapter(".storage")
        written = await storage.write(company_id, f"{job_id}.csv", csv_text)
        await storage.delete(written.path)
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()

    async def write(self, company_id: str, filename: str, content: str) -> WrittenFile:
        def _write() -> WrittenFile:
            target = self.root / export_object_key(company_id, filename)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
            return WrittenFile(path=str(target), size=target.stat().st_size)

        loop = asyncio.get_event_loop()
        try:
            written = await loop.run_in_executor(None, _write)
        except (OSError, ValueError) as e:
            logger.error(
                f"Local write failed: filename={filename}, error={e}",
                extra={"company_id": company_id},
            )
            raise StorageError(f"Failed to write file: {e}")

        logger.info(
            f"Wrote export file: path={written.path}, size={written.size}",
            extra={"company_id": company_id},
        )
        return written

    async def delete(self, path: str) -> None:
        loop = asyncio.get_event_loop()
        try:
            await loop.run_in_executor(None, Path(path).unlink)
        except FileNotFoundError:
            logger.info(f"File not found for deletion: path={path}")
            return
        except OSError as e:
            logger.error(f"Local deletion failed: path={path}, error={e}")
            raise StorageError(f"Failed to delete file: {e}")

        logger.info(f"Deleted file: path={path}")
