"""Retention Store Port - bulk purges and expiry listings for the reaper.

Export jobs are not covered here; the reaper uses ExportJobStorePort for
those so the job table has a single owner.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List


@dataclass(frozen=True)
class CompanyRetention:
    company_id: str
    retention_days: int


@dataclass(frozen=True)
class ExpiredDocument:
    """A contractor document past expires_at, with the tenant it belongs to."""
    id: str
    company_id: str
    file_path: str


class RetentionStorePort(ABC):

    @abstractmethod
    async def purge_audit_logs(self, older_than: datetime) -> int:
        """Delete audit entries created before older_than. Returns rows deleted."""
        pass

    @abstractmethod
    async def list_companies(self) -> List[CompanyRetention]:
        pass

    @abstractmethod
    async def purge_sign_in_records(self, company_id: str, cutoff: datetime) -> int:
        """Delete the tenant's signed-out records with sign_out_ts before cutoff.

        Records still on site (sign_out_ts NULL) are never deleted.
        """
        pass

    @abstractmethod
    async def list_expired_contractor_documents(
        self, company_id: str, now: datetime, limit: int
    ) -> List[ExpiredDocument]:
        """The tenant's documents whose expires_at is before now, oldest expiry first."""
        pass

    @abstractmethod
    async def delete_contractor_document(self, company_id: str, document_id: str) -> None:
        pass
