"""Ports for the user directory and audit sink consulted by the runner."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class UserRecord:
    id: str
    company_id: str
    role: str
    is_active: bool


class UserDirectoryPort(ABC):

    @abstractmethod
    async def find_user(self, company_id: str, user_id: str) -> Optional[UserRecord]:
        pass


class AuditSinkPort(ABC):

    @abstractmethod
    async def record(
        self,
        company_id: str,
        action: str,
        *,
        user_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        pass
