"""Content Generator Port - produces the body of one export kind."""

from abc import ABC, abstractmethod


class ContentGeneratorPort(ABC):

    @abstractmethod
    async def generate(self, company_id: str) -> str:
        """Produce export content for a tenant.

        Raises:
            GuardrailExceeded: If MAX_EXPORT_ROWS or MAX_EXPORT_BYTES is exceeded
        """
        pass
