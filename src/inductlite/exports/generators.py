"""CSV content generators, one per ExportType.

Each generator reads at most MAX_EXPORT_ROWS + 1 rows for the tenant so an
oversized export is detected without loading the whole table, then renders
CSV and checks the encoded size against MAX_EXPORT_BYTES.

An export with no rows produces empty content (no header line).
"""

import asyncio
import csv
import io
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from ..database import run_in_session
from ..domain.exports.errors import GuardrailExceeded
from ..domain.exports.job_status import ExportType
from ..domain.exports.ports import ContentGeneratorPort
from ..guardrails import GuardrailConfig
from ..models.base import as_utc
from ..models.contractor import Contractor
from ..models.site import InductionResponse, SignInRecord, Site

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> str:
    return as_utc(value).isoformat() if value is not None else ""


def render_csv(columns: Sequence[str], rows: Sequence[Mapping[str, Any]]) -> str:
    """Render rows as CSV with a header line, quoting only where needed.

    Example:
        >>> render_csv(["name", "notes"], [{"name": "Ana", "notes": 'said "hi", left'}])
        'name,notes\\nAna,"said ""hi"", left"\\n'
    """
    if not rows:
        return ""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow(["" if row.get(column) is None else str(row.get(column)) for column in columns])
    return buffer.getvalue()


class CsvExportGenerator(ContentGeneratorPort):
    """Shared guardrail enforcement; subclasses supply columns and a query."""

    export_type: ExportType
    columns: Sequence[str] = ()

    def __init__(self, session_factory: sessionmaker, config: GuardrailConfig):
        self._session_factory = session_factory
        self._config = config

    async def generate(self, company_id: str) -> str:
        max_rows = self._config.MAX_EXPORT_ROWS
        rows = await run_in_session(
            self._session_factory,
            lambda session: self._fetch_rows(session, company_id, max_rows + 1),
        )

        if len(rows) > max_rows:
            raise GuardrailExceeded("MAX_EXPORT_ROWS", max_rows)

        loop = asyncio.get_event_loop()
        content = await loop.run_in_executor(None, render_csv, self.columns, rows)
        size = len(content.encode("utf-8"))
        if size > self._config.MAX_EXPORT_BYTES:
            raise GuardrailExceeded("MAX_EXPORT_BYTES", self._config.MAX_EXPORT_BYTES, size)

        logger.debug(
            f"Generated {self.export_type.value}: rows={len(rows)}, bytes={size}",
            extra={"company_id": company_id, "export_type": self.export_type.value},
        )
        return content

    def _fetch_rows(self, session: Session, company_id: str, limit: int) -> List[Dict[str, Any]]:
        raise NotImplementedError


class SignInCsvGenerator(CsvExportGenerator):
    """Sign-in register, newest first."""

    export_type = ExportType.SIGN_IN_CSV
    columns = (
        "id",
        "site_id",
        "site_name",
        "visitor_name",
        "visitor_phone",
        "visitor_email",
        "employer_name",
        "visitor_type",
        "sign_in_ts",
        "sign_out_ts",
        "notes",
    )

    def _fetch_rows(self, session: Session, company_id: str, limit: int) -> List[Dict[str, Any]]:
        results = session.execute(
            select(SignInRecord, Site.name)
            .outerjoin(Site, Site.id == SignInRecord.site_id)
            .where(SignInRecord.company_id == company_id)
            .order_by(SignInRecord.sign_in_ts.desc())
            .limit(limit)
        ).all()
        return [
            {
                "id": record.id,
                "site_id": record.site_id,
                "site_name": site_name or "",
                "visitor_name": record.visitor_name,
                "visitor_phone": record.visitor_phone,
                "visitor_email": record.visitor_email,
                "employer_name": record.employer_name,
                "visitor_type": record.visitor_type,
                "sign_in_ts": _iso(record.sign_in_ts),
                "sign_out_ts": _iso(record.sign_out_ts),
                "notes": record.notes,
            }
            for record, site_name in results
        ]


class InductionCsvGenerator(CsvExportGenerator):
    """Completed induction responses with the sign-in they belong to."""

    export_type = ExportType.INDUCTION_CSV
    columns = (
        "id",
        "sign_in_record_id",
        "site_name",
        "visitor_name",
        "template_id",
        "template_version",
        "passed",
        "completed_at",
    )

    def _fetch_rows(self, session: Session, company_id: str, limit: int) -> List[Dict[str, Any]]:
        results = session.execute(
            select(InductionResponse, SignInRecord.visitor_name, Site.name)
            .join(SignInRecord, SignInRecord.id == InductionResponse.sign_in_record_id)
            .outerjoin(Site, Site.id == SignInRecord.site_id)
            .where(SignInRecord.company_id == company_id)
            .order_by(InductionResponse.completed_at.desc())
            .limit(limit)
        ).all()
        return [
            {
                "id": response.id,
                "sign_in_record_id": response.sign_in_record_id,
                "site_name": site_name or "",
                "visitor_name": visitor_name,
                "template_id": response.template_id,
                "template_version": response.template_version,
                "passed": "yes" if response.passed else "no",
                "completed_at": _iso(response.completed_at),
            }
            for response, visitor_name, site_name in results
        ]


class ContractorCsvGenerator(CsvExportGenerator):
    """Contractor directory, alphabetical."""

    export_type = ExportType.CONTRACTOR_CSV
    columns = (
        "id",
        "name",
        "contact_name",
        "contact_email",
        "contact_phone",
        "trade",
        "is_active",
    )

    def _fetch_rows(self, session: Session, company_id: str, limit: int) -> List[Dict[str, Any]]:
        contractors = session.scalars(
            select(Contractor)
            .where(Contractor.company_id == company_id)
            .order_by(Contractor.name.asc())
            .limit(limit)
        ).all()
        return [
            {
                "id": contractor.id,
                "name": contractor.name,
                "contact_name": contractor.contact_name,
                "contact_email": contractor.contact_email,
                "contact_phone": contractor.contact_phone,
                "trade": contractor.trade,
                "is_active": "yes" if contractor.is_active else "no",
            }
            for contractor in contractors
        ]


GENERATOR_CLASSES = (SignInCsvGenerator, InductionCsvGenerator, ContractorCsvGenerator)


def build_generator_registry(
    session_factory: sessionmaker,
    config: GuardrailConfig,
) -> Dict[ExportType, ContentGeneratorPort]:
    """One generator instance per ExportType."""
    return {cls.export_type: cls(session_factory, config) for cls in GENERATOR_CLASSES}
