"""Unit tests for CSV export generators against an in-memory database."""

import csv
import io
from datetime import datetime, timezone

import pytest

from inductlite.database import get_db_session
from inductlite.domain.exports.errors import GuardrailExceeded
from inductlite.domain.exports.job_status import ExportType
from inductlite.exports.generators import (
    ContractorCsvGenerator,
    InductionCsvGenerator,
    SignInCsvGenerator,
    build_generator_registry,
    render_csv,
)
from inductlite.guardrails import GuardrailConfig
from inductlite.models import Contractor, InductionResponse


def parse(content):
    return list(csv.DictReader(io.StringIO(content)))


class TestRenderCsv:

    def test_empty_rows_produce_empty_content(self):
        assert render_csv(["a", "b"], []) == ""

    def test_quotes_only_when_needed(self):
        content = render_csv(
            ["name", "notes"],
            [{"name": "Ana", "notes": 'said "hi", left'}, {"name": "Bo", "notes": None}],
        )
        assert content == 'name,notes\nAna,"said ""hi"", left"\nBo,\n'

    def test_embedded_newline_is_quoted(self):
        content = render_csv(["notes"], [{"notes": "line one\nline two"}])
        assert parse(content)[0]["notes"] == "line one\nline two"


class TestSignInCsvGenerator:

    @pytest.mark.asyncio
    async def test_rows_for_company_newest_first(
        self, session_factory, guardrails, company, make_company, make_site, make_sign_in
    ):
        site = make_site(company.id, name="North Yard")
        make_sign_in(company.id, site.id, visitor_name="Early", sign_in_ts=datetime(2025, 5, 1, tzinfo=timezone.utc))
        make_sign_in(
            company.id,
            site.id,
            visitor_name="Late",
            sign_in_ts=datetime(2025, 5, 2, 8, 30, tzinfo=timezone.utc),
            sign_out_ts=datetime(2025, 5, 2, 16, 0, tzinfo=timezone.utc),
            notes="Delivered, left keys",
        )
        other = make_company("other-co")
        other_site = make_site(other.id)
        make_sign_in(other.id, other_site.id, visitor_name="Someone Else")

        rows = parse(await SignInCsvGenerator(session_factory, guardrails).generate(company.id))

        assert [row["visitor_name"] for row in rows] == ["Late", "Early"]
        assert rows[0]["site_name"] == "North Yard"
        assert rows[0]["sign_in_ts"] == "2025-05-02T08:30:00+00:00"
        assert rows[0]["notes"] == "Delivered, left keys"
        assert rows[1]["sign_out_ts"] == ""
        assert list(rows[0].keys()) == list(SignInCsvGenerator.columns)

    @pytest.mark.asyncio
    async def test_row_guardrail(self, session_factory, company, make_site, make_sign_in):
        site = make_site(company.id)
        for i in range(3):
            make_sign_in(company.id, site.id, visitor_name=f"Visitor {i}")
        generator = SignInCsvGenerator(session_factory, GuardrailConfig(MAX_EXPORT_ROWS=2))

        with pytest.raises(GuardrailExceeded) as exc:
            await generator.generate(company.id)

        assert exc.value.guardrail == "MAX_EXPORT_ROWS"
        assert "MAX_EXPORT_ROWS" in str(exc.value)

    @pytest.mark.asyncio
    async def test_rows_at_limit_are_allowed(self, session_factory, company, make_site, make_sign_in):
        site = make_site(company.id)
        for i in range(2):
            make_sign_in(company.id, site.id, visitor_name=f"Visitor {i}")
        generator = SignInCsvGenerator(session_factory, GuardrailConfig(MAX_EXPORT_ROWS=2))

        assert len(parse(await generator.generate(company.id))) == 2

    @pytest.mark.asyncio
    async def test_byte_guardrail(self, session_factory, company, make_site, make_sign_in):
        site = make_site(company.id)
        make_sign_in(company.id, site.id, notes="x" * 500)
        generator = SignInCsvGenerator(session_factory, GuardrailConfig(MAX_EXPORT_BYTES=100))

        with pytest.raises(GuardrailExceeded) as exc:
            await generator.generate(company.id)

        assert exc.value.guardrail == "MAX_EXPORT_BYTES"
        assert exc.value.limit == 100
        assert exc.value.actual > 500

    @pytest.mark.asyncio
    async def test_no_records(self, session_factory, guardrails, company):
        assert await SignInCsvGenerator(session_factory, guardrails).generate(company.id) == ""


class TestInductionCsvGenerator:

    @pytest.mark.asyncio
    async def test_responses_joined_to_sign_in(
        self, session_factory, guardrails, company, make_site, make_sign_in
    ):
        site = make_site(company.id, name="Depot")
        record = make_sign_in(company.id, site.id, visitor_name="Kim")
        with get_db_session(session_factory) as session:
            session.add(InductionResponse(
                sign_in_record_id=record.id,
                template_id="tmpl-1",
                template_version=3,
                answers={"ppe": True},
                passed=False,
            ))

        rows = parse(await InductionCsvGenerator(session_factory, guardrails).generate(company.id))

        assert len(rows) == 1
        assert rows[0]["visitor_name"] == "Kim"
        assert rows[0]["site_name"] == "Depot"
        assert rows[0]["template_version"] == "3"
        assert rows[0]["passed"] == "no"


class TestContractorCsvGenerator:

    @pytest.mark.asyncio
    async def test_contractors_alphabetical(self, session_factory, guardrails, company):
        with get_db_session(session_factory) as session:
            session.add_all([
                Contractor(company_id=company.id, name="Zed Plumbing", is_active=False),
                Contractor(company_id=company.id, name="Acme Scaffolds", trade="Scaffolding"),
            ])

        rows = parse(await ContractorCsvGenerator(session_factory, guardrails).generate(company.id))

        assert [row["name"] for row in rows] == ["Acme Scaffolds", "Zed Plumbing"]
        assert rows[0]["trade"] == "Scaffolding"
        assert rows[0]["contact_phone"] == ""
        assert [row["is_active"] for row in rows] == ["yes", "no"]


class TestGeneratorRegistry:

    def test_registry_covers_every_export_type(self, session_factory, guardrails):
        registry = build_generator_registry(session_factory, guardrails)

        assert set(registry) == set(ExportType)
        assert isinstance(registry[ExportType.INDUCTION_CSV], InductionCsvGenerator)
