from __future__ import annotations

from contextlib import asynccontextmanager
from types import SimpleNamespace
from uuid import uuid4

import pytest

from src.core.services.lead_import import (
    LeadImportService,
    classify_customer_type,
    clean_name,
    clean_phone,
    parse_leads_csv,
)
from src.models.crm_lead import LeadCustomerType

HEADER = "Name,Owner Email,Owner Phone,My Company's Reference\n"


def test_classify_customer_type() -> None:
    assert classify_customer_type("jane@gmail.com") is LeadCustomerType.OWNER
    assert classify_customer_type("JANE@Outlook.com") is LeadCustomerType.OWNER
    assert classify_customer_type("ops@sunnova.com") is LeadCustomerType.LEASE
    assert classify_customer_type("ops@mail.enphase.com") is LeadCustomerType.LEASE
    assert classify_customer_type("ceo@acme-corp.io") is LeadCustomerType.UNKNOWN
    assert classify_customer_type("no-at-sign") is LeadCustomerType.UNKNOWN


def test_clean_helpers() -> None:
    assert clean_name("  José   O'Neil <script> ") == "José O'Neil script"
    assert clean_phone(" (555) 123-4567 ext#9 ") == "(555) 123-4567 9"


def test_parse_leads_csv_happy_path() -> None:
    content = (
        "\ufeff" + HEADER
        + "Jane Doe,Jane@Gmail.com,(555) 111-2222,REF-1\r\n"
        + '"Smith, John",john@sunnova.com,,\r\n'
    )
    result = parse_leads_csv(content)

    assert result.errors == []
    assert result.total_rows == 2
    jane, john = result.leads
    assert jane.email == "jane@gmail.com"
    assert jane.phone == "(555) 111-2222"
    assert jane.reference_id == "REF-1"
    assert jane.customer_type is LeadCustomerType.OWNER
    assert jane.row == 2
    assert john.name == "Smith John"
    assert john.phone is None
    assert john.customer_type is LeadCustomerType.LEASE


def test_parse_leads_csv_reports_row_errors() -> None:
    content = (
        HEADER
        + ",missing@name.com,,\n"
        + "No Email,,,\n"
        + "Bad Email,not-an-email,,\n"
        + "<>,symbols@y.com,,\n"
        + "X,x@y.com,,\n"
    )
    result = parse_leads_csv(content)

    assert [(e.row, e.field) for e in result.errors] == [(2, "name"), (3, "email"), (4, "email"), (5, "name")]
    assert result.errors[2].message == "Invalid email format"
    assert result.errors[3].message == "Name is required"
    (single_letter,) = result.leads
    assert single_letter.name == "X"
    assert single_letter.row == 6


def test_parse_leads_csv_accepts_enphase_export() -> None:
    content = (
        '"Status,System ID,Name,Owner Email,Owner Phone,City,State/Prov,Today,Lifetime,Connection,'
        "IQ Energy Router,Storm Guard Status,SOC,My Company's Reference\n"
        'Normal,4412,"Doe, Jane",jane@gmail.com,305-555-0101,Miami,FL,12 kWh,9 MWh,Wi-Fi,No,,80%,R-77\n'
        '"Normal,4413,Sam Lee,sam@sunnova.com,,Tampa,FL,3 kWh,1 MWh,Cellular,No,,,\n'
    )
    result = parse_leads_csv(content)

    assert result.errors == []
    jane, sam = result.leads
    assert jane.name == "Doe Jane"
    assert jane.email == "jane@gmail.com"
    assert jane.phone == "305-555-0101"
    assert jane.reference_id == "R-77"
    assert sam.email == "sam@sunnova.com"
    assert sam.customer_type is LeadCustomerType.LEASE
    assert sam.reference_id is None


def test_parse_leads_csv_missing_headers_and_empty_file() -> None:
    result = parse_leads_csv("Full Name,Phone\nJane,555\n")
    assert [e.message for e in result.errors] == ['Required "Owner Email" column not found']

    empty = parse_leads_csv("Name,Owner Email\n")
    assert empty.total_rows == 0
    assert empty.errors[0].message == "CSV file is empty or has no data rows"


class _FakeLeadRepo:
    def __init__(self, existing: set[str]) -> None:
        self.existing = existing

    async def find_existing_emails(self, emails):  # noqa: ANN001
        return {email for email in emails if email in self.existing}

    @asynccontextmanager
    async def savepoint(self):
        yield


class _FakeCrm:
    def __init__(self, existing: set[str] | None = None, fail_for: str | None = None) -> None:
        self.leads = _FakeLeadRepo(existing or set())
        self.fail_for = fail_for
        self.created: list[dict] = []

    async def create_lead(self, *, created_by, **values):  # noqa: ANN001, ANN003
        if values["email"] == self.fail_for:
            raise RuntimeError("database unavailable")
        self.created.append(values)
        return SimpleNamespace(id=uuid4(), **values)


@pytest.mark.asyncio
async def test_import_skips_duplicates_inside_file_and_database() -> None:
    crm = _FakeCrm(existing={"old@gmail.com"})
    content = (
        HEADER
        + "Old Lead,old@gmail.com,,\n"
        + "New Lead,new@gmail.com,,R-9\n"
        + "New Again,NEW@gmail.com,,\n"
    )

    summary = await LeadImportService(crm, batch_size=2).import_csv(content, created_by=uuid4())

    assert summary.total == 3
    assert summary.imported == 1
    assert summary.skipped == 2
    assert summary.failed == 0
    assert summary.success is True
    assert crm.created[0]["notes"] == "Reference ID: R-9"
    assert crm.created[0]["company"] == "Solarfy"
    assert crm.created[0]["customer_type"] == "OWNER"
    assert summary.imported_leads[0]["email"] == "new@gmail.com"


@pytest.mark.asyncio
async def test_import_reports_duplicates_when_not_skipping() -> None:
    crm = _FakeCrm(existing={"old@gmail.com"})
    summary = await LeadImportService(crm).import_csv(
        HEADER + "Old Lead,old@gmail.com,,\n",
        created_by=None,
        skip_duplicates=False,
    )

    assert summary.imported == 0
    assert summary.skipped == 0
    assert summary.failed == 1
    assert summary.errors[0].to_dict()["message"] == "A lead with this email already exists"
    assert summary.success is False


@pytest.mark.asyncio
async def test_import_records_row_failures_and_continues() -> None:
    crm = _FakeCrm(fail_for="boom@gmail.com")
    summary = await LeadImportService(crm).import_csv(
        HEADER + "Boom Lead,boom@gmail.com,,\n" + "Fine Lead,fine@gmail.com,,\n",
        created_by=None,
    )

    assert summary.imported == 1
    assert summary.failed == 1
    assert summary.errors[0].row == 2
    assert "Imported 1 of 2 leads" in summary.message


@pytest.mark.asyncio
async def test_import_total_counts_parsed_leads() -> None:
    crm = _FakeCrm()
    summary = await LeadImportService(crm).import_csv(
        HEADER + "Jo,jo@gmail.com,,\n" + "Bad Email,nope,,\n" + ",nameless@gmail.com,,\n",
        created_by=None,
    )

    assert summary.total == 1
    assert summary.imported == 1
    assert summary.failed == 2
    assert crm.created[0]["name"] == "Jo"
    assert "Imported 1 of 1 leads" in summary.message
