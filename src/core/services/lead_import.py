from __future__ import annotations

import csv
import logging
import re
import time
from dataclasses import dataclass, field
from uuid import UUID

from src.core.services.crm import CrmLeadService
from src.models.crm_lead import LeadCustomerType, LeadStatus, ProductService

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NAME_DISALLOWED = re.compile(r"[^A-Za-z0-9À-ÿ\s.'&-]")
PHONE_DISALLOWED = re.compile(r"[^\d+()\s-]")
WHITESPACE = re.compile(r"\s+")

LEASE_DOMAINS = ("enphase.com", "sunnova.com", "palmetto.com", "igssolarpower.com")
OWNER_DOMAINS = frozenset(
    {"gmail.com", "yahoo.com", "yahoo.es", "hotmail.com", "outlook.com", "icloud.com", "aol.com"}
)

IMPORT_COMPANY = "Solarfy"
EMPTY_FILE_MESSAGE = "CSV file is empty or has no data rows"

ENPHASE_HEADER_PREFIX = '"Status,System ID,Name,Owner Email,Owner Phone'
ENPHASE_HEADERS = (
    "Status",
    "System ID",
    "Name",
    "Owner Email",
    "Owner Phone",
    "City",
    "State/Prov",
    "Today",
    "Lifetime",
    "Connection",
    "IQ Energy Router",
    "Storm Guard Status",
    "SOC",
    "My Company's Reference",
)


@dataclass(slots=True)
class ImportRowError:
    row: int
    message: str
    field: str | None = None
    value: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"row": self.row, "field": self.field, "value": self.value, "message": self.message}


@dataclass(slots=True)
class ParsedLead:
    row: int
    name: str
    email: str
    phone: str | None
    reference_id: str | None
    customer_type: LeadCustomerType


@dataclass(slots=True)
class ParseResult:
    leads: list[ParsedLead] = field(default_factory=list)
    errors: list[ImportRowError] = field(default_factory=list)
    total_rows: int = 0


@dataclass(slots=True)
class ImportSummary:
    total: int
    imported: int
    failed: int
    skipped: int
    duration_ms: int
    errors: list[ImportRowError]
    imported_leads: list[dict[str, object]]

    @property
    def success(self) -> bool:
        return self.imported > 0 or (self.failed == 0 and self.total > 0)

    @property
    def message(self) -> str:
        return (
            f"Imported {self.imported} of {self.total} leads "
            f"({self.skipped} skipped, {self.failed} failed)"
        )


def classify_customer_type(email: str) -> LeadCustomerType:
    domain = email.rsplit("@", 1)[-1].strip().lower() if "@" in email else ""
    if not domain:
        return LeadCustomerType.UNKNOWN
    if any(lease in domain for lease in LEASE_DOMAINS):
        return LeadCustomerType.LEASE
    if domain in OWNER_DOMAINS:
        return LeadCustomerType.OWNER
    return LeadCustomerType.UNKNOWN


def clean_name(value: str) -> str:
    return WHITESPACE.sub(" ", NAME_DISALLOWED.sub("", value)).strip()


def clean_phone(value: str) -> str:
    return WHITESPACE.sub(" ", PHONE_DISALLOWED.sub("", value)).strip()


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


@dataclass(slots=True)
class ColumnMap:
    name: int
    email: int
    phone: int | None
    reference: int | None


def _find_columns(headers: list[str]) -> tuple[ColumnMap | None, list[ImportRowError]]:
    normalized = [header.strip().lower() for header in headers]

    def first(predicate) -> int | None:  # noqa: ANN001
        return next((i for i, header in enumerate(normalized) if predicate(header)), None)

    name_idx = first(lambda h: h == "name" or ("name" in h and "owner" not in h))
    email_idx = first(lambda h: h == "owner email") or first(lambda h: h == "email" or "email" in h)
    phone_idx = first(lambda h: h == "owner phone")
    if phone_idx is None:
        phone_idx = first(lambda h: "phone" in h)
    reference_idx = first(lambda h: h == "my company's reference")
    if reference_idx is None:
        reference_idx = first(lambda h: "reference" in h)

    errors: list[ImportRowError] = []
    if name_idx is None:
        errors.append(ImportRowError(row=1, field="headers", message='Required "Name" column not found'))
    if email_idx is None:
        errors.append(ImportRowError(row=1, field="headers", message='Required "Owner Email" column not found'))
    if errors:
        return None, errors

    return ColumnMap(name=name_idx, email=email_idx, phone=phone_idx, reference=reference_idx), []


def _cell(row: list[str], index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index].strip()


def _split_line(line: str) -> list[str]:
    return next(csv.reader([line], skipinitialspace=True), [])


def _header_cells(line: str) -> list[str]:
    # Enphase exports wrap the whole header row in one unbalanced quote.
    if line.startswith(ENPHASE_HEADER_PREFIX):
        return list(ENPHASE_HEADERS)
    return _split_line(line)


def _row_cells(line: str) -> list[str]:
    cells = _split_line(line)
    if len(cells) == 1 and line.startswith('"') and "," in cells[0]:
        return _split_line(cells[0])
    return cells


def parse_leads_csv(content: str) -> ParseResult:
    content = content.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
    lines = [line for line in content.split("\n") if line.strip()]
    if len(lines) < 2:
        return ParseResult(errors=[ImportRowError(row=0, message=EMPTY_FILE_MESSAGE)])

    columns, header_errors = _find_columns(_header_cells(lines[0].strip()))
    result = ParseResult(total_rows=len(lines) - 1)
    if columns is None:
        result.errors.extend(header_errors)
        return result

    for row_number, line in enumerate(lines[1:], start=2):
        row = _row_cells(line.strip())
        raw_name = _cell(row, columns.name)
        raw_email = _cell(row, columns.email)
        name = clean_name(raw_name)

        if not name:
            result.errors.append(
                ImportRowError(row=row_number, field="name", value=raw_name or None, message="Name is required")
            )
            continue
        if not raw_email:
            result.errors.append(ImportRowError(row=row_number, field="email", message="Email is required"))
            continue

        email = raw_email.lower()
        if not is_valid_email(email):
            result.errors.append(
                ImportRowError(row=row_number, field="email", value=raw_email, message="Invalid email format")
            )
            continue

        phone = clean_phone(_cell(row, columns.phone)) or None
        reference = _cell(row, columns.reference) or None
        result.leads.append(
            ParsedLead(
                row=row_number,
                name=name,
                email=email,
                phone=phone,
                reference_id=reference,
                customer_type=classify_customer_type(email),
            )
        )

    return result


class LeadImportService:
    def __init__(self, crm: CrmLeadService, *, batch_size: int = 50) -> None:
        self.crm = crm
        self.batch_size = batch_size

    async def import_csv(
        self,
        content: str,
        *,
        created_by: UUID | None,
        skip_duplicates: bool = True,
    ) -> ImportSummary:
        started = time.perf_counter()
        parsed = parse_leads_csv(content)
        errors = list(parsed.errors)
        imported: list[dict[str, object]] = []
        skipped = 0

        existing = await self.crm.leads.find_existing_emails(lead.email for lead in parsed.leads)
        seen: set[str] = set()

        for start in range(0, len(parsed.leads), self.batch_size):
            batch = parsed.leads[start : start + self.batch_size]
            for lead in batch:
                if lead.email in existing or lead.email in seen:
                    if skip_duplicates:
                        skipped += 1
                    else:
                        errors.append(
                            ImportRowError(
                                row=lead.row,
                                field="email",
                                value=lead.email,
                                message="A lead with this email already exists",
                            )
                        )
                    continue

                seen.add(lead.email)
                try:
                    async with self.crm.leads.savepoint():
                        created = await self.crm.create_lead(
                            created_by=created_by,
                            name=lead.name,
                            email=lead.email,
                            phone=lead.phone,
                            company=IMPORT_COMPANY,
                            status=LeadStatus.LEAD.value,
                            product_service=ProductService.SOLAR_PANELS.value,
                            customer_type=lead.customer_type.value,
                            notes=f"Reference ID: {lead.reference_id}" if lead.reference_id else None,
                        )
                except Exception as exc:
                    logger.exception("Failed to import lead from row %s", lead.row)
                    errors.append(ImportRowError(row=lead.row, field="email", value=lead.email, message=str(exc)))
                    continue

                imported.append(
                    {
                        "id": str(created.id),
                        "name": created.name,
                        "email": created.email,
                        "customer_type": created.customer_type,
                    }
                )
            logger.info("Processed lead import batch of %s rows", len(batch))

        summary = ImportSummary(
            total=len(parsed.leads),
            imported=len(imported),
            failed=len(errors),
            skipped=skipped,
            duration_ms=int((time.perf_counter() - started) * 1000),
            errors=errors,
            imported_leads=imported,
        )
        logger.info(summary.message)
        return summary
