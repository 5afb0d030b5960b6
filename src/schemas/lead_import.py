from __future__ import annotations

from pydantic import BaseModel, Field


class LeadImportRowError(BaseModel):
    row: int
    field: str | None = None
    value: str | None = None
    message: str


class LeadImportData(BaseModel):
    total: int
    imported: int
    failed: int
    skipped: int
    duration_ms: int
    errors: list[LeadImportRowError] = Field(default_factory=list)
    imported_leads: list[dict[str, object]] = Field(default_factory=list)


class LeadImportResponse(BaseModel):
    success: bool
    message: str
    data: LeadImportData
