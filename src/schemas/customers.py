from __future__ import annotations

import enum
import re
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.schemas.common import EMAIL_PATTERN, RequestModel

SSN_PATTERN = re.compile(r"^\d{3}-?\d{2}-?\d{4}$")
EIN_PATTERN = re.compile(r"^\d{2}-?\d{7}$")


class DocumentType(str, enum.Enum):
    SSN = "SSN"
    EIN = "EIN"


class CustomerCreateRequest(RequestModel):
    name: str = Field(min_length=2, max_length=100)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    phone: str | None = Field(default=None, max_length=20)
    address: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, pattern=r"^[A-Za-z]{2}$")
    zip_code: str | None = Field(default=None, pattern=r"^\d{5}(-\d{4})?$")
    document_type: DocumentType
    document: str = Field(min_length=9, max_length=11)

    @model_validator(mode="after")
    def _check_document(self) -> CustomerCreateRequest:
        pattern = SSN_PATTERN if self.document_type == DocumentType.SSN.value else EIN_PATTERN
        if not pattern.match(self.document):
            raise ValueError(f"Invalid {self.document_type} format")
        if self.state:
            self.state = self.state.upper()
        return self


class CustomerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    document_type: str
    document: str
    created_by: UUID
    created_at: datetime
