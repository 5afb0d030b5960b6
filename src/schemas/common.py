from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class RequestModel(BaseModel):
    model_config = ConfigDict(use_enum_values=True)


class MessageResponse(BaseModel):
    success: bool = True
    message: str


def _not_null(value: object) -> object:
    if value is None:
        raise ValueError("Field cannot be null")
    return value


def reject_null(*fields: str):  # noqa: ANN201
    """Partial-update fields may be omitted but never set to null."""
    return field_validator(*fields)(_not_null)
