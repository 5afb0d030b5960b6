from __future__ import annotations

from pydantic import BaseModel, Field

from src.schemas.common import EMAIL_PATTERN, RequestModel
from src.schemas.users import UserResponse


class SignInRequest(RequestModel):
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320)
    password: str = Field(min_length=1, max_length=1024)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class CurrentUserResponse(BaseModel):
    user: UserResponse
    permissions: list[str]
    navigation: dict[str, bool]
