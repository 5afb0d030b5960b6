from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context, require_roles
from src.core.db import get_db_session
from src.core.repositories.company import CompanyRepository
from src.models.user import UserRole
from src.schemas.company import CompanyResponse, CompanyUpdateRequest

router = APIRouter(prefix="/company", tags=["company"])


@router.get("", response_model=CompanyResponse)
async def get_company(
    _: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> CompanyResponse:
    company = await CompanyRepository(session).get_current()
    if company is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Company information not found",
        )
    return CompanyResponse.model_validate(company)


@router.put("", response_model=CompanyResponse)
async def upsert_company(
    payload: CompanyUpdateRequest,
    _: AuthContext = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER)),
    session: AsyncSession = Depends(get_db_session),
) -> CompanyResponse:
    repository = CompanyRepository(session)
    existing = await repository.get_current()
    values = payload.model_dump()

    if existing is None:
        company = await repository.create(**values)
    else:
        company = await repository.update(existing.id, **values)
        if company is None:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to update company information",
            )

    await session.commit()
    return CompanyResponse.model_validate(company)
