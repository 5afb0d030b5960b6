from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context, require_roles
from src.core.db import get_db_session
from src.core.repositories.customers import CustomerRepository
from src.models.user import UserRole
from src.schemas.customers import CustomerCreateRequest, CustomerResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["customers"])


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerCreateRequest,
    auth: AuthContext = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.SALES_REP)),
    session: AsyncSession = Depends(get_db_session),
) -> CustomerResponse:
    repository = CustomerRepository(session)
    customer = await repository.create(
        created_by=auth.user_id,
        **payload.model_dump(),
    )
    await session.commit()
    logger.info("Created customer %s", customer.id)
    return CustomerResponse.model_validate(customer)


@router.get("", response_model=list[CustomerResponse])
async def list_customers(
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> list[CustomerResponse]:
    customers = await CustomerRepository(session).list(limit=limit, offset=offset)
    return [CustomerResponse.model_validate(customer) for customer in customers]
