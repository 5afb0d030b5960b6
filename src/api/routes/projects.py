from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import AuthContext, require_auth_context, require_roles
from src.core.db import get_db_session
from src.core.repositories.crm_leads import CrmLeadRepository
from src.core.repositories.projects import ProjectFilters, ProjectImageRepository, ProjectRepository
from src.core.services.projects import ProjectImageService, ProjectService
from src.models.project import ImageCategory
from src.models.user import UserRole
from src.schemas.common import MessageResponse
from src.schemas.projects import (
    ImageReorderRequest,
    ProjectCreateRequest,
    ProjectImageListResponse,
    ProjectImageResponse,
    ProjectImageUpdateRequest,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdateRequest,
)

router = APIRouter(prefix="/projects", tags=["projects"])

require_project_create = require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.SALES_REP)
require_project_update = require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.TECHNICIAN)
require_project_staff = require_roles(UserRole.ADMIN, UserRole.MANAGER, UserRole.SALES_REP, UserRole.TECHNICIAN)


def _build_service(session: AsyncSession) -> ProjectService:
    return ProjectService(ProjectRepository(session), ProjectImageRepository(session), CrmLeadRepository(session))


def _build_image_service(session: AsyncSession) -> ProjectImageService:
    return ProjectImageService(ProjectRepository(session), ProjectImageRepository(session))


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreateRequest,
    auth: AuthContext = Depends(require_project_create),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    project = await _build_service(session).create_project(auth, **payload.model_dump())
    await session.commit()
    return ProjectResponse.model_validate(project)


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    project_status: str | None = Query(default=None, alias="status"),
    search: str | None = None,
    customer_id: UUID | None = None,
    crm_lead_id: UUID | None = None,
    min_price: Decimal | None = Query(default=None, ge=0),
    max_price: Decimal | None = Query(default=None, ge=0),
    min_kw: Decimal | None = Query(default=None, ge=0),
    max_kw: Decimal | None = Query(default=None, ge=0),
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectListResponse:
    filters = ProjectFilters(
        status=project_status,
        search=search,
        customer_id=customer_id,
        crm_lead_id=crm_lead_id,
        min_price=min_price,
        max_price=max_price,
        min_kw=min_kw,
        max_kw=max_kw,
    )
    result = await _build_service(session).list_projects(auth, filters, page=page, limit=limit)
    return ProjectListResponse(
        projects=[ProjectResponse.model_validate(project) for project in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    project = await _build_service(session).get_project(auth, project_id)
    return ProjectResponse.model_validate(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    payload: ProjectUpdateRequest,
    _: AuthContext = Depends(require_project_update),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectResponse:
    project = await _build_service(session).update_project(project_id, **payload.model_dump(exclude_unset=True))
    await session.commit()
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: UUID,
    _: AuthContext = Depends(require_roles(UserRole.ADMIN)),
    session: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await _build_service(session).delete_project(project_id)
    await session.commit()
    return MessageResponse(message="Project deleted successfully")


@router.post(
    "/{project_id}/images",
    response_model=ProjectImageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_project_image(
    project_id: UUID,
    file: UploadFile = File(...),
    category: ImageCategory = Form(default=ImageCategory.OTHER),
    title: str | None = Form(default=None),
    description: str | None = Form(default=None),
    auth: AuthContext = Depends(require_project_staff),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectImageResponse:
    content = await file.read()
    image = await _build_image_service(session).upload_image(
        auth,
        project_id,
        original_name=file.filename or "upload",
        mime_type=file.content_type or "application/octet-stream",
        content=content,
        category=category.value,
        title=title,
        description=description,
    )
    await session.commit()
    return ProjectImageResponse.model_validate(image)


@router.get("/{project_id}/images", response_model=ProjectImageListResponse)
async def list_project_images(
    project_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    category: ImageCategory | None = None,
    search: str | None = None,
    auth: AuthContext = Depends(require_auth_context),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectImageListResponse:
    result = await _build_image_service(session).list_images(
        auth,
        project_id,
        category=category.value if category else None,
        search=search,
        page=page,
        limit=limit,
    )
    return ProjectImageListResponse(
        images=[ProjectImageResponse.model_validate(image) for image in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.patch("/{project_id}/images/{image_id}", response_model=ProjectImageResponse)
async def update_project_image(
    project_id: UUID,
    image_id: UUID,
    payload: ProjectImageUpdateRequest,
    auth: AuthContext = Depends(require_project_staff),
    session: AsyncSession = Depends(get_db_session),
) -> ProjectImageResponse:
    image = await _build_image_service(session).update_image(
        auth,
        project_id,
        image_id,
        **payload.model_dump(exclude_unset=True),
    )
    await session.commit()
    return ProjectImageResponse.model_validate(image)


@router.delete("/{project_id}/images/{image_id}", response_model=MessageResponse)
async def delete_project_image(
    project_id: UUID,
    image_id: UUID,
    auth: AuthContext = Depends(require_project_staff),
    session: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await _build_image_service(session).delete_image(auth, project_id, image_id)
    await session.commit()
    return MessageResponse(message="Image deleted successfully")


@router.put("/{project_id}/images/reorder", response_model=list[ProjectImageResponse])
async def reorder_project_images(
    project_id: UUID,
    payload: ImageReorderRequest,
    _: AuthContext = Depends(require_project_update),
    session: AsyncSession = Depends(get_db_session),
) -> list[ProjectImageResponse]:
    images = await _build_image_service(session).reorder_images(
        project_id,
        [(item.id, item.order) for item in payload.image_orders],
    )
    await session.commit()
    return [ProjectImageResponse.model_validate(image) for image in images]
