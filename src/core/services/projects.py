from __future__ import annotations

import asyncio
import logging
import mimetypes
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

from fastapi import HTTPException, status

from src.core.auth import AuthContext
from src.core.config import settings
from src.core.repositories.base import Page
from src.core.repositories.crm_leads import CrmLeadRepository
from src.core.repositories.projects import ProjectFilters, ProjectImageRepository, ProjectRepository
from src.models.project import ImageCategory, Project, ProjectImage, ProjectStatus
from src.models.user import UserRole

logger = logging.getLogger(__name__)

MIN_PRICE_PER_KW = Decimal("1000")
MAX_PRICE_PER_KW = Decimal("10000")

ALLOWED_IMAGE_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/gif",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)
IMAGE_MANAGER_ROLES = frozenset({UserRole.ADMIN.value, UserRole.MANAGER.value})


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def validate_coordinates(latitude: float | None, longitude: float | None) -> None:
    if (latitude is None) != (longitude is None):
        raise _bad_request("Both latitude and longitude must be provided together")
    if latitude is None or longitude is None:
        return
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise _bad_request("Coordinates are out of range")
    if abs(latitude) < 0.01 and abs(longitude) < 0.01:
        raise _bad_request("Coordinates appear to be invalid. Please select a valid location on the map.")
    if abs(latitude) > 85:
        raise _bad_request("Coordinates are too far north or south for typical solar installations.")


def validate_price_per_kw(estimated_kw: Decimal | None, estimated_price: Decimal | None) -> None:
    if not estimated_kw or not estimated_price:
        return
    price_per_kw = Decimal(estimated_price) / Decimal(estimated_kw)
    if not MIN_PRICE_PER_KW <= price_per_kw <= MAX_PRICE_PER_KW:
        raise _bad_request(
            "Price per kW seems unrealistic. Typical solar projects cost between $1,000-$10,000 per kW"
        )


def ensure_project_visible(auth: AuthContext, project: Project) -> None:
    # Viewers only see projects they created.
    if auth.role == UserRole.VIEWER.value and project.created_by_id != auth.user_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )


def validate_range(minimum: Decimal | None, maximum: Decimal | None) -> None:
    if minimum is not None and maximum is not None and minimum > maximum:
        raise _bad_request("Minimum values must be less than or equal to maximum values")


class ProjectService:
    def __init__(
        self,
        projects: ProjectRepository,
        images: ProjectImageRepository,
        leads: CrmLeadRepository,
        storage: ImageStorage | None = None,
    ) -> None:
        self.projects = projects
        self.images = images
        self.leads = leads
        self.storage = storage or ImageStorage()

    async def _require_project(self, project_id: UUID) -> Project:
        project = await self.projects.get(project_id)
        if project is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Project not found",
            )
        return project

    async def _ensure_lead_available(self, crm_lead_id: UUID, *, current_project_id: UUID | None = None) -> None:
        if await self.leads.get(crm_lead_id) is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="CRM lead not found",
            )
        existing = await self.projects.get_by_crm_lead_id(crm_lead_id)
        if existing is not None and existing.id != current_project_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This CRM lead already has a project associated",
            )

    async def create_project(self, auth: AuthContext, **values: object) -> Project:
        validate_coordinates(values.get("latitude"), values.get("longitude"))
        validate_price_per_kw(values.get("estimated_kw"), values.get("estimated_price"))

        crm_lead_id = values.get("crm_lead_id")
        if crm_lead_id is not None:
            await self._ensure_lead_available(crm_lead_id)

        values.setdefault("status", ProjectStatus.PLANNING.value)
        project = await self.projects.create(created_by_id=auth.user_id, **values)
        logger.info("Created project %s", project.id)
        return project

    async def update_project(self, project_id: UUID, **values: object) -> Project:
        project = await self._require_project(project_id)

        latitude = values.get("latitude", project.latitude)
        longitude = values.get("longitude", project.longitude)
        validate_coordinates(latitude, longitude)
        if "estimated_kw" in values or "estimated_price" in values:
            validate_price_per_kw(
                values.get("estimated_kw", project.estimated_kw),
                values.get("estimated_price", project.estimated_price),
            )

        crm_lead_id = values.get("crm_lead_id")
        if crm_lead_id is not None and crm_lead_id != project.crm_lead_id:
            await self._ensure_lead_available(crm_lead_id, current_project_id=project.id)

        updated = await self.projects.update(project.id, **values)
        return updated or project

    async def get_project(self, auth: AuthContext, project_id: UUID) -> Project:
        project = await self._require_project(project_id)
        ensure_project_visible(auth, project)
        return project

    async def get_for_lead(self, crm_lead_id: UUID) -> Project | None:
        return await self.projects.get_by_crm_lead_id(crm_lead_id)

    async def list_projects(
        self,
        auth: AuthContext,
        filters: ProjectFilters,
        *,
        page: int = 1,
        limit: int = 20,
    ) -> Page[Project]:
        validate_range(filters.min_price, filters.max_price)
        validate_range(filters.min_kw, filters.max_kw)
        if auth.role == UserRole.VIEWER.value:
            filters.created_by_id = auth.user_id
        return await self.projects.list_projects(filters, page=page, limit=limit)

    async def delete_project(self, project_id: UUID) -> None:
        project = await self._require_project(project_id)
        images = await self.images.all_for_project(project.id)
        for image in images:
            await self.storage.remove(project.id, image.filename)
        await self.projects.delete(project.id)
        logger.info("Deleted project %s with %s images", project.id, len(images))


class ImageStorage:
    def __init__(self, root: Path | None = None) -> None:
        self.root = root or settings.upload_root()

    def project_dir(self, project_id: UUID) -> Path:
        return self.root / "projects" / str(project_id)

    @staticmethod
    def public_url(project_id: UUID, filename: str) -> str:
        return f"/uploads/projects/{project_id}/{filename}"

    def _write(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    async def save(self, project_id: UUID, filename: str, content: bytes) -> Path:
        path = self.project_dir(project_id) / filename
        await asyncio.to_thread(self._write, path, content)
        return path

    async def remove(self, project_id: UUID, filename: str) -> bool:
        path = self.project_dir(project_id) / filename
        try:
            await asyncio.to_thread(path.unlink)
        except OSError as exc:
            logger.warning("Failed to delete image file %s: %s", path, exc)
            return False
        return True


def _extension_for(original_name: str, mime_type: str) -> str:
    suffix = Path(original_name).suffix.lower()
    if suffix:
        return suffix
    return mimetypes.guess_extension(mime_type) or ""


class ProjectImageService:
    def __init__(
        self,
        projects: ProjectRepository,
        images: ProjectImageRepository,
        storage: ImageStorage | None = None,
    ) -> None:
        self.projects = projects
        self.images = images
        self.storage = storage or ImageStorage()

    async def _require_project(self, project_id: UUID) -> Project:
        project = await self.projects.get(project_id)
        if project is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Project not found",
            )
        return project

    async def _require_editable_image(self, auth: AuthContext, project_id: UUID, image_id: UUID) -> ProjectImage:
        image = await self.images.get_for_project(project_id, image_id)
        if image is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Image not found",
            )
        if image.uploaded_by_id != auth.user_id and auth.role not in IMAGE_MANAGER_ROLES:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to modify this image",
            )
        return image

    async def upload_image(
        self,
        auth: AuthContext,
        project_id: UUID,
        *,
        original_name: str,
        mime_type: str,
        content: bytes,
        category: str = ImageCategory.OTHER.value,
        title: str | None = None,
        description: str | None = None,
    ) -> ProjectImage:
        project = await self._require_project(project_id)

        if not content:
            raise _bad_request("File is empty")
        if len(content) > settings.max_upload_bytes:
            raise _bad_request("File size exceeds 10MB limit")
        if mime_type not in ALLOWED_IMAGE_TYPES:
            raise _bad_request(f"File type {mime_type} is not allowed")

        filename = f"{uuid4()}{_extension_for(original_name, mime_type)}"
        await self.storage.save(project.id, filename, content)
        order = await self.images.count_for_project(project.id)

        image = await self.images.create(
            project_id=project.id,
            filename=filename,
            original_name=original_name,
            url=self.storage.public_url(project.id, filename),
            mime_type=mime_type,
            size=len(content),
            category=category or ImageCategory.OTHER.value,
            title=title,
            description=description,
            order=order,
            uploaded_by_id=auth.user_id,
        )
        logger.info("Uploaded image %s to project %s", image.id, project.id)
        return image

    async def list_images(
        self,
        auth: AuthContext,
        project_id: UUID,
        *,
        category: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[ProjectImage]:
        project = await self._require_project(project_id)
        ensure_project_visible(auth, project)
        return await self.images.list_for_project(
            project.id,
            category=category,
            search=search,
            page=page,
            limit=limit,
        )

    async def update_image(self, auth: AuthContext, project_id: UUID, image_id: UUID, **values: object) -> ProjectImage:
        image = await self._require_editable_image(auth, project_id, image_id)
        updated = await self.images.update(image.id, **values)
        return updated or image

    async def delete_image(self, auth: AuthContext, project_id: UUID, image_id: UUID) -> None:
        image = await self._require_editable_image(auth, project_id, image_id)
        await self.images.delete(image.id)
        await self.storage.remove(project_id, image.filename)

    async def reorder_images(self, project_id: UUID, image_orders: list[tuple[UUID, int]]) -> list[ProjectImage]:
        project = await self._require_project(project_id)
        images = {image.id: image for image in await self.images.all_for_project(project.id)}

        unknown = [image_id for image_id, _ in image_orders if image_id not in images]
        if unknown:
            raise _bad_request("Some images do not belong to this project")

        for image_id, order in image_orders:
            await self.images.update(image_id, order=order)

        return sorted(images.values(), key=lambda image: image.order)
