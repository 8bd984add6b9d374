from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase
from app.modules.projects.schemas import (
    ProjectCreate, ProjectUpdate, ProjectResponse, ProjectStatus,
    ProjectMemberAdd, ProjectMemberRoleUpdate, ProjectMemberResponse
)
from app.modules.projects.service import ProjectService
from app.modules.organizations.schemas import SuccessResponse
from app.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict, Optional
from uuid import UUID

router = APIRouter(prefix="/projects", tags=["projects"])


def get_project_service(supabase: Client = Depends(get_supabase)) -> ProjectService:
    return ProjectService(supabase)


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    project_data: ProjectCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    """Create a project in an organization the caller belongs to"""
    return service.create_project(current_user["id"], project_data)


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    organization_id: UUID,
    status: Optional[ProjectStatus] = None,
    is_favorite: Optional[bool] = None,
    search: Optional[str] = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    return service.list_projects(
        current_user["id"],
        str(organization_id),
        status=status,
        is_favorite=is_favorite,
        search=search,
        limit=limit,
        offset=offset
    )


@router.get("/slug/{organization_id}/{slug}", response_model=ProjectResponse)
async def get_project_by_slug(
    organization_id: UUID,
    slug: str,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    return service.get_project_by_slug(current_user["id"], str(organization_id), slug)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    return service.get_project(current_user["id"], str(project_id))


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    project_data: ProjectUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    return service.update_project(current_user["id"], str(project_id), project_data)


@router.delete("/{project_id}", response_model=SuccessResponse)
async def delete_project(
    project_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    """Delete a project (organization admin or owner)"""
    service.delete_project(current_user["id"], str(project_id))
    return SuccessResponse()


@router.post("/{project_id}/archive", response_model=ProjectResponse)
async def archive_project(
    project_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    return service.archive_project(current_user["id"], str(project_id))


@router.post("/{project_id}/unarchive", response_model=ProjectResponse)
async def unarchive_project(
    project_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    return service.unarchive_project(current_user["id"], str(project_id))


@router.get("/{project_id}/members", response_model=List[ProjectMemberResponse])
async def list_project_members(
    project_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    return service.list_members(current_user["id"], str(project_id))


@router.post("/{project_id}/members", response_model=ProjectMemberResponse, status_code=201)
async def add_project_member(
    project_id: UUID,
    member_data: ProjectMemberAdd,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    """Add an organization member to the project"""
    return service.add_member(current_user["id"], str(project_id), member_data)


@router.patch("/{project_id}/members/{member_id}", response_model=ProjectMemberResponse)
async def update_project_member_role(
    project_id: UUID,
    member_id: UUID,
    role_data: ProjectMemberRoleUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    return service.update_member_role(current_user["id"], str(project_id), str(member_id), str(role_data.role_id))


@router.delete("/{project_id}/members/{member_id}", response_model=SuccessResponse)
async def remove_project_member(
    project_id: UUID,
    member_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: ProjectService = Depends(get_project_service)
):
    """Remove a member from the project; members may remove themselves"""
    service.remove_member(current_user["id"], str(project_id), str(member_id))
    return SuccessResponse()
