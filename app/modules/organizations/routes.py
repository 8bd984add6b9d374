from fastapi import APIRouter, Depends, Query
from app.database.supabase_client import get_supabase, get_service_supabase
from app.modules.organizations.schemas import (
    OrganizationCreate, OrganizationUpdate, OrganizationResponse, OrganizationDetailsResponse,
    OrganizationDeleteConfirmation, OrganizationJoin, OrganizationMemberResponse,
    OrganizationStatsResponse, UserOrganizationResponse, InviteCodeResponse,
    MemberRoleUpdate, SuccessResponse
)
from app.modules.organizations.service import OrganizationService
from app.core.dependencies import get_current_user_id
from app.core.rate_limit import CreationThrottle, get_creation_throttle
from supabase import Client
from typing import List, Dict
from uuid import UUID

router = APIRouter(prefix="/organizations", tags=["organizations"])


def get_organization_service(
    supabase: Client = Depends(get_supabase),
    admin_supabase: Client = Depends(get_service_supabase)
) -> OrganizationService:
    return OrganizationService(supabase, admin_supabase)


@router.post("", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    org_data: OrganizationCreate,
    current_user: Dict = Depends(get_current_user_id),
    throttle: CreationThrottle = Depends(get_creation_throttle),
    service: OrganizationService = Depends(get_organization_service)
):
    """Create an organization; the caller becomes its owner"""
    return service.create_organization(org_data, current_user["id"], throttle)


@router.get("/me", response_model=List[UserOrganizationResponse])
async def list_my_organizations(
    current_user: Dict = Depends(get_current_user_id),
    service: OrganizationService = Depends(get_organization_service)
):
    """List organizations the caller belongs to"""
    return service.list_user_organizations(current_user["id"])


@router.post("/join", response_model=OrganizationMemberResponse, status_code=201)
async def join_organization(
    join_data: OrganizationJoin,
    current_user: Dict = Depends(get_current_user_id),
    service: OrganizationService = Depends(get_organization_service)
):
    """Join an organization with its slug and invite code"""
    return service.join_organization(join_data, current_user["id"])


@router.get("/{slug}/details", response_model=OrganizationDetailsResponse)
async def get_organization_details(
    slug: str,
    current_user: Dict = Depends(get_current_user_id),
    service: OrganizationService = Depends(get_organization_service)
):
    """Organization details and the caller's permissions (members only)"""
    return service.get_details(slug, current_user["id"])


@router.get("/{slug}/stats", response_model=OrganizationStatsResponse)
async def get_organization_stats(
    slug: str,
    current_user: Dict = Depends(get_current_user_id),
    service: OrganizationService = Depends(get_organization_service)
):
    return service.get_stats(slug, current_user["id"])


@router.patch("/{slug}/update", response_model=OrganizationResponse)
async def update_organization(
    slug: str,
    org_data: OrganizationUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: OrganizationService = Depends(get_organization_service)
):
    """Update name/description (requires admin or owner)"""
    return service.update_organization(slug, current_user["id"], org_data)


@router.delete("/{slug}/delete", response_model=SuccessResponse)
async def delete_organization(
    slug: str,
    confirmation: OrganizationDeleteConfirmation,
    current_user: Dict = Depends(get_current_user_id),
    service: OrganizationService = Depends(get_organization_service)
):
    """Delete the organization (owner only, body must repeat the exact name)"""
    service.delete_organization(slug, current_user["id"], confirmation.name)
    return SuccessResponse()


@router.post("/{slug}/invite-code", response_model=InviteCodeResponse)
async def regenerate_invite_code(
    slug: str,
    current_user: Dict = Depends(get_current_user_id),
    service: OrganizationService = Depends(get_organization_service)
):
    """Issue a new invite code; the previous one stops working (owner only)"""
    return service.regenerate_invite_code(slug, current_user["id"])


@router.post("/{slug}/leave", response_model=SuccessResponse)
async def leave_organization(
    slug: str,
    current_user: Dict = Depends(get_current_user_id),
    service: OrganizationService = Depends(get_organization_service)
):
    service.leave_organization(slug, current_user["id"])
    return SuccessResponse()


@router.get("/{slug}/members", response_model=List[OrganizationMemberResponse])
async def list_members(
    slug: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: Dict = Depends(get_current_user_id),
    service: OrganizationService = Depends(get_organization_service)
):
    """List members of the organization (members only)"""
    return service.list_members(slug, current_user["id"], limit=limit, offset=offset)


@router.patch("/{slug}/members/{member_id}", response_model=OrganizationMemberResponse)
async def update_member_role(
    slug: str,
    member_id: UUID,
    role_data: MemberRoleUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: OrganizationService = Depends(get_organization_service)
):
    """Promote or demote a member (admin or owner)"""
    return service.update_member_role(slug, current_user["id"], str(member_id), role_data.role)


@router.delete("/{slug}/members/{member_id}", response_model=SuccessResponse)
async def remove_member(
    slug: str,
    member_id: UUID,
    current_user: Dict = Depends(get_current_user_id),
    service: OrganizationService = Depends(get_organization_service)
):
    """Remove a member from the organization (admin or owner)"""
    service.remove_member(slug, current_user["id"], str(member_id))
    return SuccessResponse()
