from fastapi import APIRouter, Depends
from app.database.supabase_client import get_supabase
from app.modules.auth.schemas import (
    CurrentUserResponse, UserProfileCreate, UserProfileResponse, UserProfileUpdate
)
from app.modules.auth.service import ProfileService
from app.modules.organizations.service import OrganizationService
from app.core.dependencies import get_current_user_id
from app.config.permissions_config import get_permission_matrix
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user(
    current_user: Dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase),
):
    """Get current authenticated user, their organizations and the action matrix (for frontend UI)."""
    organizations = OrganizationService(supabase).list_user_organizations(current_user["id"])
    return {
        **current_user,
        "organizations": organizations,
        "permission_matrix": get_permission_matrix(),
    }


@router.get("/profile", response_model=UserProfileResponse)
async def get_profile(
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    return service.get_profile(current_user["id"])


@router.post("/profile", response_model=UserProfileResponse, status_code=201)
async def create_profile(
    profile_data: UserProfileCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Create the caller's profile; email defaults to the account email"""
    return service.create_profile(current_user["id"], current_user.get("email"), profile_data)


@router.put("/profile", response_model=UserProfileResponse)
async def update_profile(
    profile_data: UserProfileUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Change the caller's display name and/or avatar"""
    return service.update_profile(current_user["id"], profile_data)
