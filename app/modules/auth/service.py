import logging
from postgrest.exceptions import APIError
from supabase import Client
from typing import Dict, Any, Optional

from app.core.errors import Conflict, InternalError, NotFound, Unauthorized, ValidationFailed, UNIQUE_VIOLATION
from app.core.timestamps import utcnow_iso
from app.modules.auth.schemas import UserProfileCreate, UserProfileResponse, UserProfileUpdate

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve a Supabase access token to the user it belongs to."""
        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise Unauthorized("Invalid or expired token")
            logger.error(f"Supabase auth lookup failed: {e}")
            raise Unauthorized("Authentication failed")

        if not user_response or not user_response.user:
            raise Unauthorized("Invalid or expired token")

        user = user_response.user
        return {
            "id": user.id,
            "email": user.email,
            "user_metadata": user.user_metadata or {},
            "app_metadata": user.app_metadata or {},
            "created_at": user.created_at,
            "updated_at": user.updated_at
        }


class ProfileService:
    """Display profile (user_profiles) of the signed-in user; a user only ever touches their own row"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_profile_row(self, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("user_profiles")\
            .select("*")\
            .eq("id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def get_profile(self, user_id: str) -> UserProfileResponse:
        profile = self._get_profile_row(user_id)
        if profile is None:
            raise NotFound("Profile not found", code="PROFILE_NOT_FOUND")
        return UserProfileResponse(**profile)

    def create_profile(self, user_id: str, account_email: Optional[str], profile_data: UserProfileCreate) -> UserProfileResponse:
        email = profile_data.email or account_email
        if not email:
            raise ValidationFailed("Email is required")

        try:
            result = self.supabase.table("user_profiles").insert({
                "id": user_id,
                "email": email,
                "name": profile_data.name,
                "avatar_url": str(profile_data.avatar_url) if profile_data.avatar_url else None
            }).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                if "email" in (e.message or ""):
                    raise Conflict("Email already exists", code="EMAIL_EXISTS")
                raise Conflict("User profile already exists", code="PROFILE_EXISTS")
            raise

        if not result.data:
            raise InternalError("Could not create user profile")

        logger.info(f"Profile created: user={user_id}")
        return UserProfileResponse(**result.data[0])

    def update_profile(self, user_id: str, profile_data: UserProfileUpdate) -> UserProfileResponse:
        update_data = profile_data.model_dump(mode="json", exclude_unset=True)
        if not update_data:
            raise ValidationFailed("No valid data provided for update")
        if self._get_profile_row(user_id) is None:
            raise NotFound("Profile not found", code="PROFILE_NOT_FOUND")

        update_data["updated_at"] = utcnow_iso()
        result = self.supabase.table("user_profiles")\
            .update(update_data)\
            .eq("id", user_id)\
            .execute()
        if not result.data:
            raise NotFound("Profile not found", code="PROFILE_NOT_FOUND")

        logger.info(f"Profile updated: user={user_id} fields={sorted(update_data)}")
        return UserProfileResponse(**result.data[0])
