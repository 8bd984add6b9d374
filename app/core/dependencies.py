"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.database.supabase_client import extract_access_token, get_supabase
from app.modules.auth.service import AuthService
from app.core.errors import Forbidden, BusinessRuleViolation, NotFound, Unauthorized
from app.core.permissions import Action, Denial, Role, evaluate, needs_admin_count
from supabase import Client
from typing import Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

DENIAL_MESSAGES = {
    Denial.NOT_MEMBER: "You are not a member of this organization",
    Denial.FORBIDDEN: "Insufficient permissions",
    Denial.OWNER_ONLY: "Only the organization owner can perform this action",
    Denial.LAST_ADMIN: "Cannot proceed: this would leave the organization without an administrator",
    Denial.OWNER_CANNOT_LEAVE: "The owner cannot leave the organization. Transfer ownership or delete the organization instead",
    Denial.CANNOT_REMOVE_OWNER: "The organization owner cannot be removed or demoted",
}


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from the bearer token or the session cookie"""
    token = credentials.credentials if credentials else extract_access_token(request)
    if not token:
        raise Unauthorized("Authentication required")
    return auth_service.get_current_user(token)


def get_membership(organization_id: str, user_id: str, supabase: Client) -> Optional[Dict[str, Any]]:
    """Return the caller's organization_members row, or None when not a member"""
    result = supabase.table("organization_members")\
        .select("*")\
        .eq("organization_id", organization_id)\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    return result.data[0] if result.data else None


def get_member_role(organization_id: str, user_id: str, supabase: Client) -> Optional[Role]:
    membership = get_membership(organization_id, user_id, supabase)
    return Role(membership["role"]) if membership else None


def count_admins(organization_id: str, supabase: Client) -> int:
    """Number of admin-or-owner memberships in the organization"""
    result = supabase.table("organization_members")\
        .select("user_id")\
        .eq("organization_id", organization_id)\
        .in_("role", [Role.OWNER.value, Role.ADMIN.value])\
        .execute()
    return len(result.data or [])


def get_organization_by_slug(slug: str, supabase: Client) -> Dict[str, Any]:
    result = supabase.table("organizations")\
        .select("*")\
        .eq("slug", slug)\
        .limit(1)\
        .execute()
    if not result.data:
        raise NotFound("Organization not found", code="ORGANIZATION_NOT_FOUND")
    return result.data[0]


def get_organization_by_id(organization_id: str, supabase: Client) -> Dict[str, Any]:
    result = supabase.table("organizations")\
        .select("*")\
        .eq("id", organization_id)\
        .limit(1)\
        .execute()
    if not result.data:
        raise NotFound("Organization not found", code="ORGANIZATION_NOT_FOUND")
    return result.data[0]


def raise_for_denial(denial: Denial) -> None:
    message = DENIAL_MESSAGES[denial]
    if denial in (Denial.NOT_MEMBER, Denial.FORBIDDEN, Denial.OWNER_ONLY):
        raise Forbidden(message, code=denial.value)
    raise BusinessRuleViolation(message, code=denial.value)


def authorize_org_action(
    organization: Dict[str, Any],
    user_id: str,
    action: Action,
    supabase: Client,
    target_membership: Optional[Dict[str, Any]] = None
) -> Role:
    """Look up the caller's membership and apply the permission rule; return the caller's role.

    The membership is read fresh for every call. A role change landing between this
    check and the caller's mutation is not detected.
    """
    organization_id = organization["id"]
    role = get_member_role(organization_id, user_id, supabase)
    admin_count = count_admins(organization_id, supabase) if role and needs_admin_count(action) else None

    target_role = None
    target_is_creator = False
    if target_membership is not None:
        target_role = Role(target_membership["role"])
        target_is_creator = target_membership["user_id"] == organization["created_by"]

    denial = evaluate(
        action,
        role,
        is_creator=organization["created_by"] == user_id,
        admin_count=admin_count,
        target_role=target_role,
        target_is_creator=target_is_creator,
    )
    if denial is not None:
        logger.info(f"Denied {action.value} on organization {organization_id} for user {user_id}: {denial.value}")
        raise_for_denial(denial)
    return role


def authorize_org_id_action(organization_id: str, user_id: str, action: Action, supabase: Client) -> Role:
    """Same as authorize_org_action for callers that only hold the organization id (projects, boards)"""
    organization = get_organization_by_id(organization_id, supabase)
    return authorize_org_action(organization, user_id, action, supabase)
