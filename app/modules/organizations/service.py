import logging
import secrets
import string
from supabase import Client
from postgrest.exceptions import APIError
from app.config import settings
from app.core.dependencies import (
    authorize_org_action, get_membership, get_member_role, get_organization_by_slug
)
from app.core.errors import (
    BusinessRuleViolation, Conflict, InternalError, NotFound, ValidationFailed, UNIQUE_VIOLATION
)
from app.core.permissions import Action, Role, describe_access, evaluate
from app.core.rate_limit import CreationThrottle
from app.core.timestamps import utcnow_iso
from app.modules.organizations.schemas import (
    OrganizationCreate, OrganizationUpdate, OrganizationResponse, OrganizationPublicResponse,
    OrganizationDetailsResponse, OrganizationJoin, OrganizationMemberResponse,
    OrganizationStatsResponse, UserOrganizationResponse, InviteCodeResponse
)
from typing import List, Optional

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = string.ascii_uppercase + string.digits
INVITE_CODE_LENGTH = 8


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


class OrganizationService:
    def __init__(self, supabase: Client, admin_supabase: Optional[Client] = None):
        self.supabase = supabase
        self.admin_supabase = admin_supabase or supabase

    def is_slug_available(self, slug: str) -> bool:
        result = self.supabase.table("organizations")\
            .select("id")\
            .eq("slug", slug)\
            .limit(1)\
            .execute()
        return not result.data

    def create_organization(
        self,
        org_data: OrganizationCreate,
        user_id: str,
        throttle: Optional[CreationThrottle] = None
    ) -> OrganizationResponse:
        """Create an organization and its owner membership; no organization survives without its owner row.

        The creation quota is only charged once the request has passed the slug check.
        """
        if not self.is_slug_available(org_data.slug):
            raise Conflict("Organization identifier already exists", code="SLUG_EXISTS")
        if throttle is not None:
            throttle.check(user_id)

        result = self.supabase.table("organizations").insert({
            "name": org_data.name,
            "slug": org_data.slug,
            "description": org_data.description,
            "invite_code": generate_invite_code(),
            "created_by": user_id
        }).execute()

        if not result.data:
            raise InternalError("Failed to create organization")
        organization = result.data[0]

        try:
            member_result = self.admin_supabase.table("organization_members").insert({
                "organization_id": organization["id"],
                "user_id": user_id,
                "role": Role.OWNER.value
            }).execute()
            if not member_result.data:
                raise InternalError("Failed to add owner membership")
        except Exception as e:
            logger.error(f"Owner membership insert failed for organization {organization['id']}, rolling back: {e}")
            try:
                self.admin_supabase.table("organizations")\
                    .delete()\
                    .eq("id", organization["id"])\
                    .execute()
            except Exception as rollback_error:
                logger.error(f"Rollback of organization {organization['id']} failed: {rollback_error}")
            raise InternalError("Failed to create organization")

        logger.info(f"Organization created: id={organization['id']} slug={organization['slug']} user={user_id}")
        return OrganizationResponse(**organization)

    def get_details(self, slug: str, user_id: str) -> OrganizationDetailsResponse:
        """Organization plus the caller's role and capability flags"""
        organization = get_organization_by_slug(slug, self.supabase)
        role = authorize_org_action(organization, user_id, Action.VIEW_ORG, self.supabase)
        is_creator = organization["created_by"] == user_id

        can_invite = evaluate(Action.INVITE_MEMBER, role, is_creator=is_creator) is None
        return OrganizationDetailsResponse(
            organization=OrganizationPublicResponse(**organization),
            invite_code=organization["invite_code"] if can_invite else None,
            userRole=role.value,
            **describe_access(role, is_creator)
        )

    def list_user_organizations(self, user_id: str) -> List[UserOrganizationResponse]:
        """Organizations the user belongs to, with the user's role in each"""
        members_result = self.supabase.table("organization_members")\
            .select("organization_id, role, joined_at")\
            .eq("user_id", user_id)\
            .execute()
        if not members_result.data:
            return []

        memberships = {m["organization_id"]: m for m in members_result.data}
        orgs_result = self.supabase.table("organizations")\
            .select("*")\
            .in_("id", list(memberships.keys()))\
            .order("created_at", desc=True)\
            .execute()

        return [
            UserOrganizationResponse(
                id=org["id"],
                name=org["name"],
                slug=org["slug"],
                description=org.get("description"),
                role=memberships[org["id"]]["role"],
                joined_at=memberships[org["id"]].get("joined_at")
            )
            for org in orgs_result.data or []
        ]

    def get_stats(self, slug: str, user_id: str) -> OrganizationStatsResponse:
        organization = get_organization_by_slug(slug, self.supabase)
        authorize_org_action(organization, user_id, Action.VIEW_STATS, self.supabase)

        members_result = self.supabase.table("organization_members")\
            .select("id", count="exact")\
            .eq("organization_id", organization["id"])\
            .execute()
        projects_result = self.supabase.table("projects")\
            .select("id", count="exact")\
            .eq("organization_id", organization["id"])\
            .execute()

        member_count = members_result.count or 0
        # No activity tracking yet: every member counts as active
        return OrganizationStatsResponse(
            member_count=member_count,
            project_count=projects_result.count or 0,
            active_members_count=member_count
        )

    def update_organization(self, slug: str, user_id: str, org_data: OrganizationUpdate) -> OrganizationResponse:
        """Update name and/or description (admin or owner)"""
        if org_data.slug is not None:
            raise BusinessRuleViolation("Slug cannot be modified", code="SLUG_IMMUTABLE")

        organization = get_organization_by_slug(slug, self.supabase)
        authorize_org_action(organization, user_id, Action.UPDATE_ORG, self.supabase)

        update_data = {}
        if org_data.name:
            update_data["name"] = org_data.name
        if org_data.description is not None:
            update_data["description"] = org_data.description or None

        if not update_data:
            raise ValidationFailed("No valid data provided for update")

        update_data["updated_at"] = utcnow_iso()
        result = self.supabase.table("organizations")\
            .update(update_data)\
            .eq("id", organization["id"])\
            .execute()

        if not result.data:
            raise NotFound("Organization not found", code="ORGANIZATION_NOT_FOUND")

        logger.info(f"Organization updated: id={organization['id']} user={user_id} fields={sorted(update_data)}")
        return OrganizationResponse(**result.data[0])

    def delete_organization(self, slug: str, user_id: str, confirmation_name: str) -> None:
        """Delete an organization; only its creator may, after typing its exact name.

        Memberships, projects and everything below them go with it through the
        foreign key cascades, in the same statement.
        """
        organization = get_organization_by_slug(slug, self.supabase)
        authorize_org_action(organization, user_id, Action.DELETE_ORG, self.supabase)

        if confirmation_name != organization["name"]:
            raise BusinessRuleViolation(
                "Confirmation name does not match. Organization name must match exactly.",
                code="CONFIRMATION_MISMATCH"
            )

        result = self.supabase.table("organizations")\
            .delete()\
            .eq("id", organization["id"])\
            .execute()

        # Zero rows means the delete was filtered out (RLS) and nothing changed
        if not result.data:
            raise InternalError("Failed to delete organization", code="ORGANIZATION_DELETE_FAILED")

        logger.info(f"Organization deleted: id={organization['id']} slug={slug} user={user_id}")

    def regenerate_invite_code(self, slug: str, user_id: str) -> InviteCodeResponse:
        """Replace the invite code (owner only); retries when the random code collides"""
        organization = get_organization_by_slug(slug, self.supabase)
        authorize_org_action(organization, user_id, Action.REGENERATE_INVITE_CODE, self.supabase)

        for attempt in range(settings.invite_code_max_attempts):
            candidate = generate_invite_code()
            try:
                result = self.supabase.table("organizations")\
                    .update({"invite_code": candidate, "updated_at": utcnow_iso()})\
                    .eq("id", organization["id"])\
                    .execute()
            except APIError as e:
                if e.code == UNIQUE_VIOLATION:
                    logger.warning(f"Invite code collision on attempt {attempt + 1} for organization {organization['id']}")
                    continue
                raise
            if not result.data:
                raise NotFound("Organization not found", code="ORGANIZATION_NOT_FOUND")
            logger.info(f"Invite code regenerated: organization={organization['id']} user={user_id}")
            return InviteCodeResponse(invite_code=result.data[0]["invite_code"])

        raise InternalError(
            "Could not generate unique invite code. Please try again.",
            code="CODE_GENERATION_FAILED"
        )

    def join_organization(self, join_data: OrganizationJoin, user_id: str) -> OrganizationMemberResponse:
        """Join by slug + invite code; a wrong code is reported exactly like an unknown slug"""
        result = self.supabase.table("organizations")\
            .select("*")\
            .eq("slug", join_data.slug)\
            .eq("invite_code", join_data.invite_code)\
            .limit(1)\
            .execute()

        if not result.data:
            raise NotFound("Organization not found or invalid invite code", code="INVALID_INVITE")
        organization = result.data[0]

        if get_membership(organization["id"], user_id, self.supabase):
            raise Conflict("User is already a member of this organization", code="ALREADY_MEMBER")

        member_result = self.supabase.table("organization_members").insert({
            "organization_id": organization["id"],
            "user_id": user_id,
            "role": Role.MEMBER.value
        }).execute()

        if not member_result.data:
            raise InternalError("Failed to join organization")

        logger.info(f"User joined organization: organization={organization['id']} user={user_id}")
        return OrganizationMemberResponse(**member_result.data[0])

    def leave_organization(self, slug: str, user_id: str) -> bool:
        organization = get_organization_by_slug(slug, self.supabase)
        if get_member_role(organization["id"], user_id, self.supabase) is None:
            raise NotFound("You are not a member of this organization", code="NOT_MEMBER")

        authorize_org_action(organization, user_id, Action.LEAVE_ORG, self.supabase)
        self._delete_membership(organization["id"], user_id)
        logger.info(f"User left organization: organization={organization['id']} user={user_id}")
        return True

    def list_members(self, slug: str, user_id: str, limit: int = 50, offset: int = 0) -> List[OrganizationMemberResponse]:
        organization = get_organization_by_slug(slug, self.supabase)
        authorize_org_action(organization, user_id, Action.VIEW_MEMBERS, self.supabase)

        result = self.supabase.table("organization_members")\
            .select("*")\
            .eq("organization_id", organization["id"])\
            .order("joined_at")\
            .limit(limit)\
            .offset(offset)\
            .execute()
        return [OrganizationMemberResponse(**member) for member in result.data]

    def remove_member(self, slug: str, user_id: str, member_user_id: str) -> bool:
        """Remove another member (admin or owner); removing yourself is a leave"""
        if member_user_id == user_id:
            return self.leave_organization(slug, user_id)

        organization = get_organization_by_slug(slug, self.supabase)
        # Caller membership is checked before revealing whether the target exists
        authorize_org_action(organization, user_id, Action.REMOVE_MEMBER, self.supabase)

        target = get_membership(organization["id"], member_user_id, self.supabase)
        if not target:
            raise NotFound("Member not found", code="MEMBER_NOT_FOUND")

        authorize_org_action(
            organization, user_id, Action.REMOVE_MEMBER, self.supabase, target_membership=target
        )
        self._delete_membership(organization["id"], member_user_id)
        logger.info(
            f"Member removed: organization={organization['id']} member={member_user_id} by={user_id}"
        )
        return True

    def update_member_role(self, slug: str, user_id: str, member_user_id: str, role: str) -> OrganizationMemberResponse:
        """Promote or demote a member between admin and member"""
        organization = get_organization_by_slug(slug, self.supabase)
        authorize_org_action(organization, user_id, Action.UPDATE_MEMBER_ROLE, self.supabase)

        target = get_membership(organization["id"], member_user_id, self.supabase)
        if not target:
            raise NotFound("Member not found", code="MEMBER_NOT_FOUND")

        new_role = Role(role)
        if target["role"] == new_role.value:
            return OrganizationMemberResponse(**target)

        authorize_org_action(
            organization, user_id, Action.UPDATE_MEMBER_ROLE, self.supabase, target_membership=target
        )

        result = self.supabase.table("organization_members")\
            .update({"role": new_role.value})\
            .eq("organization_id", organization["id"])\
            .eq("user_id", member_user_id)\
            .execute()
        if not result.data:
            raise NotFound("Member not found", code="MEMBER_NOT_FOUND")

        logger.info(
            f"Member role changed: organization={organization['id']} member={member_user_id} "
            f"{target['role']}->{new_role.value} by={user_id}"
        )
        return OrganizationMemberResponse(**result.data[0])

    def _delete_membership(self, organization_id: str, user_id: str) -> None:
        self.supabase.table("organization_members")\
            .delete()\
            .eq("organization_id", organization_id)\
            .eq("user_id", user_id)\
            .execute()
