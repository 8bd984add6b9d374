import logging
from supabase import Client
from app.config import settings
from app.core.dependencies import authorize_org_id_action, get_membership
from app.core.errors import BusinessRuleViolation, Conflict, InternalError, NotFound, ValidationFailed
from app.core.permissions import Action
from app.core.timestamps import utcnow_iso
from app.modules.projects.schemas import (
    ProjectCreate, ProjectUpdate, ProjectResponse,
    ProjectMemberAdd, ProjectMemberResponse
)
from typing import List, Optional, Dict, Any

logger = logging.getLogger(__name__)

PROJECT_ADMIN_ROLE_NAME = "Admin"


class ProjectService:
    def __init__(self, supabase: Client, max_projects: Optional[int] = None):
        self.supabase = supabase
        self.max_projects = max_projects if max_projects is not None else settings.max_projects_per_organization

    def _get_project_row(self, project_id: str) -> Dict[str, Any]:
        result = self.supabase.table("projects")\
            .select("*")\
            .eq("id", project_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFound("Project not found", code="PROJECT_NOT_FOUND")
        return result.data[0]

    def get_authorized_project(self, project_id: str, user_id: str, action: Action) -> Dict[str, Any]:
        """Fetch a project and check the caller may perform action in its organization"""
        project = self._get_project_row(project_id)
        authorize_org_id_action(project["organization_id"], user_id, action, self.supabase)
        return project

    def count_projects(self, organization_id: str) -> int:
        result = self.supabase.table("projects")\
            .select("id", count="exact")\
            .eq("organization_id", organization_id)\
            .execute()
        return result.count or 0

    def is_slug_available(self, organization_id: str, slug: str) -> bool:
        result = self.supabase.table("projects")\
            .select("id")\
            .eq("organization_id", organization_id)\
            .eq("slug", slug)\
            .limit(1)\
            .execute()
        return not result.data

    def get_project_role(self, name: str, organization_id: str) -> Optional[Dict[str, Any]]:
        """Role by name, preferring the organization's own role over the system one"""
        result = self.supabase.table("roles")\
            .select("*")\
            .eq("name", name)\
            .execute()
        roles = result.data or []
        for role in roles:
            if role.get("organization_id") == organization_id:
                return role
        for role in roles:
            if role.get("organization_id") is None:
                return role
        return None

    def create_project(self, user_id: str, project_data: ProjectCreate) -> ProjectResponse:
        """Create a project; the creator becomes its first member with the project admin role"""
        organization_id = str(project_data.organization_id)
        authorize_org_id_action(organization_id, user_id, Action.CREATE_PROJECT, self.supabase)

        if self.count_projects(organization_id) >= self.max_projects:
            raise Conflict(
                f"Organization has reached the maximum of {self.max_projects} projects",
                code="MAX_PROJECTS_REACHED"
            )

        if not self.is_slug_available(organization_id, project_data.slug):
            raise Conflict("A project with this slug already exists in the organization", code="SLUG_EXISTS")

        result = self.supabase.table("projects").insert({
            "organization_id": organization_id,
            "name": project_data.name,
            "slug": project_data.slug,
            "description": project_data.description,
            "status": project_data.status,
            "color": project_data.color,
            "icon": project_data.icon,
            "is_favorite": project_data.is_favorite,
            "settings": project_data.settings,
            "created_by": user_id
        }).execute()

        if not result.data:
            raise InternalError("Failed to create project")
        project = result.data[0]

        try:
            admin_role = self.get_project_role(PROJECT_ADMIN_ROLE_NAME, organization_id)
            if not admin_role:
                raise InternalError("Admin role not found for project member assignment")
            member_result = self.supabase.table("project_members").insert({
                "project_id": project["id"],
                "user_id": user_id,
                "role_id": admin_role["id"],
                "invited_by": user_id
            }).execute()
            if not member_result.data:
                raise InternalError("Failed to add creator as project member")
        except Exception as e:
            logger.error(f"Adding creator to project {project['id']} failed, rolling back: {e}")
            try:
                self.supabase.table("projects").delete().eq("id", project["id"]).execute()
            except Exception as rollback_error:
                logger.error(f"Rollback of project {project['id']} failed: {rollback_error}")
            raise InternalError("Failed to add creator as project member")

        logger.info(f"Project created: id={project['id']} organization={organization_id} user={user_id}")
        return ProjectResponse(**project)

    def list_projects(
        self,
        user_id: str,
        organization_id: str,
        status: Optional[str] = None,
        is_favorite: Optional[bool] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[ProjectResponse]:
        authorize_org_id_action(organization_id, user_id, Action.VIEW_PROJECT, self.supabase)

        query = self.supabase.table("projects")\
            .select("*")\
            .eq("organization_id", organization_id)
        if status:
            query = query.eq("status", status)
        if is_favorite is not None:
            query = query.eq("is_favorite", is_favorite)
        if search:
            query = query.ilike("name", f"%{search}%")

        result = query.order("created_at", desc=True)\
            .limit(limit)\
            .offset(offset)\
            .execute()
        return [ProjectResponse(**project) for project in result.data]

    def get_project(self, user_id: str, project_id: str) -> ProjectResponse:
        return ProjectResponse(**self.get_authorized_project(project_id, user_id, Action.VIEW_PROJECT))

    def get_project_by_slug(self, user_id: str, organization_id: str, slug: str) -> ProjectResponse:
        authorize_org_id_action(organization_id, user_id, Action.VIEW_PROJECT, self.supabase)
        result = self.supabase.table("projects")\
            .select("*")\
            .eq("organization_id", organization_id)\
            .eq("slug", slug.lower())\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFound("Project not found", code="PROJECT_NOT_FOUND")
        return ProjectResponse(**result.data[0])

    def update_project(self, user_id: str, project_id: str, project_data: ProjectUpdate) -> ProjectResponse:
        self.get_authorized_project(project_id, user_id, Action.UPDATE_PROJECT)

        update_data = project_data.model_dump(exclude_unset=True)
        if not update_data:
            raise ValidationFailed("No valid data provided for update")

        # Status changes through update keep archived_at consistent with archive/unarchive
        if update_data.get("status") == "archived":
            update_data["archived_at"] = utcnow_iso()
        elif "status" in update_data:
            update_data["archived_at"] = None

        update_data["updated_at"] = utcnow_iso()
        return self._update(project_id, update_data)

    def delete_project(self, user_id: str, project_id: str) -> bool:
        project = self.get_authorized_project(project_id, user_id, Action.DELETE_PROJECT)
        result = self.supabase.table("projects")\
            .delete()\
            .eq("id", project_id)\
            .execute()
        logger.info(f"Project deleted: id={project_id} organization={project['organization_id']} user={user_id}")
        return len(result.data) > 0

    def archive_project(self, user_id: str, project_id: str) -> ProjectResponse:
        project = self.get_authorized_project(project_id, user_id, Action.ARCHIVE_PROJECT)
        if project["status"] == "archived":
            raise Conflict("Project is already archived", code="ALREADY_ARCHIVED")
        return self._update(project_id, {
            "status": "archived",
            "archived_at": utcnow_iso(),
            "updated_at": utcnow_iso()
        })

    def unarchive_project(self, user_id: str, project_id: str) -> ProjectResponse:
        project = self.get_authorized_project(project_id, user_id, Action.ARCHIVE_PROJECT)
        if project["status"] != "archived":
            raise Conflict("Project is not archived", code="NOT_ARCHIVED")
        return self._update(project_id, {
            "status": "active",
            "archived_at": None,
            "updated_at": utcnow_iso()
        })

    def _update(self, project_id: str, update_data: Dict[str, Any]) -> ProjectResponse:
        result = self.supabase.table("projects")\
            .update(update_data)\
            .eq("id", project_id)\
            .execute()
        if not result.data:
            raise NotFound("Project not found", code="PROJECT_NOT_FOUND")
        return ProjectResponse(**result.data[0])

    # Project members

    def _get_project_member(self, project_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("project_members")\
            .select("*")\
            .eq("project_id", project_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return result.data[0] if result.data else None

    def _get_role_or_404(self, role_id: str) -> Dict[str, Any]:
        result = self.supabase.table("roles")\
            .select("*")\
            .eq("id", role_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise NotFound("Role not found", code="ROLE_NOT_FOUND")
        return result.data[0]

    def list_members(self, user_id: str, project_id: str) -> List[ProjectMemberResponse]:
        self.get_authorized_project(project_id, user_id, Action.VIEW_PROJECT)
        result = self.supabase.table("project_members")\
            .select("*")\
            .eq("project_id", project_id)\
            .order("joined_at")\
            .execute()
        return [ProjectMemberResponse(**member) for member in result.data]

    def add_member(self, user_id: str, project_id: str, member_data: ProjectMemberAdd) -> ProjectMemberResponse:
        project = self.get_authorized_project(project_id, user_id, Action.MANAGE_PROJECT_MEMBERS)
        new_user_id = str(member_data.user_id)
        role_id = str(member_data.role_id)

        if not get_membership(project["organization_id"], new_user_id, self.supabase):
            raise BusinessRuleViolation(
                "User must be a member of the organization first", code="USER_NOT_IN_ORGANIZATION"
            )
        self._get_role_or_404(role_id)

        if self._get_project_member(project_id, new_user_id):
            raise Conflict("User is already a member of this project", code="ALREADY_MEMBER")

        result = self.supabase.table("project_members").insert({
            "project_id": project_id,
            "user_id": new_user_id,
            "role_id": role_id,
            "invited_by": user_id
        }).execute()
        if not result.data:
            raise InternalError("Failed to add project member")

        logger.info(f"Project member added: project={project_id} member={new_user_id} by={user_id}")
        return ProjectMemberResponse(**result.data[0])

    def remove_member(self, user_id: str, project_id: str, member_user_id: str) -> bool:
        """Remove a project member; members may always remove themselves"""
        action = Action.VIEW_PROJECT if member_user_id == user_id else Action.MANAGE_PROJECT_MEMBERS
        self.get_authorized_project(project_id, user_id, action)

        if not self._get_project_member(project_id, member_user_id):
            raise NotFound("User is not a member of this project", code="MEMBER_NOT_FOUND")

        self.supabase.table("project_members")\
            .delete()\
            .eq("project_id", project_id)\
            .eq("user_id", member_user_id)\
            .execute()
        logger.info(f"Project member removed: project={project_id} member={member_user_id} by={user_id}")
        return True

    def update_member_role(self, user_id: str, project_id: str, member_user_id: str, role_id: str) -> ProjectMemberResponse:
        self.get_authorized_project(project_id, user_id, Action.MANAGE_PROJECT_MEMBERS)

        if not self._get_project_member(project_id, member_user_id):
            raise NotFound("User is not a member of this project", code="MEMBER_NOT_FOUND")
        self._get_role_or_404(role_id)

        result = self.supabase.table("project_members")\
            .update({"role_id": role_id})\
            .eq("project_id", project_id)\
            .eq("user_id", member_user_id)\
            .execute()
        if not result.data:
            raise NotFound("User is not a member of this project", code="MEMBER_NOT_FOUND")

        logger.info(f"Project member role changed: project={project_id} member={member_user_id} role={role_id} by={user_id}")
        return ProjectMemberResponse(**result.data[0])
