"""Project CRUD, archive state transitions and project membership."""

import pytest

from app.core.errors import Conflict
from app.modules.projects.schemas import ProjectCreate
from app.modules.projects.service import ProjectService


async def test_create_project_adds_creator_as_admin_member(client, fake_db, project, owner):
    assert project["status"] == "active"
    assert project["created_by"] == owner.id

    admin_role = next(r for r in fake_db.tables["roles"] if r["name"] == "Admin")
    members = fake_db.rows("project_members", project_id=project["id"])
    assert len(members) == 1
    assert members[0]["user_id"] == owner.id
    assert members[0]["role_id"] == admin_role["id"]


async def test_create_prefers_organization_admin_role(client, fake_db, org, owner):
    fake_db.tables["roles"].append({"id": "org-admin-role", "name": "Admin", "organization_id": org["id"]})
    resp = await client.post(
        "/api/projects",
        headers=owner.headers,
        json={"organization_id": org["id"], "name": "Docs", "slug": "docs"},
    )
    assert resp.status_code == 201
    assert fake_db.rows("project_members", project_id=resp.json()["id"])[0]["role_id"] == "org-admin-role"


async def test_member_can_create_project(client, org, joined_member):
    resp = await client.post(
        "/api/projects",
        headers=joined_member.headers,
        json={"organization_id": org["id"], "name": "Mobile App", "slug": "  Mobile-App "},
    )
    assert resp.status_code == 201
    assert resp.json()["slug"] == "mobile-app"


async def test_non_member_cannot_create_project(client, org, outsider):
    resp = await client.post(
        "/api/projects",
        headers=outsider.headers,
        json={"organization_id": org["id"], "name": "Intrusion", "slug": "intrusion"},
    )
    assert resp.status_code == 403


async def test_slug_unique_per_organization_only(client, project, org, owner, make_user):
    dup = await client.post(
        "/api/projects",
        headers=owner.headers,
        json={"organization_id": org["id"], "name": "Website 2", "slug": "website"},
    )
    assert dup.status_code == 409
    assert dup.json()["error"]["code"] == "SLUG_EXISTS"

    other_owner = make_user("other@globex.test")
    other_org = await client.post(
        "/api/organizations", headers=other_owner.headers, json={"name": "Globex", "slug": "globex"}
    )
    resp = await client.post(
        "/api/projects",
        headers=other_owner.headers,
        json={"organization_id": other_org.json()["id"], "name": "Website", "slug": "website"},
    )
    assert resp.status_code == 201


async def test_project_ceiling(fake_db, org, owner):
    service = ProjectService(fake_db, max_projects=1)
    service.create_project(owner.id, ProjectCreate(organization_id=org["id"], name="First", slug="first"))
    with pytest.raises(Conflict) as exc_info:
        service.create_project(owner.id, ProjectCreate(organization_id=org["id"], name="Second", slug="second"))
    assert exc_info.value.code == "MAX_PROJECTS_REACHED"


async def test_create_rolls_back_when_member_insert_fails(client, fake_db, org, owner):
    fake_db.fail("project_members", "insert")
    resp = await client.post(
        "/api/projects",
        headers=owner.headers,
        json={"organization_id": org["id"], "name": "Website", "slug": "website"},
    )
    assert resp.status_code == 500
    assert fake_db.rows("projects", slug="website") == []


@pytest.mark.parametrize("payload", [
    {"name": "X", "slug": "ok"},
    {"name": "Valid", "slug": "bad slug!"},
    {"name": "Valid", "slug": "ok", "color": "red"},
    {"name": "Valid", "slug": "ok", "status": "deleted"},
    {"name": "Valid", "slug": "ok", "description": "x" * 1001},
])
async def test_create_validation(client, org, owner, payload):
    resp = await client.post(
        "/api/projects", headers=owner.headers, json={"organization_id": org["id"], **payload}
    )
    assert resp.status_code == 400


async def test_list_filters_and_search(client, org, owner, project):
    await client.post(
        "/api/projects",
        headers=owner.headers,
        json={"organization_id": org["id"], "name": "Backend API", "slug": "backend", "is_favorite": True},
    )

    resp = await client.get(f"/api/projects?organization_id={org['id']}", headers=owner.headers)
    assert resp.status_code == 200
    assert {p["slug"] for p in resp.json()} == {"website", "backend"}

    resp = await client.get(
        f"/api/projects?organization_id={org['id']}&is_favorite=true", headers=owner.headers
    )
    assert [p["slug"] for p in resp.json()] == ["backend"]

    resp = await client.get(f"/api/projects?organization_id={org['id']}&search=web", headers=owner.headers)
    assert [p["slug"] for p in resp.json()] == ["website"]


async def test_list_requires_membership(client, org, outsider):
    resp = await client.get(f"/api/projects?organization_id={org['id']}", headers=outsider.headers)
    assert resp.status_code == 403


async def test_get_by_id_and_slug(client, org, owner, project):
    resp = await client.get(f"/api/projects/{project['id']}", headers=owner.headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Website"

    resp = await client.get(f"/api/projects/slug/{org['id']}/website", headers=owner.headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == project["id"]


async def test_get_unknown_project_is_404(client, owner):
    resp = await client.get("/api/projects/00000000-0000-0000-0000-000000000000", headers=owner.headers)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "PROJECT_NOT_FOUND"


async def test_get_malformed_id_is_400(client, owner):
    resp = await client.get("/api/projects/not-a-uuid", headers=owner.headers)
    assert resp.status_code == 400


async def test_update_project(client, owner, project):
    resp = await client.patch(
        f"/api/projects/{project['id']}",
        headers=owner.headers,
        json={"name": "Website v2", "color": "#112233", "is_favorite": True},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Website v2"
    assert body["color"] == "#112233"
    assert body["is_favorite"] is True


@pytest.mark.parametrize("payload", [
    {"name": None},
    {"status": None},
    {"is_favorite": None},
    {"name": "  a  "},
])
async def test_update_rejects_null_and_short_names(client, fake_db, owner, project, payload):
    resp = await client.patch(f"/api/projects/{project['id']}", headers=owner.headers, json=payload)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
    stored = fake_db.rows("projects", id=project["id"])[0]
    assert (stored["name"], stored["status"]) == ("Website", "active")


async def test_update_can_clear_optional_fields(client, owner, project):
    resp = await client.patch(
        f"/api/projects/{project['id']}", headers=owner.headers, json={"description": None, "color": None}
    )
    assert resp.status_code == 200
    assert resp.json()["description"] is None


async def test_update_rejects_unknown_fields(client, owner, project):
    resp = await client.patch(
        f"/api/projects/{project['id']}", headers=owner.headers, json={"organization_id": "x"}
    )
    assert resp.status_code == 400


async def test_member_cannot_delete_project(client, joined_member, project):
    resp = await client.delete(f"/api/projects/{project['id']}", headers=joined_member.headers)
    assert resp.status_code == 403


async def test_owner_deletes_project(client, fake_db, owner, project):
    resp = await client.delete(f"/api/projects/{project['id']}", headers=owner.headers)
    assert resp.status_code == 200
    assert fake_db.rows("projects", id=project["id"]) == []
    assert fake_db.rows("project_members", project_id=project["id"]) == []


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------

async def test_archive_twice_conflicts(client, owner, project):
    first = await client.post(f"/api/projects/{project['id']}/archive", headers=owner.headers)
    assert first.status_code == 200
    assert first.json()["status"] == "archived"
    assert first.json()["archived_at"] is not None

    second = await client.post(f"/api/projects/{project['id']}/archive", headers=owner.headers)
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "ALREADY_ARCHIVED"


async def test_unarchive_non_archived_conflicts(client, owner, project):
    resp = await client.post(f"/api/projects/{project['id']}/unarchive", headers=owner.headers)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "NOT_ARCHIVED"


async def test_archive_then_unarchive(client, owner, project):
    await client.post(f"/api/projects/{project['id']}/archive", headers=owner.headers)
    resp = await client.post(f"/api/projects/{project['id']}/unarchive", headers=owner.headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "active"
    assert resp.json()["archived_at"] is None


# ---------------------------------------------------------------------------
# Project members
# ---------------------------------------------------------------------------

def _role_id(fake_db, name):
    return next(r["id"] for r in fake_db.tables["roles"] if r["name"] == name)


async def test_add_org_member_to_project(client, fake_db, owner, joined_member, project):
    resp = await client.post(
        f"/api/projects/{project['id']}/members",
        headers=owner.headers,
        json={"user_id": joined_member.id, "role_id": _role_id(fake_db, "Member")},
    )
    assert resp.status_code == 201
    assert resp.json()["invited_by"] == owner.id

    listed = await client.get(f"/api/projects/{project['id']}/members", headers=owner.headers)
    assert {m["user_id"] for m in listed.json()} == {owner.id, joined_member.id}


async def test_add_member_outside_organization(client, fake_db, owner, outsider, project):
    resp = await client.post(
        f"/api/projects/{project['id']}/members",
        headers=owner.headers,
        json={"user_id": outsider.id, "role_id": _role_id(fake_db, "Member")},
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "USER_NOT_IN_ORGANIZATION"


async def test_add_member_unknown_role(client, owner, joined_member, project):
    resp = await client.post(
        f"/api/projects/{project['id']}/members",
        headers=owner.headers,
        json={"user_id": joined_member.id, "role_id": "00000000-0000-0000-0000-000000000000"},
    )
    assert resp.status_code == 404


async def test_add_member_twice_conflicts(client, fake_db, owner, project):
    resp = await client.post(
        f"/api/projects/{project['id']}/members",
        headers=owner.headers,
        json={"user_id": owner.id, "role_id": _role_id(fake_db, "Member")},
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "ALREADY_MEMBER"


async def test_plain_member_cannot_manage_project_members(client, fake_db, owner, joined_member, project):
    resp = await client.post(
        f"/api/projects/{project['id']}/members",
        headers=joined_member.headers,
        json={"user_id": joined_member.id, "role_id": _role_id(fake_db, "Member")},
    )
    assert resp.status_code == 403


async def test_member_removes_self_from_project(client, fake_db, owner, joined_member, project):
    await client.post(
        f"/api/projects/{project['id']}/members",
        headers=owner.headers,
        json={"user_id": joined_member.id, "role_id": _role_id(fake_db, "Member")},
    )
    resp = await client.delete(
        f"/api/projects/{project['id']}/members/{joined_member.id}", headers=joined_member.headers
    )
    assert resp.status_code == 200
    assert fake_db.rows("project_members", project_id=project["id"], user_id=joined_member.id) == []


async def test_remove_non_member_is_404(client, owner, joined_member, project):
    resp = await client.delete(
        f"/api/projects/{project['id']}/members/{joined_member.id}", headers=owner.headers
    )
    assert resp.status_code == 404


async def test_change_project_member_role(client, fake_db, owner, project):
    member_role = _role_id(fake_db, "Member")
    resp = await client.patch(
        f"/api/projects/{project['id']}/members/{owner.id}",
        headers=owner.headers,
        json={"role_id": member_role},
    )
    assert resp.status_code == 200
    assert resp.json()["role_id"] == member_role
