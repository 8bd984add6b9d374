"""Display profile of the signed-in user."""

import pytest


async def _create_profile(client, user, **payload):
    resp = await client.post("/api/auth/profile", headers=user.headers, json={"name": "Ada Lovelace", **payload})
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_create_defaults_to_account_email(client, fake_db, owner):
    profile = await _create_profile(client, owner, avatar_url="https://cdn.example.org/ada.png")
    assert profile["id"] == owner.id
    assert profile["email"] == owner.email
    assert profile["avatar_url"] == "https://cdn.example.org/ada.png"
    assert len(fake_db.rows("user_profiles", id=owner.id)) == 1


async def test_create_with_explicit_email(client, owner):
    profile = await _create_profile(client, owner, email="ada@example.org", name="  Ada   L.  ")
    assert profile["email"] == "ada@example.org"
    assert profile["name"] == "Ada L."


async def test_get_profile(client, owner):
    await _create_profile(client, owner)
    resp = await client.get("/api/auth/profile", headers=owner.headers)
    assert resp.status_code == 200
    assert resp.json()["name"] == "Ada Lovelace"


async def test_get_missing_profile_is_404(client, owner):
    resp = await client.get("/api/auth/profile", headers=owner.headers)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "PROFILE_NOT_FOUND"


async def test_profile_requires_authentication(client):
    resp = await client.get("/api/auth/profile")
    assert resp.status_code == 401


async def test_second_profile_conflicts(client, owner):
    await _create_profile(client, owner)
    resp = await client.post("/api/auth/profile", headers=owner.headers, json={"name": "Ada Again"})
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "PROFILE_EXISTS"


async def test_email_taken_by_other_profile(client, owner, member):
    await _create_profile(client, owner, email="ada@example.org")
    resp = await client.post(
        "/api/auth/profile", headers=member.headers, json={"name": "Someone", "email": "ada@example.org"}
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "EMAIL_EXISTS"


@pytest.mark.parametrize("payload", [
    {"name": "A"},
    {"name": "<script>alert(1)</script>"},
    {"name": "Ada", "email": "not-an-email"},
    {"name": "Ada", "avatar_url": "not-a-url"},
    {"name": "Ada", "avatar_url": "javascript:alert(1)"},
])
async def test_create_rejects_invalid_input(client, owner, payload):
    resp = await client.post("/api/auth/profile", headers=owner.headers, json=payload)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_update_profile(client, owner):
    await _create_profile(client, owner, avatar_url="https://cdn.example.org/ada.png")
    resp = await client.put(
        "/api/auth/profile", headers=owner.headers, json={"name": "Countess Ada", "avatar_url": None}
    )
    assert resp.status_code == 200
    assert resp.json()["name"] == "Countess Ada"
    assert resp.json()["avatar_url"] is None
    assert resp.json()["updated_at"] is not None


@pytest.mark.parametrize("payload", [{}, {"name": None}, {"email": "new@example.org"}])
async def test_update_rejects_empty_null_and_unknown(client, fake_db, owner, payload):
    await _create_profile(client, owner)
    resp = await client.put("/api/auth/profile", headers=owner.headers, json=payload)
    assert resp.status_code == 400
    assert fake_db.rows("user_profiles", id=owner.id)[0]["name"] == "Ada Lovelace"


async def test_update_missing_profile_is_404(client, owner):
    resp = await client.put("/api/auth/profile", headers=owner.headers, json={"name": "Ada"})
    assert resp.status_code == 404
