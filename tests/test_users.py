"""
tests/test_users.py
Tests for end-user moderation: listing, search, profile edits and soft delete.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Admin, User
from tests.conftest import auth_headers


@pytest_asyncio.fixture
async def users(db: AsyncSession) -> list:
    created = [
        User(name="Asha Verma", mobile="9800000001"),
        User(name="Rohit Sharma", mobile="9800000002"),
        User(name="Meera Iyer", mobile="9811111113", is_deleted=True, is_active=False),
    ]
    db.add_all(created)
    await db.commit()
    return created


# ── Access Control ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_super_admin_cannot_list_users(client: AsyncClient, super_admin: Admin):
    response = await client.get("/users", headers=auth_headers(super_admin))
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin only"


@pytest.mark.asyncio
async def test_anonymous_cannot_list_users(client: AsyncClient, audit_sink):
    response = await client.get("/users")
    assert response.status_code == 401
    assert response.json()["detail"] == "Admin only"
    assert audit_sink.actions("DENIED") == ["list_users"]


# ── Listing & Search ───────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_list_users_includes_deleted(client: AsyncClient, admin_user: Admin, users):
    response = await client.get("/users", headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()
    assert data["totalCount"] == 3
    assert any(u["isDeleted"] for u in data["data"])


@pytest.mark.asyncio
async def test_list_users_pagination(client: AsyncClient, admin_user: Admin, users):
    response = await client.get(
        "/users", params={"page": 2, "limit": 2}, headers=auth_headers(admin_user)
    )
    data = response.json()
    assert data["currentPage"] == 2
    assert data["totalPages"] == 2
    assert len(data["data"]) == 1


@pytest.mark.asyncio
async def test_search_users_by_name_and_mobile(client: AsyncClient, admin_user: Admin, users):
    by_name = await client.get(
        "/users/search", params={"query": "asha"}, headers=auth_headers(admin_user)
    )
    assert [u["name"] for u in by_name.json()["data"]] == ["Asha Verma"]

    by_mobile = await client.get(
        "/users/search", params={"query": "98000"}, headers=auth_headers(admin_user)
    )
    assert by_mobile.json()["totalCount"] == 2


@pytest.mark.asyncio
async def test_search_users_treats_wildcards_literally(
    client: AsyncClient, admin_user: Admin, users
):
    for query in ("%", "_", "98%1"):
        response = await client.get(
            "/users/search", params={"query": query}, headers=auth_headers(admin_user)
        )
        assert response.json()["totalCount"] == 0, query


# ── Update ─────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_update_user(client: AsyncClient, admin_user: Admin, users, audit_sink):
    response = await client.patch(
        f"/users/{users[0].id}",
        json={"occupation": "Engineer", "gender": "FEMALE"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["occupation"] == "Engineer"
    assert data["gender"] == "FEMALE"
    assert data["name"] == "Asha Verma"
    assert "update_user" in audit_sink.actions("SUCCESS")


@pytest.mark.asyncio
async def test_update_user_mobile_in_use(client: AsyncClient, admin_user: Admin, users):
    response = await client.patch(
        f"/users/{users[0].id}",
        json={"mobile": users[1].mobile},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Mobile already in use"


@pytest.mark.asyncio
async def test_update_deleted_user_returns_404(client: AsyncClient, admin_user: Admin, users):
    response = await client.patch(
        f"/users/{users[2].id}", json={"name": "Back"}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


# ── Soft Delete ────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_delete_user_is_soft(
    client: AsyncClient, admin_user: Admin, users, db: AsyncSession
):
    user_id = users[1].id
    response = await client.delete(f"/users/{user_id}", headers=auth_headers(admin_user))
    assert response.status_code == 200
    assert response.json()["message"] == "User deleted successfully"

    row = (await db.execute(
        select(User.is_deleted, User.is_active).where(User.id == user_id)
    )).one()
    assert row.is_deleted is True
    assert row.is_active is False

    again = await client.delete(f"/users/{user_id}", headers=auth_headers(admin_user))
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_delete_unknown_user(client: AsyncClient, admin_user: Admin):
    response = await client.delete(f"/users/{uuid.uuid4()}", headers=auth_headers(admin_user))
    assert response.status_code == 404
