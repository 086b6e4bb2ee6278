"""Tests for user management endpoints"""

import pytest
from httpx import AsyncClient

from jerktracker.storage import Entity


@pytest.mark.asyncio
async def test_admin_creates_user(client: AsyncClient, admin_headers, restaurant_a):
    response = await client.post(
        "/api/users",
        json={
            "email": "cashier@example.com",
            "password": "password123",
            "name": "Cashier",
            "role": "USER",
            "restaurant_id": restaurant_a["id"],
        },
        headers=admin_headers,
    )

    assert response.status_code == 201
    assert response.json()["role"] == "USER"


@pytest.mark.asyncio
async def test_staff_cannot_create_users(client: AsyncClient, staff_a_headers, restaurant_a):
    response = await client.post(
        "/api/users",
        json={
            "email": "friend@example.com",
            "password": "password123",
            "name": "Friend",
            "restaurant_id": restaurant_a["id"],
        },
        headers=staff_a_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_non_admin_user_needs_restaurant(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/users",
        json={"email": "floating@example.com", "password": "password123", "name": "Floating"},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_staff_list_is_scoped(
    client: AsyncClient, staff_a_headers, staff_a, staff_b, user_a
):
    response = await client.get("/api/users", headers=staff_a_headers)

    emails = sorted(user["email"] for user in response.json()["users"])
    assert emails == ["staff.a@example.com", "viewer.a@example.com"]


@pytest.mark.asyncio
async def test_read_rules(
    client: AsyncClient, staff_a_headers, user_a_headers, staff_a, staff_b, user_a
):
    # staff can read colleagues
    response = await client.get(f"/api/users/{user_a['id']}", headers=staff_a_headers)
    assert response.status_code == 200

    # but not people from another restaurant
    response = await client.get(f"/api/users/{staff_b['id']}", headers=staff_a_headers)
    assert response.status_code == 403

    # plain users only see themselves
    response = await client.get(f"/api/users/{user_a['id']}", headers=user_a_headers)
    assert response.status_code == 200
    response = await client.get(f"/api/users/{staff_a['id']}", headers=user_a_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_self_update_and_admin_only_fields(
    client: AsyncClient, staff_a_headers, staff_a, restaurant_b
):
    response = await client.put(
        f"/api/users/{staff_a['id']}", json={"name": "Renamed"}, headers=staff_a_headers
    )
    assert response.json()["name"] == "Renamed"

    response = await client.put(
        f"/api/users/{staff_a['id']}", json={"role": "ADMIN"}, headers=staff_a_headers
    )
    assert response.status_code == 403

    response = await client.put(
        f"/api/users/{staff_a['id']}",
        json={"restaurant_id": restaurant_b["id"]},
        headers=staff_a_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_password_change_allows_new_login(
    client: AsyncClient, staff_a_headers, staff_a
):
    await client.put(
        f"/api/users/{staff_a['id']}", json={"password": "brand-new-pass"}, headers=staff_a_headers
    )

    response = await client.post(
        "/api/auth/login", data={"username": "staff.a@example.com", "password": "brand-new-pass"}
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_cannot_update_someone_else(client: AsyncClient, staff_a_headers, staff_b):
    response = await client.put(
        f"/api/users/{staff_b['id']}", json={"name": "Hacked"}, headers=staff_a_headers
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_deletes_user_and_keeps_orders(
    client: AsyncClient, admin_headers, staff_a, staff_a_headers, storage
):
    created = await client.post(
        "/api/orders",
        json={"order_number": "K1", "customer_name": "Kim"},
        headers=staff_a_headers,
    )
    order_id = created.json()["id"]

    response = await client.delete(f"/api/users/{staff_a['id']}", headers=admin_headers)

    assert response.status_code == 204
    assert await storage.get_by_id(Entity.USERS, staff_a["id"]) is None
    order = await storage.get_by_id(Entity.ORDERS, order_id)
    assert order["created_by_id"] is None
    assert order["updated_by_id"] is None


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(client: AsyncClient, admin_headers, admin_user):
    response = await client.delete(f"/api/users/{admin_user['id']}", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["type"] == "BUSINESS_RULE_ERROR"
