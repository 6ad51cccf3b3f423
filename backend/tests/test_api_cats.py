"""
CatTrack Backend: Cat API Tests
================================

What:  End-to-end tests of /api/v1/cats through the ASGI app, backed by
       the temporary SQLite database.

What we test:
    ✅ Create: 201, owner forced to the principal, image stored and served
    ✅ Create without token → 403, bad fields → 400 with concatenated messages
    ✅ Non-owner update/delete answers exactly like a missing id (404)
    ✅ Admin routes: non-admin 403 with the cat untouched; admin succeeds
    ✅ Area query and its parameter validation
"""

import uuid

import pytest

from cattrack.database import async_session_factory
from cattrack.create_admin import ensure_admin


async def _create_cat(client, headers, png_bytes, lat="39.5", lng="-73.5", **fields):
    data = {"cat_name": "Tom", "weight": "4.2", "birthdate": "2020-05-01", "lat": lat, "lng": lng}
    data.update(fields)
    return await client.post(
        "/api/v1/cats",
        data={k: v for k, v in data.items() if v is not None},
        files={"file": ("tom.png", png_bytes, "image/png")},
        headers=headers,
    )


async def _make_admin(client, auth_service, user_name="root"):
    async with async_session_factory() as session:
        await ensure_admin(
            session,
            auth_service,
            email=f"{user_name}@example.com",
            user_name=user_name,
            password="rootpass",
        )
        await session.commit()

    response = await client.post(
        "/api/v1/auth/login",
        json={"username": f"{user_name}@example.com", "password": "rootpass"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}


class TestCreateCat:

    @pytest.mark.asyncio
    async def test_create_and_fetch(self, test_client, register_and_login, png_bytes):
        alice, headers = await register_and_login("alice")

        response = await _create_cat(test_client, headers, png_bytes)

        assert response.status_code == 201, response.text
        body = response.json()
        assert body["message"] == "cat created"
        cat = body["data"]
        assert cat["owner"] == {"id": alice["id"], "user_name": "alice", "email": "alice@example.com"}
        assert cat["location"] == {"type": "Point", "coordinates": [-73.5, 39.5]}

        response = await test_client.get(f"/api/v1/cats/{cat['id']}")
        assert response.status_code == 200
        assert response.json()["cat_name"] == "Tom"

        response = await test_client.get(f"/uploads/{cat['filename']}")
        assert response.status_code == 200
        assert response.content == png_bytes

    @pytest.mark.asyncio
    async def test_owner_from_body_is_ignored(self, test_client, register_and_login, png_bytes):
        alice, headers = await register_and_login("alice")
        bob, _ = await register_and_login("bob")

        response = await _create_cat(test_client, headers, png_bytes, owner=bob["id"])

        assert response.status_code == 201
        assert response.json()["data"]["owner"]["id"] == alice["id"]

    @pytest.mark.asyncio
    async def test_create_requires_token(self, test_client, png_bytes):
        response = await _create_cat(test_client, {}, png_bytes)

        assert response.status_code == 403
        assert response.json()["message"] == "token not valid"

    @pytest.mark.asyncio
    async def test_create_with_bad_token(self, test_client, png_bytes):
        response = await _create_cat(
            test_client, {"Authorization": "Bearer not-a-token"}, png_bytes
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_invalid_fields_concatenated(self, test_client, register_and_login, png_bytes):
        _, headers = await register_and_login("alice")

        response = await _create_cat(
            test_client, headers, png_bytes, cat_name="T", weight="-1"
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"].endswith(": weight")
        assert ": cat_name, " in body["message"]
        assert body["details"]["fields"] == ["cat_name", "weight"]

    @pytest.mark.asyncio
    async def test_half_a_location_rejected(self, test_client, register_and_login, png_bytes):
        _, headers = await register_and_login("alice")

        response = await _create_cat(test_client, headers, png_bytes, lng=None)
        assert response.status_code == 400
        assert response.json()["message"].endswith(": location")

    @pytest.mark.asyncio
    async def test_not_an_image_rejected(self, test_client, register_and_login):
        _, headers = await register_and_login("alice")

        response = await _create_cat(test_client, headers, b"plain text")

        assert response.status_code == 400
        assert "not a valid image" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_list_mine(self, test_client, register_and_login, png_bytes):
        _, alice_headers = await register_and_login("alice")
        _, bob_headers = await register_and_login("bob")
        await _create_cat(test_client, alice_headers, png_bytes, cat_name="Tom")
        await _create_cat(test_client, bob_headers, png_bytes, cat_name="Felix")

        response = await test_client.get("/api/v1/cats/user", headers=alice_headers)

        assert response.status_code == 200
        assert [c["cat_name"] for c in response.json()] == ["Tom"]

        response = await test_client.get("/api/v1/cats")
        assert sorted(c["cat_name"] for c in response.json()) == ["Felix", "Tom"]


class TestOwnerGate:

    @pytest.mark.asyncio
    async def test_owner_updates_and_deletes(self, test_client, register_and_login, png_bytes):
        _, headers = await register_and_login("alice")
        cat_id = (await _create_cat(test_client, headers, png_bytes)).json()["data"]["id"]

        response = await test_client.put(
            f"/api/v1/cats/{cat_id}", json={"weight": 5.1}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["message"] == "cat updated"
        assert response.json()["data"]["weight"] == 5.1

        response = await test_client.delete(f"/api/v1/cats/{cat_id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["message"] == "cat deleted"

        response = await test_client.get(f"/api/v1/cats/{cat_id}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_non_owner_same_as_missing(self, test_client, register_and_login, png_bytes):
        _, alice_headers = await register_and_login("alice")
        _, bob_headers = await register_and_login("bob")
        cat_id = (await _create_cat(test_client, alice_headers, png_bytes)).json()["data"]["id"]
        missing_id = str(uuid.uuid4())

        not_owner = await test_client.put(
            f"/api/v1/cats/{cat_id}", json={"cat_name": "Stolen"}, headers=bob_headers
        )
        missing = await test_client.put(
            f"/api/v1/cats/{missing_id}", json={"cat_name": "Stolen"}, headers=bob_headers
        )

        assert not_owner.status_code == missing.status_code == 404
        assert not_owner.json()["message"] == missing.json()["message"] == "Cat not found"

        not_owner = await test_client.delete(f"/api/v1/cats/{cat_id}", headers=bob_headers)
        assert not_owner.status_code == 404

        response = await test_client.get(f"/api/v1/cats/{cat_id}")
        assert response.json()["cat_name"] == "Tom"

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, test_client, register_and_login, png_bytes):
        _, headers = await register_and_login("alice")
        cat_id = (await _create_cat(test_client, headers, png_bytes)).json()["data"]["id"]

        response = await test_client.put(f"/api/v1/cats/{cat_id}", json={}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_null_field_rejected(self, test_client, register_and_login, png_bytes):
        _, headers = await register_and_login("alice")
        cat_id = (await _create_cat(test_client, headers, png_bytes)).json()["data"]["id"]

        response = await test_client.put(
            f"/api/v1/cats/{cat_id}", json={"cat_name": None}, headers=headers
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"].endswith(": cat_name")
        assert body["details"]["fields"] == ["cat_name"]

        response = await test_client.get(f"/api/v1/cats/{cat_id}")
        assert response.json()["cat_name"] == "Tom"


class TestAdminRoutes:

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, test_client, register_and_login, png_bytes):
        _, headers = await register_and_login("alice")
        cat_id = (await _create_cat(test_client, headers, png_bytes)).json()["data"]["id"]

        response = await test_client.put(
            f"/api/v1/cats/admin/{cat_id}", json={"cat_name": "Renamed"}, headers=headers
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Admin only"

        response = await test_client.delete(f"/api/v1/cats/admin/{cat_id}", headers=headers)
        assert response.status_code == 403

        response = await test_client.get(f"/api/v1/cats/{cat_id}")
        assert response.json()["cat_name"] == "Tom"

    @pytest.mark.asyncio
    async def test_admin_updates_and_deletes_any_cat(
        self, test_client, register_and_login, png_bytes, auth_service
    ):
        _, headers = await register_and_login("alice")
        cat_id = (await _create_cat(test_client, headers, png_bytes)).json()["data"]["id"]
        admin_headers = await _make_admin(test_client, auth_service)

        response = await test_client.put(
            f"/api/v1/cats/admin/{cat_id}", json={"cat_name": "Renamed"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["cat_name"] == "Renamed"
        assert response.json()["data"]["owner"]["user_name"] == "alice"

        response = await test_client.delete(f"/api/v1/cats/admin/{cat_id}", headers=admin_headers)
        assert response.status_code == 200

        response = await test_client.delete(f"/api/v1/cats/admin/{cat_id}", headers=admin_headers)
        assert response.status_code == 404


class TestAreaQuery:

    @pytest.mark.asyncio
    async def test_bounding_box(self, test_client, register_and_login, png_bytes):
        _, headers = await register_and_login("alice")
        await _create_cat(test_client, headers, png_bytes, cat_name="Inside", lat="39.5", lng="-73.5")
        await _create_cat(test_client, headers, png_bytes, cat_name="Edge", lat="40.0", lng="-73.0")
        await _create_cat(test_client, headers, png_bytes, cat_name="Outside", lat="41.0", lng="-73.5")

        response = await test_client.get(
            "/api/v1/cats/area", params={"topRight": "40.0,-73.0", "bottomLeft": "39.0,-74.0"}
        )

        assert response.status_code == 200
        assert sorted(c["cat_name"] for c in response.json()) == ["Edge", "Inside"]

        swapped = await test_client.get(
            "/api/v1/cats/area", params={"topRight": "39.0,-74.0", "bottomLeft": "40.0,-73.0"}
        )
        assert sorted(c["cat_name"] for c in swapped.json()) == ["Edge", "Inside"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params, fragment",
        [
            ({"topRight": "40.0", "bottomLeft": "39.0,-74.0"}, "topRight"),
            ({"topRight": "40.0,-73.0", "bottomLeft": "nan,-74.0"}, "bottomLeft"),
            ({"topRight": "91,-73.0", "bottomLeft": "39.0,-74.0"}, "topRight"),
            ({"topRight": "40.0,-73.0"}, "bottomLeft"),
        ],
    )
    async def test_bad_corners(self, test_client, params, fragment):
        response = await test_client.get("/api/v1/cats/area", params=params)

        assert response.status_code == 400
        assert fragment in response.json()["message"]
