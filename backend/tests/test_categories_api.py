"""
PIEM Backend — /categories Endpoint Tests
==========================================

What:  HTTP-level tests for category CRUD.
How:   In-memory store + ASGITransport; callers injected with `act_as`.

What we test:
    ✅ Create → 201 with defaults; case-variant duplicate → 409
    ✅ Public reads; authenticated writes
    ✅ Creator-or-admin on update/delete
    ✅ Delete blocked while items carry the name, then 404 after removal
    ✅ itemCount recounted on create and rename; creator embedded in responses
    ✅ Invalid id → 400 before auth; missing id → 404
"""

from datetime import datetime

import pytest
from bson import ObjectId

from piem.database import INVENTORY, USERS


RADIO = {
    "name": "Radio",
    "quantity": 1,
    "price": 25,
    "status": "Available",
    "supplier": "Acme Supply",
}


def parse_ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class TestCreateCategory:
    @pytest.mark.asyncio
    async def test_create_returns_201_with_defaults(self, client, make_user, act_as):
        user = await make_user("maker")
        act_as(user)

        response = await client.post("/categories", json={"name": "Electronics"})

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Category created successfully"
        data = body["data"]
        assert data["name"] == "Electronics"
        assert data["isActive"] is True
        assert data["itemCount"] == 0
        assert data["description"] == ""
        assert data["createdBy"] == {
            "_id": str(user["_id"]), "username": "maker", "email": "maker@example.com",
        }
        assert data["createdAt"] == data["updatedAt"]
        assert ObjectId.is_valid(data["_id"])

    @pytest.mark.asyncio
    async def test_duplicate_name_differing_by_case_is_409(self, client, make_user, act_as):
        act_as(await make_user("maker"))
        await client.post("/categories", json={"name": "Electronics"})

        response = await client.post("/categories", json={"name": "electronics"})

        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "message": "Category with this name already exists",
        }

    @pytest.mark.asyncio
    async def test_anonymous_create_is_401(self, client):
        response = await client.post("/categories", json={"name": "Electronics"})
        assert response.status_code == 401
        assert response.json()["message"] == "Authentication required. Please log in."

    @pytest.mark.asyncio
    async def test_validation_failure_is_400_with_field_errors(self, client, make_user, act_as):
        act_as(await make_user("maker"))

        response = await client.post("/categories", json={"name": "E", "description": "d" * 201})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert body["errors"] == [
            {"field": "name", "message": "Name must be between 2 and 50 characters"},
            {"field": "description", "message": "Description cannot exceed 200 characters"},
        ]

    @pytest.mark.asyncio
    async def test_server_managed_fields_are_ignored(self, client, make_user, act_as):
        user = await make_user("maker")
        act_as(user)

        response = await client.post(
            "/categories",
            json={"name": "Books", "itemCount": 5, "createdBy": str(ObjectId()), "isActive": False},
        )

        data = response.json()["data"]
        assert data["itemCount"] == 0
        assert data["isActive"] is True
        assert data["createdBy"]["_id"] == str(user["_id"])


class TestReadCategories:
    @pytest.mark.asyncio
    async def test_empty_list_is_200(self, client):
        response = await client.get("/categories")
        assert response.status_code == 200
        assert response.json() == {"success": True, "count": 0, "data": []}

    @pytest.mark.asyncio
    async def test_list_is_public_sorted_and_filterable(self, client, make_user, act_as):
        act_as(await make_user("maker"))
        await client.post("/categories", json={"name": "Zoo"})
        created = (await client.post("/categories", json={"name": "Books"})).json()["data"]
        await client.put(f"/categories/{created['_id']}", json={"isActive": False})
        act_as(None)

        listed = (await client.get("/categories")).json()
        inactive = (await client.get("/categories", params={"active": "false"})).json()

        assert listed["count"] == 2
        assert [c["name"] for c in listed["data"]] == ["Books", "Zoo"]
        assert [c["name"] for c in inactive["data"]] == ["Books"]

    @pytest.mark.asyncio
    async def test_get_returns_identical_record(self, client, make_user, act_as):
        act_as(await make_user("maker"))
        created = (await client.post("/categories", json={"name": "Garden"})).json()["data"]

        response = await client.get(f"/categories/{created['_id']}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": created}

    @pytest.mark.asyncio
    async def test_invalid_id_is_400(self, client):
        response = await client.get("/categories/not-an-id")
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Invalid ID format",
            "errors": [{"field": "id", "message": "Invalid ID format"}],
        }

    @pytest.mark.asyncio
    async def test_invalid_id_is_400_even_for_anonymous_writes(self, client):
        response = await client.delete("/categories/123")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_id_is_404(self, client):
        response = await client.get(f"/categories/{ObjectId()}")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Category not found"}


class TestModifyCategory:
    @pytest.mark.asyncio
    async def test_partial_update_keeps_other_fields(self, client, make_user, act_as):
        act_as(await make_user("maker"))
        created = (
            await client.post("/categories", json={"name": "Garden", "description": "Outdoor"})
        ).json()["data"]

        response = await client.put(f"/categories/{created['_id']}", json={"name": "Yard"})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Category updated successfully"
        assert body["data"]["name"] == "Yard"
        assert body["data"]["description"] == "Outdoor"
        assert body["data"]["createdAt"] == created["createdAt"]
        assert parse_ts(body["data"]["updatedAt"]) > parse_ts(created["updatedAt"])

    @pytest.mark.asyncio
    async def test_non_creator_update_is_403(self, client, make_user, act_as):
        act_as(await make_user("owner"))
        created = (await client.post("/categories", json={"name": "Garden"})).json()["data"]
        act_as(await make_user("intruder"))

        response = await client.put(f"/categories/{created['_id']}", json={"name": "Mine"})

        assert response.status_code == 403
        assert response.json()["message"] == (
            "Access denied. You can only modify categories you created."
        )
        assert (await client.get(f"/categories/{created['_id']}")).json()["data"]["name"] == "Garden"

    @pytest.mark.asyncio
    async def test_admin_may_update_any_category(self, client, make_user, act_as):
        act_as(await make_user("owner"))
        created = (await client.post("/categories", json={"name": "Garden"})).json()["data"]
        act_as(await make_user("boss", role="admin"))

        response = await client.put(f"/categories/{created['_id']}", json={"isActive": "false"})

        assert response.status_code == 200
        assert response.json()["data"]["isActive"] is False

    @pytest.mark.asyncio
    async def test_rename_onto_existing_name_is_409(self, client, make_user, act_as):
        act_as(await make_user("maker"))
        await client.post("/categories", json={"name": "Books"})
        created = (await client.post("/categories", json={"name": "Garden"})).json()["data"]

        response = await client.put(f"/categories/{created['_id']}", json={"name": "BOOKS"})
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_update_missing_id_is_404(self, client, make_user, act_as):
        act_as(await make_user("maker"))
        response = await client.put(f"/categories/{ObjectId()}", json={"name": "Yard"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_blocked_while_items_exist(self, client, store, make_user, act_as):
        act_as(await make_user("maker"))
        created = (await client.post("/categories", json={"name": "Tools"})).json()["data"]
        await store.collection(INVENTORY).insert_one({"name": "Hammer", "category": "tools"})

        response = await client.delete(f"/categories/{created['_id']}")

        assert response.status_code == 400
        assert response.json()["message"] == (
            "Cannot delete category with existing items. Remove items first."
        )
        assert (await client.get(f"/categories/{created['_id']}")).status_code == 200

    @pytest.mark.asyncio
    async def test_rename_releases_items_of_the_old_name(self, client, make_user, act_as):
        act_as(await make_user("maker"))
        created = (await client.post("/categories", json={"name": "Electronics"})).json()["data"]
        item = (await client.post("/inventory", json={**RADIO, "category": "Electronics"})).json()["data"]

        renamed = await client.put(f"/categories/{created['_id']}", json={"name": "Gadgets"})
        assert renamed.json()["data"]["itemCount"] == 0

        await client.delete(f"/inventory/{item['_id']}")
        response = await client.delete(f"/categories/{created['_id']}")

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_category_created_after_its_items_cannot_be_deleted(self, client, make_user, act_as):
        act_as(await make_user("maker"))
        await client.post("/inventory", json={**RADIO, "category": "Electronics"})

        created = (await client.post("/categories", json={"name": "electronics"})).json()["data"]
        assert created["itemCount"] == 1

        response = await client.delete(f"/categories/{created['_id']}")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_creator_shown_by_id_once_account_is_gone(self, client, store, make_user, act_as):
        user = await make_user("maker")
        act_as(user)
        created = (await client.post("/categories", json={"name": "Tools"})).json()["data"]
        await store.collection(USERS).delete_one({"_id": user["_id"]})

        response = await client.get(f"/categories/{created['_id']}")

        assert response.json()["data"]["createdBy"] == str(user["_id"])

    @pytest.mark.asyncio
    async def test_delete_then_404(self, client, make_user, act_as):
        act_as(await make_user("maker"))
        created = (await client.post("/categories", json={"name": "Tools"})).json()["data"]

        response = await client.delete(f"/categories/{created['_id']}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Category deleted successfully"}
        assert (await client.get(f"/categories/{created['_id']}")).status_code == 404
