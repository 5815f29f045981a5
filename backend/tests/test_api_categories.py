"""End-to-end tests of /api/categories."""

import uuid

import pytest


class TestCategoryApi:

    @pytest.mark.asyncio
    async def test_crud_cycle(self, test_client, auth_headers):
        headers = await auth_headers()

        created = await test_client.post("/api/categories", json={"name": " News "}, headers=headers)
        assert created.status_code == 201
        category_id = created.json()["id"]
        assert created.json()["name"] == "News"

        fetched = await test_client.get(f"/api/categories/{category_id}")
        assert fetched.status_code == 200
        assert fetched.json()["name"] == "News"

        renamed = await test_client.put(
            f"/api/categories/{category_id}", json={"name": "World"}, headers=headers
        )
        assert renamed.status_code == 200
        assert renamed.json()["name"] == "World"

        deleted = await test_client.delete(f"/api/categories/{category_id}", headers=headers)
        assert deleted.status_code == 204
        assert (await test_client.get(f"/api/categories/{category_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_list_sorted_by_name(self, test_client, auth_headers):
        headers = await auth_headers()
        for name in ("Travel", "Art", "News"):
            await test_client.post("/api/categories", json={"name": name}, headers=headers)

        response = await test_client.get("/api/categories")

        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["Art", "News", "Travel"]

    @pytest.mark.asyncio
    async def test_write_requires_token(self, test_client):
        response = await test_client.post("/api/categories", json={"name": "News"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"name": ""}, {"name": "x" * 101}])
    async def test_invalid_name(self, test_client, auth_headers, payload):
        headers = await auth_headers()

        response = await test_client.post("/api/categories", json=payload, headers=headers)

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "name"

    @pytest.mark.asyncio
    async def test_update_unknown_category(self, test_client, auth_headers):
        headers = await auth_headers()

        response = await test_client.put(
            f"/api/categories/{uuid.uuid4()}", json={"name": "News"}, headers=headers
        )

        assert response.status_code == 404
