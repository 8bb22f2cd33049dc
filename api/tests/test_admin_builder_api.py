"""Tests for the admin page-builder endpoints."""

from httpx import AsyncClient


async def _create(client: AsyncClient, slug="landing", components=None):
    resp = await client.post(
        "/admin/builder/pages",
        json={"slug": slug, "layout": "landing", "components": components or []},
    )
    assert resp.status_code == 201
    return resp.json()


def _three():
    return [
        {"id": "a", "type": "hero", "order": 0},
        {"id": "b", "type": "services", "order": 1},
        {"id": "c", "type": "cta", "order": 2},
    ]


class TestPages:
    async def test_create_and_get(self, client: AsyncClient):
        created = await _create(client, components=_three())
        assert created["id"] == "landing"
        resp = await client.get("/admin/builder/pages/landing")
        assert resp.status_code == 200
        page = resp.json()
        assert [c["id"] for c in page["components"]] == ["a", "b", "c"]
        assert page["isPublished"] is False

    async def test_reserved_slug_rejected(self, client: AsyncClient):
        resp = await client.post("/admin/builder/pages", json={"slug": "admin/secret"})
        assert resp.status_code == 400

    async def test_list(self, client: AsyncClient):
        await _create(client, slug="b-page")
        await _create(client, slug="a-page")
        resp = await client.get("/admin/builder/pages")
        assert [page["slug"] for page in resp.json()] == ["a-page", "b-page"]

    async def test_get_missing(self, client: AsyncClient):
        resp = await client.get("/admin/builder/pages/missing")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Page config not found"

    async def test_section_kinds(self, client: AsyncClient):
        resp = await client.get("/admin/builder/sections")
        assert "contact-form" in resp.json()
        assert len(resp.json()) == 11

    async def test_publish(self, client: AsyncClient):
        await _create(client)
        resp = await client.patch("/admin/builder/pages/landing", json={"isPublished": True})
        assert resp.status_code == 200
        assert resp.json()["updated"]["isPublished"] is True
        public = await client.get("/v1/pages/landing")
        assert public.status_code == 200

    async def test_save_rejects_duplicate_ids_and_unknown_types(self, client: AsyncClient):
        await _create(client, components=_three())
        resp = await client.patch(
            "/admin/builder/pages/landing",
            json={"components": [{"id": "a", "type": "carousel"}, {"id": "a", "type": "hero"}]},
        )
        assert resp.status_code == 400
        assert "Duplicate component id: a" in resp.json()["detail"]
        assert "Unknown section type: carousel" in resp.json()["detail"]
        stored = (await client.get("/admin/builder/pages/landing")).json()
        assert [c["id"] for c in stored["components"]] == ["a", "b", "c"]

    async def test_create_rejects_duplicate_ids(self, client: AsyncClient):
        resp = await client.post(
            "/admin/builder/pages",
            json={"slug": "dupes", "components": [{"id": "x", "type": "hero"}, {"id": "x", "type": "cta"}]},
        )
        assert resp.status_code == 400
        assert (await client.get("/admin/builder/pages/dupes")).status_code == 404

    async def test_save_missing_page(self, client: AsyncClient):
        resp = await client.patch("/admin/builder/pages/missing", json={"isPublished": True})
        assert resp.status_code == 404

    async def test_delete(self, client: AsyncClient):
        await _create(client)
        resp = await client.delete("/admin/builder/pages/landing")
        assert resp.status_code == 200
        resp = await client.delete("/admin/builder/pages/landing")
        assert resp.status_code == 404


class TestComponents:
    async def test_reorder(self, client: AsyncClient):
        await _create(client, components=_three())
        resp = await client.patch(
            "/admin/builder/pages/landing/reorder", json={"sourceId": "a", "targetId": "c"}
        )
        assert resp.status_code == 200
        components = resp.json()["components"]
        assert [c["id"] for c in components] == ["b", "c", "a"]
        assert [c["order"] for c in components] == [0, 1, 2]
        stored = (await client.get("/admin/builder/pages/landing")).json()
        assert [c["id"] for c in stored["components"]] == ["b", "c", "a"]

    async def test_add(self, client: AsyncClient):
        await _create(client, components=_three())
        resp = await client.post(
            "/admin/builder/pages/landing/components", json={"type": "faq", "props": {"title": "FAQ"}}
        )
        components = resp.json()["components"]
        assert components[-1]["type"] == "faq"
        assert components[-1]["order"] == 3

    async def test_add_unknown_type(self, client: AsyncClient):
        await _create(client)
        resp = await client.post("/admin/builder/pages/landing/components", json={"type": "carousel"})
        assert resp.status_code == 422

    async def test_remove(self, client: AsyncClient):
        await _create(client, components=_three())
        resp = await client.delete("/admin/builder/pages/landing/components/b")
        components = resp.json()["components"]
        assert [c["id"] for c in components] == ["a", "c"]
        assert [c["order"] for c in components] == [0, 1]


async def test_builder_requires_admin(unauthenticated_client: AsyncClient):
    resp = await unauthenticated_client.get("/admin/builder/pages")
    assert resp.status_code == 401
