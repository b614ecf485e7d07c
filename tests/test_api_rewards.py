"""Integration tests for the /api/v1/families/{family_id}/rewards endpoints."""

import uuid


def _base(parent: dict) -> str:
    return f"/api/v1/families/{parent['family_id']}/rewards"


async def _create_reward(client, parent, **fields) -> dict:
    body = {"name": "Ice cream", "point_cost": 50}
    body.update(fields)
    resp = await client.post(f"{_base(parent)}/", headers=parent["headers"], json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestCreateReward:
    async def test_create_reward(self, client, registered_parent):
        reward = await _create_reward(client, registered_parent, quantity_available=2)
        assert reward["name"] == "Ice cream"
        assert reward["point_cost"] == 50
        assert reward["quantity_available"] == 2
        assert reward["is_active"] is True

    async def test_unlimited_by_default(self, client, registered_parent):
        reward = await _create_reward(client, registered_parent)
        assert reward["quantity_available"] is None

    async def test_cost_must_be_positive(self, client, registered_parent):
        resp = await client.post(
            f"{_base(registered_parent)}/",
            headers=registered_parent["headers"],
            json={"name": "Free", "point_cost": 0},
        )
        assert resp.status_code == 422

    async def test_child_cannot_create(self, client, registered_parent, child):
        resp = await client.post(
            f"{_base(registered_parent)}/",
            headers=child["headers"],
            json={"name": "Pony", "point_cost": 1},
        )
        assert resp.status_code == 403


class TestListRewards:
    async def test_cheapest_first(self, client, registered_parent, child):
        p = registered_parent
        await _create_reward(client, p, name="Movie night", point_cost=100)
        await _create_reward(client, p, name="Sticker", point_cost=5)

        resp = await client.get(f"{_base(p)}/", headers=child["headers"])
        assert resp.status_code == 200
        assert [r["name"] for r in resp.json()] == ["Sticker", "Movie night"]

    async def test_inactive_only_for_parents(self, client, registered_parent, child):
        p = registered_parent
        retired = await _create_reward(client, p, name="Retired")
        await client.put(
            f"{_base(p)}/{retired['id']}", headers=p["headers"], json={"is_active": False},
        )

        resp = await client.get(f"{_base(p)}/", headers=p["headers"])
        assert resp.json() == []

        resp = await client.get(
            f"{_base(p)}/", headers=p["headers"], params={"include_inactive": True},
        )
        assert [r["name"] for r in resp.json()] == ["Retired"]

        resp = await client.get(
            f"{_base(p)}/", headers=child["headers"], params={"include_inactive": True},
        )
        assert resp.json() == []


class TestUpdateDeleteReward:
    async def test_update_reward(self, client, registered_parent):
        p = registered_parent
        reward = await _create_reward(client, p)
        resp = await client.put(
            f"{_base(p)}/{reward['id']}",
            headers=p["headers"],
            json={"point_cost": 75, "quantity_available": 3},
        )
        assert resp.status_code == 200
        assert resp.json()["point_cost"] == 75
        assert resp.json()["quantity_available"] == 3

    async def test_delete_unused_reward(self, client, registered_parent):
        p = registered_parent
        reward = await _create_reward(client, p)
        resp = await client.delete(f"{_base(p)}/{reward['id']}", headers=p["headers"])
        assert resp.status_code == 204
        resp = await client.get(f"{_base(p)}/{reward['id']}", headers=p["headers"])
        assert resp.status_code == 404

    async def test_get_missing_reward(self, client, registered_parent):
        p = registered_parent
        resp = await client.get(f"{_base(p)}/{uuid.uuid4()}", headers=p["headers"])
        assert resp.status_code == 404
