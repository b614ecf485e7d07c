"""Test the health check endpoint."""


class TestHealth:
    async def test_health_check(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["db"] == "ok"
        # Redis is not running in tests; that is reported, not treated as an error
        assert data["redis"] in {"ok", "unavailable"}
        assert "ChoreHub" in data["app"]
