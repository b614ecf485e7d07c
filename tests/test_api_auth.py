"""Integration tests for the /api/v1/auth endpoints."""

from tests.conftest import create_child


class TestRegister:
    async def test_register_success(self, client):
        resp = await client.post("/api/v1/auth/register", json={
            "email": "new@test.com",
            "password": "testpassword123",
            "name": "New Parent",
            "family_name": "New Family",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"

    async def test_register_creates_family_with_invite_code(self, client):
        resp = await client.post("/api/v1/auth/register", json={
            "email": "invite@test.com",
            "password": "testpassword123",
            "name": "Parent",
            "family_name": "The Invites",
        })
        headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

        me = (await client.get("/api/v1/auth/me", headers=headers)).json()
        family = await client.get(f"/api/v1/families/{me['family_id']}", headers=headers)
        code = family.json()["invite_code"]
        assert len(code) == 6
        assert code == code.upper()
        assert code.isalnum()

    async def test_register_duplicate_email(self, client):
        payload = {
            "email": "dupe@test.com",
            "password": "testpassword123",
            "name": "First",
            "family_name": "Family",
        }
        resp1 = await client.post("/api/v1/auth/register", json=payload)
        assert resp1.status_code == 200

        resp2 = await client.post("/api/v1/auth/register", json=payload)
        assert resp2.status_code == 409

    async def test_register_short_password(self, client):
        resp = await client.post("/api/v1/auth/register", json={
            "email": "short@test.com",
            "password": "short",
            "name": "Test",
            "family_name": "Family",
        })
        assert resp.status_code == 422  # validation error

    async def test_register_invalid_email(self, client):
        resp = await client.post("/api/v1/auth/register", json={
            "email": "not-an-email",
            "password": "testpassword123",
            "name": "Test",
            "family_name": "Family",
        })
        assert resp.status_code == 422


class TestJoinFamily:
    async def test_second_parent_joins_family(self, client, registered_parent):
        p = registered_parent
        resp = await client.post("/api/v1/auth/join", json={
            "email": "co-parent@test.com",
            "password": "testpassword123",
            "name": "Co Parent",
            "invite_code": p["invite_code"].lower(),
        })
        assert resp.status_code == 200
        headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

        me = (await client.get("/api/v1/auth/me", headers=headers)).json()
        assert me["family_id"] == p["family_id"]
        assert me["role"] == "PARENT"

        stats = await client.get(f"/api/v1/families/{p['family_id']}/stats", headers=headers)
        assert stats.status_code == 200
        assert stats.json()["parents"] == 2

    async def test_joined_parent_can_log_in(self, client, registered_parent):
        await client.post("/api/v1/auth/join", json={
            "email": "second@test.com",
            "password": "testpassword123",
            "name": "Second",
            "invite_code": registered_parent["invite_code"],
        })
        resp = await client.post("/api/v1/auth/login", json={
            "email": "second@test.com", "password": "testpassword123",
        })
        assert resp.status_code == 200

    async def test_join_duplicate_email(self, client, registered_parent):
        resp = await client.post("/api/v1/auth/join", json={
            "email": registered_parent["email"],
            "password": "testpassword123",
            "name": "Again",
            "invite_code": registered_parent["invite_code"],
        })
        assert resp.status_code == 409
        assert resp.json()["code"] == "CONFLICT"

    async def test_join_unknown_invite_code(self, client):
        resp = await client.post("/api/v1/auth/join", json={
            "email": "lost@test.com",
            "password": "testpassword123",
            "name": "Lost",
            "invite_code": "ZZZZZZ",
        })
        assert resp.status_code == 404
        assert resp.json()["code"] == "NOT_FOUND"


class TestLogin:
    async def test_login_success(self, client):
        await client.post("/api/v1/auth/register", json={
            "email": "login@test.com",
            "password": "testpassword123",
            "name": "Login User",
            "family_name": "Family",
        })

        resp = await client.post("/api/v1/auth/login", json={
            "email": "login@test.com",
            "password": "testpassword123",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert "access_token" in data
        assert "refresh_token" in data

    async def test_login_wrong_password(self, client):
        await client.post("/api/v1/auth/register", json={
            "email": "wrongpw@test.com",
            "password": "testpassword123",
            "name": "Test",
            "family_name": "Family",
        })
        resp = await client.post("/api/v1/auth/login", json={
            "email": "wrongpw@test.com",
            "password": "wrongpassword",
        })
        assert resp.status_code == 401

    async def test_login_nonexistent_user(self, client):
        resp = await client.post("/api/v1/auth/login", json={
            "email": "nobody@test.com",
            "password": "testpassword123",
        })
        assert resp.status_code == 401


class TestPinLogin:
    async def test_pin_login_success(self, client, registered_parent):
        kid = await create_child(client, registered_parent, "Mia", "4321")
        me = await client.get("/api/v1/auth/me", headers=kid["headers"])
        assert me.status_code == 200
        data = me.json()
        assert data["role"] == "CHILD"
        assert data["points_balance"] == 0

    async def test_pin_login_case_insensitive_name_and_code(self, client, registered_parent):
        await create_child(client, registered_parent, "Noah", "1111")
        resp = await client.post("/api/v1/auth/login-pin", json={
            "invite_code": registered_parent["invite_code"].lower(),
            "child_name": "  noah ",
            "pin": "1111",
        })
        assert resp.status_code == 200

    async def test_pin_login_wrong_pin(self, client, registered_parent):
        await create_child(client, registered_parent, "Liam", "2222")
        resp = await client.post("/api/v1/auth/login-pin", json={
            "invite_code": registered_parent["invite_code"],
            "child_name": "Liam",
            "pin": "9999",
        })
        assert resp.status_code == 401

    async def test_pin_login_unknown_invite_code(self, client):
        resp = await client.post("/api/v1/auth/login-pin", json={
            "invite_code": "ZZZZZZ",
            "child_name": "Nobody",
            "pin": "1234",
        })
        assert resp.status_code == 401

    async def test_deactivated_child_cannot_log_in(self, client, registered_parent):
        p = registered_parent
        kid = await create_child(client, p, "Olivia", "3333")
        resp = await client.delete(
            f"/api/v1/families/{p['family_id']}/children/{kid['id']}",
            headers=p["headers"],
        )
        assert resp.status_code == 204

        login = await client.post("/api/v1/auth/login-pin", json={
            "invite_code": p["invite_code"],
            "child_name": "Olivia",
            "pin": "3333",
        })
        assert login.status_code == 401

        # Existing access tokens stop working too
        me = await client.get("/api/v1/auth/me", headers=kid["headers"])
        assert me.status_code == 401


class TestRefresh:
    async def test_refresh_success(self, client):
        reg = await client.post("/api/v1/auth/register", json={
            "email": "refresh@test.com",
            "password": "testpassword123",
            "name": "Refresh User",
            "family_name": "Family",
        })
        tokens = reg.json()

        resp = await client.post("/api/v1/auth/refresh", json={
            "refresh_token": tokens["refresh_token"],
        })
        assert resp.status_code == 200
        new_tokens = resp.json()
        assert "access_token" in new_tokens
        assert new_tokens["refresh_token"] != tokens["refresh_token"]

    async def test_refresh_with_revoked_token(self, client):
        reg = await client.post("/api/v1/auth/register", json={
            "email": "revoked@test.com",
            "password": "testpassword123",
            "name": "Revoked User",
            "family_name": "Family",
        })
        tokens = reg.json()

        # Use the refresh token once (revokes it)
        await client.post("/api/v1/auth/refresh", json={
            "refresh_token": tokens["refresh_token"],
        })

        resp = await client.post("/api/v1/auth/refresh", json={
            "refresh_token": tokens["refresh_token"],
        })
        assert resp.status_code == 401

    async def test_refresh_with_invalid_token(self, client):
        resp = await client.post("/api/v1/auth/refresh", json={
            "refresh_token": "invalid.token.string",
        })
        assert resp.status_code == 401


class TestLogout:
    async def test_logout_revokes_token(self, client):
        reg = await client.post("/api/v1/auth/register", json={
            "email": "logout@test.com",
            "password": "testpassword123",
            "name": "Logout User",
            "family_name": "Family",
        })
        tokens = reg.json()

        resp = await client.post("/api/v1/auth/logout", json={
            "refresh_token": tokens["refresh_token"],
        })
        assert resp.status_code == 204

        resp2 = await client.post("/api/v1/auth/refresh", json={
            "refresh_token": tokens["refresh_token"],
        })
        assert resp2.status_code == 401

    async def test_logout_with_unknown_token(self, client):
        """Logout with unknown token should still return 204 (idempotent)."""
        resp = await client.post("/api/v1/auth/logout", json={
            "refresh_token": "does.not.exist",
        })
        assert resp.status_code == 204


class TestMe:
    async def test_me_returns_parent(self, client, registered_parent):
        resp = await client.get("/api/v1/auth/me", headers=registered_parent["headers"])
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == registered_parent["user_id"]
        assert data["role"] == "PARENT"

    async def test_me_requires_token(self, client):
        resp = await client.get("/api/v1/auth/me")
        assert resp.status_code == 401
