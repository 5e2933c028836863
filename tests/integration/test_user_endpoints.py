"""
Integration tests for user, follow and auth endpoints.
"""

from tests.async_test_utils import TEST_PASSWORD, auth_header_for

USERS_URL = "/api/v1/users"
AUTH_URL = "/api/v1/auth"


class TestAuthEndpoints:

    async def test_register_then_login(self, async_client):
        response = await async_client.post(
            f"{AUTH_URL}/register",
            json={"username": "dave", "email": "dave@example.com", "password": "a-long-password"},
        )
        assert response.status_code == 201, response.text
        assert response.json()["email"] == "dave@example.com"
        assert "hashed_password" not in response.json()

        token_response = await async_client.post(
            f"{AUTH_URL}/token", data={"username": "dave", "password": "a-long-password"}
        )
        assert token_response.status_code == 200
        token = token_response.json()["access_token"]

        me = await async_client.get(f"{AUTH_URL}/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["username"] == "dave"

    async def test_register_duplicate_username(self, async_client, alice):
        response = await async_client.post(
            f"{AUTH_URL}/register",
            json={"username": "alice", "email": "new@example.com", "password": "a-long-password"},
        )

        assert response.status_code == 409

    async def test_register_invalid_email(self, async_client):
        response = await async_client.post(
            f"{AUTH_URL}/register",
            json={"username": "erin", "email": "not-an-email", "password": "a-long-password"},
        )

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "email"

    async def test_login_with_wrong_password(self, async_client, alice):
        response = await async_client.post(f"{AUTH_URL}/token", data={"username": "alice", "password": "nope"})

        assert response.status_code == 401

    async def test_login_with_right_password(self, async_client, alice):
        response = await async_client.post(f"{AUTH_URL}/token", data={"username": "alice", "password": TEST_PASSWORD})

        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

    async def test_invalid_token(self, async_client):
        response = await async_client.get(f"{AUTH_URL}/me", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401


class TestUserEndpoints:

    async def test_list_and_get(self, async_client, alice, bob):
        listing = await async_client.get(USERS_URL)
        single = await async_client.get(f"{USERS_URL}/{bob.id}")

        assert [u["username"] for u in listing.json()] == ["alice", "bob"]
        assert single.json()["username"] == "bob"
        assert "email" not in single.json()

    async def test_get_unknown_user(self, async_client):
        response = await async_client.get(f"{USERS_URL}/555")

        assert response.status_code == 404

    async def test_user_posts(self, async_client, alice, eleven_posts):
        response = await async_client.get(f"{USERS_URL}/{alice.id}/posts", params={"limit": 2})

        assert [p["id"] for p in response.json()] == [eleven_posts[10].id, eleven_posts[9].id]

    async def test_permission_update_by_administrator(self, async_client, bob, admin):
        response = await async_client.put(
            f"{USERS_URL}/{bob.id}/permission", json={"permission": 1}, headers=auth_header_for(admin)
        )

        assert response.status_code == 200
        assert response.json()["permission"] == 1

    async def test_permission_update_by_member(self, async_client, alice, bob):
        response = await async_client.put(
            f"{USERS_URL}/{alice.id}/permission", json={"permission": 2}, headers=auth_header_for(bob)
        )

        assert response.status_code == 401

    async def test_delete_self(self, async_client, alice):
        response = await async_client.delete(f"{USERS_URL}/{alice.id}", headers=auth_header_for(alice))

        assert response.status_code == 204
        assert (await async_client.get(f"{USERS_URL}/{alice.id}")).status_code == 404

    async def test_delete_someone_else(self, async_client, alice, bob):
        response = await async_client.delete(f"{USERS_URL}/{alice.id}", headers=auth_header_for(bob))

        assert response.status_code == 401


class TestFollowEndpoints:

    async def test_follow_unfollow_sequence(self, async_client, alice, bob):
        url = f"{USERS_URL}/{alice.id}/follow/{bob.id}"
        headers = auth_header_for(alice)

        first = await async_client.post(url, headers=headers)
        second = await async_client.post(url, headers=headers)

        assert first.json() == {"followers": 1}
        assert second.status_code == 409

        followers = await async_client.get(f"{USERS_URL}/{bob.id}/followers")
        following = await async_client.get(f"{USERS_URL}/{alice.id}/following")
        assert [u["username"] for u in followers.json()] == ["alice"]
        assert [u["username"] for u in following.json()] == ["bob"]

        third = await async_client.delete(url, headers=headers)
        fourth = await async_client.delete(url, headers=headers)

        assert third.json() == {"followers": 0}
        assert fourth.status_code == 409

    async def test_self_follow(self, async_client, alice):
        response = await async_client.post(
            f"{USERS_URL}/{alice.id}/follow/{alice.id}", headers=auth_header_for(alice)
        )

        assert response.status_code == 400

    async def test_follow_on_behalf_of_someone_else(self, async_client, alice, bob):
        response = await async_client.post(
            f"{USERS_URL}/{alice.id}/follow/{bob.id}", headers=auth_header_for(bob)
        )

        assert response.status_code == 401


class TestHealth:

    async def test_app_health(self, async_client):
        response = await async_client.get("/api/v1/health/app-health")

        assert response.json() == {"status": "healthy"}

    async def test_root(self, async_client):
        response = await async_client.get("/")

        assert response.json()["status"] == "ok"
