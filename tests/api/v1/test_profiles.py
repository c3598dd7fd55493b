"""
Integration tests for Profile API endpoints.
"""
import pytest


@pytest.mark.asyncio
class TestProfileSetupAPI:
    """Test cases for the first-run setup step."""

    async def test_setup_profile(self, client, token_for):
        headers = {"Authorization": f"Bearer {token_for('newcomer')}"}

        response = await client.post(
            "/api/v1/profiles/setup",
            headers=headers,
            json={"display_name": "New Comer", "username": "NewComer", "bio": "hello"}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == "newcomer"
        assert data["displayName"] == "New Comer"
        assert data["username"] == "newcomer"
        assert data["privacyMode"] is False

    async def test_setup_requires_confirmed_email(self, client, token_for):
        headers = {"Authorization": f"Bearer {token_for('newcomer', confirmed=False)}"}

        response = await client.post(
            "/api/v1/profiles/setup",
            headers=headers,
            json={"display_name": "New Comer"}
        )

        assert response.status_code == 403

    async def test_setup_twice(self, client, auth_headers):
        """Test setting up an existing profile conflicts."""
        response = await client.post(
            "/api/v1/profiles/setup",
            headers=auth_headers,
            json={"display_name": "Alice Again"}
        )

        assert response.status_code == 409

    async def test_setup_taken_username(self, client, alice, token_for):
        headers = {"Authorization": f"Bearer {token_for('newcomer')}"}

        response = await client.post(
            "/api/v1/profiles/setup",
            headers=headers,
            json={"display_name": "Not Alice", "username": "ALICE"}
        )

        assert response.status_code == 409

    async def test_routes_need_profile(self, client, token_for):
        """Test profile routes answer 403 until setup is done."""
        headers = {"Authorization": f"Bearer {token_for('newcomer')}"}

        response = await client.get("/api/v1/profiles/me", headers=headers)

        assert response.status_code == 403
        assert response.json()["detail"] == "Profile setup required"


@pytest.mark.asyncio
class TestUsernameAvailabilityAPI:
    async def test_taken_case_insensitive(self, client, alice, bob_headers):
        response = await client.get(
            "/api/v1/profiles/username-availability",
            headers=bob_headers,
            params={"username": "Alice"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "alice"
        assert data["available"] is False

    async def test_own_username_available(self, client, auth_headers):
        response = await client.get(
            "/api/v1/profiles/username-availability",
            headers=auth_headers,
            params={"username": "alice"}
        )

        assert response.json()["available"] is True

    async def test_too_short(self, client, auth_headers):
        response = await client.get(
            "/api/v1/profiles/username-availability",
            headers=auth_headers,
            params={"username": "ab"}
        )

        data = response.json()
        assert data["available"] is False
        assert data["reason"]


@pytest.mark.asyncio
class TestMyProfileAPI:
    """Test cases for /profiles/me."""

    async def test_get_me(self, client, auth_headers):
        response = await client.get("/api/v1/profiles/me", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "alice"
        assert data["displayName"] == "Alice"

    async def test_update_me(self, client, auth_headers):
        response = await client.patch(
            "/api/v1/profiles/me",
            headers=auth_headers,
            json={"display_name": "Alice L.", "bio": "Off the grid", "privacy_mode": True}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["displayName"] == "Alice L."
        assert data["bio"] == "Off the grid"
        assert data["privacyMode"] is True
        assert data["username"] == "alice"

    async def test_update_bio_too_long(self, client, auth_headers):
        response = await client.patch(
            "/api/v1/profiles/me",
            headers=auth_headers,
            json={"bio": "x" * 201}
        )

        assert response.status_code == 400

    async def test_update_presence(self, client, auth_headers, ws_invalidate):
        response = await client.put(
            "/api/v1/profiles/me/presence",
            headers=auth_headers,
            json={"status": "away"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "away"
        ws_invalidate.assert_awaited()

    async def test_discovery_settings_round_trip(self, client, auth_headers):
        """Test discovery settings default to visible and can be changed."""
        response = await client.get("/api/v1/profiles/me/discovery", headers=auth_headers)
        assert response.json()["discoverable"] is True

        response = await client.put(
            "/api/v1/profiles/me/discovery",
            headers=auth_headers,
            json={"discoverable": False, "interests": [" hiking ", ""]}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["discoverable"] is False
        assert data["interests"] == ["hiking"]
        assert data["locationSharing"] is False


@pytest.mark.asyncio
class TestAvatarAPI:
    """Test cases for avatar upload."""

    async def test_upload_avatar(self, client, auth_headers, png_bytes, oss_bucket):
        response = await client.post(
            "/api/v1/profiles/me/avatar",
            headers=auth_headers,
            files={"file": ("me.png", png_bytes, "image/png")}
        )

        assert response.status_code == 200
        assert response.json()["avatarUrl"].startswith("https://")
        oss_bucket.put_object.assert_called_once()

    async def test_upload_avatar_wrong_type(self, client, auth_headers, oss_bucket):
        response = await client.post(
            "/api/v1/profiles/me/avatar",
            headers=auth_headers,
            files={"file": ("notes.txt", b"plain text", "text/plain")}
        )

        assert response.status_code == 415
        oss_bucket.put_object.assert_not_called()


@pytest.mark.asyncio
class TestGetProfileAPI:
    async def test_get_other_profile(self, client, auth_headers, bob):
        response = await client.get(f"/api/v1/profiles/{bob.id}", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["displayName"] == "Bob"
        assert "bio" not in data

    async def test_get_missing_profile(self, client, auth_headers):
        response = await client.get("/api/v1/profiles/nobody", headers=auth_headers)

        assert response.status_code == 404
