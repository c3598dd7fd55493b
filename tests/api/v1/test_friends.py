"""
Integration tests for Friendship API endpoints.
"""
import pytest


@pytest.mark.asyncio
class TestFriendRequestAPI:
    """Test cases for the friend request lifecycle."""

    async def test_send_request_unauthorized(self, client, bob):
        response = await client.post("/api/v1/friends/requests", json={"friend_id": bob.id})

        assert response.status_code == 401

    async def test_send_request(self, client, auth_headers, bob):
        response = await client.post(
            "/api/v1/friends/requests",
            headers=auth_headers,
            json={"friend_id": bob.id}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["userId"] == "alice"
        assert data["friendId"] == "bob"
        assert data["status"] == "pending"

    async def test_send_duplicate_request(self, client, auth_headers, bob):
        await client.post("/api/v1/friends/requests", headers=auth_headers, json={"friend_id": bob.id})

        response = await client.post(
            "/api/v1/friends/requests",
            headers=auth_headers,
            json={"friend_id": bob.id}
        )

        assert response.status_code == 409

    async def test_send_request_to_self(self, client, auth_headers, alice):
        response = await client.post(
            "/api/v1/friends/requests",
            headers=auth_headers,
            json={"friend_id": alice.id}
        )

        assert response.status_code == 400

    async def test_accept_flow(self, client, auth_headers, bob_headers, bob):
        """Test bob sees alice's request, accepts it and both become friends."""
        sent = await client.post(
            "/api/v1/friends/requests",
            headers=auth_headers,
            json={"friend_id": bob.id}
        )
        request_id = sent.json()["id"]

        count = await client.get("/api/v1/friends/requests/count", headers=bob_headers)
        assert count.json() == {"count": 1}

        requests = await client.get("/api/v1/friends/requests", headers=bob_headers)
        incoming = requests.json()["incoming"]
        assert [r["id"] for r in incoming] == [request_id]
        assert incoming[0]["profile"]["displayName"] == "Alice"

        response = await client.post(
            f"/api/v1/friends/requests/{request_id}/accept",
            headers=bob_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "accepted"

        friends = await client.get("/api/v1/friends/", headers=auth_headers)
        assert [f["profile"]["id"] for f in friends.json()] == ["bob"]

        friends = await client.get("/api/v1/friends/", headers=bob_headers)
        assert [f["profile"]["id"] for f in friends.json()] == ["alice"]

    async def test_sender_cannot_accept(self, client, auth_headers, bob):
        sent = await client.post(
            "/api/v1/friends/requests",
            headers=auth_headers,
            json={"friend_id": bob.id}
        )

        response = await client.post(
            f"/api/v1/friends/requests/{sent.json()['id']}/accept",
            headers=auth_headers
        )

        assert response.status_code == 403

    async def test_decline(self, client, auth_headers, bob_headers, bob):
        sent = await client.post(
            "/api/v1/friends/requests",
            headers=auth_headers,
            json={"friend_id": bob.id}
        )

        response = await client.post(
            f"/api/v1/friends/requests/{sent.json()['id']}/decline",
            headers=bob_headers
        )

        assert response.status_code == 204
        status_response = await client.get(f"/api/v1/friends/status/{bob.id}", headers=auth_headers)
        assert status_response.json() == {"userId": "bob", "status": "none"}

    async def test_cancel(self, client, auth_headers, bob):
        sent = await client.post(
            "/api/v1/friends/requests",
            headers=auth_headers,
            json={"friend_id": bob.id}
        )

        response = await client.delete(
            f"/api/v1/friends/requests/{sent.json()['id']}",
            headers=auth_headers
        )

        assert response.status_code == 204
        requests = await client.get("/api/v1/friends/requests", headers=auth_headers)
        assert requests.json()["outgoing"] == []


@pytest.mark.asyncio
class TestFriendsAPI:
    """Test cases for existing friendships."""

    async def test_relationship_status(self, client, auth_headers, bob, make_friends, alice):
        await make_friends(alice.id, bob.id)

        response = await client.get(f"/api/v1/friends/status/{bob.id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "accepted"

    async def test_pending_status_directions(self, client, auth_headers, bob_headers, bob):
        await client.post("/api/v1/friends/requests", headers=auth_headers, json={"friend_id": bob.id})

        outgoing = await client.get(f"/api/v1/friends/status/{bob.id}", headers=auth_headers)
        incoming = await client.get("/api/v1/friends/status/alice", headers=bob_headers)

        assert outgoing.json()["status"] == "pending_sent"
        assert incoming.json()["status"] == "pending_received"

    async def test_remove_friend(self, client, auth_headers, bob_headers, bob, make_friends, alice):
        await make_friends(alice.id, bob.id)

        response = await client.delete(f"/api/v1/friends/{bob.id}", headers=auth_headers)

        assert response.status_code == 204
        friends = await client.get("/api/v1/friends/", headers=bob_headers)
        assert friends.json() == []

    async def test_block(self, client, auth_headers, bob_headers, bob, make_friends, alice):
        """Test blocking replaces the friendship and stops new requests."""
        await make_friends(alice.id, bob.id)

        response = await client.post(f"/api/v1/friends/{bob.id}/block", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "blocked"

        retry = await client.post(
            "/api/v1/friends/requests",
            headers=bob_headers,
            json={"friend_id": alice.id}
        )
        assert retry.status_code == 409

    async def test_blocked_user_cannot_block_back(self, client, auth_headers, bob_headers, bob, alice):
        await client.post(f"/api/v1/friends/{bob.id}/block", headers=auth_headers)

        response = await client.post(f"/api/v1/friends/{alice.id}/block", headers=bob_headers)

        assert response.status_code == 409
        status_response = await client.get(f"/api/v1/friends/status/{bob.id}", headers=auth_headers)
        assert status_response.json()["status"] == "blocked"

    async def test_unblock(self, client, auth_headers, bob_headers, bob, alice):
        """Test only the blocker can lift a block, after which requests work again."""
        await client.post(f"/api/v1/friends/{bob.id}/block", headers=auth_headers)

        by_blocked = await client.delete(f"/api/v1/friends/{alice.id}/block", headers=bob_headers)
        by_blocker = await client.delete(f"/api/v1/friends/{bob.id}/block", headers=auth_headers)

        assert by_blocked.status_code == 404
        assert by_blocker.status_code == 204
        request = await client.post(
            "/api/v1/friends/requests",
            headers=bob_headers,
            json={"friend_id": alice.id}
        )
        assert request.status_code == 201

    async def test_list_friends_search(self, client, auth_headers, bob, carol, make_friends, alice):
        await make_friends(alice.id, bob.id)
        await make_friends(alice.id, carol.id)

        response = await client.get("/api/v1/friends/", headers=auth_headers, params={"q": "bo"})

        assert response.status_code == 200
        assert [f["profile"]["id"] for f in response.json()] == [bob.id]
