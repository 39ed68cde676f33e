import pytest

from conftest import ALICE, BOB, CAROL, PUBLIC_POST, PRIVATE_POST, as_profile


@pytest.mark.asyncio
async def test_health(api_client):
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_follow_requires_authentication(api_client):
    response = await api_client.post(f"/api/v1/social/follows/{BOB}")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_follow_request_and_accept(api_client):
    response = await api_client.post(f"/api/v1/social/follows/{BOB}", headers=as_profile(ALICE))
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "status": "pending",
        "message": "Follow request sent",
    }

    response = await api_client.get(
        "/api/v1/social/follows/requests/pending", headers=as_profile(BOB)
    )
    body = response.json()
    assert body["total"] == 1
    assert body["requests"][0]["follower_id"] == ALICE

    response = await api_client.post(
        f"/api/v1/social/follows/requests/{ALICE}",
        json={"action": "accept"},
        headers=as_profile(BOB),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "accepted"

    response = await api_client.get(
        f"/api/v1/social/relationships/{BOB}", headers=as_profile(ALICE)
    )
    assert response.json() == {"profile_id": BOB, "outgoing": "accepted", "incoming": None}

    response = await api_client.get("/api/v1/social/notifications", headers=as_profile(ALICE))
    notifications = response.json()["notifications"]
    assert [n["type"] for n in notifications] == ["follow_accepted"]


@pytest.mark.asyncio
async def test_invalid_follow_action(api_client):
    response = await api_client.post(
        f"/api/v1/social/follows/requests/{ALICE}",
        json={"action": "ignore"},
        headers=as_profile(BOB),
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_domain_errors_map_to_status_codes(api_client):
    response = await api_client.post(f"/api/v1/social/follows/{ALICE}", headers=as_profile(ALICE))
    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"

    await api_client.post(f"/api/v1/social/follows/{ALICE}", headers=as_profile(BOB))
    response = await api_client.post(f"/api/v1/social/follows/{ALICE}", headers=as_profile(BOB))
    assert response.status_code == 409
    assert response.json()["code"] == "conflict"

    response = await api_client.delete(f"/api/v1/social/follows/{CAROL}", headers=as_profile(BOB))
    assert response.status_code == 404

    response = await api_client.post(
        f"/api/v1/social/content/{PRIVATE_POST}/like", headers=as_profile(CAROL)
    )
    assert response.status_code == 403
    assert response.json()["code"] == "permission_denied"


@pytest.mark.asyncio
async def test_like_and_counters(api_client):
    response = await api_client.post(
        f"/api/v1/social/content/{PUBLIC_POST}/like", headers=as_profile(BOB)
    )
    assert response.status_code == 200
    assert response.json()["likes_count"] == 1

    response = await api_client.get(f"/api/v1/social/content/{PUBLIC_POST}/counters")
    assert response.json() == {
        "content_id": PUBLIC_POST,
        "likes_count": 1,
        "comments_count": 0,
        "saves_count": 0,
    }

    response = await api_client.get("/api/v1/social/notifications/unread-count", headers=as_profile(ALICE))
    assert response.json() == {"unread_count": 1}


@pytest.mark.asyncio
async def test_comment_lifecycle(api_client):
    response = await api_client.post(
        f"/api/v1/social/content/{PUBLIC_POST}/comments",
        json={"text": "great shot"},
        headers=as_profile(BOB),
    )
    assert response.status_code == 201
    comment = response.json()
    assert comment["body"] == "great shot"

    response = await api_client.delete(
        f"/api/v1/social/comments/{comment['id']}", headers=as_profile(CAROL)
    )
    assert response.status_code == 403

    response = await api_client.delete(
        f"/api/v1/social/comments/{comment['id']}", headers=as_profile(ALICE)
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_can_view_for_anonymous_viewer(api_client):
    response = await api_client.get(f"/api/v1/social/content/{PRIVATE_POST}/can-view")
    assert response.json() == {"content_id": PRIVATE_POST, "viewer_id": None, "allowed": False}

    response = await api_client.get(
        f"/api/v1/social/content/{PRIVATE_POST}/can-view", headers=as_profile(ALICE)
    )
    assert response.json()["allowed"] is True


@pytest.mark.asyncio
async def test_tagging_and_tagged_content(api_client):
    response = await api_client.post(
        f"/api/v1/social/content/{PRIVATE_POST}/tags",
        json={"profile_id": CAROL},
        headers=as_profile(ALICE),
    )
    assert response.status_code == 201
    assert response.json()["status"] == "active"

    response = await api_client.get(
        f"/api/v1/social/profiles/{CAROL}/tagged", headers=as_profile(CAROL)
    )
    assert [c["id"] for c in response.json()["contents"]] == [PRIVATE_POST]

    response = await api_client.get(
        f"/api/v1/social/profiles/{CAROL}/tagged", headers=as_profile(BOB)
    )
    assert response.json()["contents"] == []

    response = await api_client.delete(
        f"/api/v1/social/content/{PRIVATE_POST}/tags/{CAROL}", headers=as_profile(CAROL)
    )
    assert response.json()["status"] == "removed"


@pytest.mark.asyncio
async def test_preferences_and_mark_read(api_client):
    response = await api_client.get(
        "/api/v1/social/notifications/preferences", headers=as_profile(ALICE)
    )
    assert response.json()["flags"]["email"] is False

    response = await api_client.put(
        "/api/v1/social/notifications/preferences",
        json={"flags": {"like": False, "email": True}},
        headers=as_profile(ALICE),
    )
    flags = response.json()["flags"]
    assert flags["like"] is False
    assert flags["email"] is True

    response = await api_client.put(
        "/api/v1/social/notifications/preferences",
        json={"flags": {"unknown": True}},
        headers=as_profile(ALICE),
    )
    assert response.status_code == 400

    await api_client.post(
        f"/api/v1/social/content/{PUBLIC_POST}/comments",
        json={"text": "hello"},
        headers=as_profile(BOB),
    )
    response = await api_client.get("/api/v1/social/notifications", headers=as_profile(ALICE))
    notification_id = response.json()["notifications"][0]["id"]

    response = await api_client.post(
        f"/api/v1/social/notifications/{notification_id}/read", headers=as_profile(BOB)
    )
    assert response.status_code == 403

    response = await api_client.post(
        f"/api/v1/social/notifications/{notification_id}/read", headers=as_profile(ALICE)
    )
    assert response.json()["read"] is True

    response = await api_client.post(
        "/api/v1/social/notifications/read-all", headers=as_profile(ALICE)
    )
    assert response.json() == {"updated": 0}


@pytest.mark.asyncio
async def test_reconcile_is_owner_only(api_client):
    response = await api_client.post(
        f"/api/v1/social/content/{PUBLIC_POST}/reconcile", headers=as_profile(BOB)
    )
    assert response.status_code == 403

    response = await api_client.post(
        f"/api/v1/social/content/{PUBLIC_POST}/reconcile", headers=as_profile(ALICE)
    )
    assert response.status_code == 200
    assert response.json()["drifted"] is False


@pytest.mark.asyncio
async def test_rejected_preference_update_changes_nothing(api_client):
    response = await api_client.put(
        "/api/v1/social/notifications/preferences",
        json={"flags": {"like": False, "bogus": True}},
        headers=as_profile(ALICE),
    )
    assert response.status_code == 400

    response = await api_client.get(
        "/api/v1/social/notifications/preferences", headers=as_profile(ALICE)
    )
    assert response.json()["flags"]["like"] is True


@pytest.mark.asyncio
async def test_followers_and_stats(api_client):
    await api_client.post(f"/api/v1/social/follows/{ALICE}", headers=as_profile(BOB))

    response = await api_client.get(f"/api/v1/social/followers/{ALICE}")
    assert response.status_code == 200
    body = response.json()
    assert [edge["follower_id"] for edge in body["edges"]] == [BOB]
    assert body["total"] == 1

    response = await api_client.get(f"/api/v1/social/following/{BOB}", headers=as_profile(CAROL))
    assert response.status_code == 403

    response = await api_client.get(f"/api/v1/social/stats/{BOB}", headers=as_profile(BOB))
    assert response.json() == {
        "profile_id": BOB,
        "follower_count": 0,
        "following_count": 1,
        "pending_requests_count": 0,
    }
