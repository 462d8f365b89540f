"""Integration tests for uploads, the review desk, feeds, likes and comments."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from libs.auth.dependencies import create_access_token
from libs.auth.provider import LocalAuthProvider
from libs.db.store import MemoryDocumentStore
from services.gateway_service.app.main import create_app
from services.media_service.models import MEDIA_COLLECTION
from tests.conftest import API, auth_headers, make_member_user, seed_profile
from tests.factories import MediaFactory, minutes_ago


async def _submit(client, user, **overrides):
    response = await client.post(
        f"{API}/media", headers=auth_headers(user), json=MediaFactory.submission(**overrides)
    )
    assert response.status_code == 201
    return response.json()


# ---------------------------------------------------------------------------
# Submit and review
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submit_then_approve_with_rating(client, seeded, athlete, admin):
    item = await _submit(client, athlete, title="Volley")
    assert item["status"] == "pending"
    assert item["authorName"] == "Kai Mensah"
    assert item["coachRating"] is None

    pending = await client.get(f"{API}/admin/media/pending", headers=auth_headers(admin))
    assert [m["id"] for m in pending.json()] == [item["id"]]

    response = await client.post(
        f"{API}/admin/media/{item['id']}/review",
        headers=auth_headers(admin),
        json={"decision": "approved", "rating": 8, "feedback": "Clean strike"},
    )
    assert response.status_code == 200
    reviewed = response.json()
    assert reviewed["status"] == "approved"
    assert reviewed["coachRating"] == 8.0
    assert reviewed["coachFeedback"] == "Clean strike"

    pending = await client.get(f"{API}/admin/media/pending", headers=auth_headers(admin))
    assert pending.json() == []

    rating = await client.get(
        f"{API}/media/users/{athlete.user_id}/rating", headers=auth_headers(athlete)
    )
    assert rating.json() == {
        "userId": athlete.user_id,
        "persisted": 0.0,
        "computed": 8.0,
        "ratedItems": 1,
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_out_of_range_rating_is_rejected_and_item_stays_pending(
    client, seeded, athlete, admin
):
    item = await _submit(client, athlete)

    response = await client.post(
        f"{API}/admin/media/{item['id']}/review",
        headers=auth_headers(admin),
        json={"decision": "approved", "rating": 10.5},
    )

    assert response.status_code == 422
    assert response.json()["field"] == "rating"
    pending = await client.get(f"{API}/admin/media/pending", headers=auth_headers(admin))
    assert [m["id"] for m in pending.json()] == [item["id"]]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_conflicting_second_review_is_409(client, seeded, athlete, admin):
    item = await _submit(client, athlete)
    url = f"{API}/admin/media/{item['id']}/review"

    await client.post(url, headers=auth_headers(admin), json={"decision": "rejected"})
    response = await client.post(
        url, headers=auth_headers(admin), json={"decision": "approved", "rating": 9}
    )

    assert response.status_code == 409
    assert response.json()["code"] == "INVALID_TRANSITION"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_athletes_cannot_review_or_promote(client, seeded, athlete):
    item = await _submit(client, athlete)

    review = await client.post(
        f"{API}/admin/media/{item['id']}/review",
        headers=auth_headers(athlete),
        json={"decision": "approved", "rating": 10},
    )
    promote = await client.post(
        f"{API}/admin/media/{item['id']}/promote", headers=auth_headers(athlete)
    )

    assert review.status_code == 403
    assert promote.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_promote_and_commit_rating(client, store, seeded, athlete, admin):
    item = await _submit(client, athlete)
    await client.post(
        f"{API}/admin/media/{item['id']}/review",
        headers=auth_headers(admin),
        json={"decision": "approved", "rating": 6.5},
    )

    promoted = await client.post(
        f"{API}/admin/media/{item['id']}/promote", headers=auth_headers(admin)
    )
    assert promoted.json()["status"] == "featured"

    committed = await client.post(
        f"{API}/admin/members/{athlete.user_id}/rating/commit", headers=auth_headers(admin)
    )
    assert committed.json() == {"userId": athlete.user_id, "ratingAvg": 6.5}

    me = await client.get(f"{API}/members/me", headers=auth_headers(athlete))
    assert me.json()["stats"]["ratingAvg"] == 6.5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submission_validation(client, seeded, athlete):
    response = await client.post(
        f"{API}/media",
        headers=auth_headers(athlete),
        json=MediaFactory.submission(category="Skills"),
    )

    assert response.status_code == 422
    assert response.json()["field"] == "category"


# ---------------------------------------------------------------------------
# Feeds
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_global_feed_newest_first(client, store, athlete):
    for title, age in (("old", 20), ("new", 1), ("mid", 5)):
        await store.create(MEDIA_COLLECTION, MediaFactory.create(title=title, date=minutes_ago(age)))

    response = await client.get(
        f"{API}/media/feed", headers=auth_headers(athlete), params={"limit": 2}
    )

    assert [m["title"] for m in response.json()] == ["new", "mid"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_user_media_visibility(client, store, athlete):
    for status in ("pending", "approved", "rejected", "featured"):
        await store.create(
            MEDIA_COLLECTION, MediaFactory.create(title=status, status=status, userId=athlete.user_id)
        )
    url = f"{API}/media/users/{athlete.user_id}"

    own = await client.get(url, headers=auth_headers(athlete))
    other = await client.get(url, headers=auth_headers(make_member_user(user_id="athlete-2")))

    assert len(own.json()) == 4
    assert sorted(m["title"] for m in other.json()) == ["approved", "featured"]


# ---------------------------------------------------------------------------
# Likes and comments
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_like_toggle(client, store, athlete):
    media_id = await store.create(MEDIA_COLLECTION, MediaFactory.create())
    url = f"{API}/media/{media_id}/like"

    first = await client.post(url, headers=auth_headers(athlete))
    second = await client.post(url, headers=auth_headers(athlete))

    assert first.json() == {"id": media_id, "likes": 1, "liked": True}
    assert second.json() == {"id": media_id, "likes": 0, "liked": False}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_comments_roundtrip(client, store, seeded, athlete):
    media_id = await store.create(MEDIA_COLLECTION, MediaFactory.create())
    url = f"{API}/media/{media_id}/comments"

    created = await client.post(url, headers=auth_headers(athlete), json={"text": "Great run"})
    empty = await client.post(url, headers=auth_headers(athlete), json={"text": " "})
    listed = await client.get(url, headers=auth_headers(athlete))

    assert created.status_code == 201
    assert created.json()["authorName"] == "Kai Mensah"
    assert empty.status_code == 422
    assert [c["text"] for c in listed.json()] == ["Great run"]
    assert (await store.get(MEDIA_COLLECTION, media_id))["commentsCount"] == 1


# ---------------------------------------------------------------------------
# Live feed over WebSocket
# ---------------------------------------------------------------------------


@pytest.mark.integration
def test_feed_websocket_pushes_full_list_on_change():
    store = MemoryDocumentStore()
    app = create_app(store=store, auth_provider=LocalAuthProvider(store))
    token = create_access_token("athlete-1", "athlete@example.com")
    headers = {"Authorization": f"Bearer {token}"}

    with TestClient(app) as test_client:
        with test_client.websocket_connect(f"{API}/media/feed/ws?token={token}") as ws:
            assert ws.receive_json() == []

            test_client.post(f"{API}/media", headers=headers, json=MediaFactory.submission())
            first = ws.receive_json()
            assert [m["title"] for m in first] == ["Free kick drill"]

            test_client.post(
                f"{API}/media", headers=headers, json=MediaFactory.submission(title="Second")
            )
            second = ws.receive_json()
            assert [m["title"] for m in second] == ["Second", "Free kick drill"]


@pytest.mark.integration
def test_feed_websocket_rejects_bad_token():
    store = MemoryDocumentStore()
    app = create_app(store=store, auth_provider=LocalAuthProvider(store))

    with TestClient(app) as test_client:
        with pytest.raises(WebSocketDisconnect) as exc:
            with test_client.websocket_connect(f"{API}/media/feed/ws?token=nope") as ws:
                ws.receive_json()

    assert exc.value.code == 1008


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submission_copies_author_details(client, store):
    user = make_member_user(user_id="athlete-9")
    await seed_profile(store, user.user_id, fullName="Ama Owusu", avatarUrl="https://img/ama.png")

    item = await _submit(client, user)

    assert item["authorName"] == "Ama Owusu"
    assert item["authorAvatar"] == "https://img/ama.png"
