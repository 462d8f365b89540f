"""Integration tests for profiles, the directory, follows and awards."""

import pytest

from services.members_service.models import PROFILES_COLLECTION
from tests.conftest import API, auth_headers, make_member_user, override_auth, seed_profile
from tests.factories import ProfileFactory


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_me_repairs_legacy_profile(client, store, athlete):
    await store.set(PROFILES_COLLECTION, athlete.user_id, ProfileFactory.legacy())

    response = await client.get(f"{API}/members/me", headers=auth_headers(athlete))

    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "athlete"
    assert data["followers"] == []
    stored = await store.get(PROFILES_COLLECTION, athlete.user_id)
    assert stored["stats"]["matches"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_patch_me_updates_partial_fields(client, seeded, athlete):
    response = await client.patch(
        f"{API}/members/me",
        headers=auth_headers(athlete),
        json={"club": "Harbour FC", "physical": {"height": "1.81m"}},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["club"] == "Harbour FC"
    assert data["physical"]["height"] == "1.81m"
    assert data["physical"]["foot"] == "Right"
    assert data["fullName"] == "Kai Mensah"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_patch_me_ignores_stats_and_rejects_bad_position(client, seeded, athlete):
    response = await client.patch(
        f"{API}/members/me", headers=auth_headers(athlete), json={"stats": {"goals": 99}}
    )
    assert response.status_code == 200
    assert response.json()["stats"]["goals"] == 0

    response = await client.patch(
        f"{API}/members/me", headers=auth_headers(athlete), json={"position": "Libero"}
    )
    assert response.status_code == 422
    assert response.json() == {
        "detail": "Unknown position",
        "code": "VALIDATION_ERROR",
        "field": "position",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_can_edit_stats_and_athlete_cannot_use_admin_route(
    client, seeded, athlete, admin
):
    response = await client.patch(
        f"{API}/admin/members/{athlete.user_id}",
        headers=auth_headers(admin),
        json={"stats": {"goals": 7, "ratingAvg": 8.2}},
    )
    assert response.status_code == 200
    assert response.json()["stats"]["goals"] == 7
    assert response.json()["stats"]["ratingAvg"] == 8.2

    response = await client.patch(
        f"{API}/admin/members/{athlete.user_id}",
        headers=auth_headers(athlete),
        json={"stats": {"goals": 70}},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_role_on_profile_is_honoured(client, store, athlete):
    # Hosted-provider tokens do not carry the admin role; the profile does.
    await seed_profile(store, athlete.user_id, role="admin")
    await seed_profile(store, "athlete-2")

    response = await client.patch(
        f"{API}/admin/members/athlete-2", headers=auth_headers(athlete), json={"club": "X"}
    )

    assert response.status_code == 200


@pytest.mark.asyncio
@pytest.mark.integration
async def test_directory_search_and_follow(client, app, seeded, athlete):
    await seed_profile(seeded, "athlete-2", fullName="Ama Owusu", club="Harbour FC")

    with override_auth(app, athlete):
        response = await client.get(f"{API}/members", params={"search": "harbour"})
        assert [p["id"] for p in response.json()] == ["athlete-2"]

        response = await client.get(f"{API}/members")
        assert athlete.user_id not in [p["id"] for p in response.json()]

        response = await client.post(f"{API}/members/athlete-2/follow")
        assert response.json() == {"userId": "athlete-2", "following": True}

        target = (await client.get(f"{API}/members/athlete-2")).json()
        assert target["followers"] == [athlete.user_id]

        response = await client.post(f"{API}/members/athlete-2/follow")
        assert response.json()["following"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_follow_self_and_unknown(client, seeded, athlete):
    headers = auth_headers(athlete)

    response = await client.post(f"{API}/members/{athlete.user_id}/follow", headers=headers)
    assert response.status_code == 422

    response = await client.post(f"{API}/members/ghost/follow", headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_awards_are_admin_managed(client, seeded, athlete, admin):
    payload = {"title": "Golden Boot", "date": "2024-06-15", "issuer": "County League"}

    denied = await client.post(
        f"{API}/members/{athlete.user_id}/awards", headers=auth_headers(athlete), json=payload
    )
    assert denied.status_code == 403

    created = await client.post(
        f"{API}/members/{athlete.user_id}/awards", headers=auth_headers(admin), json=payload
    )
    assert created.status_code == 201
    award = created.json()
    assert award["icon"] == "trophy"
    assert award["userId"] == athlete.user_id

    listed = await client.get(
        f"{API}/members/{athlete.user_id}/awards", headers=auth_headers(athlete)
    )
    assert [a["title"] for a in listed.json()] == ["Golden Boot"]

    wrong_owner = await client.delete(
        f"{API}/members/{admin.user_id}/awards/{award['id']}", headers=auth_headers(admin)
    )
    assert wrong_owner.status_code == 404

    deleted = await client.delete(
        f"{API}/members/{athlete.user_id}/awards/{award['id']}", headers=auth_headers(admin)
    )
    assert deleted.status_code == 204


@pytest.mark.asyncio
@pytest.mark.integration
async def test_unknown_member_is_404(client, seeded):
    response = await client.get(
        f"{API}/members/ghost", headers=auth_headers(make_member_user())
    )

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"
