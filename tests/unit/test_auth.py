"""Unit tests for tokens, the local auth provider and the auth session."""

import asyncio

import pytest
from fastapi import HTTPException
from jose import JWTError

from libs.auth import provider as provider_module
from libs.auth.dependencies import create_access_token, decode_access_token, require_admin
from libs.auth.models import AuthUser, Credentials
from libs.auth.provider import LocalAuthProvider, hash_password, verify_password
from libs.auth.session import AuthSession
from libs.common.config import get_settings
from libs.common.errors import AuthError
from libs.db.store import MemoryDocumentStore
from services.members_service.models import PROFILES_COLLECTION


def _credentials(email="kai@example.com", password="secret-pass", **extra):
    return Credentials(email=email, password=password, **extra)


@pytest.mark.unit
def test_token_roundtrip_carries_role():
    token = create_access_token("u1", "kai@example.com", "admin")

    user = decode_access_token(token)

    assert user.user_id == "u1"
    assert user.is_admin


@pytest.mark.unit
def test_expired_token_is_rejected():
    token = create_access_token("u1", "kai@example.com", expires_minutes=-1)

    with pytest.raises(JWTError):
        decode_access_token(token)


@pytest.mark.unit
def test_password_hashes_are_salted_bcrypt():
    first, second = hash_password("secret-pass"), hash_password("secret-pass")

    assert first != second
    assert first.startswith("$2b$")
    assert verify_password("secret-pass", first)
    assert not verify_password("wrong-pass", first)
    assert not verify_password("secret-pass", "")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_local_provider_hashes_off_the_event_loop(monkeypatch):
    offloaded = []
    real_to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(func)
        return await real_to_thread(func, *args, **kwargs)

    monkeypatch.setattr(provider_module.asyncio, "to_thread", recording_to_thread)
    provider = LocalAuthProvider(MemoryDocumentStore())

    await provider.sign_up(_credentials())
    await provider.sign_in(_credentials())

    assert offloaded == [hash_password, verify_password]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_local_sign_up_then_sign_in():
    provider = LocalAuthProvider(MemoryDocumentStore())

    created = await provider.sign_up(_credentials(email="Kai@Example.com"))
    signed_in = await provider.sign_in(_credentials())

    assert created.user_id == signed_in.user_id
    assert signed_in.email == "kai@example.com"
    assert decode_access_token(signed_in.access_token).user_id == created.user_id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_duplicate_sign_up_and_bad_password_fail():
    provider = LocalAuthProvider(MemoryDocumentStore())
    await provider.sign_up(_credentials())

    with pytest.raises(AuthError):
        await provider.sign_up(_credentials())
    with pytest.raises(AuthError):
        await provider.sign_in(_credentials(password="wrong-pass"))
    with pytest.raises(AuthError):
        await provider.sign_in(_credentials(email="nobody@example.com"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sign_in_takes_role_from_profile():
    store = MemoryDocumentStore()
    provider = LocalAuthProvider(store)
    identity = await provider.sign_up(_credentials())
    await store.set(PROFILES_COLLECTION, identity.user_id, {"role": "admin"})

    signed_in = await provider.sign_in(_credentials())

    assert signed_in.role == "admin"
    assert decode_access_token(signed_in.access_token).is_admin


@pytest.mark.asyncio
@pytest.mark.unit
async def test_session_notifies_listeners_including_late_ones():
    session = AuthSession(LocalAuthProvider(MemoryDocumentStore()))
    early, late = [], []
    await session.on_auth_state_change(early.append)

    identity = await session.sign_up(_credentials())
    await session.on_auth_state_change(late.append)
    await session.sign_out()
    await session.sign_out()

    assert early == [None, identity, None]
    assert late == [identity, None]
    assert session.identity is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unsubscribed_listener_hears_nothing():
    session = AuthSession(LocalAuthProvider(MemoryDocumentStore()))
    seen = []
    unsubscribe = await session.on_auth_state_change(seen.append)

    unsubscribe()
    await session.sign_up(_credentials())

    assert seen == [None]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_require_admin_accepts_admin_email_and_admin_profile():
    store = MemoryDocumentStore()
    await store.set(PROFILES_COLLECTION, "coach-2", {"role": "admin"})

    by_email = await require_admin(
        AuthUser(sub="u9", email=get_settings().ADMIN_EMAIL), store
    )
    by_profile = await require_admin(AuthUser(sub="coach-2"), store)

    assert by_email.is_admin
    assert by_profile.is_admin

    with pytest.raises(HTTPException) as exc:
        await require_admin(AuthUser(sub="athlete-9", email="kai@example.com"), store)
    assert exc.value.status_code == 403
