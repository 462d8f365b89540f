from contextlib import contextmanager
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from libs.auth.dependencies import create_access_token, get_current_user
from libs.auth.models import AuthUser
from libs.auth.provider import LocalAuthProvider
from libs.db.store import MemoryDocumentStore
from services.gateway_service.app.main import create_app
from services.members_service.models import PROFILES_COLLECTION
from tests.factories import ProfileFactory

API = "/api/v1"


def make_member_user(
    user_id: str = "athlete-1", email: str = "athlete@example.com"
) -> AuthUser:
    return AuthUser(user_id=user_id, email=email, role="athlete")


def make_admin_user(user_id: str = "admin-1", email: str = "coach@example.com") -> AuthUser:
    return AuthUser(user_id=user_id, email=email, role="admin")


def auth_headers(user: AuthUser) -> dict[str, str]:
    """Real bearer token for the user, signed with the test secret."""
    token = create_access_token(user.user_id, user.email or "", user.role)
    return {"Authorization": f"Bearer {token}"}


@contextmanager
def override_auth(app: FastAPI, user: AuthUser):
    """Make every request on ``app`` act as ``user`` without a token."""
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        app.dependency_overrides.pop(get_current_user, None)


async def seed_profile(
    store: MemoryDocumentStore, user_id: str, **overrides
) -> dict:
    doc = ProfileFactory.create(**overrides)
    await store.set(PROFILES_COLLECTION, user_id, doc)
    return {**doc, "id": user_id}


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def app(store: MemoryDocumentStore) -> FastAPI:
    return create_app(store=store, auth_provider=LocalAuthProvider(store))


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def athlete() -> AuthUser:
    return make_member_user()


@pytest.fixture
def admin() -> AuthUser:
    return make_admin_user()


@pytest_asyncio.fixture
async def seeded(store: MemoryDocumentStore, athlete: AuthUser, admin: AuthUser):
    """An athlete and an admin with complete profiles."""
    await seed_profile(store, athlete.user_id, fullName="Kai Mensah", email=athlete.email)
    await seed_profile(
        store, admin.user_id, fullName="Coach Ada", email=admin.email, role="admin"
    )
    return store
