"""Authentication providers.

The hosted provider (Supabase) is used in deployed environments; the local
provider keeps accounts in the document store and signs tokens with the same
secret, so the bearer-token dependency works identically for both.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from fastapi import Request
from passlib.context import CryptContext
from supabase import AuthError as SupabaseAuthError
from supabase import Client, create_client

from libs.auth.dependencies import PROFILES_COLLECTION, create_access_token
from libs.auth.models import Credentials, Identity
from libs.common.errors import AuthError
from libs.common.logging import get_logger
from libs.db.query import QuerySpec
from libs.db.store import DocumentStore

logger = get_logger(__name__)

ACCOUNTS_COLLECTION = "accounts"
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthProvider(ABC):
    """Issues identities for credentials."""

    @abstractmethod
    async def sign_up(self, credentials: Credentials) -> Identity:
        ...

    @abstractmethod
    async def sign_in(self, credentials: Credentials) -> Identity:
        ...

    @abstractmethod
    async def sign_out(self, access_token: Optional[str]) -> None:
        ...


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, stored: str) -> bool:
    if not stored:
        return False
    return pwd_context.verify(password, stored)


class LocalAuthProvider(AuthProvider):
    def __init__(self, store: DocumentStore):
        self.store = store

    async def _find_account(self, email: str) -> Optional[dict]:
        accounts = await self.store.query(
            ACCOUNTS_COLLECTION, QuerySpec().where("email", "==", email.lower())
        )
        return accounts[0] if accounts else None

    async def sign_up(self, credentials: Credentials) -> Identity:
        email = credentials.email.lower()
        if await self._find_account(email):
            raise AuthError("An account with this email already exists")

        # bcrypt is CPU bound; keep it off the event loop.
        password_hash = await asyncio.to_thread(hash_password, credentials.password)

        account_id = await self.store.create(
            ACCOUNTS_COLLECTION,
            {
                "email": email,
                "passwordHash": password_hash,
                "role": "athlete",
            },
        )
        logger.info(f"Created local account {account_id}")
        return Identity(
            user_id=account_id,
            email=email,
            access_token=create_access_token(account_id, email, "athlete"),
        )

    async def sign_in(self, credentials: Credentials) -> Identity:
        account = await self._find_account(credentials.email)
        if not account or not await asyncio.to_thread(
            verify_password, credentials.password, account.get("passwordHash", "")
        ):
            raise AuthError("Invalid email or password")

        # Admins are promoted on their profile document, not on the account.
        profile = await self.store.get(PROFILES_COLLECTION, account["id"])
        role = (profile or {}).get("role") or account.get("role", "athlete")
        return Identity(
            user_id=account["id"],
            email=account["email"],
            role=role,
            access_token=create_access_token(account["id"], account["email"], role),
        )

    async def sign_out(self, access_token: Optional[str]) -> None:
        # Local tokens are stateless and simply expire.
        logger.debug("Local sign-out")


class SupabaseAuthProvider(AuthProvider):
    """Delegates to Supabase Auth; the client is synchronous so calls run in a thread."""

    def __init__(self, url: str, anon_key: str, client: Optional[Client] = None):
        self.client = client or create_client(url, anon_key)

    @staticmethod
    def _identity(response) -> Identity:
        if response.user is None:
            raise AuthError("Authentication provider returned no user")
        session = response.session
        return Identity(
            user_id=response.user.id,
            email=response.user.email,
            access_token=session.access_token if session else None,
        )

    async def sign_up(self, credentials: Credentials) -> Identity:
        payload = {
            "email": credentials.email,
            "password": credentials.password,
            "options": {"data": {"full_name": credentials.full_name or ""}},
        }
        try:
            response = await asyncio.to_thread(self.client.auth.sign_up, payload)
        except SupabaseAuthError as e:
            raise AuthError(e.message) from e
        return self._identity(response)

    async def sign_in(self, credentials: Credentials) -> Identity:
        payload = {"email": credentials.email, "password": credentials.password}
        try:
            response = await asyncio.to_thread(
                self.client.auth.sign_in_with_password, payload
            )
        except SupabaseAuthError as e:
            raise AuthError(e.message) from e
        return self._identity(response)

    async def sign_out(self, access_token: Optional[str]) -> None:
        try:
            await asyncio.to_thread(self.client.auth.sign_out)
        except SupabaseAuthError as e:
            logger.warning(f"Supabase sign-out failed: {e.message}")


def build_auth_provider(settings, store: DocumentStore) -> AuthProvider:
    if settings.AUTH_BACKEND == "supabase":
        return SupabaseAuthProvider(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
    return LocalAuthProvider(store)


def get_auth_provider(request: Request) -> AuthProvider:
    """FastAPI dependency returning the application's auth provider."""
    return request.app.state.auth_provider
