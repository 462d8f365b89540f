from datetime import timedelta
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.db.session import get_document_store
from libs.db.store import DocumentStore

security = HTTPBearer()

ALGORITHM = "HS256"
PROFILES_COLLECTION = "users"


def create_access_token(
    user_id: str,
    email: str,
    role: str = "athlete",
    expires_minutes: Optional[int] = None,
) -> str:
    """Issue a token in the same shape as the hosted identity provider."""
    settings = get_settings()
    expires = utc_now() + timedelta(
        minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )
    claims = {"sub": user_id, "email": email, "role": role, "exp": expires}
    return jwt.encode(claims, settings.SUPABASE_JWT_SECRET, algorithm=ALGORITHM)


def decode_access_token(token: str) -> AuthUser:
    """Decode and validate a bearer token; raises JWTError or ValidationError."""
    payload = jwt.decode(
        token,
        get_settings().SUPABASE_JWT_SECRET,
        algorithms=[ALGORITHM],
        options={"verify_aud": False},
    )
    return AuthUser(**payload)


async def get_current_user(
    token: Annotated[HTTPAuthorizationCredentials, Depends(security)]
) -> AuthUser:
    """
    Validate the bearer JWT and return the authenticated user.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        return decode_access_token(token.credentials)
    except (JWTError, ValidationError):
        raise credentials_exception


async def require_admin(
    current_user: Annotated[AuthUser, Depends(get_current_user)],
    store: Annotated[DocumentStore, Depends(get_document_store)],
) -> AuthUser:
    """
    Ensure the caller is an admin.

    Hosted-provider tokens carry role="authenticated", so the profile
    document's role is the fallback source of truth.
    """
    if current_user.is_admin:
        return current_user
    if current_user.email and current_user.email.lower() == get_settings().ADMIN_EMAIL.lower():
        return current_user.model_copy(update={"role": "admin"})

    profile = await store.get(PROFILES_COLLECTION, current_user.user_id)
    if profile and profile.get("role") == "admin":
        return current_user.model_copy(update={"role": "admin"})

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Admin privileges required",
    )
