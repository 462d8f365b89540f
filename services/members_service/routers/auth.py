"""Sign-up, sign-in and sign-out."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials

from libs.auth.dependencies import security
from libs.auth.models import Credentials, Identity
from libs.auth.provider import AuthProvider, get_auth_provider
from libs.common.logging import get_logger
from libs.common.rate_limit import auth_limit
from libs.db.session import get_document_store
from libs.db.store import DocumentStore
from services.members_service.services.members import create_profile

logger = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/sign-up", response_model=Identity, status_code=status.HTTP_201_CREATED)
@auth_limit
async def sign_up(
    request: Request,
    credentials: Credentials,
    provider: AuthProvider = Depends(get_auth_provider),
    store: DocumentStore = Depends(get_document_store),
):
    """Create an account and its placeholder profile."""
    identity = await provider.sign_up(credentials)
    await create_profile(store, identity, credentials.full_name)
    return identity


@router.post("/sign-in", response_model=Identity)
@auth_limit
async def sign_in(
    request: Request,
    credentials: Credentials,
    provider: AuthProvider = Depends(get_auth_provider),
):
    return await provider.sign_in(credentials)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    token: HTTPAuthorizationCredentials = Depends(security),
    provider: AuthProvider = Depends(get_auth_provider),
):
    await provider.sign_out(token.credentials)
