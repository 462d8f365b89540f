"""Admin edits of athlete profiles."""

from fastapi import APIRouter, Depends

from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_document_store
from libs.db.store import DocumentStore
from services.members_service.models import UserProfile
from services.members_service.schemas import AdminProfileUpdate
from services.members_service.services import members as member_service

logger = get_logger(__name__)
router = APIRouter(prefix="/admin/members", tags=["admin"])


@router.patch("/{user_id}", response_model=UserProfile)
async def admin_update_member(
    user_id: str,
    payload: AdminProfileUpdate,
    admin: AuthUser = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store),
):
    """Edit any athlete's profile, including stats and role."""
    changes = payload.changes()
    logger.info(f"Admin {admin.user_id} editing {user_id}: {sorted(changes)}")
    return await member_service.update_profile(store, user_id, changes, as_admin=True)
