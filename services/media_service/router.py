"""Media router: uploads, feeds, likes, comments and the admin review desk."""

import asyncio
from typing import List, Optional

from fastapi import (
    APIRouter,
    Depends,
    Query,
    Request,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from jose import JWTError
from pydantic import ValidationError as PydanticValidationError

from libs.auth.dependencies import decode_access_token, get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.common.errors import AppError
from libs.common.logging import get_logger
from libs.common.rate_limit import upload_limit
from libs.db.session import get_document_store
from libs.db.store import DocumentStore
from services.media_service.models import Comment, MediaItem
from services.media_service.schemas import (
    CommentCreate,
    LikeResponse,
    MediaSubmit,
    RatingCommitResponse,
    RatingSummary,
    ReviewRequest,
)
from services.media_service.services import comments as comment_service
from services.media_service.services import review as review_service
from services.media_service.services.feed import FeedScope, FeedService, like_summary

logger = get_logger(__name__)
router = APIRouter(prefix="/media", tags=["media"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("", response_model=MediaItem, status_code=status.HTTP_201_CREATED)
@upload_limit
async def submit_media(
    request: Request,
    payload: MediaSubmit,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    """Upload a photo or clip; it waits for coach review."""
    return await review_service.submit_media(
        store, current_user.user_id, payload.model_dump(by_alias=True)
    )


@router.get("/feed", response_model=List[MediaItem])
async def get_feed(
    limit: Optional[int] = Query(None, ge=1),
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    """Everyone's media, newest first."""
    return await FeedService(store).list_feed(FeedScope.GLOBAL, limit=limit)


@router.websocket("/feed/ws")
async def stream_feed(
    websocket: WebSocket,
    token: str = Query(...),
    user_id: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
):
    """
    Push the feed to the client on every change.

    Each message is the full list, not a diff. Pass ``user_id`` for a single
    athlete's feed. The subscription lives until the client disconnects.
    """
    try:
        decode_access_token(token)
    except (JWTError, PydanticValidationError):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    store: DocumentStore = websocket.app.state.document_store
    scope = FeedScope.USER if user_id else FeedScope.GLOBAL
    await websocket.accept()

    snapshots: asyncio.Queue[list[MediaItem]] = asyncio.Queue()
    try:
        feed = await FeedService(store).subscribe_feed(
            scope, user_id=user_id, limit=limit, callback=snapshots.put_nowait
        )
    except AppError as e:
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason=e.message)
        return

    disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        while True:
            next_snapshot = asyncio.create_task(snapshots.get())
            done, _ = await asyncio.wait(
                {next_snapshot, disconnected}, return_when=asyncio.FIRST_COMPLETED
            )
            if disconnected in done:
                next_snapshot.cancel()
                break
            items = next_snapshot.result()
            await websocket.send_json(
                [item.model_dump(mode="json", by_alias=True) for item in items]
            )
    except WebSocketDisconnect:
        pass
    finally:
        feed.cancel()
        disconnected.cancel()
        logger.debug("Feed stream closed")


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return


@router.get("/users/{user_id}", response_model=List[MediaItem])
async def get_user_media(
    user_id: str,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    """
    One athlete's media, newest first.

    The owner sees every item including pending and rejected ones; other
    athletes only see highlights.
    """
    feed = FeedService(store)
    if current_user.user_id == user_id or current_user.is_admin:
        return await feed.list_feed(FeedScope.USER, user_id=user_id)
    return await feed.highlights(user_id)


@router.get("/users/{user_id}/highlights", response_model=List[MediaItem])
async def get_user_highlights(
    user_id: str,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    return await FeedService(store).highlights(user_id)


@router.get("/users/{user_id}/rating", response_model=RatingSummary)
async def get_user_rating(
    user_id: str,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    """Persisted ratingAvg next to the live mean of coach ratings."""
    return await review_service.rating_summary(store, user_id)


@router.post("/{media_id}/like", response_model=LikeResponse)
async def toggle_like(
    media_id: str,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    item = await FeedService(store).toggle_like(media_id, current_user.user_id)
    return like_summary(item, current_user.user_id)


@router.get("/{media_id}/comments", response_model=List[Comment])
async def list_comments(
    media_id: str,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    return await comment_service.list_comments(store, media_id)


@router.post(
    "/{media_id}/comments", response_model=Comment, status_code=status.HTTP_201_CREATED
)
@upload_limit
async def add_comment(
    request: Request,
    media_id: str,
    payload: CommentCreate,
    current_user: AuthUser = Depends(get_current_user),
    store: DocumentStore = Depends(get_document_store),
):
    return await comment_service.add_comment(
        store, media_id, current_user.user_id, payload.text
    )


# ==================================================================
# ADMIN
# ==================================================================


@admin_router.get("/media/pending", response_model=List[MediaItem])
async def list_pending_media(
    admin: AuthUser = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store),
):
    return await review_service.pending_media(store)


@admin_router.post("/media/{media_id}/review", response_model=MediaItem)
async def review_media(
    media_id: str,
    payload: ReviewRequest,
    admin: AuthUser = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store),
):
    """Approve (optionally with a 0-10 rating) or reject a pending item."""
    return await review_service.review_media(
        store, media_id, payload.decision, payload.rating, payload.feedback
    )


@admin_router.post("/media/{media_id}/promote", response_model=MediaItem)
async def promote_media(
    media_id: str,
    admin: AuthUser = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store),
):
    return await review_service.promote_media(store, media_id)


@admin_router.post("/members/{user_id}/rating/commit", response_model=RatingCommitResponse)
async def commit_rating(
    user_id: str,
    admin: AuthUser = Depends(require_admin),
    store: DocumentStore = Depends(get_document_store),
):
    """Store the current mean coach rating as the athlete's ratingAvg."""
    average = await review_service.commit_rating_average(store, user_id)
    return {"userId": user_id, "ratingAvg": average}
