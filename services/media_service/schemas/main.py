"""Pydantic schemas for Media Service.

Request and response bodies use the same camelCase keys as the stored
documents.
"""

from typing import Optional

from libs.db.documents import DocumentModel
from services.media_service.models import ReviewDecision


class MediaSubmit(DocumentModel):
    """Upload form. Type/category are checked by the workflow, not here."""

    title: str
    type: str
    category: str
    thumbnail_url: str
    duration: Optional[str] = None


class ReviewRequest(DocumentModel):
    decision: ReviewDecision
    # Range is checked by the workflow so that every caller gets the same error.
    rating: Optional[float] = None
    feedback: Optional[str] = None


class CommentCreate(DocumentModel):
    text: str


class LikeResponse(DocumentModel):
    id: str
    likes: int
    liked: bool


class RatingSummary(DocumentModel):
    user_id: str
    persisted: float
    computed: float
    rated_items: int


class RatingCommitResponse(DocumentModel):
    user_id: str
    rating_avg: float
