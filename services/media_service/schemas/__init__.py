"""Media Service schemas package."""

from services.media_service.schemas.main import (  # noqa: F401
    CommentCreate,
    LikeResponse,
    MediaSubmit,
    RatingCommitResponse,
    RatingSummary,
    ReviewRequest,
)
