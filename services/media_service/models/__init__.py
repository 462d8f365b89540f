"""Media Service models package."""

from services.media_service.models.comment import COMMENTS_COLLECTION, Comment  # noqa: F401
from services.media_service.models.media import (  # noqa: F401
    HIGHLIGHT_STATUSES,
    MEDIA_COLLECTION,
    TRANSITIONS,
    MediaCategory,
    MediaItem,
    MediaStatus,
    MediaType,
    ReviewDecision,
    ensure_transition,
)
