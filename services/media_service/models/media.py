"""MediaItem document model and its review state machine."""

import enum
from typing import Optional

from pydantic import Field

from libs.common.errors import InvalidTransitionError
from libs.db.documents import DocumentModel

MEDIA_COLLECTION = "media"


class MediaType(str, enum.Enum):
    VIDEO = "video"
    PHOTO = "photo"


class MediaCategory(str, enum.Enum):
    MATCH = "Match"
    TRAINING = "Training"
    PHYSICAL = "Physical"
    TACTICAL = "Tactical"


class MediaStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FEATURED = "featured"


class ReviewDecision(str, enum.Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


# pending -> approved | rejected, approved -> featured. Nothing leaves
# rejected or featured.
TRANSITIONS: dict[MediaStatus, frozenset[MediaStatus]] = {
    MediaStatus.PENDING: frozenset({MediaStatus.APPROVED, MediaStatus.REJECTED}),
    MediaStatus.APPROVED: frozenset({MediaStatus.FEATURED}),
    MediaStatus.REJECTED: frozenset(),
    MediaStatus.FEATURED: frozenset(),
}

HIGHLIGHT_STATUSES = (MediaStatus.APPROVED.value, MediaStatus.FEATURED.value)


def ensure_transition(current: str, target: str) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    current_status, target_status = MediaStatus(current), MediaStatus(target)
    if target_status not in TRANSITIONS[current_status]:
        raise InvalidTransitionError(
            f"Media cannot move from {current_status.value} to {target_status.value}",
            field="status",
        )


class MediaItem(DocumentModel):
    id: str
    user_id: str
    type: MediaType
    title: str
    category: MediaCategory
    thumbnail_url: str
    date: str
    status: MediaStatus = MediaStatus.PENDING
    duration: Optional[str] = None

    coach_rating: Optional[float] = Field(default=None, ge=0, le=10)
    coach_feedback: Optional[str] = None
    reviewed_at: Optional[str] = None
    views: int = 0

    author_name: str = ""
    author_avatar: str = ""
    likes: list[str] = Field(default_factory=list)
    comments_count: int = 0
    created_at: Optional[str] = None

    @property
    def is_rated(self) -> bool:
        return self.coach_rating is not None
