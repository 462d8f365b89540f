"""Members Service schemas package."""

from services.members_service.schemas.profile import (  # noqa: F401
    AdminProfileUpdate,
    AwardCreate,
    FollowResponse,
    PhysicalUpdate,
    ProfileUpdate,
    StatsUpdate,
)
