"""Events Service models package."""

from services.events_service.models.match import (  # noqa: F401
    MATCHES_COLLECTION,
    MatchEvent,
    MatchStatus,
    MatchType,
    UserStats,
    Venue,
)
