"""Events Service schemas package."""

from services.events_service.schemas.match import MatchCreate, MatchResult  # noqa: F401
