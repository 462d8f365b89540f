"""MatchEvent document model."""

import enum
from typing import Optional

from libs.db.documents import DocumentModel

MATCHES_COLLECTION = "matches"


class MatchType(str, enum.Enum):
    LEAGUE = "League"
    FRIENDLY = "Friendly"
    CUP = "Cup"
    TRAINING = "Training"


class Venue(str, enum.Enum):
    HOME = "Home"
    AWAY = "Away"


class MatchStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class UserStats(DocumentModel):
    minutes: int = 0
    goals: int = 0
    assists: int = 0
    rating: float = 0.0


class MatchEvent(DocumentModel):
    id: str
    user_id: str
    opponent: str
    date: str
    time: str
    location: str = ""
    type: MatchType = MatchType.LEAGUE
    home_or_away: Venue = Venue.HOME
    status: MatchStatus = MatchStatus.SCHEDULED
    result: Optional[str] = None
    user_stats: Optional[UserStats] = None
    created_at: Optional[str] = None

    @property
    def kickoff(self) -> str:
        """Sortable "YYYY-MM-DDTHH:MM" key."""
        return f"{self.date}T{self.time}"
