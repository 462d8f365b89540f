from typing import Optional

from libs.db.documents import DocumentModel
from services.events_service.models import UserStats


class MatchCreate(DocumentModel):
    opponent: str
    date: str
    time: str
    location: str = ""
    type: str = "League"
    home_or_away: str = "Home"
    # Admins may schedule a fixture on an athlete's calendar.
    user_id: Optional[str] = None


class MatchResult(DocumentModel):
    result: str
    user_stats: UserStats
