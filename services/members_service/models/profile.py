"""UserProfile document model."""

from typing import Optional

from pydantic import Field

from libs.db.documents import DocumentModel

PROFILES_COLLECTION = "users"

UNSET = "-"


class Physical(DocumentModel):
    # Free text ("1.78m", "68kg"); "-" means not filled in yet.
    height: str = UNSET
    weight: str = UNSET
    foot: str = UNSET
    age: str = UNSET


class Stats(DocumentModel):
    matches: int = 0
    goals: int = 0
    assists: int = 0
    minutes_played: int = 0
    rating_avg: float = 0.0


class UserProfile(DocumentModel):
    id: str
    email: str = ""
    role: str = "athlete"
    full_name: str = "Athlete"
    username: str = "user"
    avatar_url: str = ""
    bio: str
    position: str = UNSET
    club: str = UNSET
    phone: Optional[str] = None
    dob: Optional[str] = None
    physical: Physical = Field(default_factory=Physical)
    stats: Stats = Field(default_factory=Stats)
    followers: list[str] = Field(default_factory=list)
    following: list[str] = Field(default_factory=list)
    created_at: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
