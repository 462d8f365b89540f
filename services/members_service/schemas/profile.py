"""Pydantic schemas for profile edits and awards.

Edits are partial: only the keys present in the request are written.
Allowed values (positions, preferred foot, rating range) are checked by the
profile service so the API and the sync engine share one set of rules.
"""

from typing import Optional

from libs.db.documents import DocumentModel


class PhysicalUpdate(DocumentModel):
    height: Optional[str] = None
    weight: Optional[str] = None
    foot: Optional[str] = None
    age: Optional[str] = None


class StatsUpdate(DocumentModel):
    matches: Optional[int] = None
    goals: Optional[int] = None
    assists: Optional[int] = None
    minutes_played: Optional[int] = None
    rating_avg: Optional[float] = None


class ProfileUpdate(DocumentModel):
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    position: Optional[str] = None
    club: Optional[str] = None
    phone: Optional[str] = None
    dob: Optional[str] = None
    physical: Optional[PhysicalUpdate] = None

    def changes(self) -> dict:
        return self.model_dump(by_alias=True, exclude_unset=True)


class AdminProfileUpdate(ProfileUpdate):
    """Admins may also correct stats and change the role."""

    stats: Optional[StatsUpdate] = None
    role: Optional[str] = None


class FollowResponse(DocumentModel):
    user_id: str
    following: bool


class AwardCreate(DocumentModel):
    title: str
    date: str
    issuer: str
    icon: str = "trophy"
