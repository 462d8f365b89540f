"""
Document factories for creating valid test data.

Every factory returns a plain camelCase document, ready for
``store.create``/``store.set``. Override any field via kwargs.

Usage:
    doc = MediaFactory.create(userId="athlete-1", status="approved")
    media_id = await store.create(MEDIA_COLLECTION, doc)
"""

import uuid
from datetime import date, datetime, timedelta, timezone

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime) -> str:
    return value.isoformat()


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex[:8]}@test.com"


def minutes_ago(minutes: int) -> str:
    return _iso(_now() - timedelta(minutes=minutes))


def days_from_today(days: int) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


class ProfileFactory:
    @staticmethod
    def create(**overrides):
        defaults = {
            "email": _unique_email(),
            "fullName": "Test Athlete",
            "username": "test_athlete",
            "avatarUrl": "",
            "role": "athlete",
            "bio": "Box-to-box midfielder.",
            "position": "CM",
            "club": "Verum Academy",
            "physical": {"height": "1.78m", "weight": "70kg", "foot": "Right", "age": "17"},
            "stats": {
                "matches": 0,
                "goals": 0,
                "assists": 0,
                "minutesPlayed": 0,
                "ratingAvg": 0.0,
            },
            "followers": [],
            "following": [],
            "createdAt": _iso(_now()),
        }
        defaults.update(overrides)
        return defaults

    @staticmethod
    def legacy(**overrides):
        """A profile written by an old client: no stats, physical, role or social graph."""
        defaults = {
            "email": _unique_email(),
            "fullName": "Legacy Athlete",
            "username": "legacy_athlete",
            "avatarUrl": "",
        }
        defaults.update(overrides)
        return defaults


# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------


class MediaFactory:
    @staticmethod
    def create(**overrides):
        now = _iso(_now())
        defaults = {
            "userId": "athlete-1",
            "type": "video",
            "title": "Left-foot finish",
            "category": "Training",
            "thumbnailUrl": "https://cdn.example.com/clip.mp4",
            "duration": "00:42",
            "status": "pending",
            "date": now,
            "createdAt": now,
            "views": 0,
            "likes": [],
            "commentsCount": 0,
            "authorName": "Test Athlete",
            "authorAvatar": "",
        }
        defaults.update(overrides)
        return defaults

    @staticmethod
    def submission(**overrides):
        """Upload form fields as an athlete sends them."""
        defaults = {
            "title": "Free kick drill",
            "type": "video",
            "category": "Training",
            "thumbnailUrl": "data:video/mp4;base64,AAAA",
            "duration": "00:30",
        }
        defaults.update(overrides)
        return defaults


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class MatchFactory:
    @staticmethod
    def create(**overrides):
        defaults = {
            "userId": "athlete-1",
            "opponent": "Riverside FC",
            "date": days_from_today(7),
            "time": "15:00",
            "location": "Academy Pitch 2",
            "type": "League",
            "homeOrAway": "Home",
            "status": "scheduled",
            "createdAt": _iso(_now()),
        }
        defaults.update(overrides)
        return defaults

    @staticmethod
    def form(**overrides):
        defaults = {
            "opponent": "Harbour United",
            "date": days_from_today(3),
            "time": "10:30",
            "location": "Harbour Park",
            "type": "Friendly",
            "homeOrAway": "Away",
        }
        defaults.update(overrides)
        return defaults
