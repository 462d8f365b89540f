"""
Match calendar.

A match is created ``scheduled`` and moves to ``completed`` exactly once,
when its result is logged. Logging a result also adds the athlete's
numbers to their profile counters.
"""

import inspect
import re
from typing import Any, Awaitable, Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from libs.auth.models import AuthUser
from libs.common.datetime_utils import today_iso, utc_now_iso
from libs.common.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from libs.common.logging import get_logger
from libs.db.query import QuerySpec
from libs.db.store import DocumentStore
from libs.db.subscriptions import Snapshot, Subscription
from services.events_service.models import (
    MATCHES_COLLECTION,
    MatchEvent,
    MatchStatus,
    MatchType,
    UserStats,
    Venue,
)
from services.members_service.models import PROFILES_COLLECTION

logger = get_logger(__name__)

_DATE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$")
_TIME = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

MatchesCallback = Callable[[list[MatchEvent]], Union[None, Awaitable[None]]]


def validate_match(fields: dict[str, Any]) -> dict[str, Any]:
    opponent = (fields.get("opponent") or "").strip()
    if not opponent:
        raise ValidationError("Opponent is required", field="opponent")
    if not _DATE.match(fields.get("date") or ""):
        raise ValidationError("Date must be YYYY-MM-DD", field="date")
    if not _TIME.match(fields.get("time") or ""):
        raise ValidationError("Time must be HH:MM", field="time")
    try:
        match_type = MatchType(fields.get("type") or MatchType.LEAGUE.value)
    except ValueError:
        raise ValidationError("Unknown match type", field="type")
    try:
        venue = Venue(fields.get("homeOrAway") or Venue.HOME.value)
    except ValueError:
        raise ValidationError("homeOrAway must be Home or Away", field="homeOrAway")

    return {
        "opponent": opponent,
        "date": fields["date"],
        "time": fields["time"],
        "location": (fields.get("location") or "").strip(),
        "type": match_type.value,
        "homeOrAway": venue.value,
    }


def validate_user_stats(stats: UserStats) -> UserStats:
    for name in ("minutes", "goals", "assists"):
        if getattr(stats, name) < 0:
            raise ValidationError(f"{name} cannot be negative", field=f"userStats.{name}")
    if not 0 <= stats.rating <= 10:
        raise ValidationError("Rating must be between 0 and 10", field="userStats.rating")
    return stats


async def create_match(
    store: DocumentStore, owner_id: str, fields: dict[str, Any]
) -> MatchEvent:
    data = {
        **validate_match(fields),
        "userId": owner_id,
        "status": MatchStatus.SCHEDULED.value,
        "createdAt": utc_now_iso(),
    }
    match_id = await store.create(MATCHES_COLLECTION, data)
    return MatchEvent.from_document({**data, "id": match_id})


async def get_match(store: DocumentStore, match_id: str) -> MatchEvent:
    doc = await store.get(MATCHES_COLLECTION, match_id)
    if doc is None:
        raise NotFoundError("Match not found")
    return MatchEvent.from_document(doc)


def _ensure_owner(match: MatchEvent, actor: AuthUser) -> None:
    if match.user_id != actor.user_id and not actor.is_admin:
        raise PermissionDeniedError("Only the owner or an admin can change this match")


async def log_result(
    store: DocumentStore,
    match_id: str,
    result: str,
    user_stats: UserStats,
    actor: AuthUser,
) -> MatchEvent:
    result = (result or "").strip()
    if not result:
        raise ValidationError("Result is required", field="result")
    validate_user_stats(user_stats)

    match = await get_match(store, match_id)
    _ensure_owner(match, actor)
    if match.status != MatchStatus.SCHEDULED.value:
        raise InvalidTransitionError("Result already logged for this match", field="status")

    await store.update(
        MATCHES_COLLECTION,
        match_id,
        {
            "status": MatchStatus.COMPLETED.value,
            "result": result,
            "userStats": user_stats.to_document(),
        },
    )
    await _roll_into_profile(store, match.user_id, user_stats)
    return await get_match(store, match_id)


async def _roll_into_profile(store: DocumentStore, user_id: str, stats: UserStats) -> None:
    # Read-modify-write; concurrent results for one athlete can be lost.
    profile = await store.get(PROFILES_COLLECTION, user_id)
    if profile is None:
        logger.warning(f"Match result for {user_id} not added to stats: no profile")
        return
    current = profile.get("stats") or {}
    await store.update(
        PROFILES_COLLECTION,
        user_id,
        {
            "stats.matches": int(current.get("matches") or 0) + 1,
            "stats.goals": int(current.get("goals") or 0) + stats.goals,
            "stats.assists": int(current.get("assists") or 0) + stats.assists,
            "stats.minutesPlayed": int(current.get("minutesPlayed") or 0) + stats.minutes,
        },
    )


async def delete_match(store: DocumentStore, match_id: str, actor: AuthUser) -> None:
    match = await get_match(store, match_id)
    _ensure_owner(match, actor)
    await store.delete(MATCHES_COLLECTION, match_id)
    logger.info(f"Match {match_id} deleted by {actor.user_id}")


def _decode(snapshot: Snapshot) -> list[MatchEvent]:
    matches = []
    for doc in snapshot:
        try:
            matches.append(MatchEvent.from_document(doc))
        except PydanticValidationError:
            logger.warning(f"Skipping malformed match {doc.get('id')}")
    return matches


def arrange(snapshot: Snapshot, upcoming_only: bool = False) -> list[MatchEvent]:
    """Earliest kickoff first; ``upcoming_only`` keeps today and later."""
    matches = _decode(snapshot)
    if upcoming_only:
        today = today_iso()
        matches = [m for m in matches if m.date >= today]
    return sorted(matches, key=lambda m: m.kickoff)


def _matches_query(user_id: Optional[str]) -> QuerySpec:
    spec = QuerySpec()
    return spec.where("userId", "==", user_id) if user_id else spec


async def list_matches(
    store: DocumentStore, user_id: Optional[str] = None, upcoming_only: bool = False
) -> list[MatchEvent]:
    return arrange(await store.query(MATCHES_COLLECTION, _matches_query(user_id)), upcoming_only)


async def subscribe_matches(
    store: DocumentStore,
    callback: MatchesCallback,
    user_id: Optional[str] = None,
    upcoming_only: bool = False,
) -> Subscription:
    """Live calendar; ``user_id=None`` follows every athlete's fixtures."""

    async def _on_snapshot(snapshot: Snapshot) -> None:
        result = callback(arrange(snapshot, upcoming_only))
        if inspect.isawaitable(result):
            await result

    return await store.subscribe(MATCHES_COLLECTION, _matches_query(user_id), _on_snapshot)
