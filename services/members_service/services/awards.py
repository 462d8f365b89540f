"""Awards shown on an athlete's profile."""

from pydantic import ValidationError as PydanticValidationError

from libs.common.datetime_utils import parse_timestamp, utc_now_iso
from libs.common.errors import NotFoundError, ValidationError
from libs.common.logging import get_logger
from libs.db.query import QuerySpec, sort_documents
from libs.db.store import DocumentStore
from services.members_service.models import (
    AWARDS_COLLECTION,
    PROFILES_COLLECTION,
    Award,
    AwardIcon,
)

logger = get_logger(__name__)


async def add_award(
    store: DocumentStore,
    user_id: str,
    title: str,
    date: str,
    issuer: str,
    icon: str = AwardIcon.TROPHY.value,
) -> Award:
    title, issuer = (title or "").strip(), (issuer or "").strip()
    if not title:
        raise ValidationError("Title is required", field="title")
    if not issuer:
        raise ValidationError("Issuer is required", field="issuer")
    if parse_timestamp(date) is None:
        raise ValidationError("Date must be YYYY-MM-DD", field="date")
    try:
        icon = AwardIcon(icon).value
    except ValueError:
        raise ValidationError("Icon must be trophy, medal or star", field="icon")

    if await store.get(PROFILES_COLLECTION, user_id) is None:
        raise NotFoundError("Athlete not found")

    data = {
        "userId": user_id,
        "title": title,
        "date": date,
        "issuer": issuer,
        "icon": icon,
        "createdAt": utc_now_iso(),
    }
    award_id = await store.create(AWARDS_COLLECTION, data)
    return Award.from_document({**data, "id": award_id})


async def list_awards(store: DocumentStore, user_id: str) -> list[Award]:
    """Most recent award first."""
    docs = await store.query(AWARDS_COLLECTION, QuerySpec().where("userId", "==", user_id))
    awards = []
    for doc in sort_documents(docs, "date", descending=True):
        try:
            awards.append(Award.from_document(doc))
        except PydanticValidationError:
            logger.warning(f"Skipping malformed award {doc.get('id')}")
    return awards


async def delete_award(store: DocumentStore, user_id: str, award_id: str) -> None:
    award = await store.get(AWARDS_COLLECTION, award_id)
    if award is None or award.get("userId") != user_id:
        raise NotFoundError("Award not found")
    await store.delete(AWARDS_COLLECTION, award_id)
