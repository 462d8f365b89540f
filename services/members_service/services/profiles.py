"""
Canonical decoding of profile documents.

Profiles written by older clients can miss whole blocks (stats, physical,
the social graph). ``decode_profile`` is the one place that fills those
gaps, and it reports what it filled so the caller can write the repairs
back. Decoding an already-repaired document reports no repairs.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from libs.common.config import get_settings
from libs.common.errors import SnapshotParseError, ValidationError
from services.members_service.models import (
    UNSET,
    Foot,
    Physical,
    Position,
    Role,
    Stats,
    UserProfile,
)

DEFAULT_STATS = Stats().to_document()
DEFAULT_PHYSICAL = Physical().to_document()

# Only these fields are ever written back by a repair.
REPAIRABLE_FIELDS = (
    "stats",
    "physical",
    "role",
    "bio",
    "followers",
    "following",
    "position",
    "club",
)

SELF_EDITABLE_FIELDS = {
    "fullName",
    "username",
    "avatarUrl",
    "bio",
    "position",
    "club",
    "phone",
    "dob",
    "physical",
}
ADMIN_EDITABLE_FIELDS = SELF_EDITABLE_FIELDS | {"stats", "role"}


@dataclass
class DecodedProfile:
    profile: UserProfile
    repairs: dict[str, Any] = field(default_factory=dict)

    @property
    def needs_migration(self) -> bool:
        return bool(self.repairs)


def derive_username(full_name: Optional[str]) -> str:
    if not full_name or not full_name.strip():
        return "user"
    return re.sub(r"\s", "_", full_name.strip().lower())


def _dedupe(ids: list) -> list:
    seen = []
    for user_id in ids:
        if user_id not in seen:
            seen.append(user_id)
    return seen


def _complete_block(value: Any, defaults: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Return the completed block if anything had to be filled, else None."""
    if not isinstance(value, dict):
        return dict(defaults)
    missing = {k: v for k, v in defaults.items() if k not in value}
    if not missing:
        return None
    return {**value, **missing}


def decode_profile(
    doc_id: str, raw: Optional[dict[str, Any]], default_bio: Optional[str] = None
) -> DecodedProfile:
    """Decode a raw profile document into a canonical UserProfile.

    Raises SnapshotParseError when the document cannot be repaired into a
    valid profile (wrong types rather than missing fields).
    """
    if not isinstance(raw, dict):
        raise SnapshotParseError(f"Profile {doc_id} is not a document")

    default_bio = default_bio or get_settings().DEFAULT_BIO
    repairs: dict[str, Any] = {}

    for name, defaults in (("stats", DEFAULT_STATS), ("physical", DEFAULT_PHYSICAL)):
        completed = _complete_block(raw.get(name), defaults)
        if completed is not None:
            repairs[name] = completed

    for name, default in (
        ("role", Role.ATHLETE.value),
        ("bio", default_bio),
        ("position", UNSET),
        ("club", UNSET),
    ):
        if not raw.get(name):
            repairs[name] = default

    for name in ("followers", "following"):
        value = raw.get(name)
        if not isinstance(value, list):
            repairs[name] = []
        elif len(set(map(str, value))) != len(value):
            repairs[name] = _dedupe(value)

    data = {**raw, **repairs, "id": doc_id}
    data["fullName"] = raw.get("fullName") or "Athlete"
    data["username"] = raw.get("username") or derive_username(raw.get("fullName"))
    data["avatarUrl"] = raw.get("avatarUrl") or ""

    try:
        profile = UserProfile.model_validate(data)
    except PydanticValidationError as e:
        raise SnapshotParseError(f"Profile {doc_id} could not be decoded: {e}") from e
    return DecodedProfile(profile=profile, repairs=repairs)


def new_profile_document(
    email: str, full_name: Optional[str], bio: Optional[str] = None
) -> dict[str, Any]:
    """Placeholder profile written at sign-up; the athlete fills it in later."""
    name = (full_name or "").strip() or "Athlete"
    return {
        "email": email,
        "fullName": name,
        "username": derive_username(name),
        "avatarUrl": "",
        "role": Role.ATHLETE.value,
        "bio": bio or get_settings().SIGNUP_BIO,
        "position": UNSET,
        "club": UNSET,
        "physical": dict(DEFAULT_PHYSICAL),
        "stats": dict(DEFAULT_STATS),
        "followers": [],
        "following": [],
    }


def validate_profile_update(fields: dict[str, Any], *, as_admin: bool = False) -> dict[str, Any]:
    """Check an edit before it is written. Returns the fields unchanged."""
    allowed = ADMIN_EDITABLE_FIELDS if as_admin else SELF_EDITABLE_FIELDS
    unknown = set(fields) - allowed
    if unknown:
        raise ValidationError(
            f"Fields cannot be edited: {', '.join(sorted(unknown))}",
            field=sorted(unknown)[0],
        )

    if "position" in fields and fields["position"] not in {p.value for p in Position}:
        raise ValidationError("Unknown position", field="position")

    physical = fields.get("physical")
    if physical is not None:
        if not isinstance(physical, dict):
            raise ValidationError("physical must be an object", field="physical")
        foot = physical.get("foot")
        if foot is not None and foot not in {f.value for f in Foot}:
            raise ValidationError("Unknown preferred foot", field="physical.foot")

    if "role" in fields and fields["role"] not in {r.value for r in Role}:
        raise ValidationError("Unknown role", field="role")

    stats = fields.get("stats")
    if stats is not None:
        if not isinstance(stats, dict):
            raise ValidationError("stats must be an object", field="stats")
        for key, value in stats.items():
            if not isinstance(value, (int, float)) or value < 0:
                raise ValidationError(f"stats.{key} must be a non-negative number", field=f"stats.{key}")
        if stats.get("ratingAvg", 0) > 10:
            raise ValidationError("stats.ratingAvg must be between 0 and 10", field="stats.ratingAvg")

    for name in ("fullName", "username"):
        if name in fields and not str(fields[name] or "").strip():
            raise ValidationError(f"{name} cannot be blank", field=name)

    return fields
