"""Base class for domain models stored as documents.

Stored documents use camelCase keys; the Python models use snake_case
attributes and translate at the boundary.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        use_enum_values=True,
    )

    @classmethod
    def from_document(cls, doc: dict[str, Any]):
        return cls.model_validate(doc)

    def to_document(self, exclude: Optional[set[str]] = None) -> dict[str, Any]:
        """Serialise for the store: camelCase keys, id dropped."""
        return self.model_dump(by_alias=True, exclude={"id", *(exclude or set())})
