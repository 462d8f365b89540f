from typing import Optional

from libs.db.documents import DocumentModel

AWARDS_COLLECTION = "awards"


class Award(DocumentModel):
    id: str
    user_id: str
    title: str
    date: str
    issuer: str
    icon: str = "trophy"
    created_at: Optional[str] = None
