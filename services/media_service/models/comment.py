from typing import Optional

from libs.db.documents import DocumentModel

COMMENTS_COLLECTION = "comments"


class Comment(DocumentModel):
    id: str
    media_id: str
    user_id: str
    text: str
    author_name: str = ""
    author_avatar: str = ""
    created_at: Optional[str] = None
