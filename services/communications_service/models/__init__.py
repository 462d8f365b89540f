"""Communications Service models package."""

from services.communications_service.models.enums import NotificationType  # noqa: F401
from services.communications_service.models.notification import (  # noqa: F401
    NOTIFICATIONS_COLLECTION,
    Notification,
)
