"""Enum definitions for communications service models."""

import enum


class NotificationType(str, enum.Enum):
    FEEDBACK = "feedback"
    SYSTEM = "system"
    ALERT = "alert"
    SOCIAL = "social"
