from .models import (
    AuditLog,
    Chapter,
    DocumentSlot,
    Event,
    Lead,
    Media,
    MediaType,
    Profile,
    TimestampedBase,
    User,
    UserRole,
)

__all__ = [
    "AuditLog",
    "Chapter",
    "DocumentSlot",
    "Event",
    "Lead",
    "Media",
    "MediaType",
    "Profile",
    "TimestampedBase",
    "User",
    "UserRole",
]
