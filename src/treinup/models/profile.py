"""Profile models.

Profiles are persisted flat, one column per preference/privacy/stat field
(``pref_darkMode``, ``privacy_showProgress``, ``stats_workouts``...), the
layout the mobile app reads.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ProfileRole(str, Enum):
    """Roles a profile can hold within a gym."""

    USER = "USER"
    TRAINER = "TRAINER"
    OWNER = "OWNER"

    @property
    def is_staff(self) -> bool:
        return self in (ProfileRole.TRAINER, ProfileRole.OWNER)


class Preferences(BaseModel):
    """App preferences seeded on profile creation."""

    notifications: bool = True
    email_updates: bool = True
    dark_mode: bool = True
    offline_mode: bool = False
    haptic_feedback: bool = True
    auto_update: bool = True
    language: str = "Português"


class Privacy(BaseModel):
    """Privacy flags seeded on profile creation."""

    public_profile: bool = True
    show_workouts: bool = True
    show_progress: bool = False
    two_factor_auth: bool = False


class Stats(BaseModel):
    """Activity counters."""

    workouts: int = 0
    classes: int = 0
    achievements: int = 0


_PREFERENCE_COLUMNS = {
    "notifications": "pref_notifications",
    "email_updates": "pref_emailUpdates",
    "dark_mode": "pref_darkMode",
    "offline_mode": "pref_offlineMode",
    "haptic_feedback": "pref_hapticFeedback",
    "auto_update": "pref_autoUpdate",
    "language": "pref_language",
}

_PRIVACY_COLUMNS = {
    "public_profile": "privacy_publicProfile",
    "show_workouts": "privacy_showWorkouts",
    "show_progress": "privacy_showProgress",
    "two_factor_auth": "privacy_twoFactorAuth",
}

_STATS_COLUMNS = {
    "workouts": "stats_workouts",
    "classes": "stats_classes",
    "achievements": "stats_achievements",
}


class Profile(BaseModel):
    """A user's gym profile, distinct from the bare identity record."""

    id: str | None = None
    user_id: str
    name: str
    email: str
    role: ProfileRole = ProfileRole.USER
    tenant_id: str | None = None
    preferences: Preferences = Field(default_factory=Preferences)
    privacy: Privacy = Field(default_factory=Privacy)
    stats: Stats = Field(default_factory=Stats)

    def to_document(self) -> dict[str, Any]:
        """Flatten into the stored document layout."""
        data: dict[str, Any] = {
            "userId": self.user_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
        }
        if self.tenant_id:
            data["tenant_id"] = self.tenant_id
        for field, column in _PREFERENCE_COLUMNS.items():
            data[column] = getattr(self.preferences, field)
        for field, column in _PRIVACY_COLUMNS.items():
            data[column] = getattr(self.privacy, field)
        for field, column in _STATS_COLUMNS.items():
            data[column] = getattr(self.stats, field)
        return data

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Profile":
        """Rebuild a profile from a stored document.

        Missing columns fall back to the seeded defaults.
        """
        preferences = Preferences(**{
            field: doc[column]
            for field, column in _PREFERENCE_COLUMNS.items()
            if doc.get(column) is not None
        })
        privacy = Privacy(**{
            field: doc[column]
            for field, column in _PRIVACY_COLUMNS.items()
            if doc.get(column) is not None
        })
        stats = Stats(**{
            field: doc[column]
            for field, column in _STATS_COLUMNS.items()
            if doc.get(column) is not None
        })
        return cls(
            id=doc.get("id"),
            user_id=doc["userId"],
            name=doc.get("name", ""),
            email=doc.get("email", ""),
            role=ProfileRole(doc.get("role") or ProfileRole.USER.value),
            tenant_id=doc.get("tenant_id"),
            preferences=preferences,
            privacy=privacy,
            stats=stats,
        )
