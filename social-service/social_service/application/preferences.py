"""
Preference store - per-profile notification opt-in flags
"""
from typing import Dict
import logging

from ..domain.models import (
    NotificationPreference,
    NotificationType,
    DEFAULT_PREFERENCE_FLAGS,
)
from ..domain.repositories import IPreferenceRepository
from ..errors import PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)


class PreferenceStore:
    """Flat key space of boolean flags, created with defaults on first read"""

    def __init__(self, repository: IPreferenceRepository):
        self.repo = repository

    @property
    def defaults(self) -> Dict[str, bool]:
        return dict(DEFAULT_PREFERENCE_FLAGS)

    async def get(self, profile_id: int) -> NotificationPreference:
        """
        Load a profile's preferences, inserting the default row when missing

        Keys added after the row was created resolve to their defaults.
        """
        preference = await self.repo.get_or_create(profile_id, self.defaults)
        preference.flags = {**self.defaults, **preference.flags}
        return preference

    async def is_enabled(self, profile_id: int, notification_type: NotificationType) -> bool:
        preference = await self.get(profile_id)
        return preference.is_enabled(NotificationType(notification_type).value)

    async def set(
        self, actor_id: int, profile_id: int, key: str, value: bool
    ) -> NotificationPreference:
        """
        Set one flag of a profile

        Args:
            actor_id: Calling profile, must own the preferences
            profile_id: Profile whose preferences change
            key: Notification category or delivery channel
            value: New flag value

        Raises:
            PermissionDeniedError: If the actor is not the owning profile
            ValidationError: If the key is not a known category or channel
        """
        return await self.set_many(actor_id, profile_id, {key: value})

    async def set_many(
        self, actor_id: int, profile_id: int, flags: Dict[str, bool]
    ) -> NotificationPreference:
        """
        Set several flags in one write; nothing is written if any key is unknown

        Raises:
            PermissionDeniedError: If the actor is not the owning profile
            ValidationError: If a key is unknown or no flag is given
        """
        if actor_id != profile_id:
            raise PermissionDeniedError("You can only change your own notification preferences")

        if not flags:
            raise ValidationError("No notification preference given")

        unknown = sorted(key for key in flags if key not in DEFAULT_PREFERENCE_FLAGS)
        if unknown:
            raise ValidationError(f"Unknown notification preference '{unknown[0]}'")

        values = {key: bool(value) for key, value in flags.items()}
        preference = await self.repo.set_flags(profile_id, values, self.defaults)
        preference.flags = {**self.defaults, **preference.flags}
        logger.info(f"Profile {profile_id} set preferences {values}")
        return preference
