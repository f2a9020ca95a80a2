"""Profile provisioner.

Runs server side with the service-role key: a newly registered identity
may neither create its own profile nor add itself to the gym's team.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from treinup.backend.client import SupabaseBackend
from treinup.backend.permissions import profile_permissions
from treinup.exceptions import (
    DocumentConflictError,
    InvalidPayloadError,
    PartialProvisioningError,
    ProfileAlreadyExistsError,
    TreinupError,
)
from treinup.models.profile import Profile, ProfileRole
from treinup.models.provisioning import ProvisioningStep
from treinup.services.profiles import ProfileService

logger = logging.getLogger(__name__)

MEMBER_ROLE = "member"


def membership_roles(role: ProfileRole) -> list[str]:
    """Team roles granted for a profile role."""
    roles = [MEMBER_ROLE]
    if role.is_staff:
        roles.append(role.value.lower())
    return roles


def _parse_role(role: str) -> ProfileRole:
    try:
        return ProfileRole(role)
    except ValueError:
        raise InvalidPayloadError(message=f"Unknown role: {role!r}") from None


class ProfileProvisioner:
    """Creates profiles and team memberships.

    A user gets at most one profile: a second ``ensure_profile`` for the same
    user id fails with ``ProfileAlreadyExistsError``, and concurrent calls
    are serialised per user id so only one of them writes.
    """

    def __init__(
        self,
        backend: SupabaseBackend,
        team_id: str,
        profiles_table: str = "profiles",
    ) -> None:
        self._backend = backend
        self._team_id = team_id
        self._table = profiles_table
        self._profiles = ProfileService(backend, profiles_table)
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        """Hold the lock for one user id, dropping it once nobody waits on it."""
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._waiters[user_id] = self._waiters.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[user_id] -= 1
            if not self._waiters[user_id]:
                del self._waiters[user_id]
                del self._locks[user_id]

    async def find_profile(self, user_id: str) -> Profile | None:
        return await self._profiles.get_profile(user_id)

    async def ensure_profile(
        self,
        user_id: str | None,
        name: str | None,
        email: str | None,
        role: str | None,
    ) -> str:
        """Create the profile and team membership for a user.

        Returns:
            The new profile id

        Raises:
            InvalidPayloadError: If a field is missing or the role is unknown
            ProfileAlreadyExistsError: If the user already has a profile
            PartialProvisioningError: If the profile was written but the
                membership was not (the profile is kept)
        """
        fields = {"userId": user_id, "name": name, "email": email, "role": role}
        missing = [field for field, value in fields.items() if not value]
        if missing:
            raise InvalidPayloadError(missing)
        profile_role = _parse_role(role)

        async with self._user_lock(user_id):
            existing = await self.find_profile(user_id)
            if existing is not None:
                raise ProfileAlreadyExistsError(user_id, existing.id)

            profile = Profile(
                user_id=user_id,
                name=name,
                email=email,
                role=profile_role,
                tenant_id=self._backend.tenant_id,
            )
            try:
                doc = await self._backend.create_document(
                    self._table,
                    profile.to_document(),
                    permissions=profile_permissions(self._team_id),
                )
            except DocumentConflictError as e:
                raise ProfileAlreadyExistsError(user_id) from e

        profile_id = doc["id"]
        logger.info(f"Created profile {profile_id} for user {user_id}")

        try:
            await self.grant_membership(user_id, profile_role)
        except TreinupError as e:
            logger.error(f"Membership for user {user_id} failed after profile creation: {e}")
            raise PartialProvisioningError(
                profile_id, [ProvisioningStep.MEMBERSHIP], cause=e.message
            ) from e

        return profile_id

    async def grant_membership(
        self,
        user_id: str | None,
        role: ProfileRole | str = ProfileRole.USER,
    ) -> dict[str, Any] | None:
        """Add a user to the default team.

        An existing membership counts as success.

        Returns:
            The membership record, or None if it already existed
        """
        if not user_id:
            raise InvalidPayloadError(["userId"])
        if not isinstance(role, ProfileRole):
            role = _parse_role(role)

        existing = await self._backend.list_memberships(self._team_id, user_id)
        if existing:
            logger.debug(f"User {user_id} already in team {self._team_id}")
            return None
        try:
            membership = await self._backend.create_membership(
                self._team_id,
                membership_roles(role),
                user_id=user_id,
            )
        except DocumentConflictError:
            return None
        logger.info(f"User {user_id} added to team {self._team_id}")
        return membership
