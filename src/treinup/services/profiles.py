"""Profile lookups."""

import logging

from treinup.backend.client import SupabaseBackend
from treinup.models.profile import Profile

logger = logging.getLogger(__name__)


class ProfileService:
    """Reads profile documents."""

    def __init__(self, backend: SupabaseBackend, profiles_table: str = "profiles") -> None:
        self._backend = backend
        self._table = profiles_table

    async def get_profile(self, user_id: str) -> Profile | None:
        """Get the profile owned by a user, or None if it does not exist."""
        docs = await self._backend.list_documents(self._table, {"userId": user_id})
        if not docs:
            return None
        if len(docs) > 1:
            logger.warning(f"User {user_id} has {len(docs)} profiles, using the first")
        return Profile.from_document(docs[0])
