"""Identity session manager.

Owns login, registration and logout against the identity provider, and the
cached copy of the signed-in identity.
"""

import logging
from collections.abc import Callable

from treinup.backend.client import SupabaseBackend
from treinup.exceptions import (
    InvalidCredentialsError,
    NotAuthenticatedError,
    StorageUnavailableError,
    TreinupError,
)
from treinup.models.identity import Identity
from treinup.models.session import Session
from treinup.storage.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class IdentitySessionManager:
    """Tracks the device's authenticated identity."""

    def __init__(self, backend: SupabaseBackend, store: CredentialStore) -> None:
        self._backend = backend
        self._store = store
        self._identity: Identity | None = None
        self._session: Session | None = None

    @property
    def session(self) -> Session | None:
        return self._session

    def current_identity(self) -> Identity | None:
        """Return the cached identity without touching the network."""
        return self._identity

    async def login(self, email: str, password: str) -> Identity:
        """Sign in and persist the session.

        The credential store is only written once the provider has accepted
        the credentials, so a rejected login leaves it untouched.

        Raises:
            InvalidCredentialsError: If the provider rejects the credentials
            NetworkError: If the provider cannot be reached
            BackendTimeoutError: If the provider does not answer in time
            StorageUnavailableError: If the session cannot be persisted
        """
        identity, session = await self._backend.create_session(email, password)

        try:
            self._store.put_many(session.to_credentials())
        except StorageUnavailableError:
            # Without persisted tokens the session cannot be resumed; drop it
            await self._sign_out_remote()
            raise

        self._identity = identity
        self._session = session
        logger.info(f"Signed in user {identity.id}")
        return identity

    async def register(
        self,
        email: str,
        password: str,
        name: str,
        on_created: Callable[[Identity], None] | None = None,
    ) -> Identity:
        """Create an account and sign into it.

        Args:
            email: Account email
            password: Account password
            name: Display name
            on_created: Called with the new identity before signing in, so
                callers can flag it for provisioning even if sign-in fails

        Raises:
            EmailAlreadyInUseError: If the email is taken
            WeakCredentialsError: If the password is rejected by policy
        """
        identity = await self._backend.create_account(email, password, name)
        logger.info(f"Registered user {identity.id}")
        if on_created is not None:
            on_created(identity)

        await self.login(email, password)
        if self._identity is not None and not self._identity.display_name:
            self._identity = self._identity.model_copy(update={"display_name": name})
        return self._identity or identity

    async def logout(self) -> None:
        """Sign out, clearing local state even if the remote call fails.

        Raises:
            StorageUnavailableError: If the credential store could not be
                cleared (the cached identity is dropped regardless)
        """
        try:
            await self._sign_out_remote()
        finally:
            self._identity = None
            self._session = None
            self._store.clear()
            logger.info("Signed out")

    async def restore(self) -> Identity | None:
        """Resume the persisted session, if any.

        An auth failure clears the stored credentials. Transport failures
        propagate and leave them in place for a later attempt.
        """
        stored = self._store.load()
        if stored is None:
            return None

        try:
            identity, session = await self._backend.resume_session(stored)
        except (NotAuthenticatedError, InvalidCredentialsError):
            logger.info("Stored session rejected, clearing credentials")
            self._identity = None
            self._session = None
            self._store.clear()
            return None

        session.active_tenant_id = stored.active_tenant_id
        self._store.put_many(session.to_credentials())
        self._identity = identity
        self._session = session
        logger.info(f"Restored session for user {identity.id}")
        return identity

    async def refresh(self) -> Identity | None:
        """Re-read the identity, typically when the app returns to foreground.

        Keeps the cached copy when the provider is unreachable.
        """
        if self._session is None:
            return None
        try:
            self._identity = await self._backend.get_current_user(self._session.auth_token)
        except NotAuthenticatedError:
            logger.info("Session expired, clearing credentials")
            self._identity = None
            self._session = None
            self._store.clear()
        except TreinupError as e:
            logger.warning(f"Identity refresh failed, keeping cached identity: {e}")
        return self._identity

    async def _sign_out_remote(self) -> None:
        try:
            await self._backend.delete_session()
        except TreinupError as e:
            logger.warning(f"Remote sign-out failed: {e}")
