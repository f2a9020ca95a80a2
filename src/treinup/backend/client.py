"""Supabase backend client.

Wraps the auth (GoTrue) and table (PostgREST) APIs behind a small set of
CRUD-style calls. Every call runs under an explicit timeout, and provider
exceptions are converted to ``treinup.exceptions`` types here so that no
raw backend error escapes this module.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

import httpx
from supabase import (
    AuthError,
    AuthRetryableError,
    AuthWeakPasswordError,
    Client,
    PostgrestAPIError,
    create_client,
)

from treinup.backend.permissions import parse_permission
from treinup.config import Settings
from treinup.exceptions import (
    BackendError,
    BackendTimeoutError,
    DocumentConflictError,
    EmailAlreadyInUseError,
    InvalidCredentialsError,
    NetworkError,
    NotAuthenticatedError,
    TreinupError,
    WeakCredentialsError,
)
from treinup.models.identity import Identity
from treinup.models.session import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")

TENANT_COLUMN = "tenant_id"
UNIQUE_VIOLATION = "23505"


def _map_auth_error(error: AuthError) -> TreinupError:
    """Translate a GoTrue error into the TreinUp taxonomy."""
    code = (getattr(error, "code", None) or "").lower()
    message = str(getattr(error, "message", error))
    lowered = message.lower()
    status = getattr(error, "status", None)

    if isinstance(error, AuthWeakPasswordError) or code == "weak_password":
        return WeakCredentialsError(message)
    if code in ("invalid_credentials", "invalid_grant") or "invalid login" in lowered:
        return InvalidCredentialsError()
    if code in ("user_already_exists", "email_exists") or "already registered" in lowered:
        return EmailAlreadyInUseError()
    if "password should" in lowered:
        return WeakCredentialsError(message)
    if status in (401, 403) or code in ("session_not_found", "bad_jwt"):
        return NotAuthenticatedError(message)
    return BackendError(message, status_code=status)


def _identity_from_user(user: Any) -> Identity:
    metadata = getattr(user, "user_metadata", None) or {}
    return Identity(
        id=user.id,
        email=user.email or "",
        display_name=metadata.get("name"),
    )


def _session_from_auth(auth_session: Any) -> Session:
    return Session(
        session_token=auth_session.refresh_token,
        auth_token=auth_session.access_token,
    )


class SupabaseBackend:
    """Client for the hosted identity provider and document store."""

    def __init__(
        self,
        url: str,
        key: str,
        timeout: float = 15.0,
        memberships_table: str = "team_memberships",
        client: Client | None = None,
    ) -> None:
        """Initialize the backend client.

        Args:
            url: Supabase project URL
            key: API key (anon key on devices, service-role key server side)
            timeout: Seconds to wait for any single call
            memberships_table: Table holding team memberships
            client: Pre-built client, mainly for tests
        """
        self.client: Client = client or create_client(url, key)
        self._timeout = timeout
        self._memberships_table = memberships_table
        self._tenant_id: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings, service_role: bool = False) -> "SupabaseBackend":
        """Build a backend from settings.

        Args:
            settings: Application settings
            service_role: Use the service-role key (functions service only)
        """
        key = settings.supabase_key
        if service_role:
            if not settings.supabase_service_key:
                raise ValueError("SUPABASE_SERVICE_KEY is required for the functions service")
            key = settings.supabase_service_key
        return cls(
            url=settings.supabase_url,
            key=key,
            timeout=settings.request_timeout_seconds,
            memberships_table=settings.memberships_table,
        )

    # -------------------------------------------------------------------------
    # Tenant pinning
    # -------------------------------------------------------------------------

    @property
    def tenant_id(self) -> str | None:
        return self._tenant_id

    def pin_tenant(self, tenant_id: str | None) -> None:
        """Scope all subsequent document calls to a tenant (None to release)."""
        self._tenant_id = tenant_id

    # -------------------------------------------------------------------------
    # Call plumbing
    # -------------------------------------------------------------------------

    async def _call(self, operation: str, fn: Callable[[], T]) -> T:
        """Run a blocking client call under the timeout, mapping errors."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn), timeout=self._timeout)
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning(f"Backend {operation} timed out after {self._timeout}s")
            raise BackendTimeoutError(operation, self._timeout) from e
        except httpx.TransportError as e:
            logger.warning(f"Backend {operation} transport error: {e}")
            raise NetworkError(f"{operation} failed: {e}") from e
        except AuthRetryableError as e:
            logger.warning(f"Backend {operation} unreachable: {e}")
            raise NetworkError(f"{operation} failed: {e}") from e
        except AuthError as e:
            raise _map_auth_error(e) from e
        except PostgrestAPIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise DocumentConflictError(e.message or f"{operation} conflict") from e
            logger.error(f"Backend {operation} failed: {e.message}")
            raise BackendError(e.message or f"{operation} failed") from e

    def _scoped(self, query: Any, tenant_scoped: bool) -> Any:
        if tenant_scoped and self._tenant_id:
            query = query.eq(TENANT_COLUMN, self._tenant_id)
        return query

    # -------------------------------------------------------------------------
    # Identity provider
    # -------------------------------------------------------------------------

    async def create_session(self, email: str, password: str) -> tuple[Identity, Session]:
        """Sign in with email and password.

        Raises:
            InvalidCredentialsError: If the provider rejects the pair
        """
        response = await self._call(
            "create_session",
            lambda: self.client.auth.sign_in_with_password(
                {"email": email, "password": password}
            ),
        )
        if response.user is None or response.session is None:
            raise InvalidCredentialsError()
        return _identity_from_user(response.user), _session_from_auth(response.session)

    async def create_account(self, email: str, password: str, name: str) -> Identity:
        """Create a new account with the identity provider.

        Raises:
            EmailAlreadyInUseError: If the email is taken
            WeakCredentialsError: If the password is rejected by policy
        """
        response = await self._call(
            "create_account",
            lambda: self.client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"name": name}},
            }),
        )
        if response.user is None:
            raise BackendError("Account creation returned no user")
        # Providers that hide existing emails return a user without identities
        if getattr(response.user, "identities", None) == []:
            raise EmailAlreadyInUseError()
        return _identity_from_user(response.user)

    async def resume_session(self, session: Session) -> tuple[Identity, Session]:
        """Reactivate a persisted session, refreshing its tokens."""
        response = await self._call(
            "resume_session",
            lambda: self.client.auth.set_session(session.auth_token, session.session_token),
        )
        if response.user is None or response.session is None:
            raise NotAuthenticatedError("Stored session is no longer valid")
        return _identity_from_user(response.user), _session_from_auth(response.session)

    async def get_current_user(self, auth_token: str | None = None) -> Identity:
        """Fetch the identity behind the current (or given) token."""
        response = await self._call(
            "get_current_user",
            lambda: self.client.auth.get_user(auth_token),
        )
        if response is None or response.user is None:
            raise NotAuthenticatedError()
        return _identity_from_user(response.user)

    async def delete_session(self) -> None:
        """Sign out of the identity provider."""
        await self._call("delete_session", lambda: self.client.auth.sign_out())

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    async def create_document(
        self,
        collection: str,
        data: dict[str, Any],
        permissions: list[str] | None = None,
        document_id: str | None = None,
    ) -> dict[str, Any]:
        """Insert a document, stamping the pinned tenant.

        Raises:
            ValueError: If a permission string is malformed
            DocumentConflictError: If a unique constraint is violated
        """
        row = dict(data)
        if document_id:
            row["id"] = document_id
        if permissions is not None:
            for permission in permissions:
                parse_permission(permission)
            row["permissions"] = permissions
        if self._tenant_id and TENANT_COLUMN not in row:
            row[TENANT_COLUMN] = self._tenant_id

        result = await self._call(
            f"create_document:{collection}",
            lambda: self.client.table(collection).insert(row).execute(),
        )
        if not result.data:
            raise BackendError(f"Insert into {collection} returned no rows")
        created = result.data[0]
        logger.debug(f"Created {collection} document {created.get('id')}")
        return created

    async def get_document(
        self,
        collection: str,
        document_id: str,
        tenant_scoped: bool = True,
    ) -> dict[str, Any] | None:
        """Fetch a document by id, or None if it does not exist."""
        def query():
            q = self.client.table(collection).select("*").eq("id", document_id)
            return self._scoped(q, tenant_scoped).execute()

        result = await self._call(f"get_document:{collection}", query)
        if result.data:
            return result.data[0]
        return None

    async def list_documents(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        tenant_scoped: bool = True,
    ) -> list[dict[str, Any]]:
        """List documents matching equality filters."""
        def query():
            q = self.client.table(collection).select("*")
            for column, value in (filters or {}).items():
                q = q.eq(column, value)
            return self._scoped(q, tenant_scoped).execute()

        result = await self._call(f"list_documents:{collection}", query)
        return list(result.data or [])

    # -------------------------------------------------------------------------
    # Teams
    # -------------------------------------------------------------------------

    async def create_membership(
        self,
        team_id: str,
        roles: list[str],
        email: str | None = None,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        """Add a user to a team.

        Raises:
            ValueError: If neither email nor user_id is given
            DocumentConflictError: If the membership already exists
        """
        if not email and not user_id:
            raise ValueError("create_membership needs an email or a user_id")
        row = {"team_id": team_id, "roles": roles, "user_id": user_id, "email": email}
        result = await self._call(
            "create_membership",
            lambda: self.client.table(self._memberships_table).insert(row).execute(),
        )
        if not result.data:
            raise BackendError("Membership insert returned no rows")
        logger.debug(f"Added user {user_id or email} to team {team_id} as {roles}")
        return result.data[0]

    async def list_memberships(self, team_id: str, user_id: str) -> list[dict[str, Any]]:
        """List a user's memberships in a team."""
        result = await self._call(
            "list_memberships",
            lambda: (
                self.client.table(self._memberships_table)
                .select("*")
                .eq("team_id", team_id)
                .eq("user_id", user_id)
                .execute()
            ),
        )
        return list(result.data or [])

    async def health_check(self, collection: str = "plans") -> dict[str, Any]:
        """Check backend connectivity.

        Returns:
            Dict with healthy, latency_ms and error
        """
        start = time.perf_counter()
        try:
            await self._call(
                "health_check",
                lambda: self.client.table(collection).select("id").limit(1).execute(),
            )
            return {
                "healthy": True,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                "error": None,
            }
        except TreinupError as e:
            logger.error(f"Backend health check failed: {e}")
            return {
                "healthy": False,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                "error": str(e),
            }
