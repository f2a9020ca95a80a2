"""Global test configuration for TreinUp."""

import asyncio
import os
import uuid
from typing import Any

import pytest

from treinup.config import Settings
from treinup.exceptions import (
    DocumentConflictError,
    EmailAlreadyInUseError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    WeakCredentialsError,
)
from treinup.models.identity import Identity
from treinup.models.session import Session

TENANT_ID = "tenant-1"
TEAM_ID = "team-1"
PLAN_ID = "plan-30"


@pytest.fixture(autouse=True, scope="session")
def _set_test_env_vars():
    """Set dummy environment variables for Settings validation.

    Only sets values that aren't already present, so real env vars take
    precedence.
    """
    defaults = {
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_KEY": "test-anon-key",
        "SUPABASE_SERVICE_KEY": "test-service-key",
        "FUNCTIONS_API_KEY": "test-function-key",
        "DEFAULT_TENANT_ID": TENANT_ID,
        "DEFAULT_TEAM_ID": TEAM_ID,
    }
    originals = {}
    for key, value in defaults.items():
        if key not in os.environ:
            os.environ[key] = value
            originals[key] = None
        else:
            originals[key] = os.environ[key]

    from treinup.config import get_settings
    get_settings.cache_clear()

    yield

    for key, original in originals.items():
        if original is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = original
    get_settings.cache_clear()


class FakeBackend:
    """In-memory stand-in for SupabaseBackend.

    Tables are dicts of rows keyed by id. ``failures`` maps an operation
    name to an exception raised the next time it is called; ``write_delay``
    makes every insert yield to the event loop first, to widen races.
    """

    def __init__(self) -> None:
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self.accounts: dict[str, tuple[str, Identity]] = {}
        self.sessions: dict[str, str] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []
        self.write_delay = 0.0
        self.unique_columns: dict[str, str] = {}
        self._tenant_id: str | None = None

    # Helpers

    def _maybe_fail(self, operation: str) -> None:
        self.calls.append(operation)
        error = self.failures.pop(operation, None)
        if error is not None:
            raise error

    def rows(self, table: str) -> list[dict[str, Any]]:
        return list(self.tables.get(table, {}).values())

    def add_row(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        row = dict(row)
        row.setdefault("id", uuid.uuid4().hex[:20])
        self.tables.setdefault(table, {})[row["id"]] = row
        return row

    @property
    def tenant_id(self) -> str | None:
        return self._tenant_id

    def pin_tenant(self, tenant_id: str | None) -> None:
        self._tenant_id = tenant_id

    # Identity provider

    async def create_session(self, email: str, password: str) -> tuple[Identity, Session]:
        self._maybe_fail("create_session")
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise InvalidCredentialsError()
        token = f"access-{uuid.uuid4().hex[:8]}"
        self.sessions[token] = email
        return account[1], Session(session_token=f"refresh-{email}", auth_token=token)

    async def create_account(self, email: str, password: str, name: str) -> Identity:
        self._maybe_fail("create_account")
        if email in self.accounts:
            raise EmailAlreadyInUseError()
        if not password.strip():
            raise WeakCredentialsError("Password must not be blank")
        identity = Identity(id=f"user-{uuid.uuid4().hex[:8]}", email=email, display_name=name)
        self.accounts[email] = (password, identity)
        return identity

    async def resume_session(self, session: Session) -> tuple[Identity, Session]:
        self._maybe_fail("resume_session")
        email = self.sessions.get(session.auth_token)
        if email is None:
            raise NotAuthenticatedError()
        return self.accounts[email][1], Session(
            session_token=session.session_token,
            auth_token=session.auth_token,
        )

    async def get_current_user(self, auth_token: str | None = None) -> Identity:
        self._maybe_fail("get_current_user")
        email = self.sessions.get(auth_token or "")
        if email is None:
            raise NotAuthenticatedError()
        return self.accounts[email][1]

    async def delete_session(self) -> None:
        self._maybe_fail("delete_session")

    # Documents

    async def create_document(
        self,
        collection: str,
        data: dict[str, Any],
        permissions: list[str] | None = None,
        document_id: str | None = None,
    ) -> dict[str, Any]:
        self._maybe_fail(f"create_document:{collection}")
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        row = dict(data)
        if document_id:
            row["id"] = document_id
        if permissions is not None:
            row["permissions"] = permissions
        if self._tenant_id and "tenant_id" not in row:
            row["tenant_id"] = self._tenant_id
        unique = self.unique_columns.get(collection)
        if unique and any(r.get(unique) == row.get(unique) for r in self.rows(collection)):
            raise DocumentConflictError(f"duplicate {unique}")
        return self.add_row(collection, row)

    async def get_document(
        self,
        collection: str,
        document_id: str,
        tenant_scoped: bool = True,
    ) -> dict[str, Any] | None:
        self._maybe_fail(f"get_document:{collection}")
        row = self.tables.get(collection, {}).get(document_id)
        if row and tenant_scoped and self._tenant_id and row.get("tenant_id") != self._tenant_id:
            return None
        return row

    async def list_documents(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        tenant_scoped: bool = True,
    ) -> list[dict[str, Any]]:
        self._maybe_fail(f"list_documents:{collection}")
        result = []
        for row in self.rows(collection):
            if any(row.get(k) != v for k, v in (filters or {}).items()):
                continue
            if tenant_scoped and self._tenant_id and row.get("tenant_id") != self._tenant_id:
                continue
            result.append(row)
        return result

    # Teams

    async def create_membership(
        self,
        team_id: str,
        roles: list[str],
        email: str | None = None,
        user_id: str | None = None,
    ) -> dict[str, Any]:
        self._maybe_fail("create_membership")
        return self.add_row(
            "team_memberships",
            {"team_id": team_id, "roles": roles, "user_id": user_id, "email": email},
        )

    async def list_memberships(self, team_id: str, user_id: str) -> list[dict[str, Any]]:
        self._maybe_fail("list_memberships")
        return [
            row for row in self.rows("team_memberships")
            if row["team_id"] == team_id and row["user_id"] == user_id
        ]

    async def health_check(self, collection: str = "plans") -> dict[str, Any]:
        return {"healthy": True, "latency_ms": 0.1, "error": None}


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings with a default plan and temp storage paths."""
    return Settings(
        supabase_url="https://test.supabase.co",
        supabase_key="test-anon-key",
        supabase_service_key="test-service-key",
        functions_url="http://functions.test",
        functions_api_key="test-function-key",
        default_tenant_id=TENANT_ID,
        default_team_id=TEAM_ID,
        default_plan_id=PLAN_ID,
        credential_store_path=tmp_path / "credentials.json",
        provisioning_ledger_path=tmp_path / "provisioning.json",
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    """A fake backend seeded with a 30-day plan."""
    backend = FakeBackend()
    backend.add_row("plans", {
        "id": PLAN_ID,
        "name": "Plano Mensal",
        "durationDays": 30,
        "price": 299.90,
        "tenant_id": TENANT_ID,
    })
    return backend
