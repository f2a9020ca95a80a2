"""Tests for TenantResolver."""

from unittest.mock import MagicMock

import pytest

from treinup.bootstrap.tenant_resolver import TenantResolver
from treinup.exceptions import NotAuthenticatedError, TenantUnavailableError
from treinup.models.identity import Identity, TenantContext
from treinup.models.session import CredentialKey
from treinup.storage.credential_store import MemoryCredentialStore


class ReadOnlyStore(MemoryCredentialStore):

    def _write_many(self, values) -> None:
        raise OSError("read-only")


@pytest.fixture
def identity() -> Identity:
    return Identity(id="u1", email="a@x.com")


class TestTenantResolver:

    def test_resolve_pins_and_persists(self, identity):
        store = MemoryCredentialStore()
        target = MagicMock()
        resolver = TenantResolver(store, "t1", "team-1", targets=[target])

        assert resolver.resolve_tenant(identity) == "t1"

        assert store.get(CredentialKey.ACTIVE_TENANT_ID) == "t1"
        target.pin_tenant.assert_called_once_with("t1")
        assert resolver.pinned_tenant() == TenantContext(tenant_id="t1", team_id="team-1")

    def test_requires_identity(self):
        resolver = TenantResolver(MemoryCredentialStore(), "t1", "team-1")

        with pytest.raises(NotAuthenticatedError):
            resolver.resolve_tenant(None)
        assert resolver.pinned_tenant() is None

    def test_storage_failure_pins_nothing(self, identity):
        target = MagicMock()
        resolver = TenantResolver(ReadOnlyStore(), "t1", "team-1", targets=[target])

        with pytest.raises(TenantUnavailableError):
            resolver.resolve_tenant(identity)

        target.pin_tenant.assert_not_called()
        assert resolver.pinned_tenant() is None

    def test_release(self, identity):
        target = MagicMock()
        resolver = TenantResolver(MemoryCredentialStore(), "t1", "team-1", targets=[target])
        resolver.resolve_tenant(identity)

        resolver.release()

        target.pin_tenant.assert_called_with(None)
        assert resolver.pinned_tenant() is None
