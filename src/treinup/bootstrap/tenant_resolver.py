"""Tenant resolution.

A single tenant is pinned by configuration; there is no discovery. The
pinned id is persisted and attached to every client that talks to the
backend.
"""

import logging
from collections.abc import Iterable
from typing import Protocol

from treinup.exceptions import (
    NotAuthenticatedError,
    StorageUnavailableError,
    TenantUnavailableError,
)
from treinup.models.identity import Identity, TenantContext
from treinup.models.session import CredentialKey
from treinup.storage.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class TenantPinned(Protocol):
    """Anything that scopes its calls to a tenant."""

    def pin_tenant(self, tenant_id: str | None) -> None:
        ...


class TenantResolver:
    """Pins the configured tenant for the current session."""

    def __init__(
        self,
        store: CredentialStore,
        tenant_id: str,
        team_id: str,
        targets: Iterable[TenantPinned] = (),
    ) -> None:
        self._store = store
        self._default = TenantContext(tenant_id=tenant_id, team_id=team_id)
        self._targets = list(targets)
        self._pinned: TenantContext | None = None

    def pinned_tenant(self) -> TenantContext | None:
        return self._pinned

    def resolve_tenant(self, identity: Identity | None) -> str:
        """Pin the tenant for an authenticated identity.

        Raises:
            NotAuthenticatedError: If there is no identity
            TenantUnavailableError: If the tenant id cannot be persisted
        """
        if identity is None:
            raise NotAuthenticatedError("A tenant can only be pinned for a signed-in user")

        tenant = self._default
        try:
            self._store.put(CredentialKey.ACTIVE_TENANT_ID, tenant.tenant_id)
        except StorageUnavailableError as e:
            raise TenantUnavailableError(f"Could not persist tenant {tenant.tenant_id}: {e}") from e

        for target in self._targets:
            target.pin_tenant(tenant.tenant_id)
        self._pinned = tenant
        logger.info(f"Pinned tenant {tenant.tenant_id} for user {identity.id}")
        return tenant.tenant_id

    def release(self) -> None:
        """Drop the tenant from every pinned client."""
        for target in self._targets:
            target.pin_tenant(None)
        self._pinned = None
