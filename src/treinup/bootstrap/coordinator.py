"""Bootstrap coordinator.

Takes a credential to a usable session by running a fixed, ordered list of
stages: identity, tenant, profile, membership, subscription. Identity is
established by the public entry points; the remaining stages run inside a
per-user single-flight guard and each one is skipped when it has nothing
left to do, so re-running the pipeline only repeats missing work.

Provisioning steps owed to a user are recorded in the ledger before they
are attempted and removed as they succeed. Whatever is left is retried by
``repair()`` (on app foreground) or on the next sign-in.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from treinup.backend.client import SupabaseBackend
from treinup.backend.functions_client import FunctionsClient
from treinup.bootstrap.guard import SingleFlight
from treinup.bootstrap.session_manager import IdentitySessionManager
from treinup.bootstrap.tenant_resolver import TenantResolver
from treinup.config import Settings
from treinup.exceptions import (
    BackendError,
    NotAuthenticatedError,
    PartialProvisioningError,
    PlanNotFoundError,
    ProfileAlreadyExistsError,
    StorageUnavailableError,
    TreinupError,
)
from treinup.models.identity import Identity
from treinup.models.outcome import BootstrapResult
from treinup.models.profile import ProfileRole
from treinup.models.provisioning import FunctionResponse, LedgerEntry, ProvisioningStep
from treinup.storage.credential_store import CredentialStore, FileCredentialStore
from treinup.storage.provisioning_ledger import ProvisioningLedger

logger = logging.getLogger(__name__)


@dataclass
class BootstrapState:
    """Mutable state threaded through the stages of one attempt."""

    identity: Identity
    entry: LedgerEntry | None = None
    tenant_id: str | None = None
    profile_id: str | None = None
    subscription_id: str | None = None
    membership_attempted: bool = False
    error: TreinupError | None = None

    @property
    def pending(self) -> list[ProvisioningStep]:
        return list(self.entry.pending_steps) if self.entry else []

    def done(self, *steps: ProvisioningStep) -> None:
        if self.entry:
            self.entry.pending_steps = [s for s in self.entry.pending_steps if s not in steps]


def _function_error(response: FunctionResponse, default: str) -> TreinupError:
    """Turn an ``ok: false`` function response into an exception."""
    error = BackendError(response.message or default)
    if response.code:
        error.code = response.code
    return error


class BootstrapCoordinator:
    """Owns one device's bootstrap components and runs the stage pipeline.

    Built explicitly (see ``from_settings``) and torn down with ``close()``;
    nothing here lives in module globals.
    """

    def __init__(
        self,
        backend: SupabaseBackend,
        functions: FunctionsClient,
        store: CredentialStore,
        ledger: ProvisioningLedger,
        tenant_id: str,
        team_id: str,
        default_plan_id: str | None = None,
    ) -> None:
        self.backend = backend
        self.functions = functions
        self.store = store
        self.ledger = ledger
        self.sessions = IdentitySessionManager(backend, store)
        self.tenants = TenantResolver(store, tenant_id, team_id, targets=[backend, functions])
        self.default_plan_id = default_plan_id
        self._guard = SingleFlight()
        self._stages: list[Callable[[BootstrapState], Awaitable[None]]] = [
            self._tenant_stage,
            self._profile_stage,
            self._membership_stage,
            self._subscription_stage,
        ]

    @classmethod
    def from_settings(cls, settings: Settings) -> "BootstrapCoordinator":
        return cls(
            backend=SupabaseBackend.from_settings(settings),
            functions=FunctionsClient.from_settings(settings),
            store=FileCredentialStore(settings.credential_store_path),
            ledger=ProvisioningLedger(settings.provisioning_ledger_path),
            tenant_id=settings.default_tenant_id,
            team_id=settings.default_team_id,
            default_plan_id=settings.default_plan_id,
        )

    def close(self) -> None:
        """Release the tenant pin; persisted credentials are kept."""
        self.tenants.release()

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def sign_in(self, email: str, password: str) -> BootstrapResult:
        """Sign in, pin the tenant and finish any owed provisioning."""
        try:
            identity = await self.sessions.login(email, password)
            return await self._bootstrap(identity)
        except TreinupError as e:
            return self._failure(e)

    async def sign_up(self, email: str, password: str, name: str) -> BootstrapResult:
        """Register, sign in and provision the new account.

        Provisioning failures do not fail the sign-up: the user is signed in
        and the outstanding steps are left in the ledger for ``repair()``.
        """
        steps = [ProvisioningStep.PROFILE, ProvisioningStep.MEMBERSHIP]
        if self.default_plan_id:
            steps.append(ProvisioningStep.SUBSCRIPTION)
        flagged: list[LedgerEntry] = []

        def flag(identity: Identity) -> None:
            entry = LedgerEntry(
                user_id=identity.id,
                name=name,
                email=email,
                role=ProfileRole.USER,
                pending_steps=steps,
            )
            flagged.append(entry)
            self._record(entry)

        try:
            identity = await self.sessions.register(email, password, name, on_created=flag)
            return await self._bootstrap(identity, flagged[0] if flagged else None)
        except TreinupError as e:
            return self._failure(e)

    async def resume(self) -> BootstrapResult:
        """Resume the persisted session on app launch."""
        try:
            identity = await self.sessions.restore()
            if identity is None:
                return self._failure(NotAuthenticatedError("No stored session"))
            return await self._bootstrap(identity)
        except TreinupError as e:
            return self._failure(e)

    async def repair(self) -> BootstrapResult:
        """Retry owed provisioning steps for the signed-in user."""
        identity = self.sessions.current_identity()
        if identity is None:
            return self._failure(NotAuthenticatedError())
        try:
            return await self._bootstrap(identity)
        except TreinupError as e:
            return self._failure(e)

    async def sign_out(self) -> BootstrapResult:
        """Sign out and release the tenant."""
        try:
            await self.sessions.logout()
        except TreinupError as e:
            return self._failure(e)
        finally:
            self.tenants.release()
        return BootstrapResult(success=True)

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    async def _bootstrap(
        self,
        identity: Identity,
        entry: LedgerEntry | None = None,
    ) -> BootstrapResult:
        return await self._guard.run(identity.id, lambda: self._run_stages(identity, entry))

    async def _run_stages(
        self,
        identity: Identity,
        entry: LedgerEntry | None = None,
    ) -> BootstrapResult:
        # The ledger copy wins; ``entry`` covers a sign-up whose flag was not persisted
        state = BootstrapState(identity=identity, entry=self.ledger.get(identity.id) or entry)
        if state.entry is not None:
            state.profile_id = state.entry.profile_id

        for stage in self._stages:
            try:
                await stage(state)
            except TreinupError as e:
                if state.tenant_id is None:
                    # Without a tenant there is no usable session
                    await self._abandon_session(identity)
                    raise
                logger.warning(f"Bootstrap stage {stage.__name__} failed for {identity.id}: {e}")
                state.error = e
                break

        if state.entry is not None:
            state.entry.profile_id = state.profile_id
            state.entry.last_error = state.error.message if state.error else None
            self._record(state.entry)

        result = BootstrapResult(
            success=True,
            identity=identity,
            tenant_id=state.tenant_id,
            profile_id=state.profile_id,
            subscription_id=state.subscription_id,
            pending_steps=state.pending,
        )
        if state.pending:
            result.error = PartialProvisioningError.code
            result.message = state.error.message if state.error else None
        return result

    async def _tenant_stage(self, state: BootstrapState) -> None:
        state.tenant_id = self.tenants.resolve_tenant(state.identity)

    async def _profile_stage(self, state: BootstrapState) -> None:
        if ProvisioningStep.PROFILE not in state.pending:
            return
        entry = state.entry
        response = await self.functions.create_profile(
            user_id=entry.user_id,
            name=entry.name,
            email=entry.email,
            role=entry.role.value,
        )
        state.membership_attempted = True

        if response.ok:
            state.profile_id = response.profile_id
            state.done(ProvisioningStep.PROFILE, ProvisioningStep.MEMBERSHIP)
            return
        if response.code == ProfileAlreadyExistsError.code:
            # Created by an earlier attempt whose answer was lost
            state.profile_id = response.profile_id or state.profile_id
            state.membership_attempted = False
            state.done(ProvisioningStep.PROFILE)
            return
        if response.code == PartialProvisioningError.code:
            state.profile_id = response.profile_id
            state.done(ProvisioningStep.PROFILE)
            raise _function_error(response, "Membership was not granted")
        raise _function_error(response, "Profile creation failed")

    async def _membership_stage(self, state: BootstrapState) -> None:
        if ProvisioningStep.MEMBERSHIP not in state.pending or state.membership_attempted:
            return
        response = await self.functions.join_default_team(
            state.entry.user_id, state.entry.role.value
        )
        if not response.ok:
            raise _function_error(response, "Could not join the default team")
        state.done(ProvisioningStep.MEMBERSHIP)

    async def _subscription_stage(self, state: BootstrapState) -> None:
        if ProvisioningStep.SUBSCRIPTION not in state.pending or not state.profile_id:
            return
        response = await self.functions.attach_default_subscription(
            state.profile_id, self.default_plan_id
        )
        if response.ok:
            state.subscription_id = response.subscription_id
            state.done(ProvisioningStep.SUBSCRIPTION)
            return
        if response.code == PlanNotFoundError.code:
            # Retrying cannot make the plan appear
            logger.error(f"Default plan {self.default_plan_id} not found, dropping subscription step")
            state.done(ProvisioningStep.SUBSCRIPTION)
            return
        raise _function_error(response, "Could not attach the default subscription")

    async def _abandon_session(self, identity: Identity) -> None:
        """Sign out a user whose session cannot be completed."""
        logger.warning(f"Signing out {identity.id}: no tenant could be pinned")
        try:
            await self.sessions.logout()
        except StorageUnavailableError as e:
            logger.error(f"Could not clear credentials for {identity.id}: {e}")
        self.tenants.release()

    def _record(self, entry: LedgerEntry) -> None:
        """Persist an entry; the attempt carries on if the ledger is unavailable."""
        try:
            self.ledger.record(entry)
        except StorageUnavailableError as e:
            logger.error(f"Could not record provisioning for user {entry.user_id}: {e}")

    @staticmethod
    def _failure(error: TreinupError) -> BootstrapResult:
        return BootstrapResult(success=False, error=error.code, message=error.message)
