"""Data models for TreinUp."""

from treinup.models.identity import Identity, TenantContext
from treinup.models.outcome import BootstrapResult
from treinup.models.profile import Preferences, Privacy, Profile, ProfileRole, Stats
from treinup.models.provisioning import (
    AttachSubscriptionRequest,
    CreateProfileRequest,
    FunctionResponse,
    JoinTeamRequest,
    LedgerEntry,
    ProvisioningStep,
)
from treinup.models.session import CredentialKey, Session
from treinup.models.subscription import Plan, Subscription

__all__ = [
    "AttachSubscriptionRequest",
    "BootstrapResult",
    "CreateProfileRequest",
    "CredentialKey",
    "FunctionResponse",
    "Identity",
    "JoinTeamRequest",
    "LedgerEntry",
    "Plan",
    "Preferences",
    "Privacy",
    "Profile",
    "ProfileRole",
    "ProvisioningStep",
    "Session",
    "Stats",
    "Subscription",
    "TenantContext",
]
