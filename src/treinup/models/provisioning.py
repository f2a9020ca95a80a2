"""Provisioning models: ledger entries and function payloads."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from treinup.models.profile import ProfileRole


class ProvisioningStep(str, Enum):
    """Server-side steps that make up account provisioning."""

    PROFILE = "profile"
    MEMBERSHIP = "membership"
    SUBSCRIPTION = "subscription"


class LedgerEntry(BaseModel):
    """Provisioning steps still owed to a signed-up user."""

    user_id: str
    name: str
    email: str
    role: ProfileRole = ProfileRole.USER
    profile_id: str | None = None
    pending_steps: list[ProvisioningStep] = Field(default_factory=list)
    last_error: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class _FunctionModel(BaseModel):
    """Function payloads use camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateProfileRequest(_FunctionModel):
    user_id: str | None = None
    name: str | None = None
    email: str | None = None
    role: str | None = None


class JoinTeamRequest(_FunctionModel):
    user_id: str | None = None
    role: str | None = None


class AttachSubscriptionRequest(_FunctionModel):
    profile_id: str | None = None
    plan_id: str | None = None
    tenant_id: str | None = None


class FunctionResponse(_FunctionModel):
    """Response shape shared by every function: ``{ok, ...}``."""

    ok: bool
    message: str | None = None
    code: str | None = None
    profile_id: str | None = None
    subscription_id: str | None = None
    pending_steps: list[ProvisioningStep] | None = None
