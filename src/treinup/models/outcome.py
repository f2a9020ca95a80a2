"""Outcomes returned to UI-facing callers."""

from pydantic import BaseModel, Field

from treinup.models.identity import Identity
from treinup.models.provisioning import ProvisioningStep


class BootstrapResult(BaseModel):
    """Result of a bootstrap action.

    ``success`` reports whether the user reached a usable session. A
    signed-up user whose provisioning is incomplete gets ``success=True``
    with ``error="partial_provisioning"`` and the outstanding steps.
    """

    success: bool
    error: str | None = None
    message: str | None = None
    identity: Identity | None = None
    tenant_id: str | None = None
    profile_id: str | None = None
    subscription_id: str | None = None
    pending_steps: list[ProvisioningStep] = Field(default_factory=list)
