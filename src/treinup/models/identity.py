"""Identity and tenant models."""

from pydantic import BaseModel


class Identity(BaseModel):
    """The identity provider's user record, as cached by the client."""

    id: str
    email: str
    display_name: str | None = None


class TenantContext(BaseModel):
    """The organisation scope a session operates under."""

    tenant_id: str
    team_id: str
