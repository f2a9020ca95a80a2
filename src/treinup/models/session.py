"""Session models held by the credential store."""

from enum import Enum

from pydantic import BaseModel


class CredentialKey(str, Enum):
    """The fixed set of keys the credential store manages."""

    SESSION_TOKEN = "sessionToken"
    AUTH_TOKEN = "authToken"
    ACTIVE_TENANT_ID = "activeTenantId"


class Session(BaseModel):
    """An authenticated device session."""

    session_token: str
    auth_token: str
    active_tenant_id: str | None = None

    def to_credentials(self) -> dict[CredentialKey, str]:
        """Map the session onto credential store keys."""
        values = {
            CredentialKey.SESSION_TOKEN: self.session_token,
            CredentialKey.AUTH_TOKEN: self.auth_token,
        }
        if self.active_tenant_id:
            values[CredentialKey.ACTIVE_TENANT_ID] = self.active_tenant_id
        return values
