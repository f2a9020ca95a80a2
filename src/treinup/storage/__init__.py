"""Local persistence for TreinUp."""

from treinup.storage.credential_store import (
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
)
from treinup.storage.provisioning_ledger import ProvisioningLedger

__all__ = [
    "CredentialStore",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "ProvisioningLedger",
]
